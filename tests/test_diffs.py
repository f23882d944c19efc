"""Tests for diff assembly under a size budget"""

from pr_stats.diffs import ELIDED_PLACEHOLDER, assemble, byte_len, elided_names, wrap_diff


class TestWrapDiff:
    def test_fenced_block(self):
        text = wrap_diff("main.js", "+a\n-b\n")
        assert text.splitlines() == [
            "<details>",
            "<summary>Diff for <strong>main.js</strong></summary>",
            "",
            "```diff",
            "+a",
            "-b",
            "```",
            "",
            "</details>",
        ]

    def test_placeholder(self):
        text = wrap_diff("main.js", None)
        assert ELIDED_PLACEHOLDER in text
        assert "```" not in text


class TestAssemble:
    """Greedy elision of oversized entries"""

    def test_under_budget_keeps_everything(self):
        text = assemble({"a.js": "+a", "b.js": "+b"}, budget_bytes=10_000, entry_threshold=10)
        assert "+a" in text and "+b" in text
        assert ELIDED_PLACEHOLDER not in text

    def test_elides_largest_until_under_budget(self):
        entries = {"a.js": "x" * 60_000, "b.js": "y" * 10_000}
        text = assemble(entries, budget_bytes=50_000, entry_threshold=50_000)

        assert wrap_diff("a.js", None) in text
        assert "y" * 10_000 in text
        assert "x" * 100 not in text
        assert elided_names(text, list(entries)) == ["a.js"]
        assert byte_len(text) < 50_000

    def test_entries_under_threshold_are_never_elided(self):
        entries = {"a.js": "x" * 40_000, "b.js": "y" * 40_000}
        text = assemble(entries, budget_bytes=50_000, entry_threshold=50_000)
        assert ELIDED_PLACEHOLDER not in text
        assert byte_len(text) > 50_000

    def test_ties_elide_in_original_order(self):
        entries = {"first.js": "x" * 60_000, "second.js": "y" * 60_000}
        text = assemble(entries, budget_bytes=100_000, entry_threshold=50_000)
        assert elided_names(text, list(entries)) == ["first.js"]

    def test_sizes_ignore_artifact_name_length(self):
        entries = {"a-much-longer-artifact-name.js": "x" * 60_000, "b.js": "y" * 60_001}
        text = assemble(entries, budget_bytes=100_000, entry_threshold=50_000)
        assert elided_names(text, list(entries)) == ["b.js"]

    def test_threshold_applies_to_raw_diff(self):
        entries = {"a.js": "x" * 50_000, "b.js": "y" * 50_000}
        text = assemble(entries, budget_bytes=60_000, entry_threshold=50_000)
        assert ELIDED_PLACEHOLDER not in text

    def test_output_keeps_input_order(self):
        entries = {"z.js": "+z", "a.js": "x" * 60_000, "m.js": "+m"}
        text = assemble(entries, budget_bytes=50_000, entry_threshold=50_000)
        assert text.index("z.js") < text.index("a.js") < text.index("m.js")

    def test_empty_entries_dropped(self):
        text = assemble({"a.js": "", "b.js": None, "c.js": "+c"})
        assert "a.js" not in text
        assert "b.js" not in text
        assert "c.js" in text

    def test_nothing_to_show(self):
        assert assemble({}) == ""
