"""Tests for the default label table and derived totals"""

from pr_stats.config import TrackedFile
from pr_stats.labels import (
    BASE_RENDER_BYTES,
    TOTAL_BUNDLE_BYTES,
    TOTAL_MODERN_BUNDLE_BYTES,
    build_derived_rules,
    build_label_table,
)
from pr_stats.metrics import MetricStore


class TestLabelTable:
    def test_row_order(self, tracked_files):
        names = list(build_label_table(tracked_files))
        assert names[0] == "buildDuration"
        assert names.index(TOTAL_BUNDLE_BYTES) < names.index("mainBytes") < names.index("nodeModulesSize")
        assert names.index("mainGzip") == names.index("mainBytes") + 1

    def test_rendered_size_row(self, tracked_files):
        assert build_label_table(tracked_files)[BASE_RENDER_BYTES].label == "Base Rendered Size"


class TestDerivedRules:
    """Bundle totals per tracked file group"""

    def test_legacy_and_modern_totals(self, derived_rules):
        store = MetricStore()
        store.update({"mainBytes": 100, "commonsBytes": 50, "mainModernBytes": 80})
        store.apply_derived_rules(derived_rules)
        assert store.get(TOTAL_BUNDLE_BYTES) == 150
        assert store.get(TOTAL_MODERN_BUNDLE_BYTES) == 80

    def test_no_modern_totals_without_modern_files(self):
        tracked = [TrackedFile(name="main", label="main", pattern="dist/main-*.js")]
        rules = build_derived_rules(tracked)
        assert [rule.result_name for rule in rules] == [TOTAL_BUNDLE_BYTES, "totalBundleGzip"]

        store = MetricStore()
        store.set("mainBytes", 10)
        store.apply_derived_rules(rules)
        assert TOTAL_MODERN_BUNDLE_BYTES not in store
