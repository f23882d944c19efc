"""Combine per-artifact diffs into one Markdown block under a size budget."""

from __future__ import annotations

from typing import Mapping, Optional

DEFAULT_BUDGET_BYTES = 150_000
DEFAULT_ENTRY_THRESHOLD = 50_000
ELIDED_PLACEHOLDER = "Diff too large to display"


def byte_len(text: str) -> int:
    return len(text.encode("utf-8"))


def wrap_diff(name: str, diff: Optional[str]) -> str:
    lines = ["<details>", f"<summary>Diff for <strong>{name}</strong></summary>", ""]
    if diff is None:
        lines.append(ELIDED_PLACEHOLDER)
    else:
        lines.extend(["```diff", diff.strip("\n"), "```"])
    lines.extend(["", "</details>"])
    return "\n".join(lines)


def assemble(
    entries: Mapping[str, Optional[str]],
    budget_bytes: int = DEFAULT_BUDGET_BYTES,
    entry_threshold: int = DEFAULT_ENTRY_THRESHOLD,
) -> str:
    """Wrap every non-empty diff, eliding the largest ones while over budget.

    Sizes are those of the raw diff text, not the wrapped block. Elision is
    greedy: entries are visited largest first (ties keep their input order)
    and only entries above `entry_threshold` are replaced. The running total
    drops by the full size of each elided diff. Output order always follows
    `entries`.
    """
    diffs = {name: text for name, text in entries.items() if text}
    blocks = {name: wrap_diff(name, text) for name, text in diffs.items()}
    sizes = {name: byte_len(text) for name, text in diffs.items()}
    total = sum(sizes.values())

    if total > budget_bytes:
        for name in sorted(blocks, key=lambda key: sizes[key], reverse=True):
            if total < budget_bytes:
                break
            if sizes[name] <= entry_threshold:
                continue
            blocks[name] = wrap_diff(name, None)
            total -= sizes[name]

    return "\n\n".join(blocks.values())


def elided_names(rendered: str, names: list[str]) -> list[str]:
    return [name for name in names if wrap_diff(name, None) in rendered]
