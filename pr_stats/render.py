"""
Render comparison rows into the Markdown posted on the pull request.

Everything here is a pure function of its arguments so reports can be
snapshot-tested.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from .compare import ComparisonRow, DeltaDirection
from .metrics import MetricKind, MetricValue, is_error

COMMENT_MARKER = "<!-- pr-stats -->"
COMMENT_HEADER = "## Stats from current PR"
BYTE_UNITS = ["B", "KiB", "MiB", "GiB", "TiB"]

NO_CHANGE_MARK = "✓"
INCREASE_PREFIX = "⚠️ +"
DECREASE_PREFIX = "-"
NOT_AVAILABLE = "N/A"
MISSING = "—"

VERDICT_ANNOTATION = {
    DeltaDirection.INCREASE: "⚠️ size increase",
    DeltaDirection.DECREASE: "✅ size decrease",
}


@dataclass(frozen=True)
class RenderContext:
    title: str
    collapsible_label: str = "Click to expand stats"
    baseline_label: str = "main"
    candidate_label: str = "PR"


def trim_number(value: float, places: int = 2) -> str:
    text = f"{value:.{places}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return "0" if text in {"", "-0"} else text


def fmt_bytes(value: float) -> str:
    sign = "-" if value < 0 else ""
    size = float(abs(value))
    unit = BYTE_UNITS[0]
    for unit in BYTE_UNITS:
        if size < 1024 or unit == BYTE_UNITS[-1]:
            break
        size /= 1024
    return f"{sign}{trim_number(size)} {unit}"


def fmt_duration(ms: float) -> str:
    sign = "-" if ms < 0 else ""
    ms = abs(float(ms))
    if ms < 1000:
        return f"{sign}{trim_number(ms, 0 if float(ms).is_integer() else 1)}ms"
    seconds = ms / 1000
    if seconds < 60:
        return f"{sign}{trim_number(seconds, 1)}s"
    minutes, remainder = divmod(seconds, 60)
    return f"{sign}{int(minutes)}m {trim_number(remainder, 1)}s"


def fmt_percent(value: float) -> str:
    return f"{trim_number(value)}%"


def fmt_value(kind: MetricKind, value: Optional[MetricValue]) -> str:
    if value is None:
        return MISSING
    if is_error(value) or kind is MetricKind.ERROR:
        return str(value)
    if kind is MetricKind.BYTE_SIZE:
        return fmt_bytes(value)
    if kind is MetricKind.DURATION_MS:
        return fmt_duration(value)
    if kind is MetricKind.PERCENTAGE:
        return fmt_percent(value)
    return str(value)


def fmt_delta(row: ComparisonRow) -> str:
    if row.delta is None:
        return NOT_AVAILABLE
    if row.direction is DeltaDirection.NO_CHANGE:
        return NO_CHANGE_MARK
    if row.direction is DeltaDirection.INCREASE:
        return f"{INCREASE_PREFIX}{fmt_value(row.kind, row.delta)}"
    return f"{DECREASE_PREFIX}{fmt_value(row.kind, abs(row.delta))}"


def escape_cell(text: str) -> str:
    return text.replace("|", "\\|").replace("\n", " ")


def summary_text(label: str, verdict: DeltaDirection) -> str:
    annotation = VERDICT_ANNOTATION.get(verdict)
    return f"{label} {annotation}" if annotation else label


def render_table(rows: Iterable[ComparisonRow], context: RenderContext) -> list[str]:
    lines = [
        f"| | {escape_cell(context.baseline_label)} | {escape_cell(context.candidate_label)} | Change |",
        "| - | - | - | - |",
    ]
    for row in rows:
        lines.append(
            f"| {escape_cell(row.label)} | "
            f"{escape_cell(fmt_value(row.kind, row.baseline_value))} | "
            f"{escape_cell(fmt_value(row.kind, row.candidate_value))} | "
            f"{fmt_delta(row)} |"
        )
    return lines


def render(rows: Iterable[ComparisonRow], verdict: DeltaDirection, context: RenderContext) -> str:
    lines = [f"### {context.title}", ""]
    lines.append("<details>")
    lines.append(f"<summary>{summary_text(context.collapsible_label, verdict)}</summary>")
    lines.append("")
    lines.extend(render_table(rows, context))
    lines.append("")
    lines.append("</details>")
    return "\n".join(lines)


def render_comment(
    sections: Iterable[str],
    header: str = COMMENT_HEADER,
    diff_text: Optional[str] = None,
    marker: str = COMMENT_MARKER,
) -> str:
    lines = [marker, header, ""]
    for section in sections:
        lines.append(section)
        lines.append("")
    if diff_text:
        lines.append("### Diffs")
        lines.append("")
        lines.append(diff_text)
        lines.append("")
    return "\n".join(lines)
