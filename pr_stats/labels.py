"""Default label table, derived totals and verdict groups for a stats run."""

from __future__ import annotations

from typing import Iterable

from .compare import LabelEntry, PrimaryGroup
from .config import TrackedFile
from .metrics import DerivedMetricRule, MetricKind

BUILD_DURATION = "buildDuration"
TOTAL_BUNDLE_BYTES = "totalBundleBytes"
TOTAL_BUNDLE_GZIP = "totalBundleGzip"
TOTAL_MODERN_BUNDLE_BYTES = "totalModernBundleBytes"
TOTAL_MODERN_BUNDLE_GZIP = "totalModernBundleGzip"
BUILD_DIR_SIZE = "totalBuildSize"
DEPENDENCY_DIR_SIZE = "nodeModulesSize"
BASE_RENDER_BYTES = "baseRenderBytes"

DEFAULT_PRIMARY_GROUPS = (
    PrimaryGroup("bundle", TOTAL_BUNDLE_BYTES),
    PrimaryGroup("modern bundle", TOTAL_MODERN_BUNDLE_BYTES),
)

TOTAL_LABELS = {
    TOTAL_BUNDLE_BYTES: "Total Bundle Size",
    TOTAL_BUNDLE_GZIP: "Total Bundle gzip Size",
    TOTAL_MODERN_BUNDLE_BYTES: "Total Modern Bundle Size",
    TOTAL_MODERN_BUNDLE_GZIP: "Total Modern Bundle gzip Size",
}

TRAILING_LABELS = {
    BUILD_DIR_SIZE: LabelEntry("Build Dir Size", MetricKind.BYTE_SIZE),
    DEPENDENCY_DIR_SIZE: LabelEntry("`node_modules` Size", MetricKind.BYTE_SIZE),
    BASE_RENDER_BYTES: LabelEntry("Base Rendered Size", MetricKind.BYTE_SIZE),
    "avgMemUsage": LabelEntry("Average Memory Usage", MetricKind.BYTE_SIZE),
    "maxMemUsage": LabelEntry("Max Memory Usage", MetricKind.BYTE_SIZE),
    "avgCpuUsage": LabelEntry("Average CPU Usage", MetricKind.PERCENTAGE),
    "maxCpuUsage": LabelEntry("Max CPU Usage", MetricKind.PERCENTAGE),
}


def build_label_table(tracked: Iterable[TrackedFile]) -> dict[str, LabelEntry]:
    """Build duration first, then totals, then each tracked file, then the rest."""
    table: dict[str, LabelEntry] = {BUILD_DURATION: LabelEntry("Build Duration", MetricKind.DURATION_MS)}
    for name, label in TOTAL_LABELS.items():
        table[name] = LabelEntry(label, MetricKind.BYTE_SIZE)
    for tracked_file in tracked:
        table[tracked_file.bytes_metric] = LabelEntry(f"{tracked_file.label} Size", MetricKind.BYTE_SIZE)
        table[tracked_file.gzip_metric] = LabelEntry(f"{tracked_file.label} gzip Size", MetricKind.BYTE_SIZE)
    table.update(TRAILING_LABELS)
    return table


def build_derived_rules(tracked: Iterable[TrackedFile]) -> list[DerivedMetricRule]:
    tracked = list(tracked)
    legacy = [f for f in tracked if not f.modern]
    modern = [f for f in tracked if f.modern]
    rules = [
        DerivedMetricRule.total(TOTAL_BUNDLE_BYTES, (f.bytes_metric for f in legacy)),
        DerivedMetricRule.total(TOTAL_BUNDLE_GZIP, (f.gzip_metric for f in legacy)),
    ]
    if modern:
        rules.append(DerivedMetricRule.total(TOTAL_MODERN_BUNDLE_BYTES, (f.bytes_metric for f in modern)))
        rules.append(DerivedMetricRule.total(TOTAL_MODERN_BUNDLE_GZIP, (f.gzip_metric for f in modern)))
    return rules
