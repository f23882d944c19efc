"""Compare a baseline MetricStore against a candidate MetricStore."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Mapping, Optional, Union

from .metrics import MetricKind, MetricStore, MetricValue, is_number
from .samples import round2


class DeltaDirection(Enum):
    INCREASE = "increase"
    DECREASE = "decrease"
    NO_CHANGE = "no-change"


@dataclass(frozen=True)
class LabelEntry:
    label: str
    kind: MetricKind


@dataclass(frozen=True)
class PrimaryGroup:
    name: str
    metric_name: str


@dataclass(frozen=True)
class ComparisonRow:
    name: str
    label: str
    kind: MetricKind
    baseline_value: Optional[MetricValue]
    candidate_value: Optional[MetricValue]
    delta: Optional[Union[int, float]]
    direction: DeltaDirection

    @property
    def comparable(self) -> bool:
        return self.delta is not None


@dataclass(frozen=True)
class Comparison:
    rows: list[ComparisonRow]
    verdicts: dict[str, DeltaDirection] = field(default_factory=dict)

    @property
    def verdict_group(self) -> Optional[str]:
        # Groups are stored in priority order; the first one that moved decides.
        for name, direction in self.verdicts.items():
            if direction is not DeltaDirection.NO_CHANGE:
                return name
        return None

    @property
    def verdict(self) -> DeltaDirection:
        group = self.verdict_group
        return self.verdicts[group] if group else DeltaDirection.NO_CHANGE

    @property
    def regressed(self) -> bool:
        return self.verdict is DeltaDirection.INCREASE

    def row(self, name: str) -> Optional[ComparisonRow]:
        return next((row for row in self.rows if row.name == name), None)


def compare_values(baseline: Optional[MetricValue], candidate: Optional[MetricValue]) -> tuple[Optional[Union[int, float]], DeltaDirection]:
    if not is_number(baseline) or not is_number(candidate):
        return None, DeltaDirection.NO_CHANGE
    if baseline == candidate:
        return 0, DeltaDirection.NO_CHANGE
    delta = candidate - baseline
    if isinstance(delta, float):
        delta = round2(delta)
    if delta > 0:
        return delta, DeltaDirection.INCREASE
    if delta < 0:
        return delta, DeltaDirection.DECREASE
    return 0, DeltaDirection.NO_CHANGE


def compare(
    baseline: MetricStore,
    candidate: MetricStore,
    label_table: Mapping[str, LabelEntry],
    primary_groups: Iterable[PrimaryGroup] = (),
) -> Comparison:
    """Build one row per labelled metric the baseline has, in table order.

    Primary groups are evaluated in the order given; the resulting verdicts
    mapping keeps that order so `Comparison.verdict` can pick the first group
    that changed.
    """
    rows: list[ComparisonRow] = []
    for name, entry in label_table.items():
        if name not in baseline:
            continue
        baseline_value = baseline.get(name)
        candidate_value = candidate.get(name)
        delta, direction = compare_values(baseline_value, candidate_value)
        rows.append(
            ComparisonRow(
                name=name,
                label=entry.label,
                kind=entry.kind,
                baseline_value=baseline_value,
                candidate_value=candidate_value,
                delta=delta,
                direction=direction,
            )
        )

    verdicts: dict[str, DeltaDirection] = {}
    for group in primary_groups:
        _, direction = compare_values(baseline.get(group.metric_name), candidate.get(group.metric_name))
        verdicts[group.name] = direction

    return Comparison(rows=rows, verdicts=verdicts)
