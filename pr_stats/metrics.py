"""
Named metrics for a single build run.

A MetricStore keeps insertion order so reports list metrics in a stable
order. Values are plain numbers or a MetricError sentinel for anything that
could not be measured.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator, Optional, Union


class MetricKind(Enum):
    BYTE_SIZE = "bytes"
    DURATION_MS = "duration"
    PERCENTAGE = "percent"
    COUNT = "count"
    ERROR = "error"


@dataclass(frozen=True)
class MetricError:
    reason: str = "Error getting size"

    def __str__(self) -> str:
        return self.reason


MetricValue = Union[int, float, MetricError]


def is_error(value: object) -> bool:
    return isinstance(value, MetricError)


def is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass(frozen=True)
class DerivedMetricRule:
    result_name: str
    source_names: frozenset[str]
    kind: MetricKind = MetricKind.BYTE_SIZE

    @classmethod
    def total(cls, result_name: str, source_names: Iterable[str], kind: MetricKind = MetricKind.BYTE_SIZE) -> DerivedMetricRule:
        return cls(result_name=result_name, source_names=frozenset(source_names), kind=kind)


class MetricStore:
    def __init__(self, label: str = "") -> None:
        self.label = label
        self._values: dict[str, MetricValue] = {}

    def set(self, name: str, value: MetricValue) -> None:
        if is_error(value):
            self._values[name] = value
            return
        if not is_number(value):
            raise TypeError(f"metric {name!r} must be a number or MetricError, got {type(value).__name__}")
        if isinstance(value, float) and not math.isfinite(value):
            value = MetricError(f"non-finite value ({value})")
        self._values[name] = value

    def get(self, name: str) -> Optional[MetricValue]:
        return self._values.get(name)

    def names(self) -> list[str]:
        return list(self._values)

    def items(self) -> Iterator[tuple[str, MetricValue]]:
        return iter(list(self._values.items()))

    def update(self, values: dict[str, MetricValue]) -> None:
        for name, value in values.items():
            self.set(name, value)

    def clear(self) -> None:
        self._values.clear()

    def as_dict(self) -> dict[str, MetricValue]:
        return dict(self._values)

    def apply_derived_rules(self, rules: Iterable[DerivedMetricRule]) -> None:
        """Recompute each rule's total from the current raw values.

        Missing and errored sources count as zero. Re-running the same rules
        overwrites the previous totals.
        """
        for rule in rules:
            total: Union[int, float] = 0
            for name in sorted(rule.source_names):
                if name == rule.result_name:
                    continue
                value = self._values.get(name)
                if is_number(value):
                    total += value
            self.set(rule.result_name, total)

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"MetricStore({self.label!r}, {self._values!r})"
