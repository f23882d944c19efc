"""Reduce CPU/memory samples from one build into averages and maxima."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence

import numpy as np

from .errors import EmptySampleSet
from .metrics import MetricKind, MetricStore

PRECISION = Decimal("0.01")

USAGE_METRICS = {
    "avgCpuUsage": MetricKind.PERCENTAGE,
    "maxCpuUsage": MetricKind.PERCENTAGE,
    "avgMemUsage": MetricKind.BYTE_SIZE,
    "maxMemUsage": MetricKind.BYTE_SIZE,
}


@dataclass(frozen=True)
class Sample:
    cpu_percent: float
    memory_bytes: float


@dataclass(frozen=True)
class AggregatedUsage:
    avg_cpu: float
    max_cpu: float
    avg_memory: float
    max_memory: float

    def apply_to(self, store: MetricStore) -> None:
        store.set("avgCpuUsage", self.avg_cpu)
        store.set("maxCpuUsage", self.max_cpu)
        store.set("avgMemUsage", self.avg_memory)
        store.set("maxMemUsage", self.max_memory)


def round2(value: float) -> float:
    # Decimal(str(...)) keeps 0.125 -> 0.13 instead of binary float drift.
    return float(Decimal(str(value)).quantize(PRECISION, rounding=ROUND_HALF_UP))


def aggregate(samples: Sequence[Sample]) -> AggregatedUsage:
    if not samples:
        raise EmptySampleSet("no cpu/memory samples were collected during the build")

    values = np.array([(s.cpu_percent, s.memory_bytes) for s in samples], dtype=np.float64)
    totals = values.sum(axis=0)
    peaks = values.max(axis=0)
    count = len(samples)

    return AggregatedUsage(
        avg_cpu=round2(float(totals[0]) / count),
        max_cpu=round2(float(peaks[0])),
        avg_memory=round2(float(totals[1]) / count),
        max_memory=round2(float(peaks[1])),
    )
