"""
Drive baseline/candidate build pairs and turn each pair into a report.

Whether a build is the baseline or the candidate is decided only by its
position in the current cycle. Baseline and candidate may point at the same
repo and ref (release runs), so refs are never compared.

    IDLE -> BASELINE_RUNNING -> BASELINE_COMPLETE -> CANDIDATE_RUNNING
         -> CANDIDATE_COMPLETE (report emitted) -> next cycle

Any builder failure moves the controller to FAILED and no report is emitted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, Mapping, Optional, Protocol

from .compare import Comparison, LabelEntry, PrimaryGroup, compare
from .config import BuildConfiguration
from .diffs import DEFAULT_BUDGET_BYTES, DEFAULT_ENTRY_THRESHOLD, assemble, elided_names
from .errors import InvalidTransition
from .log import log
from .metrics import DerivedMetricRule, MetricStore
from .render import RenderContext, render

DEFAULT_TITLES = {
    BuildConfiguration.DEFAULT: "Default Build",
    BuildConfiguration.SERVERLESS: "Serverless Mode",
    BuildConfiguration.DIFF: "Diff Build",
}


class RunState(Enum):
    IDLE = "idle"
    BASELINE_RUNNING = "baseline-running"
    BASELINE_COMPLETE = "baseline-complete"
    CANDIDATE_RUNNING = "candidate-running"
    CANDIDATE_COMPLETE = "candidate-complete"
    FAILED = "failed"


@dataclass(frozen=True)
class SourceRef:
    repo: str
    ref: str
    path: Path

    @property
    def display(self) -> str:
        return f"{self.repo} {self.ref}"


class Builder(Protocol):
    def measure(self, source: SourceRef, configuration: BuildConfiguration) -> MetricStore:
        ...

    def capture_diff(self, source: SourceRef, is_candidate: bool) -> dict[str, str]:
        ...


@dataclass
class RunCycle:
    configuration: BuildConfiguration
    baseline: MetricStore = field(default_factory=lambda: MetricStore("baseline"))
    candidate: MetricStore = field(default_factory=lambda: MetricStore("candidate"))
    baseline_source: Optional[SourceRef] = None
    candidate_source: Optional[SourceRef] = None

    def reset(self) -> None:
        self.baseline.clear()
        self.candidate.clear()
        self.baseline_source = None
        self.candidate_source = None


@dataclass(frozen=True)
class CycleReport:
    configuration: BuildConfiguration
    title: str
    comparison: Comparison
    text: str
    diff_text: Optional[str] = None


class RunController:
    def __init__(
        self,
        builder: Builder,
        label_table: Mapping[str, LabelEntry],
        derived_rules: Iterable[DerivedMetricRule] = (),
        primary_groups: Iterable[PrimaryGroup] = (),
        *,
        capture_diffs: bool = True,
        diff_budget_bytes: int = DEFAULT_BUDGET_BYTES,
        diff_entry_threshold: int = DEFAULT_ENTRY_THRESHOLD,
    ) -> None:
        self.builder = builder
        self.label_table = dict(label_table)
        self.derived_rules = list(derived_rules)
        self.primary_groups = list(primary_groups)
        self.capture_diffs = capture_diffs
        self.diff_budget_bytes = diff_budget_bytes
        self.diff_entry_threshold = diff_entry_threshold

        self.state = RunState.IDLE
        self.cycle: Optional[RunCycle] = None
        self.failure: Optional[BaseException] = None
        self.reports: list[CycleReport] = []

    # ── Transitions ─────────────────────────────────────────────────────────

    def _begin_cycle(self, configuration: BuildConfiguration) -> None:
        if self.cycle is not None:
            if self.state is RunState.BASELINE_COMPLETE:
                log(f"discarding unfinished {self.cycle.configuration.value} cycle")
            self.cycle.reset()
        self.cycle = RunCycle(configuration=configuration)
        self.state = RunState.IDLE

    def _fail(self, exc: BaseException) -> None:
        self.state = RunState.FAILED
        self.failure = exc
        log(f"Failed to get stats: {exc}")

    def _measure(self, source: SourceRef, configuration: BuildConfiguration) -> MetricStore:
        try:
            store = self.builder.measure(source, configuration)
        except Exception as exc:
            self._fail(exc)
            raise
        store.apply_derived_rules(self.derived_rules)
        return store

    def run_build(
        self,
        source: SourceRef,
        configuration: BuildConfiguration = BuildConfiguration.DEFAULT,
        title: Optional[str] = None,
    ) -> Optional[CycleReport]:
        """Build `source` as the next step of the current cycle.

        Returns None after the baseline build and the cycle's report after
        the candidate build.
        """
        if self.state is RunState.FAILED:
            raise InvalidTransition(f"controller already failed: {self.failure}")
        if configuration is BuildConfiguration.DIFF:
            raise InvalidTransition("diff builds are only scheduled after a regression")

        if (
            self.cycle is None
            or self.cycle.configuration is not configuration
            or self.state is RunState.CANDIDATE_COMPLETE
        ):
            self._begin_cycle(configuration)
        cycle = self.cycle
        assert cycle is not None

        if self.state is RunState.IDLE:
            log(f"Running baseline {configuration.value} build for {source.display}")
            self.state = RunState.BASELINE_RUNNING
            cycle.baseline = self._measure(source, configuration)
            cycle.baseline_source = source
            self.state = RunState.BASELINE_COMPLETE
            return None

        if self.state is not RunState.BASELINE_COMPLETE:
            raise InvalidTransition(f"cannot start a build while {self.state.value}")

        log(f"Running candidate {configuration.value} build for {source.display}")
        self.state = RunState.CANDIDATE_RUNNING
        cycle.candidate = self._measure(source, configuration)
        cycle.candidate_source = source
        report = self._report(cycle, title or DEFAULT_TITLES[configuration])
        self.state = RunState.CANDIDATE_COMPLETE
        self.reports.append(report)
        return report

    def run_cycle(
        self,
        baseline: SourceRef,
        candidate: SourceRef,
        configuration: BuildConfiguration = BuildConfiguration.DEFAULT,
        title: Optional[str] = None,
    ) -> CycleReport:
        self.run_build(baseline, configuration, title)
        report = self.run_build(candidate, configuration, title)
        assert report is not None
        return report

    # ── Reporting ───────────────────────────────────────────────────────────

    def _report(self, cycle: RunCycle, title: str) -> CycleReport:
        assert cycle.baseline_source is not None and cycle.candidate_source is not None
        comparison = compare(cycle.baseline, cycle.candidate, self.label_table, self.primary_groups)
        summary = "Click to expand stats"
        if cycle.configuration is BuildConfiguration.SERVERLESS:
            summary = "Click to expand serverless stats"
        context = RenderContext(
            title=title,
            collapsible_label=summary,
            baseline_label=cycle.baseline_source.display,
            candidate_label=cycle.candidate_source.display,
        )
        text = render(comparison.rows, comparison.verdict, context)

        diff_text = None
        if comparison.regressed and self.capture_diffs:
            log(f"{comparison.verdict_group} size increased, capturing diffs")
            diff_text = self._run_diff_cycle(cycle.baseline_source, cycle.candidate_source)

        return CycleReport(
            configuration=cycle.configuration,
            title=title,
            comparison=comparison,
            text=text,
            diff_text=diff_text or None,
        )

    def _run_diff_cycle(self, baseline: SourceRef, candidate: SourceRef) -> str:
        # Outputs feed the diff assembler only, never the cycle's metric stores.
        try:
            self.state = RunState.BASELINE_RUNNING
            self.builder.capture_diff(baseline, is_candidate=False)
            self.state = RunState.BASELINE_COMPLETE
            self.state = RunState.CANDIDATE_RUNNING
            diffs = self.builder.capture_diff(candidate, is_candidate=True)
        except Exception as exc:
            self._fail(exc)
            raise

        text = assemble(diffs, self.diff_budget_bytes, self.diff_entry_threshold)
        elided = elided_names(text, list(diffs))
        if elided:
            log(f"elided oversized diffs: {', '.join(elided)}")
        return text
