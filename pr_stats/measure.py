"""Build a checked-out repo and measure it into a MetricStore."""

from __future__ import annotations

import shlex
import shutil
from pathlib import Path

from .config import BuildConfiguration, StatsConfig
from .errors import EmptySampleSet, ProbeError
from .labels import BASE_RENDER_BYTES, BUILD_DIR_SIZE, BUILD_DURATION, DEPENDENCY_DIR_SIZE
from .log import log
from .metrics import MetricStore
from .pages import collect_page_size
from .repo import DiffWorkspace, run
from .runner import SourceRef
from .sampler import DEFAULT_INTERVAL, BuildRun, run_build
from .samples import aggregate
from .sizes import collect_dir_size, collect_file_sizes, find_file


class RepoBuilder:
    def __init__(self, stats_config: StatsConfig, diff_dir: Path, interval: float = DEFAULT_INTERVAL) -> None:
        self.config = stats_config
        self.workspace = DiffWorkspace(diff_dir)
        self.interval = interval
        self._prepared: set[Path] = set()

    def app_dir(self, source: SourceRef) -> Path:
        return source.path / self.config.app_dir

    def prepare(self, source: SourceRef) -> None:
        if source.path in self._prepared:
            return
        if self.config.install_command:
            log(f"Running initial build for {source.path}")
            run(shlex.split(self.config.install_command), cwd=self.app_dir(source))
        self._prepared.add(source.path)

    def _build(self, source: SourceRef, configuration: BuildConfiguration) -> BuildRun:
        app_dir = self.app_dir(source)
        shutil.rmtree(app_dir / self.config.output_dir, ignore_errors=True)
        return run_build(
            self.config.build_command,
            cwd=str(app_dir),
            timeout=self.config.build_timeout,
            env=self.config.env_for(configuration),
            interval=self.interval,
        )

    def measure(self, source: SourceRef, configuration: BuildConfiguration) -> MetricStore:
        self.prepare(source)
        app_dir = self.app_dir(source)
        store = MetricStore(source.display)

        log(f"Building {app_dir} using {source.display} ({configuration.value})")
        build = self._build(source, configuration)
        store.set(BUILD_DURATION, build.duration_ms)

        collect_file_sizes(store, self.config.files_to_track, app_dir)
        collect_dir_size(store, BUILD_DIR_SIZE, app_dir / self.config.output_dir)
        if self.config.dependency_dir:
            collect_dir_size(store, DEPENDENCY_DIR_SIZE, app_dir / self.config.dependency_dir)
        if self.config.render_command:
            collect_page_size(
                store,
                BASE_RENDER_BYTES,
                self.config.render_command,
                app_dir,
                url=self.config.render_url,
                timeout=self.config.render_timeout,
                env=self.config.env_for(configuration),
            )

        try:
            aggregate(build.samples).apply_to(store)
        except EmptySampleSet as exc:
            log(f"no resource usage for {source.display}: {exc}")
        return store

    def artifact_paths(self, source: SourceRef) -> dict[str, Path]:
        app_dir = self.app_dir(source)
        paths: dict[str, Path] = {}
        for tracked_file in self.config.files_to_track:
            try:
                path = find_file(app_dir, tracked_file.pattern, tracked_file.modern)
            except ProbeError as exc:
                log(f"skipping diff for {tracked_file.name}: {exc}")
                continue
            paths[f"{tracked_file.name}{path.suffix}"] = path
        return paths

    def capture_diff(self, source: SourceRef, is_candidate: bool) -> dict[str, str]:
        self.prepare(source)
        self._build(source, BuildConfiguration.DIFF)
        paths = self.artifact_paths(source)
        if not is_candidate:
            self.workspace.snapshot(paths)
            return {}
        return self.workspace.diff(paths)

