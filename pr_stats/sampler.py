"""
Run a build subprocess while polling its CPU and memory usage.

Sampling happens on a background thread at a fixed interval and is stopped
before the build result (or error) is returned to the caller.
"""

from __future__ import annotations

import os
import shlex
import subprocess
import threading
import time
from dataclasses import dataclass, field
from typing import Mapping, Optional

import psutil

from .errors import BuildExitNonZero, BuildTimeout
from .log import log
from .samples import Sample

DEFAULT_INTERVAL = 0.1
SCRUBBED_ENV = ("GITHUB_TOKEN", "PR_STATS_COMMENT_TOKEN")


class ProcessSampler:
    def __init__(self, pid: int, interval: float = DEFAULT_INTERVAL) -> None:
        self.pid = pid
        self.interval = interval
        self.samples: list[Sample] = []
        self.misses = 0
        self._lock = threading.Lock()
        self._stopped = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._process: Optional[psutil.Process] = None

    def start(self) -> ProcessSampler:
        try:
            self._attach()
        except psutil.Error:
            self.misses += 1
        self._thread = threading.Thread(target=self._poll, name=f"sampler-{self.pid}", daemon=True)
        self._thread.start()
        return self

    def _attach(self) -> None:
        process = psutil.Process(self.pid)
        # The first cpu_percent() call has no baseline and always reports 0.0.
        process.cpu_percent(interval=None)
        self._process = process

    def sample_once(self) -> Optional[Sample]:
        """Read the process once; None when there is nothing real to record.

        The call that attaches to the process only primes the CPU counter.
        Reads of a gone or exited (zombie) process count as misses.
        """
        try:
            if self._process is None:
                self._attach()
                return None
            with self._process.oneshot():
                cpu = self._process.cpu_percent(interval=None)
                memory = self._process.memory_info().rss
                exited = self._process.status() == psutil.STATUS_ZOMBIE
        except psutil.Error:
            # pid gone or not yet visible
            self.misses += 1
            return None
        if exited or memory == 0:
            self.misses += 1
            return None
        return Sample(cpu_percent=float(cpu), memory_bytes=float(memory))

    def record(self, sample: Optional[Sample]) -> None:
        if sample is None:
            return
        with self._lock:
            if self._stopped.is_set():
                return
            self.samples.append(sample)

    def _poll(self) -> None:
        while not self._stopped.wait(self.interval):
            self.record(self.sample_once())

    def stop(self) -> list[Sample]:
        with self._lock:
            self._stopped.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join()
        return list(self.samples)


@dataclass
class BuildRun:
    returncode: int
    duration_ms: float
    samples: list[Sample] = field(default_factory=list)


def build_env(extra: Optional[Mapping[str, str]] = None) -> dict[str, str]:
    env = {key: value for key, value in os.environ.items() if key not in SCRUBBED_ENV}
    if extra:
        env.update(extra)
    return env


def run_build(
    command: str,
    cwd: str,
    timeout: float,
    env: Optional[Mapping[str, str]] = None,
    interval: float = DEFAULT_INTERVAL,
) -> BuildRun:
    log(f"exec: {command} (cwd={cwd})")
    start = time.monotonic()
    try:
        child = subprocess.Popen(shlex.split(command), cwd=cwd, env=build_env(env))
    except OSError as exc:
        log(f"failed to start build: {exc}")
        raise BuildExitNonZero(127) from exc
    sampler = ProcessSampler(child.pid, interval=interval).start()
    try:
        returncode = child.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        sampler.stop()
        child.kill()
        child.wait()
        raise BuildTimeout(timeout) from None
    except BaseException:
        sampler.stop()
        if child.poll() is None:
            child.kill()
            child.wait()
        raise
    duration_ms = (time.monotonic() - start) * 1000
    samples = sampler.stop()

    if returncode != 0:
        raise BuildExitNonZero(returncode)
    if sampler.misses:
        log(f"dropped {sampler.misses} sample(s) the process could not be read for")
    return BuildRun(returncode=returncode, duration_ms=round(duration_ms), samples=samples)
