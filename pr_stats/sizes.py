"""File, directory and gzip size probes for build output."""

from __future__ import annotations

import gzip
import os
from pathlib import Path
from typing import Iterable

from .config import TrackedFile
from .errors import ProbeError
from .log import log
from .metrics import MetricError, MetricStore

PROBE_ERROR_TEXT = "Error getting size"
MODERN_SUFFIX = ".module.js"


def file_size(path: Path) -> int:
    try:
        return path.stat().st_size
    except OSError as exc:
        raise ProbeError(str(path), exc.strerror or str(exc)) from exc


def gzip_size(path: Path) -> int:
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise ProbeError(str(path), exc.strerror or str(exc)) from exc
    return len(gzip.compress(data, compresslevel=9))


def dir_size(path: Path) -> int:
    if not path.is_dir():
        raise ProbeError(str(path), "not a directory")
    total = 0
    for root, _dirs, files in os.walk(path):
        for name in files:
            candidate = Path(root) / name
            if candidate.is_symlink() or not candidate.is_file():
                continue
            total += candidate.stat().st_size
    return total


def find_file(root: Path, pattern: str, modern: bool = False) -> Path:
    """First sorted match of `pattern` under `root`.

    Modern bundles end in `.module.js`; a legacy lookup never returns one and
    a modern lookup only returns one.
    """
    matches = sorted(
        p for p in root.glob(pattern) if p.is_file() and p.name.endswith(MODERN_SUFFIX) == modern
    )
    if not matches:
        raise ProbeError(str(root / pattern), "no file matched")
    return matches[0]


def collect_file_sizes(store: MetricStore, tracked: Iterable[TrackedFile], root: Path) -> None:
    for tracked_file in tracked:
        try:
            path = find_file(root, tracked_file.pattern, tracked_file.modern)
            store.set(tracked_file.bytes_metric, file_size(path))
            store.set(tracked_file.gzip_metric, gzip_size(path))
        except ProbeError as exc:
            log(f"failed to get size for {tracked_file.name}: {exc}")
            store.set(tracked_file.bytes_metric, MetricError(PROBE_ERROR_TEXT))
            store.set(tracked_file.gzip_metric, MetricError(PROBE_ERROR_TEXT))


def collect_dir_size(store: MetricStore, name: str, path: Path) -> None:
    try:
        store.set(name, dir_size(path))
    except (ProbeError, OSError) as exc:
        log(f"failed to get directory size for {path}: {exc}")
        store.set(name, MetricError(PROBE_ERROR_TEXT))
