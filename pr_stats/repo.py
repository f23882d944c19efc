"""Git helpers: clone/checkout the repos under test and diff build artifacts."""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from typing import Mapping, Optional, Type

from .errors import CheckoutError, CloneError, CommandError
from .log import log
from .sampler import build_env


def run(
    argv: list[str],
    *,
    cwd: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
    check: bool = True,
    error: Type[CommandError] = CommandError,
) -> subprocess.CompletedProcess[str]:
    log(f"exec: {' '.join(argv)}")
    try:
        result = subprocess.run(
            argv,
            cwd=str(cwd) if cwd else None,
            env=build_env(env),
            check=False,
            capture_output=True,
            text=True,
        )
    except OSError as exc:
        raise error(argv, 127, str(exc)) from exc
    if check and result.returncode != 0:
        raise error(argv, result.returncode, result.stderr or "")
    return result


def clone(repo_id: str, dest: Path, git_root: str = "https://github.com/") -> Path:
    if dest.exists():
        shutil.rmtree(dest)
    dest.parent.mkdir(parents=True, exist_ok=True)
    run(["git", "clone", f"{git_root}{repo_id}", str(dest)], error=CloneError)
    return dest


def checkout(ref: str, path: Path) -> None:
    run(["git", "fetch", "origin"], cwd=path, error=CheckoutError)
    run(["git", "checkout", ref], cwd=path, error=CheckoutError)


def strip_diff_header(name: str, text: str) -> str:
    """Drop everything up to the last mention of the file name (the git header)."""
    return text.split(name)[-1] if text else ""


class DiffWorkspace:
    """Scratch git repo holding one artifact set so the next set can be diffed against it."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def _copy(self, files: Mapping[str, Path]) -> None:
        self.path.mkdir(parents=True, exist_ok=True)
        for name, source in files.items():
            shutil.copyfile(source, self.path / name)

    def snapshot(self, files: Mapping[str, Path]) -> None:
        if self.path.exists():
            shutil.rmtree(self.path)
        self._copy(files)
        run(["git", "init", "--quiet"], cwd=self.path)
        run(["git", "add", *files], cwd=self.path)

    def diff(self, files: Mapping[str, Path]) -> dict[str, str]:
        self._copy(files)
        diffs: dict[str, str] = {}
        for name in files:
            result = run(["git", "diff", "--no-color", "--", name], cwd=self.path)
            diffs[name] = strip_diff_header(name, result.stdout or "")
        return diffs
