"""Serve the built app and measure the size of its rendered index page."""

from __future__ import annotations

import shlex
import subprocess
import time
from pathlib import Path
from typing import Mapping, Optional

import requests

from .config import DEFAULT_RENDER_TIMEOUT, DEFAULT_RENDER_URL
from .errors import ProbeError
from .log import log
from .metrics import MetricError, MetricStore
from .sampler import build_env
from .sizes import PROBE_ERROR_TEXT

POLL_INTERVAL = 0.5
REQUEST_TIMEOUT = 30


def fetch_page_size(
    command: str,
    cwd: Path,
    url: str = DEFAULT_RENDER_URL,
    timeout: float = DEFAULT_RENDER_TIMEOUT,
    env: Optional[Mapping[str, str]] = None,
) -> int:
    """Start the app server, GET `url` once it answers and return the body size.

    The server is always killed before returning.
    """
    log(f"Fetching page size with {command!r}")
    try:
        server = subprocess.Popen(
            shlex.split(command),
            cwd=str(cwd),
            env=build_env(env),
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
    except OSError as exc:
        raise ProbeError(url, f"failed to start server: {exc}") from exc

    deadline = time.monotonic() + timeout
    try:
        while True:
            code = server.poll()
            if code is not None:
                raise ProbeError(url, f"server exited with code {code}")
            try:
                resp = requests.get(url, timeout=REQUEST_TIMEOUT)
            except requests.ConnectionError:
                # not listening yet
                if time.monotonic() >= deadline:
                    raise ProbeError(url, f"server not ready within {timeout:g}s") from None
                time.sleep(POLL_INTERVAL)
                continue
            except requests.RequestException as exc:
                raise ProbeError(url, str(exc)) from exc
            if not resp.ok:
                raise ProbeError(url, f"got status {resp.status_code}")
            return len(resp.content)
    finally:
        if server.poll() is None:
            server.kill()
        server.wait()


def collect_page_size(
    store: MetricStore,
    name: str,
    command: str,
    cwd: Path,
    url: str = DEFAULT_RENDER_URL,
    timeout: float = DEFAULT_RENDER_TIMEOUT,
    env: Optional[Mapping[str, str]] = None,
) -> None:
    try:
        store.set(name, fetch_page_size(command, cwd, url=url, timeout=timeout, env=env))
    except ProbeError as exc:
        log(f"failed to get page size: {exc}")
        store.set(name, MetricError(PROBE_ERROR_TEXT))
