"""Stderr logging in the `[pr-stats] message` format used by the CI scripts."""

from __future__ import annotations

import json
import sys
from typing import Any

PREFIX = "[pr-stats]"


def log(*parts: object) -> None:
    print(PREFIX, *parts, file=sys.stderr)


def log_json(label: str, obj: Any) -> None:
    log(f"{label}\n{json.dumps(obj, indent=2, sort_keys=True, default=str)}")
