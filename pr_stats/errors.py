from __future__ import annotations


class StatsError(Exception):
    """Base class for failures that abort a stats run."""


class ConfigError(StatsError):
    pass


class EmptySampleSet(StatsError):
    """The build produced no resource samples."""


class ProbeError(StatsError):
    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"failed to probe {path}: {reason}")
        self.path = path
        self.reason = reason


class CommandError(StatsError):
    def __init__(self, argv: list[str], returncode: int, stderr: str = "") -> None:
        detail = stderr.strip() or "(no stderr)"
        super().__init__(f"command failed ({returncode}): {' '.join(argv)}\n{detail}")
        self.argv = argv
        self.returncode = returncode
        self.stderr = stderr


class CloneError(CommandError):
    pass


class CheckoutError(CommandError):
    pass


class BuildExitNonZero(StatsError):
    def __init__(self, returncode: int) -> None:
        super().__init__(f"build process exited with code {returncode}")
        self.returncode = returncode


class BuildTimeout(StatsError):
    def __init__(self, timeout: float) -> None:
        super().__init__(f"build did not finish within {timeout:g}s")
        self.timeout = timeout


class NotifyError(StatsError):
    def __init__(self, status: int | None, body: str) -> None:
        super().__init__(f"failed to post comment (status={status}): {body[:200]}")
        self.status = status
        self.body = body


class InvalidTransition(StatsError):
    pass
