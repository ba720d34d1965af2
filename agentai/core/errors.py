"""Fatal startup conditions.

Every error here is raised before the first file write or process spawn it
would otherwise affect, so the container never ends up half-started.
"""

from __future__ import annotations

from pathlib import Path

EXIT_OK = 0
EXIT_STARTUP_FAILED = 1


class StartupError(Exception):
    exit_code = EXIT_STARTUP_FAILED


class MissingDependencyError(StartupError):
    def __init__(self, missing: list[str]) -> None:
        self.missing = list(missing)
        super().__init__(f"Missing required dependencies: {', '.join(self.missing)}")


class MissingSettingError(StartupError):
    def __init__(self, missing: list[str]) -> None:
        self.missing = list(missing)
        super().__init__(f"Missing required settings: {', '.join(self.missing)}")


class InvalidConfigDocumentError(StartupError):
    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid config document {path}: {reason}")


class InvalidSettingError(StartupError):
    def __init__(self, name: str, value: str, reason: str) -> None:
        self.name = name
        self.value = value
        super().__init__(f"{name}={value!r} {reason}")


class ChildProcessStartError(StartupError):
    def __init__(self, name: str, reason: str) -> None:
        self.name = name
        super().__init__(f"Failed to start {name}: {reason}")


class StartupCancelled(StartupError):
    """A termination signal arrived before any child process existed."""
