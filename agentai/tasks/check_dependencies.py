"""Probe the external tools the container relies on."""

from __future__ import annotations

import logging
import shutil
import subprocess
from collections.abc import Sequence

from agentai.core.errors import MissingDependencyError
from agentai.core.types.report import DependencyStatus

logger = logging.getLogger(__name__)

VERSION_TIMEOUT = 5.0

# Tools that do not follow the ``--version`` convention
VERSION_FLAGS: dict[str, list[str]] = {
    "go": ["version"],
    "java": ["-version"],
    "nginx": ["-v"],
}


def read_version(executable: str, name: str, timeout: float = VERSION_TIMEOUT) -> str | None:
    """Return the first non-empty line the tool prints for its version, if any."""
    args = VERSION_FLAGS.get(name, ["--version"])
    try:
        result = subprocess.run(
            [executable, *args],
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except (OSError, subprocess.TimeoutExpired):
        return None
    # java and nginx print their version on stderr
    for stream in (result.stdout, result.stderr):
        for line in (stream or "").splitlines():
            if line.strip():
                return line.strip()
    return None


def probe(name: str, required: bool, search_path: str | None = None) -> DependencyStatus:
    path = shutil.which(name, path=search_path)
    if path is None:
        return DependencyStatus(name=name, required=required)
    return DependencyStatus(name=name, required=required, path=path, version=read_version(path, name))


def check_dependencies(
    required: Sequence[str],
    optional: Sequence[str] = (),
    search_path: str | None = None,
) -> list[DependencyStatus]:
    """Probe every dependency, then fail once listing all missing required ones.

    Raises:
        MissingDependencyError: If any required executable is absent.
    """
    statuses: list[DependencyStatus] = []
    for name in required:
        statuses.append(probe(name, required=True, search_path=search_path))
    for name in optional:
        statuses.append(probe(name, required=False, search_path=search_path))

    for status in statuses:
        if status.found:
            logger.info("%s: %s", status.name, status.version or "unknown version")
        elif status.required:
            logger.error("%s: missing", status.name)
        else:
            logger.warning("%s: missing (optional)", status.name)

    missing = [status.name for status in statuses if status.required and not status.found]
    if missing:
        raise MissingDependencyError(missing)
    return statuses
