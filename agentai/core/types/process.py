from __future__ import annotations

import signal
from dataclasses import dataclass
from enum import Enum


class SupervisorState(str, Enum):
    INIT = "Init"
    DEPENDENCIES_CHECKED = "DependenciesChecked"
    CONFIG_PATCHED = "ConfigPatched"
    PROXY_STARTING = "ProxyStarting"
    PROXY_RUNNING = "ProxyRunning"
    MAIN_STARTING = "MainStarting"
    MAIN_RUNNING = "MainRunning"
    SHUTTING_DOWN = "ShuttingDown"
    STOPPED = "Stopped"
    ABORTED = "Aborted"


@dataclass(frozen=True)
class ManagedProcess:
    """A long-running child owned by the supervisor for its whole lifetime."""

    name: str
    command: tuple[str, ...]
    port: int | None = None
    ready_url: str | None = None
    start_order: int = 0
    stop_signal: signal.Signals = signal.SIGTERM
    stop_timeout: float = 10.0
