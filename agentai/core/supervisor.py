from __future__ import annotations

import logging
import os
import signal
import subprocess
import sys
import threading
import time
from collections.abc import Callable, Mapping, Sequence

import httpx

from agentai.config import Settings
from agentai.core.errors import (
    EXIT_OK,
    ChildProcessStartError,
    InvalidSettingError,
    MissingSettingError,
    StartupCancelled,
    StartupError,
)
from agentai.core.types.process import ManagedProcess, SupervisorState
from agentai.core.types.report import EnvironmentSetting, PatchResult, ReadinessReport
from agentai.tasks.check_dependencies import check_dependencies
from agentai.tasks.check_environment import ENVIRONMENT_SETTINGS, check_environment
from agentai.tasks.patch_config import patch_config
from agentai.tasks.prepare_workspace import prepare_workspace
from agentai.tasks.probe_backend import probe_backend

logger = logging.getLogger(__name__)

HANDLED_SIGNALS = (signal.SIGTERM, signal.SIGINT, signal.SIGQUIT)
POLL_INTERVAL = 0.2
READY_PROBE_TIMEOUT = 1.0
KILL_GRACE = 2.0


class CancellationToken:
    """Set once a termination signal arrives; checked by the supervisor at fixed points."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self.signum: int | None = None

    def cancel(self, signum: int | None = None) -> None:
        if self.signum is None:
            self.signum = signum
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        return self._event.wait(timeout)


def install_signal_handlers(token: CancellationToken) -> None:
    """Route termination-class signals into *token*. Must run on the main thread."""

    def _handler(signum, _frame):
        logger.info("Received %s", signal.Signals(signum).name)
        token.cancel(signum)

    for sig in HANDLED_SIGNALS:
        signal.signal(sig, _handler)


def parse_signal(name: str) -> signal.Signals:
    key = name.strip().upper()
    if not key.startswith("SIG"):
        key = f"SIG{key}"
    try:
        return signal.Signals[key]
    except KeyError:
        raise InvalidSettingError("AGENTAI_PROXY_STOP_SIGNAL", name, "is not a signal name") from None


class Supervisor:
    """Ordered startup and graceful shutdown of the proxy and the assistant server.

    Startup runs strictly in sequence: environment report, dependency gate,
    config patch, workspace preparation, backend probe, proxy, main process.
    Every fatal condition surfaces as a :class:`StartupError` before the step
    it guards has touched the filesystem or spawned anything.

    By default the main process replaces the supervisor (``os.execvp``). With
    ``exec_main`` disabled it runs as a child and the supervisor waits for a
    termination signal or for the child to exit.
    """

    def __init__(
        self,
        settings: Settings,
        token: CancellationToken | None = None,
        environ: Mapping[str, str] | None = None,
        popen: Callable[..., subprocess.Popen] = subprocess.Popen,
        execvp: Callable[[str, list[str]], object] = os.execvp,
        catalog: Sequence[EnvironmentSetting] = ENVIRONMENT_SETTINGS,
    ) -> None:
        self.settings = settings
        self.token = token or CancellationToken()
        self.environ = environ
        self.catalog = catalog
        self._popen = popen
        self._execvp = execvp

        self.state = SupervisorState.INIT
        self.history: list[SupervisorState] = [SupervisorState.INIT]
        self.report = ReadinessReport()
        self.patch_result: PatchResult | None = None
        self.children: list[tuple[ManagedProcess, subprocess.Popen]] = []

        self._shutdown_lock = threading.Lock()
        self._shutdown_started = False

    # ── State ────────────────────────────────────────────────────────

    def _transition(self, state: SupervisorState) -> None:
        logger.debug("State %s -> %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)

    def _cancel_requested(self) -> bool:
        """True when a signal arrived after children exist; raises if none exist yet."""
        if not self.token.cancelled:
            return False
        if not self.children:
            raise StartupCancelled("Termination signal received before any process started")
        return True

    # ── Process specs ────────────────────────────────────────────────

    def build_proxy_process(self) -> ManagedProcess:
        s = self.settings
        return ManagedProcess(
            name="proxy",
            command=tuple(s.proxy_command),
            port=s.proxy_port,
            ready_url=f"{s.proxy_url}/",
            start_order=0,
            stop_signal=parse_signal(s.proxy_stop_signal),
            stop_timeout=s.stop_timeout,
        )

    def build_main_process(self) -> ManagedProcess:
        s = self.settings
        return ManagedProcess(
            name="opencode",
            command=tuple(s.resolved_main_command()),
            port=s.main_port,
            start_order=1,
            stop_signal=signal.SIGTERM,
            stop_timeout=s.stop_timeout,
        )

    # ── Startup ──────────────────────────────────────────────────────

    def prepare(self, dry_run: bool = False) -> ReadinessReport:
        """Validate environment and dependencies, then patch the config document."""
        s = self.settings
        self.build_proxy_process()
        self.build_main_process()

        logger.info("Checking environment...")
        self.report.settings = check_environment(self.environ, self.catalog)
        missing = [status.setting.name for status in self.report.settings if status.failed]
        if missing:
            raise MissingSettingError(missing)
        self._cancel_requested()

        logger.info("Verifying dependencies...")
        self.report.dependencies = check_dependencies(
            s.required_dependencies, s.optional_dependencies
        )
        self._transition(SupervisorState.DEPENDENCIES_CHECKED)
        self._cancel_requested()

        logger.info("Configuring OpenCode...")
        self.patch_result = patch_config(s, dry_run=dry_run)
        self._transition(SupervisorState.CONFIG_PATCHED)
        return self.report

    def run(self) -> int:
        try:
            self.prepare()
            self._cancel_requested()

            logger.info("Setting up workspace...")
            prepare_workspace(self.settings)

            logger.info("Testing LLM connectivity...")
            probe_backend(self.settings.llm_router_url, timeout=self.settings.backend_probe_timeout)
            self._cancel_requested()

            self.start_proxy()
            if self._cancel_requested():
                return self.shutdown()

            self.log_summary()
            return self.start_main()
        except StartupError:
            self._abort()
            raise

    def _spawn(self, spec: ManagedProcess) -> subprocess.Popen:
        try:
            proc = self._popen(list(spec.command))
        except OSError as exc:
            raise ChildProcessStartError(spec.name, str(exc)) from exc
        self.children.append((spec, proc))
        logger.debug("Started %s (pid %d)", spec.name, proc.pid)
        return proc

    def start_proxy(self) -> None:
        spec = self.build_proxy_process()
        logger.info("Starting %s on :%s...", spec.name, spec.port)
        self._transition(SupervisorState.PROXY_STARTING)
        proc = self._spawn(spec)
        if self.token.cancelled:
            return
        self._wait_until_ready(spec, proc, self.settings.proxy_start_timeout)
        if self.token.cancelled:
            return
        self._transition(SupervisorState.PROXY_RUNNING)
        logger.info("%s on :%s -> OpenCode :%s", spec.name, spec.port, self.settings.main_port)

    def _wait_until_ready(self, spec: ManagedProcess, proc: subprocess.Popen, timeout: float) -> None:
        deadline = time.monotonic() + timeout
        while True:
            code = proc.poll()
            if code is not None:
                raise ChildProcessStartError(spec.name, f"exited with code {code}")
            if self.token.cancelled:
                return
            if spec.ready_url is None:
                return
            try:
                httpx.get(spec.ready_url, timeout=READY_PROBE_TIMEOUT, trust_env=False)
                return
            except httpx.TransportError:
                pass
            if time.monotonic() >= deadline:
                raise ChildProcessStartError(
                    spec.name, f"not listening at {spec.ready_url} after {timeout:.0f}s"
                )
            self.token.wait(POLL_INTERVAL)

    def log_summary(self) -> None:
        s = self.settings
        logger.info("====================================")
        logger.info("Configuration Summary")
        logger.info("  Web UI:    %s", s.proxy_url)
        logger.info("  OpenCode:  %s:%s", s.main_host, s.main_port)
        logger.info("  Workspace: %s", s.workspace_dir)
        logger.info("====================================")

    def start_main(self) -> int:
        spec = self.build_main_process()
        self._transition(SupervisorState.MAIN_STARTING)
        logger.info("Starting OpenCode server...")

        if self.settings.exec_main:
            argv = list(spec.command)
            if self.token.cancelled:
                return self.shutdown()
            self._transition(SupervisorState.MAIN_RUNNING)
            # exec discards unflushed buffers
            for handler in logging.getLogger("agentai").handlers:
                handler.flush()
            sys.stdout.flush()
            sys.stderr.flush()
            try:
                self._execvp(argv[0], argv)
            except OSError as exc:
                raise ChildProcessStartError(spec.name, str(exc)) from exc
            return EXIT_OK

        proc = self._spawn(spec)
        self._transition(SupervisorState.MAIN_RUNNING)
        return self.supervise(proc)

    def supervise(self, proc: subprocess.Popen) -> int:
        """Wait for a termination signal or for the main process to exit on its own."""
        while True:
            if self.token.wait(POLL_INTERVAL):
                return self.shutdown()
            code = proc.poll()
            if code is not None:
                logger.warning("OpenCode server exited with code %d", code)
                self.shutdown()
                return code

    # ── Shutdown ─────────────────────────────────────────────────────

    def shutdown(self) -> int:
        """Stop the proxy gracefully, then every remaining child. Safe to call twice."""
        with self._shutdown_lock:
            if self._shutdown_started:
                return EXIT_OK
            self._shutdown_started = True

        self._transition(SupervisorState.SHUTTING_DOWN)
        logger.info("Shutting down...")
        self._stop_children()
        self._transition(SupervisorState.STOPPED)
        return EXIT_OK

    def _abort(self) -> None:
        with self._shutdown_lock:
            if self._shutdown_started:
                return
            self._shutdown_started = True
        self._stop_children()
        self._transition(SupervisorState.ABORTED)

    def _stop_children(self) -> None:
        # The proxy goes first so no new connections reach a stopping server.
        ordered = sorted(self.children, key=lambda child: child[0].start_order)
        front, rest = ordered[:1], list(reversed(ordered[1:]))
        for spec, proc in front + rest:
            stop_process(spec, proc)


def stop_process(spec: ManagedProcess, proc: subprocess.Popen) -> None:
    """Bounded best-effort stop: graceful signal, then SIGKILL after the timeout."""
    if proc.poll() is not None:
        return
    try:
        proc.send_signal(spec.stop_signal)
    except ProcessLookupError:
        return
    try:
        proc.wait(timeout=spec.stop_timeout)
        logger.info("%s stopped", spec.name)
        return
    except subprocess.TimeoutExpired:
        logger.warning("%s did not stop within %.0fs; killing", spec.name, spec.stop_timeout)
    proc.kill()
    try:
        proc.wait(timeout=KILL_GRACE)
    except subprocess.TimeoutExpired:
        logger.error("%s (pid %d) still running after SIGKILL", spec.name, proc.pid)
