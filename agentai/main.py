"""agentai: container entrypoint for the OpenCode AgentAI image.

Runs the startup sequence (environment report, dependency gate, config
patch, workspace setup, backend probe, proxy) and then hands the container
over to ``opencode serve``.  Any command given on the command line is
exec'd directly instead, skipping the sequence entirely.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys

from pydantic import ValidationError

from agentai import __version__
from agentai.config import Settings
from agentai.core.errors import EXIT_OK, EXIT_STARTUP_FAILED, StartupError
from agentai.core.supervisor import CancellationToken, Supervisor, install_signal_handlers
from agentai.log import configure_from_settings, init_logger

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="agentai",
        description="Start the OpenCode server behind the nginx proxy.",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Report environment, dependencies and pending config changes, then exit.",
    )
    parser.add_argument(
        "--no-exec",
        action="store_true",
        help="Keep the supervisor running and manage OpenCode as a child process.",
    )
    parser.add_argument(
        "command",
        nargs=argparse.REMAINDER,
        help="Run this command instead of the default startup sequence.",
    )
    return parser


def run_override(command: list[str]) -> int:
    logger.info("Running override command: %s", " ".join(command))
    sys.stdout.flush()
    sys.stderr.flush()
    try:
        os.execvp(command[0], command)
    except OSError as exc:
        logger.error("Cannot run %s: %s", command[0], exc)
        return EXIT_STARTUP_FAILED
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = Settings()
    except ValidationError as exc:
        init_logger()
        logger.error("Invalid configuration: %s", exc)
        return EXIT_STARTUP_FAILED
    configure_from_settings(settings)

    command = [part for part in args.command if part != "--"]
    if command:
        return run_override(command)

    token = CancellationToken()
    install_signal_handlers(token)

    if args.no_exec:
        settings.exec_main = False

    logger.info("OpenCode AgentAI Container v%s", __version__)
    supervisor = Supervisor(settings, token)
    try:
        if args.check:
            supervisor.prepare(dry_run=True)
            logger.info("Ready to start")
            return EXIT_OK
        return supervisor.run()
    except StartupError as exc:
        logger.error("%s", exc)
        return exc.exit_code


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
