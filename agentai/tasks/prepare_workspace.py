"""Workspace and proxy-config preparation run before any process starts."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from collections.abc import MutableMapping

from agentai.config import Settings

logger = logging.getLogger(__name__)

TERMINAL_DEFAULTS = {
    "TERM": "xterm-256color",
    "COLORTERM": "truecolor",
}


def set_terminal_defaults(environ: MutableMapping[str, str] | None = None) -> None:
    """Give the assistant's TUI sensible terminal capabilities unless overridden."""
    if environ is None:
        environ = os.environ
    for name, value in TERMINAL_DEFAULTS.items():
        environ.setdefault(name, value)


def configure_git_identity(name: str, email: str) -> bool:
    """Set a global git identity. Best effort; failures only warn."""
    git = shutil.which("git")
    if git is None:
        logger.warning("git not found; skipping git identity setup")
        return False
    for key, value in (("user.name", name), ("user.email", email)):
        try:
            subprocess.run(
                [git, "config", "--global", key, value],
                capture_output=True,
                timeout=10,
                check=True,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            logger.warning("Could not set git %s: %s", key, exc)
            return False
    return True


def install_custom_proxy_config(settings: Settings) -> bool:
    """Copy an operator-supplied nginx config over the bundled one, if present."""
    source = settings.custom_proxy_config_path
    if not source.is_file():
        return False
    settings.proxy_config_path.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(source, settings.proxy_config_path)
    logger.info("Using custom proxy config %s", source)
    return True


def prepare_workspace(settings: Settings) -> None:
    set_terminal_defaults()

    settings.config_path.parent.mkdir(parents=True, exist_ok=True)
    settings.plugin_config_path.parent.mkdir(parents=True, exist_ok=True)
    if settings.plugin_config_path.is_file():
        logger.info("oh-my-opencode: configured")
    else:
        logger.info("oh-my-opencode: not configured, skipped")

    settings.workspace_dir.mkdir(parents=True, exist_ok=True)
    configure_git_identity(settings.git_user_name, settings.git_user_email)
    install_custom_proxy_config(settings)
    logger.info("Workspace ready at %s", settings.workspace_dir)
