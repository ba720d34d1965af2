from __future__ import annotations

import logging
import os
from collections.abc import Mapping

from agentai.core.types.report import EnvironmentSetting, SettingKind, SettingStatus

logger = logging.getLogger(__name__)

ENVIRONMENT_SETTINGS: tuple[EnvironmentSetting, ...] = (
    EnvironmentSetting("ANTHROPIC_API_KEY", SettingKind.OPTIONAL_CREDENTIAL, "Anthropic API key"),
    EnvironmentSetting("OPENAI_API_KEY", SettingKind.OPTIONAL_CREDENTIAL, "OpenAI API key"),
    EnvironmentSetting("GITHUB_TOKEN", SettingKind.OPTIONAL_CREDENTIAL, "GitHub token"),
    EnvironmentSetting("LLM_ROUTER_URL", SettingKind.BACKEND_URL, "LLM router URL"),
    EnvironmentSetting("OPENCODE_PORT", SettingKind.RUNTIME_TUNABLE, "OpenCode server port", default="4096"),
    EnvironmentSetting("OPENCODE_MODEL", SettingKind.RUNTIME_TUNABLE, "Primary model", default="from config"),
    EnvironmentSetting(
        "OPENCODE_SMALL_MODEL", SettingKind.RUNTIME_TUNABLE, "Small model", default="from config"
    ),
)


def check_environment(
    environ: Mapping[str, str] | None = None,
    catalog: tuple[EnvironmentSetting, ...] = ENVIRONMENT_SETTINGS,
) -> list[SettingStatus]:
    """Report presence of every known setting. Never raises.

    Values are never logged; credentials are forwarded to the assistant by
    reference only.
    """
    if environ is None:
        environ = os.environ

    statuses: list[SettingStatus] = []
    for setting in catalog:
        present = bool(environ.get(setting.name))
        statuses.append(SettingStatus(setting=setting, present=present))
        if present:
            logger.info("%s: set", setting.description)
        elif setting.kind is SettingKind.RUNTIME_TUNABLE:
            logger.info("%s: not set (default: %s)", setting.description, setting.default)
        elif setting.kind is SettingKind.REQUIRED_CREDENTIAL:
            logger.error("%s: not set (%s is required)", setting.description, setting.name)
        else:
            logger.info("%s: not set", setting.description)

    credentials = [status for status in statuses if status.setting.kind.is_credential]
    if credentials and not any(status.present for status in credentials):
        logger.warning(
            "No API credentials set; only locally routed backends will be usable"
        )
    return statuses
