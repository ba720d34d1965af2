from __future__ import annotations

import logging
from typing import Any

from agentai.config import Settings
from agentai.core.config_document import ConfigPatcher, build_overrides
from agentai.core.types.report import FieldOverride, PatchResult, PatchStatus

logger = logging.getLogger(__name__)


def overrides_from_settings(settings: Settings) -> list[FieldOverride]:
    return build_overrides(
        port=settings.opencode_port,
        model=settings.opencode_model,
        small_model=settings.opencode_small_model,
        backend_url=settings.llm_router_url,
        provider_name=settings.llm_provider_name,
        github_token=settings.github_token,
    )


def report_mcp_servers(document: dict[str, Any]) -> list[tuple[str, bool]]:
    """Log the MCP servers the document declares and whether each is enabled."""
    servers = document.get("mcp")
    if not isinstance(servers, dict) or not servers:
        logger.info("No MCP servers configured")
        return []
    found: list[tuple[str, bool]] = []
    for name, entry in servers.items():
        enabled = bool(entry.get("enabled", True)) if isinstance(entry, dict) else False
        found.append((name, enabled))
        logger.info("MCP server %s: %s", name, "enabled" if enabled else "disabled")
    return found


def patch_config(settings: Settings, dry_run: bool = False) -> PatchResult:
    """Apply environment overrides to the assistant config document."""
    overrides = overrides_from_settings(settings)
    result = ConfigPatcher(settings.config_path).patch(overrides, dry_run=dry_run)
    if result.status is PatchStatus.PATCHED:
        logger.info("Config %s updated (%d field(s))", result.path, len(result.applied))
    elif result.status is PatchStatus.UNCHANGED:
        logger.info("Config %s found, no changes needed", result.path)
    if result.document is not None:
        report_mcp_servers(result.document)
    return result
