"""Load, patch and atomically persist the assistant's JSON config document.

The document is read once, every override is applied in memory, and the
result is written once via a temporary file in the same directory followed
by ``os.replace``.  Readers therefore see either the old or the new file,
never a truncated one.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any

from agentai.core.errors import InvalidConfigDocumentError, InvalidSettingError
from agentai.core.types.report import FieldOverride, PatchResult, PatchStatus

logger = logging.getLogger(__name__)

API_PATH_SUFFIX = "/v1"
GITHUB_TOKEN_FIELD = ("mcp", "github", "environment", "GITHUB_PERSONAL_ACCESS_TOKEN")


def load_document(path: Path) -> tuple[bytes, dict[str, Any]] | None:
    """Return ``(raw_bytes, document)`` or ``None`` when the file is absent.

    Raises:
        InvalidConfigDocumentError: If the file is not a JSON object.
    """
    try:
        raw = path.read_bytes()
    except FileNotFoundError:
        return None
    try:
        document = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InvalidConfigDocumentError(path, str(exc)) from exc
    if not isinstance(document, dict):
        raise InvalidConfigDocumentError(
            path, f"top-level value must be an object, got {type(document).__name__}"
        )
    return raw, document


def render_document(document: dict[str, Any]) -> bytes:
    return (json.dumps(document, indent=2, ensure_ascii=False) + "\n").encode("utf-8")


def set_field(document: dict[str, Any], path: tuple[str, ...], value: Any) -> dict[str, Any]:
    """Return a copy of *document* with the field at *path* set to *value*.

    Missing intermediate objects are created.  A non-object value sitting
    where an intermediate object is needed is replaced.
    """
    if not path:
        raise ValueError("field path must not be empty")
    updated = copy.deepcopy(document)
    node = updated
    for key in path[:-1]:
        child = node.get(key)
        if not isinstance(child, dict):
            child = {}
            node[key] = child
        node = child
    node[path[-1]] = value
    return updated


def apply_overrides(document: dict[str, Any], overrides: list[FieldOverride]) -> dict[str, Any]:
    patched = document
    for override in overrides:
        patched = set_field(patched, override.path, override.value)
    return patched


def write_atomic(path: Path, content: bytes) -> None:
    """Replace *path* with *content* without ever exposing a partial file."""
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        if path.exists():
            shutil.copymode(path, tmp_path)
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


# ── Override builders ────────────────────────────────────────────────
# Each builder maps one raw environment value to at most one field write.


def parse_port(name: str, raw: str) -> int:
    value = raw.strip()
    if not (value.isascii() and value.isdigit()):
        raise InvalidSettingError(name, raw, "is not a positive integer")
    port = int(value)
    if port <= 0 or port > 65535:
        raise InvalidSettingError(name, raw, "is outside the valid port range 1-65535")
    return port


def with_api_suffix(url: str) -> str:
    """Append the OpenAI-compatible ``/v1`` path exactly once."""
    base = url.strip().rstrip("/")
    if base.endswith(API_PATH_SUFFIX):
        return base
    return base + API_PATH_SUFFIX


def env_reference(name: str) -> str:
    return f"{{env:{name}}}"


def build_overrides(
    *,
    port: str | None = None,
    model: str | None = None,
    small_model: str | None = None,
    backend_url: str | None = None,
    provider_name: str = "llm-router",
    github_token: str | None = None,
) -> list[FieldOverride]:
    """Translate raw environment inputs into field overrides.

    Empty values count as absent.  Raises :class:`InvalidSettingError` for
    a non-numeric port before anything is touched on disk.
    """
    overrides: list[FieldOverride] = []
    if port:
        overrides.append(FieldOverride(("server", "port"), parse_port("OPENCODE_PORT", port), "OPENCODE_PORT"))
    if model:
        overrides.append(FieldOverride(("model",), model, "OPENCODE_MODEL"))
    if small_model:
        overrides.append(FieldOverride(("small_model",), small_model, "OPENCODE_SMALL_MODEL"))
    if backend_url:
        overrides.append(
            FieldOverride(
                ("provider", provider_name, "options", "baseURL"),
                with_api_suffix(backend_url),
                "LLM_ROUTER_URL",
            )
        )
    if github_token:
        overrides.append(FieldOverride(GITHUB_TOKEN_FIELD, env_reference("GITHUB_TOKEN"), "GITHUB_TOKEN"))
    return overrides


class ConfigPatcher:
    """Owns the config document for the duration of a patch pass."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def patch(self, overrides: list[FieldOverride], dry_run: bool = False) -> PatchResult:
        loaded = load_document(self.path)
        if loaded is None:
            logger.warning("Config document %s not found; the assistant will use its defaults", self.path)
            return PatchResult(path=self.path, status=PatchStatus.MISSING)

        raw, document = loaded
        if not overrides:
            return PatchResult(path=self.path, status=PatchStatus.UNCHANGED, document=document)

        patched = apply_overrides(document, overrides)
        rendered = render_document(patched)
        if rendered == raw:
            return PatchResult(path=self.path, status=PatchStatus.UNCHANGED, document=patched)

        for override in overrides:
            logger.info("Setting %s from %s", override.dotted_path, override.source)
        if not dry_run:
            write_atomic(self.path, rendered)
        return PatchResult(path=self.path, status=PatchStatus.PATCHED, applied=list(overrides), document=patched)
