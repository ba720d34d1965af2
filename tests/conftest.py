from __future__ import annotations

import json
import os
import socket
import sys
from pathlib import Path

import pytest

from agentai.config import Settings
from agentai.tasks.check_environment import ENVIRONMENT_SETTINGS

SLEEPER = [sys.executable, "-c", "import time; time.sleep(60)"]

SAMPLE_DOCUMENT = {
    "$schema": "https://opencode.ai/config.json",
    "model": "llm-router/claude-sonnet-4",
    "server": {"port": 4096},
    "provider": {"llm-router": {"options": {"baseURL": "http://router:9000/v1"}}},
    "mcp": {
        "filesystem": {"type": "local", "enabled": True},
        "github": {"type": "local", "enabled": False, "environment": {}},
    },
    "permission": {"edit": "ask", "bash": "never"},
}


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep the host's credentials and supervisor tunables out of every test."""
    for setting in ENVIRONMENT_SETTINGS:
        monkeypatch.delenv(setting.name, raising=False)
    for name in list(os.environ):
        if name.startswith("AGENTAI_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.delenv("LLM_PROVIDER_NAME", raising=False)
    monkeypatch.delenv("LOGFIRE_TOKEN", raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(tmp_path / ".gitconfig"))
    monkeypatch.setenv("TERM", os.environ.get("TERM", "dumb"))
    monkeypatch.setenv("COLORTERM", os.environ.get("COLORTERM", "none"))


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "opencode" / "opencode.json"
    path.parent.mkdir(parents=True)
    path.write_text(json.dumps(SAMPLE_DOCUMENT, indent=4) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def sleeper() -> list[str]:
    return list(SLEEPER)


@pytest.fixture
def http_proxy() -> dict[str, object]:
    """A real listening child standing in for nginx."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
    return {
        "proxy_port": port,
        "proxy_command": [sys.executable, "-m", "http.server", str(port), "--bind", "127.0.0.1"],
    }


@pytest.fixture
def make_settings(tmp_path: Path, config_file: Path):
    def _make(**overrides) -> Settings:
        values = {
            "config_path": config_file,
            "plugin_config_path": tmp_path / "dot-opencode" / "oh-my-opencode.json",
            "custom_proxy_config_path": tmp_path / "custom" / "nginx.conf",
            "proxy_config_path": tmp_path / "nginx" / "opencode.conf",
            "workspace_dir": tmp_path / "workspace",
            "required_dependencies": [sys.executable],
            "optional_dependencies": [],
            "proxy_command": SLEEPER,
            "proxy_stop_signal": "SIGTERM",
            "proxy_start_timeout": 10.0,
            "main_command": SLEEPER,
            "stop_timeout": 5.0,
        }
        values.update(overrides)
        return Settings(**values)

    return _make
