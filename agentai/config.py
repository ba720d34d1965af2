"""Supervisor configuration, loaded from environment variables."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_MAIN_HOST = "127.0.0.1"
DEFAULT_MAIN_PORT = 4096


class Settings(BaseSettings):
    """Supervisor tunables use the ``AGENTAI_`` prefix.

    Credentials and the assistant-facing overrides keep their conventional
    unprefixed names so the same variables work with or without this image.
    Only the process environment is read; a ``.env`` in the working
    directory belongs to the mounted project, not to the supervisor.
    """

    # Credentials (presence only, never logged)
    anthropic_api_key: str | None = Field(default=None, validation_alias="ANTHROPIC_API_KEY")
    openai_api_key: str | None = Field(default=None, validation_alias="OPENAI_API_KEY")
    github_token: str | None = Field(default=None, validation_alias="GITHUB_TOKEN")

    # LLM backend
    llm_router_url: str | None = Field(default=None, validation_alias="LLM_ROUTER_URL")
    llm_provider_name: str = Field(default="llm-router", validation_alias="LLM_PROVIDER_NAME")
    backend_probe_timeout: float = 5.0

    # Assistant overrides, kept as raw strings and validated by the patcher
    opencode_port: str | None = Field(default=None, validation_alias="OPENCODE_PORT")
    opencode_model: str | None = Field(default=None, validation_alias="OPENCODE_MODEL")
    opencode_small_model: str | None = Field(default=None, validation_alias="OPENCODE_SMALL_MODEL")

    # Paths
    config_path: Path = Path("/root/.config/opencode/opencode.json")
    plugin_config_path: Path = Path("/root/.opencode/oh-my-opencode.json")
    custom_proxy_config_path: Path = Path("/root/.config/opencode/nginx.conf")
    proxy_config_path: Path = Path("/etc/nginx/http.d/opencode.conf")
    workspace_dir: Path = Path("/workspace")

    # Dependencies
    required_dependencies: list[str] = ["opencode", "nginx", "node", "npm", "git"]
    optional_dependencies: list[str] = ["bun", "python3", "go", "rustc", "java", "curl", "jq"]

    # Proxy process
    proxy_command: list[str] = ["nginx", "-g", "daemon off;"]
    proxy_host: str = "127.0.0.1"
    proxy_port: int = 4097
    proxy_stop_signal: str = "SIGQUIT"
    proxy_start_timeout: float = 10.0

    # Main process
    main_command: list[str] | None = None
    main_host: str = DEFAULT_MAIN_HOST
    exec_main: bool = True
    stop_timeout: float = 10.0

    # Git identity for the workspace
    git_user_name: str = "OpenCode AgentAI"
    git_user_email: str = "opencode@container.local"

    # Logging
    log_level: str = "INFO"
    log_file: Path | None = None
    logfire_token: str | None = Field(default=None, validation_alias="LOGFIRE_TOKEN")

    model_config = SettingsConfigDict(
        env_prefix="AGENTAI_",
        populate_by_name=True,
        extra="ignore",
    )

    @property
    def main_port(self) -> int:
        """Port the assistant server listens on, following ``OPENCODE_PORT`` when valid."""
        value = (self.opencode_port or "").strip()
        if value.isascii() and value.isdigit() and 0 < int(value) <= 65535:
            return int(value)
        return DEFAULT_MAIN_PORT

    @property
    def proxy_url(self) -> str:
        return f"http://{self.proxy_host}:{self.proxy_port}"

    def resolved_main_command(self) -> list[str]:
        if self.main_command:
            return list(self.main_command)
        return ["opencode", "serve", "--hostname", self.main_host, "--port", str(self.main_port)]
