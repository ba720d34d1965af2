from __future__ import annotations

import logging
import sys

import pytest

from agentai import main as entrypoint


@pytest.fixture
def quiet_main(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(entrypoint, "configure_from_settings", lambda settings: None)
    monkeypatch.setattr(entrypoint, "init_logger", lambda: None)
    monkeypatch.setattr(entrypoint, "install_signal_handlers", lambda token: None)


@pytest.fixture
def use_settings(monkeypatch: pytest.MonkeyPatch, make_settings):
    def _use(**overrides):
        settings = make_settings(**overrides)
        monkeypatch.setattr(entrypoint, "Settings", lambda: settings)
        return settings

    return _use


def test_override_command_bypasses_startup(quiet_main, monkeypatch) -> None:
    calls: list[tuple[str, list[str]]] = []
    monkeypatch.setattr(entrypoint.os, "execvp", lambda f, a: calls.append((f, a)))
    monkeypatch.setattr(entrypoint, "Supervisor", None)

    assert entrypoint.main(["bash", "-lc", "echo hi"]) == 0
    assert calls == [("bash", ["bash", "-lc", "echo hi"])]


def test_override_command_not_found(quiet_main) -> None:
    assert entrypoint.main(["/nonexistent/tool"]) == 1


def test_check_mode_reports_ready_without_writing(quiet_main, use_settings, config_file) -> None:
    use_settings(opencode_model="changed/model")
    before = config_file.read_bytes()

    assert entrypoint.main(["--check"]) == 0
    assert config_file.read_bytes() == before


def test_startup_error_becomes_exit_code(quiet_main, use_settings) -> None:
    use_settings(required_dependencies=["definitely-not-installed-tool"])

    assert entrypoint.main([]) == 1


def test_invalid_port_is_fatal(quiet_main, use_settings, config_file) -> None:
    use_settings(opencode_port="http")
    before = config_file.read_bytes()

    assert entrypoint.main([]) == 1
    assert config_file.read_bytes() == before


def test_no_exec_flag_supervises_main(quiet_main, use_settings, http_proxy) -> None:
    settings = use_settings(main_command=[sys.executable, "-c", "raise SystemExit(0)"], **http_proxy)

    assert entrypoint.main(["--no-exec"]) == 0
    assert settings.exec_main is False


def test_malformed_tunable_is_logged_not_raised(quiet_main, monkeypatch, caplog) -> None:
    monkeypatch.setenv("AGENTAI_PROXY_PORT", "abc")

    with caplog.at_level(logging.ERROR, logger="agentai"):
        assert entrypoint.main([]) == 1

    (record,) = caplog.records
    assert record.levelno == logging.ERROR
    assert "Invalid configuration" in record.getMessage()
    assert "proxy_port" in record.getMessage()


def test_check_mode_fails_on_missing_dependency(quiet_main, use_settings, config_file) -> None:
    use_settings(required_dependencies=["definitely-not-installed-tool"], opencode_model="m")
    before = config_file.read_bytes()

    assert entrypoint.main(["--check"]) == 1
    assert config_file.read_bytes() == before
