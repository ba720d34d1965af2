from __future__ import annotations

import os
from pathlib import Path

import pytest

from agentai.core.errors import MissingDependencyError
from agentai.tasks.check_dependencies import check_dependencies, read_version


def _fake_tool(directory: Path, name: str, output: str = "", stderr: str = "") -> Path:
    path = directory / name
    lines = ["#!/bin/sh"]
    if output:
        lines.append(f"echo '{output}'")
    if stderr:
        lines.append(f"echo '{stderr}' >&2")
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    path.chmod(0o755)
    return path


@pytest.fixture
def bin_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "bin"
    directory.mkdir()
    _fake_tool(directory, "node", output="v20.11.1")
    _fake_tool(directory, "nginx", stderr="nginx version: nginx/1.24.0")
    _fake_tool(directory, "git", output="git version 2.43.0")
    return directory


def test_all_required_present(bin_dir: Path) -> None:
    statuses = check_dependencies(["node", "git"], search_path=str(bin_dir))

    assert [s.name for s in statuses] == ["node", "git"]
    assert all(s.found for s in statuses)
    assert statuses[0].version == "v20.11.1"


def test_version_read_from_stderr(bin_dir: Path) -> None:
    (status,) = check_dependencies(["nginx"], search_path=str(bin_dir))

    assert status.version == "nginx version: nginx/1.24.0"


def test_every_missing_required_dependency_is_listed(bin_dir: Path) -> None:
    with pytest.raises(MissingDependencyError) as excinfo:
        check_dependencies(["node", "opencode", "git", "npm"], search_path=str(bin_dir))

    assert excinfo.value.missing == ["opencode", "npm"]
    assert "opencode, npm" in str(excinfo.value)


def test_missing_optional_dependency_does_not_fail(bin_dir: Path) -> None:
    statuses = check_dependencies(["node"], ["rustc", "java"], search_path=str(bin_dir))

    optional = [s for s in statuses if not s.required]
    assert [s.name for s in optional] == ["rustc", "java"]
    assert not any(s.found for s in optional)


def test_silent_tool_has_no_version(tmp_path: Path) -> None:
    tool = _fake_tool(tmp_path, "quiet")

    assert read_version(str(tool), "quiet") is None


def test_non_executable_file_is_missing(tmp_path: Path) -> None:
    (tmp_path / "jq").write_text("not a program", encoding="utf-8")
    os.chmod(tmp_path / "jq", 0o644)

    with pytest.raises(MissingDependencyError):
        check_dependencies(["jq"], search_path=str(tmp_path))
