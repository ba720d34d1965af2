from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any


class SettingKind(str, Enum):
    REQUIRED_CREDENTIAL = "required-credential"
    OPTIONAL_CREDENTIAL = "optional-credential"
    BACKEND_URL = "backend-url"
    RUNTIME_TUNABLE = "runtime-tunable"

    @property
    def is_credential(self) -> bool:
        return self in (SettingKind.REQUIRED_CREDENTIAL, SettingKind.OPTIONAL_CREDENTIAL)


@dataclass(frozen=True)
class EnvironmentSetting:
    name: str
    kind: SettingKind
    description: str
    default: str | None = None


@dataclass
class SettingStatus:
    setting: EnvironmentSetting
    present: bool

    @property
    def failed(self) -> bool:
        return self.setting.kind is SettingKind.REQUIRED_CREDENTIAL and not self.present


@dataclass
class DependencyStatus:
    name: str
    required: bool
    path: str | None = None
    version: str | None = None

    @property
    def found(self) -> bool:
        return self.path is not None


@dataclass
class ReadinessReport:
    settings: list[SettingStatus] = field(default_factory=list)
    dependencies: list[DependencyStatus] = field(default_factory=list)

    @property
    def failures(self) -> list[str]:
        names = [status.setting.name for status in self.settings if status.failed]
        names += [dep.name for dep in self.dependencies if dep.required and not dep.found]
        return names


@dataclass(frozen=True)
class FieldOverride:
    path: tuple[str, ...]
    value: Any
    source: str

    @property
    def dotted_path(self) -> str:
        return ".".join(self.path)


class PatchStatus(str, Enum):
    MISSING = "missing"
    UNCHANGED = "unchanged"
    PATCHED = "patched"


@dataclass
class PatchResult:
    path: Path
    status: PatchStatus
    applied: list[FieldOverride] = field(default_factory=list)
    document: dict[str, Any] | None = None
