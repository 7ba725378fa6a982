"""
Data model shared by the detector, resolver and updater.

Records are frozen dataclasses. ``to_dict`` produces the JSON shape used on
the request/response boundary (camelCase keys), ``from_dict`` accepts it back.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Sequence


class InstallMethod(str, Enum):
    """Provider that installed a tool."""

    NPM = "npm"                            # package registry
    PIP = "pip"                            # source index
    BREW = "brew"                          # formula manager
    BINARY = "binary"                      # standalone binary
    VSCODE_EXTENSION = "vscode-extension"  # editor extension
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: str | InstallMethod | None) -> InstallMethod:
        """Parse a wire value, mapping anything unrecognised to UNKNOWN."""
        if isinstance(value, InstallMethod):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


class ToolStatus(str, Enum):
    INSTALLED = "installed"
    OUTDATED = "outdated"
    NOT_INSTALLED = "not-installed"
    ERROR = "error"


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def format_iso(value: datetime.datetime | None) -> str | None:
    if value is None:
        return None
    return value.replace(microsecond=0).isoformat().replace("+00:00", "Z")


def parse_iso(value: Any) -> datetime.datetime | None:
    if isinstance(value, datetime.datetime):
        return value
    if not value:
        return None
    try:
        parsed = datetime.datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed


@dataclass(frozen=True)
class ToolInfo:
    """
    Detection outcome for one catalog tool.

    Recomputed on every scan, never persisted.

    Attributes:
        name: Catalog name of the tool
        display_name: Human readable name
        current_version: Installed version, None when absent
        latest_version: Latest upstream version, None until resolved
        install_path: Absolute path of the executable
        install_method: Provider inferred from the install path
        config_path: First existing config file, if any
        last_checked: When this record was produced
        status: installed / outdated / not-installed / error
        is_outdated: True iff latest is strictly newer than current
        error: Message for the error status
    """
    name: str
    display_name: str
    current_version: str | None = None
    latest_version: str | None = None
    install_path: str | None = None
    install_method: InstallMethod = InstallMethod.UNKNOWN
    config_path: str | None = None
    last_checked: datetime.datetime = field(default_factory=utcnow)
    status: ToolStatus = ToolStatus.NOT_INSTALLED
    is_outdated: bool = False
    error: str | None = None

    def __post_init__(self):
        if self.status == ToolStatus.NOT_INSTALLED and (
            self.current_version is not None or self.install_path is not None
        ):
            raise ValueError(
                f"{self.name}: a not-installed tool cannot carry a version or install path"
            )

    @classmethod
    def not_installed(cls, name: str, display_name: str) -> ToolInfo:
        return cls(name=name, display_name=display_name, status=ToolStatus.NOT_INSTALLED)

    @classmethod
    def errored(cls, name: str, display_name: str, message: str) -> ToolInfo:
        return cls(
            name=name,
            display_name=display_name,
            status=ToolStatus.ERROR,
            error=message,
        )

    def with_latest(self, latest_version: str, is_outdated: bool) -> ToolInfo:
        """Copy of this record refreshed with a resolved upstream version."""
        return replace(
            self,
            latest_version=latest_version,
            is_outdated=is_outdated,
            status=ToolStatus.OUTDATED if is_outdated else self.status,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data: dict[str, Any] = {
            "name": self.name,
            "displayName": self.display_name,
            "currentVersion": self.current_version,
            "latestVersion": self.latest_version,
            "installPath": self.install_path,
            "installMethod": self.install_method.value,
            "configPath": self.config_path,
            "lastChecked": format_iso(self.last_checked),
            "status": self.status.value,
            "isOutdated": self.is_outdated,
        }
        if self.error is not None:
            data["error"] = self.error
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ToolInfo:
        """Create from dictionary."""
        return cls(
            name=data["name"],
            display_name=data.get("displayName") or data["name"],
            current_version=data.get("currentVersion"),
            latest_version=data.get("latestVersion"),
            install_path=data.get("installPath"),
            install_method=InstallMethod.parse(data.get("installMethod")),
            config_path=data.get("configPath"),
            last_checked=parse_iso(data.get("lastChecked")) or utcnow(),
            status=ToolStatus(data.get("status", ToolStatus.NOT_INSTALLED.value)),
            is_outdated=bool(data.get("isOutdated", False)),
            error=data.get("error"),
        )


@dataclass(frozen=True)
class VersionRecord:
    """
    Latest upstream version of a tool as reported by one provider.

    Attributes:
        version: Version string as published
        published_at: Publication time (fetch time when the provider has none)
        download_url: First release asset, source hosting only
        changelog: Release notes or package description
    """
    version: str
    published_at: datetime.datetime
    download_url: str | None = None
    changelog: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "version": self.version,
            "publishedAt": format_iso(self.published_at),
            "downloadUrl": self.download_url,
            "changelog": self.changelog,
        }


@dataclass(frozen=True)
class UpdateResult:
    """
    Outcome of one update or install.

    Attributes:
        success: Whether the tool now runs the new version
        tool_name: Name of the tool
        old_version: Version before the operation
        new_version: Version reported after the operation
        error: Human-readable error message if failed
        log: Cumulative transition log
    """
    success: bool
    tool_name: str
    old_version: str | None = None
    new_version: str | None = None
    error: str | None = None
    log: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "success": self.success,
            "toolName": self.tool_name,
            "oldVersion": self.old_version,
            "newVersion": self.new_version,
            "error": self.error,
            "log": self.log,
        }


@dataclass(frozen=True)
class BatchUpdateResult:
    """Ordered results of a sequential batch update."""
    results: tuple[UpdateResult, ...]
    success_count: int
    failure_count: int

    @classmethod
    def from_results(cls, results: Sequence[UpdateResult]) -> BatchUpdateResult:
        results = tuple(results)
        success_count = sum(1 for r in results if r.success)
        return cls(
            results=results,
            success_count=success_count,
            failure_count=len(results) - success_count,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "results": [r.to_dict() for r in self.results],
            "successCount": self.success_count,
            "failureCount": self.failure_count,
        }

    def summary(self) -> str:
        """Human-readable summary."""
        return f"""
Update Summary:
  ✅ Updated: {self.success_count}
  ❌ Failed: {self.failure_count}
"""
