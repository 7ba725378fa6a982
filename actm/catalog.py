"""
Built-in catalog of supported AI coding tools.

Definitions are loaded once from ``data/tool_definitions.json``; file order is
catalog order.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Iterator, Pattern

from .models import InstallMethod

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_FILE = Path(__file__).parent / "data" / "tool_definitions.json"

# Package providers a definition can declare, in cross-check order
PACKAGE_PROVIDERS: tuple[InstallMethod, ...] = (
    InstallMethod.NPM,
    InstallMethod.PIP,
    InstallMethod.BREW,
)


@dataclass(frozen=True)
class GithubRepo:
    owner: str
    repo: str

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.repo}"


@dataclass(frozen=True)
class ToolDefinition:
    """
    Static description of one supported tool.

    Attributes:
        name: Catalog identifier
        display_name: Human readable name
        command: Executable used to probe the tool
        version_args: Arguments that make the command print its version
        version_regex: Pattern extracting the version (group 1 if present)
        npm: Package registry name
        pip: Source index name
        brew: Formula name
        github: Source repository
        vscode_extension: Editor extension identifier
        config_paths: Candidate config files, "~" is expanded
        homepage: Project homepage
    """
    name: str
    display_name: str
    command: str
    version_args: tuple[str, ...] = ("--version",)
    version_regex: Pattern[str] = field(default=re.compile(r"(\d+\.\d+\.\d+)"), compare=False)
    npm: str | None = None
    pip: str | None = None
    brew: str | None = None
    github: GithubRepo | None = None
    vscode_extension: str | None = None
    config_paths: tuple[str, ...] = ()
    homepage: str | None = None

    def package_for(self, method: InstallMethod) -> str | None:
        """Provider-specific package identifier, None if not declared."""
        if method == InstallMethod.NPM:
            return self.npm
        elif method == InstallMethod.PIP:
            return self.pip
        elif method == InstallMethod.BREW:
            return self.brew
        elif method == InstallMethod.VSCODE_EXTENSION:
            return self.vscode_extension
        elif method in (InstallMethod.BINARY, InstallMethod.UNKNOWN):
            return None
        raise ValueError(f"Unhandled install method: {method}")

    def declared_methods(self) -> list[InstallMethod]:
        """Package providers this tool is published through."""
        return [m for m in PACKAGE_PROVIDERS if self.package_for(m)]

    def extract_version(self, output: str) -> str | None:
        m = self.version_regex.search(output)
        if not m:
            return None
        return m.group(1) if self.version_regex.groups else m.group(0)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ToolDefinition:
        """
        Create from catalog JSON data.

        Raises:
            ValueError: If required fields are missing or the pattern is invalid
        """
        name = data.get("name")
        command = data.get("command")
        if not name or not command:
            raise ValueError("tool definition needs 'name' and 'command'")

        try:
            version_regex = re.compile(data.get("versionRegex", r"(\d+\.\d+\.\d+)"))
        except re.error as e:
            raise ValueError(f"{name}: invalid versionRegex: {e}") from e

        version_args = data.get("versionArgs")
        if version_args is None:
            version_args = [data.get("versionFlag", "--version")]

        packages = data.get("packages", {}) or {}
        github = None
        gh = packages.get("github")
        if gh:
            github = GithubRepo(owner=gh["owner"], repo=gh["repo"])

        return cls(
            name=name,
            display_name=data.get("displayName", name),
            command=command,
            version_args=tuple(version_args),
            version_regex=version_regex,
            npm=packages.get("npm"),
            pip=packages.get("pip"),
            brew=packages.get("brew"),
            github=github,
            vscode_extension=packages.get("vscode-extension"),
            config_paths=tuple(data.get("configPaths", ()) or ()),
            homepage=data.get("homepage"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        packages: dict[str, Any] = {}
        for method in (*PACKAGE_PROVIDERS, InstallMethod.VSCODE_EXTENSION):
            package = self.package_for(method)
            if package:
                packages[method.value] = package
        if self.github:
            packages["github"] = {"owner": self.github.owner, "repo": self.github.repo}

        data: dict[str, Any] = {
            "name": self.name,
            "displayName": self.display_name,
            "command": self.command,
            "versionArgs": list(self.version_args),
            "versionRegex": self.version_regex.pattern,
            "packages": packages,
        }
        if self.config_paths:
            data["configPaths"] = list(self.config_paths)
        if self.homepage:
            data["homepage"] = self.homepage
        return data


class ToolCatalog:
    """Ordered, read-only collection of tool definitions."""

    def __init__(self, definitions: Iterable[ToolDefinition]):
        self._entries: dict[str, ToolDefinition] = {}
        for definition in definitions:
            if definition.name in self._entries:
                logger.warning(f"Duplicate catalog entry ignored: {definition.name}")
                continue
            self._entries[definition.name] = definition

    @classmethod
    def load(cls, path: str | Path | None = None) -> ToolCatalog:
        """
        Load the catalog from a JSON list.

        Entries that fail to decode are logged and skipped.

        Args:
            path: Catalog file (defaults to the built-in one)
        """
        catalog_file = Path(path) if path is not None else DEFAULT_CATALOG_FILE
        try:
            with open(catalog_file, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load catalog {catalog_file}: {e}")
            return cls(())

        if not isinstance(raw, list):
            logger.error(f"Catalog {catalog_file} is not a list")
            return cls(())

        definitions = []
        for item in raw:
            try:
                definitions.append(ToolDefinition.from_dict(item))
            except (ValueError, KeyError, TypeError, AttributeError) as e:
                logger.error(f"Skipping catalog entry {item!r:.60}: {e}")

        logger.debug(f"Loaded {len(definitions)} catalog entries")
        return cls(definitions)

    def get(self, tool_name: str) -> ToolDefinition | None:
        return self._entries.get(tool_name)

    def has_tool(self, tool_name: str) -> bool:
        return tool_name in self._entries

    def all(self) -> tuple[ToolDefinition, ...]:
        return tuple(self._entries.values())

    def names(self) -> list[str]:
        return list(self._entries.keys())

    def to_dicts(self) -> list[dict[str, Any]]:
        return [d.to_dict() for d in self._entries.values()]

    def __iter__(self) -> Iterator[ToolDefinition]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)
