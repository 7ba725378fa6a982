"""
Application settings and their YAML-backed store.

Unset fields take their defaults. Version cache TTL and command timeouts are
fixed constants and deliberately not part of this schema.
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping

import yaml

from .common import vlog

DEFAULT_CONFIG_PATH = os.path.expanduser("~/.config/actm/config.yml")

PROXY_PROTOCOLS = ("http", "https", "socks5")

# camelCase wire names used by the presentation layer
_WIRE_NAMES = {
    "autoCheckUpdates": "auto_check_updates",
    "checkInterval": "check_interval",
    "autoStartup": "auto_startup",
    "showNotifications": "show_notifications",
    "autoBackup": "auto_backup",
    "proxy": "proxy",
    "githubToken": "github_token",
}


@dataclass(frozen=True)
class ProxyConfig:
    """
    Outbound proxy for version checks.

    Attributes:
        protocol: http, https or socks5
        host: Proxy host name
        port: Proxy port
    """
    protocol: str
    host: str
    port: int

    def __post_init__(self):
        if self.protocol not in PROXY_PROTOCOLS:
            raise ValueError(
                f"Invalid proxy protocol: {self.protocol}. "
                f"Must be one of: {', '.join(PROXY_PROTOCOLS)}"
            )
        if not self.host:
            raise ValueError("Proxy host must not be empty")
        if not isinstance(self.port, int) or self.port < 1 or self.port > 65535:
            raise ValueError(f"Invalid proxy port: {self.port}. Must be between 1 and 65535")

    def url(self) -> str:
        return f"{self.protocol}://{self.host}:{self.port}"

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> ProxyConfig:
        """Create ProxyConfig from dictionary."""
        return ProxyConfig(
            protocol=data.get("protocol", "http"),
            host=data.get("host", ""),
            port=int(data.get("port", 0)),
        )


@dataclass(frozen=True)
class AppConfig:
    """
    User settings.

    Attributes:
        auto_check_updates: Check for new versions periodically
        check_interval: Hours between automatic checks
        auto_startup: Start with the desktop session
        show_notifications: Notify when updates are available
        auto_backup: Write a version manifest before each update
        proxy: Optional proxy for network calls
        github_token: Token for GitHub API requests
    """
    auto_check_updates: bool = True
    check_interval: int = 6
    auto_startup: bool = False
    show_notifications: bool = True
    auto_backup: bool = True
    proxy: ProxyConfig | None = None
    github_token: str | None = None

    def __post_init__(self):
        """Validate config after initialization."""
        if not isinstance(self.check_interval, int) or self.check_interval < 1 or self.check_interval > 168:
            raise ValueError(
                f"Invalid check_interval: {self.check_interval}. "
                "Must be between 1 and 168 hours"
            )
        for name in ("auto_check_updates", "auto_startup", "show_notifications", "auto_backup"):
            if not isinstance(getattr(self, name), bool):
                raise ValueError(f"{name} must be true or false")

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> AppConfig:
        """Create AppConfig from dictionary; accepts snake_case or camelCase keys."""
        values = _normalize_keys(data)
        proxy = values.get("proxy")
        if isinstance(proxy, Mapping):
            values["proxy"] = ProxyConfig.from_dict(proxy)
        return AppConfig(**values)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary (snake_case, as persisted)."""
        data = asdict(self)
        return {k: v for k, v in data.items() if v is not None}

    def to_wire(self) -> dict[str, Any]:
        """Convert to the camelCase shape used by the presentation layer."""
        snake = self.to_dict()
        return {wire: snake[attr] for wire, attr in _WIRE_NAMES.items() if attr in snake}


def _normalize_keys(data: Mapping[str, Any]) -> dict[str, Any]:
    """
    Map wire names to field names and drop None values.

    Raises:
        ValueError: On an unknown key
    """
    known = {f.name for f in fields(AppConfig)}
    values: dict[str, Any] = {}
    for key, value in data.items():
        attr = _WIRE_NAMES.get(key, key)
        if attr not in known:
            raise ValueError(f"Unknown config key: {key}")
        if value is not None:
            values[attr] = value
    return values


class ConfigStore:
    """Persists AppConfig as YAML, substituting defaults for unset fields."""

    def __init__(self, path: str | Path | None = None, verbose: bool = False):
        if path is None:
            path = os.environ.get("ACTM_CONFIG", DEFAULT_CONFIG_PATH)
        self.path = Path(path)
        self.verbose = verbose
        self._config = self._load()

    def _load(self) -> AppConfig:
        if not self.path.exists():
            vlog(f"No config at {self.path}, using defaults", self.verbose)
            return AppConfig()

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            vlog(f"Could not read config {self.path}: {e}", self.verbose)
            return AppConfig()

        if not isinstance(data, dict):
            return AppConfig()

        try:
            config = AppConfig.from_dict(data)
        except (ValueError, TypeError) as e:
            vlog(f"Config validation failed for {self.path}: {e}", self.verbose)
            return AppConfig()

        vlog(f"Loaded config from: {self.path}", self.verbose)
        return config

    def _save(self, config: AppConfig) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.path.with_suffix(".tmp")
        with open(temp_path, "w", encoding="utf-8") as f:
            yaml.safe_dump(config.to_dict(), f, default_flow_style=False, sort_keys=True)
        temp_path.replace(self.path)

    def get_all(self) -> AppConfig:
        return self._config

    def get(self, key: str) -> Any:
        attr = _WIRE_NAMES.get(key, key)
        if attr not in {f.name for f in fields(AppConfig)}:
            raise ValueError(f"Unknown config key: {key}")
        return getattr(self._config, attr)

    def set_partial(self, changes: Mapping[str, Any]) -> AppConfig:
        """
        Apply and persist a partial update.

        Args:
            changes: Field values to change; None values are ignored

        Returns:
            The new configuration

        Raises:
            ValueError: On unknown keys or invalid values (nothing is written)
            OSError: If the file cannot be written (the stored config is kept)
        """
        values = _normalize_keys(changes)
        proxy = values.get("proxy")
        if isinstance(proxy, Mapping):
            values["proxy"] = ProxyConfig.from_dict(proxy)

        new_config = replace(self._config, **values)
        self._save(new_config)
        self._config = new_config
        vlog(f"Saved config: {', '.join(sorted(values))}", self.verbose)
        return self._config

    def reset(self) -> AppConfig:
        """Restore defaults and remove the stored file."""
        self._config = AppConfig()
        if self.path.exists():
            self.path.unlink()
        return self._config
