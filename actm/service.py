"""
Request/response boundary of the tool manager.

Every public method returns a typed result and never raises; faults from the
detector, resolver or updater are logged and converted here.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Mapping, Sequence

from .catalog import ToolCatalog, ToolDefinition
from .comparator import is_newer
from .config import AppConfig, ConfigStore
from .detection import DEFAULT_MAX_WORKERS, ToolDetector
from .models import BatchUpdateResult, InstallMethod, ToolInfo, UpdateResult
from .resolver import VersionResolver
from .updater import BackupManifest, Updater

logger = logging.getLogger(__name__)


class ToolManagerService:
    """
    Explicitly wired set of components serving the operations of the manager.

    Attributes:
        catalog: Built-in tool catalog
        detector: Local installation detector
        resolver: Upstream version resolver
        updater: Update/install orchestrator
        config_store: Persistent settings
    """

    def __init__(
        self,
        catalog: ToolCatalog,
        detector: ToolDetector,
        resolver: VersionResolver,
        updater: Updater,
        config_store: ConfigStore,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ):
        self.catalog = catalog
        self.detector = detector
        self.resolver = resolver
        self.updater = updater
        self.config_store = config_store
        self.max_workers = max_workers

    def scan_tools(self) -> list[ToolInfo]:
        """One ToolInfo per catalog entry, in catalog order."""
        try:
            return self.detector.scan_all_tools()
        except Exception as e:
            logger.error(f"Scan failed: {e}")
            return [
                ToolInfo.errored(d.name, d.display_name, f"Scan failed: {e}")
                for d in self.catalog
            ]

    def check_versions(self, tools: Sequence[ToolInfo]) -> list[ToolInfo]:
        """
        Refresh latest version and staleness of each tool.

        Tools without a catalog definition, without an upstream answer or whose
        lookup fails are returned unchanged. Order is preserved.
        """
        tools = list(tools)
        if not tools:
            return []

        workers = max(1, min(self.max_workers, len(tools)))
        try:
            with ThreadPoolExecutor(max_workers=workers) as executor:
                futures = [executor.submit(self._check_one, tool) for tool in tools]
                results = []
                for tool, future in zip(tools, futures):
                    try:
                        results.append(future.result())
                    except Exception as e:
                        logger.warning(f"Version check failed for {tool.name}: {e}")
                        results.append(tool)
                return results
        except Exception as e:
            logger.error(f"Version check failed: {e}")
            return tools

    def _check_one(self, tool: ToolInfo) -> ToolInfo:
        definition = self.catalog.get(tool.name)
        if definition is None:
            return tool

        record = self.resolver.get_latest_version(definition)
        if record is None:
            return tool

        outdated = bool(tool.current_version) and is_newer(tool.current_version or "", record.version)
        return tool.with_latest(record.version, outdated)

    def update_tool(self, tool: ToolInfo) -> UpdateResult:
        try:
            return self.updater.update_tool(tool)
        except Exception as e:
            logger.exception(f"Update of {tool.name} raised")
            return UpdateResult(
                success=False,
                tool_name=tool.name,
                old_version=tool.current_version,
                error=f"Unexpected error: {e}",
            )

    def batch_update(self, tools: Sequence[ToolInfo]) -> BatchUpdateResult:
        tools = list(tools)
        try:
            return self.updater.batch_update(tools)
        except Exception as e:
            logger.exception("Batch update raised")
            return BatchUpdateResult.from_results([
                UpdateResult(
                    success=False,
                    tool_name=tool.name,
                    old_version=tool.current_version,
                    error=f"Unexpected error: {e}",
                )
                for tool in tools
            ])

    def install_tool(
        self,
        tool_name: str,
        install_method: InstallMethod | str,
        package_name: str,
    ) -> UpdateResult:
        try:
            return self.updater.install_tool(tool_name, install_method, package_name)
        except Exception as e:
            logger.exception(f"Install of {tool_name} raised")
            return UpdateResult(success=False, tool_name=tool_name, error=f"Unexpected error: {e}")

    def get_tool_definitions(self) -> list[ToolDefinition]:
        return list(self.catalog.all())

    def clear_cache(self) -> bool:
        """Drop cached versions. Always acknowledges."""
        try:
            self.resolver.clear_cache()
        except Exception as e:
            logger.error(f"Failed to clear version cache: {e}")
        return True

    def github_rate_limit(self) -> dict[str, int]:
        try:
            return self.resolver.get_github_rate_limit()
        except Exception as e:
            logger.debug(f"Rate limit lookup failed: {e}")
            return {}

    def get_config(self) -> AppConfig:
        try:
            return self.config_store.get_all()
        except Exception as e:
            logger.error(f"Failed to read config: {e}")
            return AppConfig()

    def set_config(self, changes: Mapping[str, Any]) -> tuple[AppConfig, str | None]:
        """
        Apply a partial settings change.

        Returns:
            Tuple of (current config, error message or None)
        """
        try:
            config = self.config_store.set_partial(changes)
        except Exception as e:
            logger.error(f"Failed to update config: {e}")
            return self.get_config(), str(e)

        self.updater.auto_backup = config.auto_backup
        return config, None

    def list_backups(self, tool_name: str | None = None) -> list[BackupManifest]:
        try:
            return self.updater.list_backups(tool_name)
        except Exception as e:
            logger.error(f"Failed to list backups: {e}")
            return []


def create_service(
    config_path: str | Path | None = None,
    catalog_path: str | Path | None = None,
    backup_dir: str | Path | None = None,
    verbose: bool = False,
) -> ToolManagerService:
    """
    Construct and wire all components.

    Settings (token, proxy, auto-backup) are read once here and passed to the
    components that need them.
    """
    config_store = ConfigStore(config_path, verbose=verbose)
    config = config_store.get_all()
    catalog = ToolCatalog.load(catalog_path)

    detector = ToolDetector(catalog, verbose=verbose)
    resolver = VersionResolver(
        github_token=config.github_token,
        proxy=config.proxy,
        verbose=verbose,
    )
    updater = Updater(
        catalog=catalog,
        backup_dir=backup_dir,
        auto_backup=config.auto_backup,
        verbose=verbose,
    )
    updater.initialize()

    return ToolManagerService(catalog, detector, resolver, updater, config_store)
