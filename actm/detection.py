"""
Local tool detection, version extraction and install provenance.

A detection pass turns one ToolDefinition into exactly one ToolInfo and never
raises. "Command missing" and "no version in the probe output" are expected
outcomes and map to not-installed; anything else collapses to an error record
with no partially filled fields.
"""

from __future__ import annotations

import logging
import os
import shutil
import sys
from concurrent.futures import ThreadPoolExecutor
from typing import Sequence

from .catalog import ToolCatalog, ToolDefinition
from .common import PROBE_TIMEOUT, run_command, strip_ansi, vlog
from .errors import ProbeFailure, ToolNotFound
from .models import InstallMethod, ToolInfo, ToolStatus, utcnow

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 8

# Path fragments identifying each provider's install tree
NPM_MARKERS = ("node_modules", ".npm", "npm-global")
PIP_MARKERS = ("python", "site-packages", "dist-packages")
BREW_MARKERS = ("/usr/local/Cellar", "homebrew", "linuxbrew")
SYSTEM_BIN_MARKERS = ("/usr/local/bin", "/usr/bin")


def _contains_any(paths: Sequence[str], markers: Sequence[str]) -> bool:
    return any(marker in path for path in paths for marker in markers)


class ToolDetector:
    """Scans the system for installed catalog tools."""

    def __init__(
        self,
        catalog: ToolCatalog,
        probe_timeout: float = PROBE_TIMEOUT,
        max_workers: int = DEFAULT_MAX_WORKERS,
        platform: str = sys.platform,
        verbose: bool = False,
    ):
        self.catalog = catalog
        self.probe_timeout = probe_timeout
        self.max_workers = max_workers
        self.platform = platform
        self.verbose = verbose

    def scan_all_tools(self) -> list[ToolInfo]:
        """
        Detect every catalog tool concurrently.

        Returns:
            One ToolInfo per catalog entry, in catalog order
        """
        definitions = self.catalog.all()
        if not definitions:
            return []

        workers = max(1, min(self.max_workers, len(definitions)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(self.detect_tool, d) for d in definitions]

            results: list[ToolInfo] = []
            for definition, future in zip(definitions, futures):
                try:
                    results.append(future.result())
                except Exception as e:
                    logger.error(f"Detection of {definition.name} crashed: {e}")
                    results.append(ToolInfo.errored(definition.name, definition.display_name, str(e)))

        logger.debug(f"Scanned {len(results)} tools")
        return results

    def detect_tool(self, definition: ToolDefinition) -> ToolInfo:
        """
        Detect a single tool.

        Args:
            definition: Catalog definition to probe

        Returns:
            ToolInfo with status installed, not-installed or error
        """
        try:
            command_path = self.find_command_path(definition.command)
            current_version = self.get_version(definition, command_path)
            install_method = self.detect_install_method(definition, command_path)
            config_path = self.find_config_path(definition)
        except (ToolNotFound, ProbeFailure) as e:
            vlog(f"{definition.name}: {e.kind}: {e.message}", self.verbose)
            return ToolInfo.not_installed(definition.name, definition.display_name)
        except Exception as e:
            logger.warning(f"Detection failed for {definition.name}: {e}")
            return ToolInfo.errored(
                definition.name,
                definition.display_name,
                str(e) or e.__class__.__name__,
            )

        vlog(
            f"{definition.name}: {current_version} at {command_path} ({install_method.value})",
            self.verbose,
        )
        return ToolInfo(
            name=definition.name,
            display_name=definition.display_name,
            current_version=current_version,
            install_path=command_path,
            install_method=install_method,
            config_path=config_path,
            last_checked=utcnow(),
            status=ToolStatus.INSTALLED,
        )

    def find_command_path(self, command: str) -> str:
        """
        Resolve a command on the PATH.

        Raises:
            ToolNotFound: If the command is not on the PATH
        """
        path = shutil.which(command)
        if not path:
            raise ToolNotFound(f"{command} not found on PATH")
        return os.path.abspath(path)

    def get_version(self, definition: ToolDefinition, command_path: str | None = None) -> str:
        """
        Run the version probe and apply the tool's version pattern.

        Raises:
            ProbeFailure: On a failed or timed-out probe, or no match
        """
        executable = command_path or definition.command
        result = run_command([executable, *definition.version_args], timeout=self.probe_timeout)
        if not result.success:
            raise ProbeFailure(result.error_message or "version probe failed")

        version = definition.extract_version(strip_ansi(result.output))
        if not version:
            raise ProbeFailure(f"no version in output of {result.display()}")
        return version

    def detect_install_method(self, definition: ToolDefinition, command_path: str) -> InstallMethod:
        """
        Infer which provider installed the tool.

        Path markers are checked against both the PATH entry and its resolved
        target; a tool found in a system bin directory is cross-checked against
        each declared provider's package listing.
        """
        if definition.vscode_extension:
            return InstallMethod.VSCODE_EXTENSION

        paths = [command_path]
        real_path = os.path.realpath(command_path)
        if real_path != command_path:
            paths.append(real_path)

        if _contains_any(paths, NPM_MARKERS):
            return InstallMethod.NPM
        if _contains_any(paths, PIP_MARKERS):
            return InstallMethod.PIP
        if _contains_any(paths, BREW_MARKERS):
            return InstallMethod.BREW

        if _contains_any([command_path], SYSTEM_BIN_MARKERS):
            for method in definition.declared_methods():
                if self.is_listed_by(method, definition.package_for(method) or definition.name):
                    vlog(f"{definition.name}: listed by {method.value}", self.verbose)
                    return method
            return InstallMethod.BINARY

        return InstallMethod.UNKNOWN

    def is_listed_by(self, method: InstallMethod, package: str) -> bool:
        """Check whether a provider's installed-package listing mentions a package."""
        if method == InstallMethod.NPM:
            command = ["npm", "list", "-g", "--depth=0"]
        elif method == InstallMethod.PIP:
            command = ["pip", "list"]
        elif method == InstallMethod.BREW:
            if self.platform != "darwin":
                return False
            command = ["brew", "list"]
        else:
            return False

        result = run_command(command, timeout=self.probe_timeout)
        if not result.success:
            vlog(f"{' '.join(command)} unavailable: {result.error_message}", self.verbose)
            return False
        return package in result.stdout

    def find_config_path(self, definition: ToolDefinition) -> str | None:
        """First existing config file from the definition, in declared order."""
        for candidate in definition.config_paths:
            expanded = os.path.expanduser(candidate)
            if os.path.isfile(expanded):
                return expanded
        return None
