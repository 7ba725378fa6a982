"""
Update orchestration with backup, verification and rollback.

Each update walks the states

    Idle -> Validating -> BackingUp -> Mutating -> Verifying
         -> Succeeded | RollingBack -> RolledBack | RollbackFailed

and every transition is appended to a log returned with the result. Batch
updates run strictly one tool at a time because concurrent invocations of the
same package manager can corrupt its lock state.
"""

from __future__ import annotations

import json
import logging
import os
import re
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Sequence

from .catalog import ToolCatalog, ToolDefinition
from .common import MUTATION_TIMEOUT, PROBE_TIMEOUT, CommandResult, run_command, strip_ansi, vlog
from .errors import (
    CommandFailed,
    RollbackFailure,
    ToolManagerError,
    UnexpectedFault,
    UnsupportedOperation,
    VerificationFailure,
)
from .models import (
    BatchUpdateResult,
    InstallMethod,
    ToolInfo,
    ToolStatus,
    UpdateResult,
    format_iso,
    utcnow,
)

logger = logging.getLogger(__name__)

DEFAULT_BACKUP_DIR = os.path.join(os.path.expanduser("~"), ".actm", "backups")
MANIFEST_FILE = "version.json"
INSTALLED_MARKER = "installed"

# Post-update probes ignore the tool-specific pattern
VERIFY_VERSION_RE = re.compile(r"(\d+\.\d+\.\d+)")


class UpdateState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    BACKING_UP = "backing-up"
    MUTATING = "mutating"
    VERIFYING = "verifying"
    SUCCEEDED = "succeeded"
    ROLLING_BACK = "rolling-back"
    ROLLED_BACK = "rolled-back"
    ROLLBACK_FAILED = "rollback-failed"


@dataclass(frozen=True)
class BackupManifest:
    """
    Version snapshot written before an update.

    Only metadata is kept; provider-managed packages can be reinstalled from
    it.

    Attributes:
        name: Tool name
        version: Version before the update
        install_method: Provider that installed it
        install_path: Executable path
        backup_date: ISO-8601 UTC timestamp
    """
    name: str
    version: str | None
    install_method: InstallMethod
    install_path: str | None
    backup_date: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "version": self.version,
            "installMethod": self.install_method.value,
            "installPath": self.install_path,
            "backupDate": self.backup_date,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BackupManifest:
        """Create from dictionary."""
        return cls(
            name=data["name"],
            version=data.get("version"),
            install_method=InstallMethod.parse(data.get("installMethod")),
            install_path=data.get("installPath"),
            backup_date=data.get("backupDate", ""),
        )


class UpdateLog:
    """Cumulative operator-facing log of one operation."""

    def __init__(self, tool_name: str):
        self.tool_name = tool_name
        self.state = UpdateState.IDLE
        self._lines: list[str] = []

    def add(self, line: str) -> None:
        self._lines.append(line)
        logger.info(f"[{self.tool_name}] {line}")

    def transition(self, state: UpdateState) -> None:
        logger.debug(f"[{self.tool_name}] {self.state.value} -> {state.value}")
        self.state = state

    def add_output(self, result: CommandResult) -> None:
        output = strip_ansi(result.output).strip()
        if output:
            self._lines.append(output)

    def text(self) -> str:
        return "\n".join(self._lines) + "\n" if self._lines else ""


# --- Provider commands ---

def update_command(method: InstallMethod, package: str) -> tuple[str, ...]:
    """
    Command that moves a package to its latest version.

    Raises:
        UnsupportedOperation: If the provider has no update path
    """
    if method == InstallMethod.NPM:
        return ("npm", "update", "-g", package)
    elif method == InstallMethod.PIP:
        return ("pip", "install", "--upgrade", package)
    elif method == InstallMethod.BREW:
        return ("brew", "upgrade", package)
    elif method == InstallMethod.VSCODE_EXTENSION:
        return ("code", "--install-extension", package, "--force")
    elif method == InstallMethod.BINARY:
        raise UnsupportedOperation("Binary updates not yet implemented")
    elif method == InstallMethod.UNKNOWN:
        raise UnsupportedOperation(f"Unknown install method: {method.value}")
    raise UnsupportedOperation(f"Unhandled install method: {method}")


def rollback_command(method: InstallMethod, package: str, version: str) -> tuple[str, ...]:
    """
    Command that reinstalls an exact earlier version.

    Raises:
        UnsupportedOperation: If the provider cannot pin versions
    """
    if method == InstallMethod.NPM:
        return ("npm", "install", "-g", f"{package}@{version}")
    elif method == InstallMethod.PIP:
        return ("pip", "install", f"{package}=={version}")
    elif method == InstallMethod.BREW:
        raise UnsupportedOperation("Brew rollback not supported")
    elif method == InstallMethod.VSCODE_EXTENSION:
        return ("code", "--install-extension", f"{package}@{version}", "--force")
    elif method == InstallMethod.BINARY:
        raise UnsupportedOperation("Binary rollback not supported")
    elif method == InstallMethod.UNKNOWN:
        raise UnsupportedOperation(f"Unknown install method: {method.value}")
    raise UnsupportedOperation(f"Unhandled install method: {method}")


def install_command(method: InstallMethod, package: str) -> tuple[str, ...]:
    """
    Command that installs a package fresh.

    Raises:
        UnsupportedOperation: If the provider has no install path
    """
    if method == InstallMethod.NPM:
        return ("npm", "install", "-g", package)
    elif method == InstallMethod.PIP:
        return ("pip", "install", package)
    elif method == InstallMethod.BREW:
        return ("brew", "install", package)
    elif method == InstallMethod.VSCODE_EXTENSION:
        return ("code", "--install-extension", package)
    elif method in (InstallMethod.BINARY, InstallMethod.UNKNOWN):
        raise UnsupportedOperation(f"Unsupported install method: {method.value}")
    raise UnsupportedOperation(f"Unhandled install method: {method}")


class Updater:
    """Drives updates, rollbacks and fresh installs of catalog tools."""

    def __init__(
        self,
        catalog: ToolCatalog | None = None,
        backup_dir: str | Path | None = None,
        auto_backup: bool = True,
        mutation_timeout: float = MUTATION_TIMEOUT,
        probe_timeout: float = PROBE_TIMEOUT,
        verbose: bool = False,
    ):
        self.catalog = catalog
        self.backup_dir = Path(backup_dir) if backup_dir is not None else Path(DEFAULT_BACKUP_DIR)
        self.auto_backup = auto_backup
        self.mutation_timeout = mutation_timeout
        self.probe_timeout = probe_timeout
        self.verbose = verbose

    def initialize(self) -> None:
        """Create the backup directory."""
        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create backup directory {self.backup_dir}: {e}")

    def _definition(self, tool_name: str) -> ToolDefinition | None:
        return self.catalog.get(tool_name) if self.catalog is not None else None

    def _package_name(self, tool: ToolInfo) -> str:
        definition = self._definition(tool.name)
        if definition is not None:
            package = definition.package_for(tool.install_method)
            if package:
                return package
        return tool.name

    # --- single update ---

    def update_tool(self, tool: ToolInfo) -> UpdateResult:
        """
        Update one installed tool to its latest version.

        Args:
            tool: Detection record of the tool

        Returns:
            UpdateResult; failure results carry the error and full log
        """
        start_time = time.time()
        log = UpdateLog(tool.name)

        log.transition(UpdateState.VALIDATING)
        if tool.status == ToolStatus.NOT_INSTALLED:
            log.add(f"{tool.name} is not installed, nothing to update")
            return UpdateResult(
                success=False,
                tool_name=tool.name,
                error="Tool is not installed",
                log=log.text(),
            )

        log.transition(UpdateState.BACKING_UP)
        if self.auto_backup:
            log.add(f"Backing up {tool.name}...")
            try:
                backup_path = self.backup_tool(tool)
                if backup_path is not None:
                    log.add(f"Backup written to {backup_path}")
                else:
                    log.add("No install path recorded, backup skipped")
            except (OSError, TypeError, ValueError) as e:
                log.add(f"Backup failed, continuing without rollback manifest: {e}")
        else:
            log.add("Automatic backup disabled, skipping backup")

        package = self._package_name(tool)
        try:
            new_version = self._mutate_and_verify(tool, package, log)
        except UnsupportedOperation as e:
            log.add(f"Update failed: {e.message}")
            return UpdateResult(
                success=False,
                tool_name=tool.name,
                old_version=tool.current_version,
                error=e.message,
                log=log.text(),
            )
        except ToolManagerError as e:
            return self._fail_with_rollback(tool, package, e.message, log)
        except Exception as e:
            fault = UnexpectedFault(f"Unexpected error: {e}")
            logger.exception(f"Update of {tool.name} raised")
            return self._fail_with_rollback(tool, package, fault.message, log)

        log.transition(UpdateState.SUCCEEDED)
        log.add(f"Update completed in {time.time() - start_time:.2f}s")
        return UpdateResult(
            success=True,
            tool_name=tool.name,
            old_version=tool.current_version,
            new_version=new_version,
            log=log.text(),
        )

    def _mutate_and_verify(self, tool: ToolInfo, package: str, log: UpdateLog) -> str:
        log.transition(UpdateState.MUTATING)
        command = update_command(tool.install_method, package)
        log.add(f"Updating {tool.name} via {tool.install_method.value}: {' '.join(command)}")

        result = run_command(command, timeout=self.mutation_timeout)
        log.add_output(result)
        if not result.success:
            raise CommandFailed(result.error_message or "update command failed")

        log.transition(UpdateState.VERIFYING)
        log.add("Verifying update...")
        new_version = self.verify_update(tool)
        if not new_version:
            raise VerificationFailure("Failed to verify update")
        log.add(f"{tool.name} now reports version {new_version}")
        return new_version

    def _fail_with_rollback(self, tool: ToolInfo, package: str, error: str, log: UpdateLog) -> UpdateResult:
        log.add(f"Update failed: {error}")
        log.transition(UpdateState.ROLLING_BACK)
        log.add("Attempting rollback...")
        try:
            self.rollback_tool(tool, package, log)
        except RollbackFailure as e:
            log.transition(UpdateState.ROLLBACK_FAILED)
            log.add(f"Rollback failed: {e.message}")
        else:
            log.transition(UpdateState.ROLLED_BACK)
            log.add("Rollback successful")

        return UpdateResult(
            success=False,
            tool_name=tool.name,
            old_version=tool.current_version,
            error=error,
            log=log.text(),
        )

    def backup_tool(self, tool: ToolInfo) -> Path | None:
        """
        Write a version manifest for the tool.

        Returns:
            Backup directory, or None when the tool has no install path

        Raises:
            OSError: If the manifest cannot be written
        """
        if not tool.install_path:
            return None

        base = f"{tool.name}-{tool.current_version}-{int(time.time() * 1000)}"
        self.backup_dir.mkdir(parents=True, exist_ok=True)
        backup_path = self.backup_dir / base
        suffix = 0
        while True:
            try:
                backup_path.mkdir()
                break
            except FileExistsError:
                suffix += 1
                backup_path = self.backup_dir / f"{base}-{suffix}"

        manifest = BackupManifest(
            name=tool.name,
            version=tool.current_version,
            install_method=tool.install_method,
            install_path=tool.install_path,
            backup_date=format_iso(utcnow()) or "",
        )
        with open(backup_path / MANIFEST_FILE, "w", encoding="utf-8") as f:
            json.dump(manifest.to_dict(), f, indent=2)

        vlog(f"Backed up {tool.name} manifest to {backup_path}", self.verbose)
        return backup_path

    def verify_update(self, tool: ToolInfo) -> str | None:
        """Re-run the version probe and extract a numeric version triplet."""
        definition = self._definition(tool.name)
        if definition is not None:
            command = [definition.command, *definition.version_args]
        else:
            command = [tool.name, "--version"]

        result = run_command(command, timeout=self.probe_timeout)
        if not result.success:
            vlog(f"Verification probe failed: {result.error_message}", self.verbose)
            return None

        match = VERIFY_VERSION_RE.search(strip_ansi(result.output))
        return match.group(1) if match else None

    def rollback_tool(self, tool: ToolInfo, package: str, log: UpdateLog) -> None:
        """
        Reinstall the version the tool had before the update.

        Raises:
            RollbackFailure: If no rollback exists or the command fails
        """
        if not tool.current_version:
            raise RollbackFailure("No version to rollback to")

        try:
            command = rollback_command(tool.install_method, package, tool.current_version)
        except UnsupportedOperation as e:
            raise RollbackFailure(e.message) from e

        log.add(f"Rolling back: {' '.join(command)}")
        result = run_command(command, timeout=self.mutation_timeout)
        log.add_output(result)
        if not result.success:
            raise RollbackFailure(result.error_message or "rollback command failed")

    # --- batch and install ---

    def batch_update(self, tools: Sequence[ToolInfo]) -> BatchUpdateResult:
        """
        Update tools one after another.

        A failing tool does not stop the batch; results keep input order.
        """
        results: list[UpdateResult] = []
        for tool in tools:
            try:
                result = self.update_tool(tool)
            except Exception as e:
                logger.exception(f"Update of {tool.name} raised")
                result = UpdateResult(
                    success=False,
                    tool_name=tool.name,
                    old_version=tool.current_version,
                    error=str(e) or e.__class__.__name__,
                )
            results.append(result)
            vlog(
                f"{'✓' if result.success else '✗'} {result.tool_name}: "
                f"{result.new_version if result.success else result.error}",
                self.verbose,
            )

        return BatchUpdateResult.from_results(results)

    def install_tool(
        self,
        tool_name: str,
        install_method: InstallMethod | str,
        package_name: str,
    ) -> UpdateResult:
        """
        Install a tool that is not present yet.

        The installer output is not parsed; success reports the
        ``"installed"`` marker instead of a version.
        """
        log = UpdateLog(tool_name)
        method = InstallMethod.parse(install_method)
        package = package_name or tool_name

        log.transition(UpdateState.MUTATING)
        log.add(f"Installing {tool_name} via {method.value}...")
        try:
            command = install_command(method, package)
        except UnsupportedOperation as e:
            log.add(f"Install failed: {e.message}")
            return UpdateResult(success=False, tool_name=tool_name, error=e.message, log=log.text())

        log.add(" ".join(command))
        result = run_command(command, timeout=self.mutation_timeout)
        log.add_output(result)
        if not result.success:
            error = result.error_message or "install command failed"
            log.add(f"Install failed: {error}")
            return UpdateResult(success=False, tool_name=tool_name, error=error, log=log.text())

        log.transition(UpdateState.SUCCEEDED)
        log.add(f"{tool_name} installed")
        return UpdateResult(
            success=True,
            tool_name=tool_name,
            new_version=INSTALLED_MARKER,
            log=log.text(),
        )

    def list_backups(self, tool_name: str | None = None) -> list[BackupManifest]:
        """Read back stored manifests, newest first; unreadable ones are skipped."""
        if not self.backup_dir.is_dir():
            return []

        manifests: list[BackupManifest] = []
        for manifest_path in self.backup_dir.glob(f"*/{MANIFEST_FILE}"):
            try:
                with open(manifest_path, "r", encoding="utf-8") as f:
                    manifest = BackupManifest.from_dict(json.load(f))
            except (OSError, ValueError, KeyError, TypeError) as e:
                logger.debug(f"Skipping unreadable manifest {manifest_path}: {e}")
                continue
            if tool_name is None or manifest.name == tool_name:
                manifests.append(manifest)

        manifests.sort(key=lambda m: m.backup_date, reverse=True)
        return manifests
