"""
AI coding tools manager - detection, version checks and safe updates.

Core Modules:
- Catalog: built-in definitions of the supported AI coding CLIs
- Detection: installed version, install path and provider inference
- Resolver: latest upstream versions with a 24h cache
- Updater: backup, update, verify and rollback orchestration
- Service: typed request/response operations that never raise
"""

__version__ = "1.0.0"

# Version info for backward compatibility
VERSION = __version__

from .models import (
    InstallMethod,
    ToolStatus,
    ToolInfo,
    VersionRecord,
    UpdateResult,
    BatchUpdateResult,
)
from .errors import (
    ToolManagerError,
    ToolNotFound,
    ProbeFailure,
    CommandFailed,
    UnexpectedFault,
    ProviderUnavailable,
    UnsupportedOperation,
    VerificationFailure,
    RollbackFailure,
)
from .catalog import GithubRepo, ToolDefinition, ToolCatalog
from .comparator import compare_versions, is_newer
from .detection import ToolDetector
from .resolver import VersionCache, VersionResolver
from .updater import BackupManifest, UpdateState, Updater
from .config import AppConfig, ProxyConfig, ConfigStore
from .service import ToolManagerService, create_service

# Logging configuration
from .logging_config import (
    setup_logging,
    get_logger,
)

__all__ = [
    # Version
    "__version__",
    "VERSION",
    # Data model
    "InstallMethod",
    "ToolStatus",
    "ToolInfo",
    "VersionRecord",
    "UpdateResult",
    "BatchUpdateResult",
    # Errors
    "ToolManagerError",
    "ToolNotFound",
    "ProbeFailure",
    "CommandFailed",
    "UnexpectedFault",
    "ProviderUnavailable",
    "UnsupportedOperation",
    "VerificationFailure",
    "RollbackFailure",
    # Components
    "GithubRepo",
    "ToolDefinition",
    "ToolCatalog",
    "compare_versions",
    "is_newer",
    "ToolDetector",
    "VersionCache",
    "VersionResolver",
    "BackupManifest",
    "UpdateState",
    "Updater",
    "AppConfig",
    "ProxyConfig",
    "ConfigStore",
    "ToolManagerService",
    "create_service",
    # Logging
    "setup_logging",
    "get_logger",
]
