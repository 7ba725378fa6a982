"""
Error taxonomy for detection, version resolution and updates.

None of these escape the service boundary; they are converted to ToolInfo or
UpdateResult records there.
"""


class ToolManagerError(Exception):
    """
    Base exception for tool manager errors.

    Attributes:
        message: Human-readable error message
        kind: Short category name used in logs
    """
    kind = "error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ToolNotFound(ToolManagerError):
    """Probe command is not on the PATH."""
    kind = "not-found"


class ProbeFailure(ToolManagerError):
    """Command exists but no version could be extracted."""
    kind = "probe-failure"


class CommandFailed(ToolManagerError):
    """An update, rollback or install command exited non-zero or timed out."""
    kind = "command-failed"


class UnexpectedFault(ToolManagerError):
    """Anything outside the expected detection branches."""
    kind = "unexpected"


class ProviderUnavailable(ToolManagerError):
    """A version provider failed, timed out or returned an undecodable body."""
    kind = "provider-unavailable"


class UnsupportedOperation(ToolManagerError):
    """No update, rollback or install path exists for the provider."""
    kind = "unsupported"


class VerificationFailure(ToolManagerError):
    """Update command succeeded but the tool no longer reports a version."""
    kind = "verification-failure"


class RollbackFailure(ToolManagerError):
    """Rollback command itself failed."""
    kind = "rollback-failure"
