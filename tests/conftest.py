"""
Shared fixtures for actm tests.
"""

import pytest

from actm.catalog import ToolCatalog, ToolDefinition
from actm.common import CommandOutcome, CommandResult
from actm.models import InstallMethod, ToolInfo, ToolStatus


def make_result(stdout="", stderr="", outcome=CommandOutcome.SUCCESS, exit_code=0, error_message=None):
    """Build a CommandResult as run_command would return it."""
    if outcome != CommandOutcome.SUCCESS and error_message is None:
        error_message = "Command failed with exit code 1"
    return CommandResult(
        command=("test",),
        outcome=outcome,
        exit_code=exit_code if outcome == CommandOutcome.SUCCESS else (exit_code or 1),
        stdout=stdout,
        stderr=stderr,
        duration_seconds=0.01,
        error_message=error_message,
    )


def failed_result(message="Command failed with exit code 1"):
    return make_result(outcome=CommandOutcome.ERROR, exit_code=1, error_message=message)


def timeout_result(timeout=300):
    return make_result(
        outcome=CommandOutcome.TIMEOUT,
        exit_code=-1,
        error_message=f"Command timed out after {timeout}s: npm update -g sample",
    )


@pytest.fixture
def sample_definition():
    return ToolDefinition.from_dict({
        "name": "sample",
        "displayName": "Sample CLI",
        "command": "sample",
        "versionArgs": ["--version"],
        "versionRegex": r"(\d+\.\d+\.\d+)",
        "packages": {
            "npm": "sample",
            "pip": "sample-cli",
            "brew": "sample",
            "github": {"owner": "example", "repo": "sample"},
        },
        "configPaths": ["~/.sample/config.json"],
    })


@pytest.fixture
def sample_catalog(sample_definition):
    return ToolCatalog([sample_definition])


@pytest.fixture
def sample_tool():
    return ToolInfo(
        name="sample",
        display_name="Sample CLI",
        current_version="1.0.0",
        install_path="/home/user/.npm-global/bin/sample",
        install_method=InstallMethod.NPM,
        status=ToolStatus.INSTALLED,
    )
