"""
Centralized exception hierarchy for sdkenv.

Every fatal condition raised by the core derives from SdkEnvError so the CLI
can report it uniformly. Cache corruption is deliberately absent: it is
repaired inside CacheStore.ensure and never surfaced.
"""

from typing import Optional, Sequence


# ============================================================================
# Base Exceptions
# ============================================================================


class SdkEnvError(Exception):
    """Base exception for all sdkenv errors."""

    pass


class ConfigError(SdkEnvError):
    """Configuration file could not be parsed or is invalid."""

    pass


class OperationCancelledError(SdkEnvError):
    """Raised when a cancellation token is triggered mid-operation."""

    pass


# ============================================================================
# Platform Exceptions
# ============================================================================


class UnsupportedPlatformError(SdkEnvError):
    """Raised when the host OS or architecture has no engine build."""

    pass


# ============================================================================
# Network Exceptions
# ============================================================================


class DownloadError(SdkEnvError):
    """Raised when an artifact download fails."""

    def __init__(self, message: str, url: str, status_code: Optional[int] = None):
        self.url = url
        self.status_code = status_code
        super().__init__(message)


# ============================================================================
# Tool Exceptions
# ============================================================================


class ExternalToolError(SdkEnvError):
    """A required subprocess failed; carries its exit code and output."""

    def __init__(
        self,
        command: Sequence[str],
        returncode: int,
        stdout: str = "",
        stderr: str = "",
        message: Optional[str] = None,
    ):
        self.command = list(command)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        if message is None:
            message = f"`{' '.join(self.command)}` failed with exit code {returncode}"
            output = (stdout + stderr).strip()
            if output:
                message += f"\n{output}"
        super().__init__(message)


class OutputParseError(SdkEnvError):
    """A tool's output could not be interpreted; carries the raw output."""

    def __init__(self, output: str, message: Optional[str] = None):
        self.output = output
        super().__init__(message or f"Failed to parse `{output.strip()}`")


class VersionParseError(OutputParseError):
    """Tool self-report did not match the expected version pattern."""

    def __init__(self, output: str):
        super().__init__(output, f"Failed to parse version from `{output.strip()}`")


# ============================================================================
# Environment Exceptions
# ============================================================================


class InvalidEnvironmentNameError(SdkEnvError):
    """Environment name does not satisfy the naming rules."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Invalid environment name: `{name}`")


class InvalidEngineVersionError(SdkEnvError):
    """Engine version is not a 40-character lowercase commit hash."""

    def __init__(self, version: str):
        self.version = version
        super().__init__(
            f"Invalid engine version: `{version}` (expected a 40-character commit hash)"
        )


class EngineVersionNotFoundError(SdkEnvError):
    """No engine ref could be resolved for an environment."""

    pass


class MissingPrerequisiteError(SdkEnvError):
    """A host build prerequisite is missing and cannot be installed automatically."""

    pass
