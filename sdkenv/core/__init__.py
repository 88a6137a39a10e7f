"""
Core functionality for sdkenv.

This package contains the foundational modules that the environment and
engine packages depend on.
"""

from .config import (
    SdkEnvConfig,
    get_default_home_dir,
    load_config,
)

from .context import Context

from .locking import (
    LockManager,
    LockTimeout,
)

from .platform import (
    BuildTarget,
    EngineArch,
    EngineOS,
    detect_os,
)

from .process import (
    CancellationToken,
    ProcessResult,
    ProcessRunner,
)

from .git import GitClient

from .exceptions import (
    SdkEnvError,
    ConfigError,
    OperationCancelledError,
    UnsupportedPlatformError,
    DownloadError,
    ExternalToolError,
    OutputParseError,
    VersionParseError,
    InvalidEnvironmentNameError,
    InvalidEngineVersionError,
    EngineVersionNotFoundError,
    MissingPrerequisiteError,
)

__all__ = [
    "SdkEnvConfig",
    "get_default_home_dir",
    "load_config",
    "Context",
    "LockManager",
    "LockTimeout",
    "BuildTarget",
    "EngineArch",
    "EngineOS",
    "detect_os",
    "CancellationToken",
    "ProcessResult",
    "ProcessRunner",
    "GitClient",
    "SdkEnvError",
    "ConfigError",
    "OperationCancelledError",
    "UnsupportedPlatformError",
    "DownloadError",
    "ExternalToolError",
    "OutputParseError",
    "VersionParseError",
    "InvalidEnvironmentNameError",
    "InvalidEngineVersionError",
    "EngineVersionNotFoundError",
    "MissingPrerequisiteError",
]
