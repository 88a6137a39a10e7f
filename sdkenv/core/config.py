"""
Configuration for sdkenv.

All paths and URLs used by the core live on a single SdkEnvConfig instance
that is passed around explicitly (through Context). Values come from three
layers, later layers winning:

    1. Built-in defaults (home directory under the user profile)
    2. Optional YAML file (<home>/config.yaml or --config PATH)
    3. Environment variables (SDKENV_HOME, SDKENV_STORAGE_BASE_URL)

Directory Structure:
    <home>/
        envs/<name>/          : Environments (SDK checkout + engine source)
        shared/caches/<ver>/  : Extracted engine artifacts, one per version
        shared/engine/        : Canonical engine git repository
        shared/gclient/       : Dependency-fetch cache shared by all envs
        depot_tools/          : Dependency-sync toolkit
        lock/                 : Advisory lock files
        prefs.json            : Global default environment
"""

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from sdkenv.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_BASE_URL = "https://storage.googleapis.com"
DEFAULT_ENGINE_ARTIFACT_PATH = "engine_release/engine"
DEFAULT_ENGINE_GIT_URL = "https://github.com/sdkenv/engine.git"
DEFAULT_DEPOT_TOOLS_GIT_URL = (
    "https://chromium.googlesource.com/chromium/tools/depot_tools.git"
)


def get_default_home_dir() -> Path:
    """
    Get the platform-specific sdkenv home directory.

    Returns:
        Path: SDKENV_HOME if set, otherwise
            - Windows: %USERPROFILE%\\.sdkenv
            - Linux/macOS: ~/.sdkenv
    """
    override = os.environ.get("SDKENV_HOME")
    if override:
        return Path(override)

    if os.name == "nt":
        user_profile = os.environ.get("USERPROFILE")
        if not user_profile:
            raise ConfigError(
                "USERPROFILE environment variable is not set. "
                "Cannot determine sdkenv home directory."
            )
        return Path(user_profile) / ".sdkenv"
    return Path.home() / ".sdkenv"


@dataclass
class SdkEnvConfig:
    """
    Paths, URLs and limits used by every sdkenv operation.

    Attributes:
        home_dir: Root of all sdkenv state
        project_root: Directory where project-default lookup starts
        storage_base_url: Base URL of the engine artifact storage
        engine_artifact_path: Path segment between base URL and version
        engine_git_url: Canonical engine source repository
        depot_tools_git_url: Dependency-sync toolkit repository
        download_timeout: Per-request HTTP timeout in seconds
        process_timeout: Default subprocess timeout in seconds (None = no limit)
    """

    home_dir: Path = field(default_factory=get_default_home_dir)
    project_root: Path = field(default_factory=Path.cwd)
    storage_base_url: str = DEFAULT_STORAGE_BASE_URL
    engine_artifact_path: str = DEFAULT_ENGINE_ARTIFACT_PATH
    engine_git_url: str = DEFAULT_ENGINE_GIT_URL
    depot_tools_git_url: str = DEFAULT_DEPOT_TOOLS_GIT_URL
    download_timeout: int = 30
    process_timeout: Optional[int] = None

    def __post_init__(self):
        self.home_dir = Path(self.home_dir)
        self.project_root = Path(self.project_root)

    @property
    def envs_dir(self) -> Path:
        return self.home_dir / "envs"

    @property
    def shared_dir(self) -> Path:
        return self.home_dir / "shared"

    @property
    def shared_caches_dir(self) -> Path:
        return self.shared_dir / "caches"

    @property
    def shared_engine_dir(self) -> Path:
        return self.shared_dir / "engine"

    @property
    def shared_gclient_dir(self) -> Path:
        return self.shared_dir / "gclient"

    @property
    def depot_tools_dir(self) -> Path:
        return self.home_dir / "depot_tools"

    @property
    def lock_dir(self) -> Path:
        return self.home_dir / "lock"

    @property
    def prefs_file(self) -> Path:
        return self.home_dir / "prefs.json"

    def engine_download_url(self, engine_version: str, artifact_name: str) -> str:
        """
        Build the download URL of an engine artifact.

        Example:
            >>> config.engine_download_url('1a2b...', 'engine-sdk-linux-x64.zip')
            'https://storage.googleapis.com/engine_release/engine/1a2b.../engine-sdk-linux-x64.zip'
        """
        base = self.storage_base_url.rstrip("/")
        path = self.engine_artifact_path.strip("/")
        return f"{base}/{path}/{engine_version}/{artifact_name}"


_CONFIG_KEYS = {f.name for f in fields(SdkEnvConfig)}


def load_yaml_config(config_file: Path, required: bool = False) -> Dict[str, Any]:
    """
    Load and parse a YAML configuration file.

    Args:
        config_file: Path to YAML configuration file
        required: If True, raise error if file doesn't exist

    Returns:
        Configuration dictionary (empty dict if file doesn't exist and not required)

    Raises:
        ConfigError: If the file is required and missing, or YAML parsing fails
    """
    if not config_file.exists():
        if required:
            raise ConfigError(f"Configuration file not found: {config_file}")
        logger.debug(f"Config file not found (optional): {config_file}")
        return {}

    logger.debug(f"Loading configuration from {config_file}")

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_file}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a mapping at top level of {config_file}")
    return data


def load_config(
    config_file: Optional[Union[str, Path]] = None,
    home_dir: Optional[Union[str, Path]] = None,
    project_root: Optional[Union[str, Path]] = None,
) -> SdkEnvConfig:
    """
    Build an SdkEnvConfig from defaults, YAML file and environment variables.

    Args:
        config_file: Explicit YAML file (required to exist when given)
        home_dir: Explicit home directory, overrides SDKENV_HOME
        project_root: Start directory for project-default lookup

    Returns:
        Populated SdkEnvConfig
    """
    home = Path(home_dir) if home_dir else get_default_home_dir()

    if config_file is not None:
        values = load_yaml_config(Path(config_file), required=True)
    else:
        values = load_yaml_config(home / "config.yaml")

    kwargs: Dict[str, Any] = {}
    for key, value in values.items():
        if key not in _CONFIG_KEYS or key in ("home_dir", "project_root"):
            logger.warning(f"Ignoring unknown configuration key: {key}")
            continue
        kwargs[key] = value

    base_url = os.environ.get("SDKENV_STORAGE_BASE_URL")
    if base_url:
        kwargs["storage_base_url"] = base_url

    kwargs["home_dir"] = home
    if project_root is not None:
        kwargs["project_root"] = Path(project_root)

    return SdkEnvConfig(**kwargs)


__all__ = [
    "SdkEnvConfig",
    "get_default_home_dir",
    "load_config",
    "load_yaml_config",
]
