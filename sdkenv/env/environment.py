"""
Environment model.

An environment is a directory under <home>/envs/<name> holding an SDK
checkout (sdk/) and, once prepared for engine builds, an engine source tree
(engine/). The engine version an environment is pinned to is read from the
SDK checkout's version file; it is not stored anywhere else.
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from sdkenv.core.config import SdkEnvConfig
from sdkenv.core.exceptions import (
    InvalidEngineVersionError,
    InvalidEnvironmentNameError,
)

# Always listed, in this order, even before they are created
PSEUDO_ENVIRONMENT_NAMES = ("stable", "beta", "master")

# Reserved, never a discoverable environment
DEFAULT_ENV_NAME = "default"

ENGINE_VERSION_PATH = "bin/internal/engine.version"

_NAME_RE = re.compile(r"^[_\-a-z][_\-a-z0-9]*$")
_COMMIT_HASH_RE = re.compile(r"^[0-9a-f]{40}$")


def is_valid_name(name: str) -> bool:
    return bool(_NAME_RE.fullmatch(name))


def is_valid_commit_hash(value: str) -> bool:
    return bool(_COMMIT_HASH_RE.fullmatch(value))


def ensure_valid_name(name: str) -> str:
    if not is_valid_name(name):
        raise InvalidEnvironmentNameError(name)
    return name


def ensure_valid_commit_hash(version: str) -> str:
    if not is_valid_commit_hash(version):
        raise InvalidEngineVersionError(version)
    return version


@dataclass(frozen=True)
class Environment:
    """
    Paths of a single environment.

    Attributes:
        name: Environment name
        env_dir: Root directory of the environment
    """

    name: str
    env_dir: Path

    @property
    def exists(self) -> bool:
        return self.env_dir.is_dir()

    @property
    def sdk_dir(self) -> Path:
        return self.env_dir / "sdk"

    @property
    def engine_version_file(self) -> Path:
        return self.sdk_dir / ENGINE_VERSION_PATH

    @property
    def engine_version(self) -> Optional[str]:
        """The engine version this environment is pinned to, if any."""
        try:
            version = self.engine_version_file.read_text(encoding="utf-8").strip()
        except (FileNotFoundError, NotADirectoryError):
            return None
        return version or None

    @property
    def engine_root_dir(self) -> Path:
        return self.env_dir / "engine"

    @property
    def engine_src_dir(self) -> Path:
        return self.engine_root_dir / "src" / "engine"

    @property
    def gclient_file(self) -> Path:
        return self.engine_root_dir / ".gclient"


def get_env(config: SdkEnvConfig, name: str) -> Environment:
    """Return the Environment for name (which need not exist yet)."""
    return Environment(name=name, env_dir=config.envs_dir / name)


__all__ = [
    "DEFAULT_ENV_NAME",
    "ENGINE_VERSION_PATH",
    "PSEUDO_ENVIRONMENT_NAMES",
    "Environment",
    "ensure_valid_commit_hash",
    "ensure_valid_name",
    "get_env",
    "is_valid_commit_hash",
    "is_valid_name",
]
