"""
Environment discovery and reporting.

The pseudo-environments (stable, beta, master) are always listed first, in
that order, whether or not they have been created. Every other validly named
directory under the environments root follows, sorted by name. The reserved
name "default" is never listed.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sdkenv.core.context import Context
from sdkenv.core.exceptions import ExternalToolError, VersionParseError
from sdkenv.env.default import get_default_env_name, get_project_env
from sdkenv.env.engine import CacheStore, get_engine_sdk_version
from sdkenv.env.environment import (
    DEFAULT_ENV_NAME,
    PSEUDO_ENVIRONMENT_NAMES,
    Environment,
    get_env,
    is_valid_name,
)

logger = logging.getLogger(__name__)


@dataclass
class EnvironmentInfo:
    """One listed environment and its resolved SDK version."""

    environment: Environment
    version: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.environment.name,
            "path": str(self.environment.env_dir),
            "exists": self.environment.exists,
            "engineVersion": self.environment.engine_version,
            "version": self.version,
        }


@dataclass
class ListEnvironmentResult:
    """Result of listing environments."""

    results: List[EnvironmentInfo] = field(default_factory=list)
    project_environment: Optional[str] = None
    global_environment: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "environments": [info.to_dict() for info in self.results],
            "projectEnvironment": self.project_environment,
            "globalEnvironment": self.global_environment,
        }

    def format(self) -> str:
        """Plain-text listing; `*` marks the project env, `~` the global one."""
        if not self.results:
            return "No environments found"

        lines = []
        for info in self.results:
            name = info.environment.name
            if name == self.project_environment:
                marker = "*"
            elif name == self.global_environment:
                marker = "~"
            else:
                marker = " "
            lines.append(f"{marker} {name}")

        width = max(len(line) for line in lines)
        out = ["Environments:"]
        for line, info in zip(lines, self.results):
            if info.environment.exists:
                status = info.version or "unknown"
            else:
                status = "not installed"
            out.append(f"{line.ljust(width)} ({status})")
        out.append("")
        out.append(
            "Use `sdkenv use <name>` to switch environments"
        )
        return "\n".join(out)


class EnvironmentRegistry:
    """Enumerates environments and resolves their SDK versions."""

    def __init__(self, ctx: Context):
        self.ctx = ctx
        self.config = ctx.config
        self.cache_store = CacheStore(ctx)

    def discover(self) -> List[Environment]:
        """All environments in listing order, without version lookups."""
        environments = [get_env(self.config, name) for name in PSEUDO_ENVIRONMENT_NAMES]

        envs_dir = self.config.envs_dir
        if envs_dir.is_dir():
            names = sorted(
                child.name
                for child in envs_dir.iterdir()
                if child.is_dir()
                and is_valid_name(child.name)
                and child.name != DEFAULT_ENV_NAME
                and child.name not in PSEUDO_ENVIRONMENT_NAMES
            )
            environments.extend(get_env(self.config, name) for name in names)

        return environments

    def get_sdk_version(self, environment: Environment) -> Optional[str]:
        """
        SDK version of an environment, from its cached engine tool.

        Returns None when the environment doesn't exist, isn't pinned to an
        engine version, its engine hasn't been downloaded yet, or the cached
        engine tool can't report a version.
        """
        if not environment.exists:
            return None
        engine_version = environment.engine_version
        if engine_version is None:
            return None
        cache = self.cache_store.get_cache(engine_version)
        if not cache.exists:
            return None
        try:
            return get_engine_sdk_version(self.ctx, cache)
        except (ExternalToolError, VersionParseError, OSError) as e:
            logger.warning(
                f"Could not read the SDK version of `{environment.name}`: {e}"
            )
            return None

    def list(self) -> ListEnvironmentResult:
        results = [
            EnvironmentInfo(environment, self.get_sdk_version(environment))
            for environment in self.discover()
        ]

        project_env = get_project_env(self.config)
        return ListEnvironmentResult(
            results=results,
            project_environment=project_env.name if project_env else None,
            global_environment=get_default_env_name(self.config),
        )


__all__ = [
    "EnvironmentInfo",
    "EnvironmentRegistry",
    "ListEnvironmentResult",
]
