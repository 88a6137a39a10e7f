"""
Environments and the shared engine caches they reference.
"""

from .environment import (
    DEFAULT_ENV_NAME,
    PSEUDO_ENVIRONMENT_NAMES,
    Environment,
    get_env,
    is_valid_commit_hash,
    is_valid_name,
)

from .engine import (
    CacheStore,
    EngineCache,
    get_engine_cache,
    get_engine_sdk_version,
)

from .gc import GarbageCollector

from .listing import (
    EnvironmentInfo,
    EnvironmentRegistry,
    ListEnvironmentResult,
)

__all__ = [
    "DEFAULT_ENV_NAME",
    "PSEUDO_ENVIRONMENT_NAMES",
    "Environment",
    "get_env",
    "is_valid_commit_hash",
    "is_valid_name",
    "CacheStore",
    "EngineCache",
    "get_engine_cache",
    "get_engine_sdk_version",
    "GarbageCollector",
    "EnvironmentInfo",
    "EnvironmentRegistry",
    "ListEnvironmentResult",
]
