"""
Garbage collection of shared engine caches.

A cache is referenced when any environment is pinned to its engine version.
Referenced caches are never deleted. Of the unreferenced ones, the
`max_unused_caches` most recently used are kept and the rest are removed,
oldest first. Leftover `<version>.zip` files from interrupted downloads are
removed as well.
"""

import logging
from pathlib import Path
from typing import List, Set, Tuple

from sdkenv.core.context import Context
from sdkenv.core.filesystem import delete_recursive
from sdkenv.env.engine import EngineCache
from sdkenv.env.environment import get_env, is_valid_commit_hash, is_valid_name

logger = logging.getLogger(__name__)


class GarbageCollector:
    """Evicts unreferenced engine caches under a retention floor."""

    def __init__(self, ctx: Context):
        self.ctx = ctx
        self.config = ctx.config

    def referenced_versions(self) -> Set[str]:
        """Engine versions pinned by existing, validly named environments."""
        used: Set[str] = set()
        envs_dir = self.config.envs_dir
        if not envs_dir.is_dir():
            return used

        for child in envs_dir.iterdir():
            if not child.is_dir() or not is_valid_name(child.name):
                continue
            engine_version = get_env(self.config, child.name).engine_version
            if engine_version is not None:
                used.add(engine_version)
        return used

    def unused_caches(self, used: Set[str]) -> List[Tuple[Path, float]]:
        """
        Unreferenced cache directories with their last access time.

        Returns:
            (cache_dir, atime) pairs sorted oldest first. A cache without a
            version marker sorts first, since it is incomplete anyway.
        """
        unused: List[Tuple[Path, float]] = []
        for child in self.config.shared_caches_dir.iterdir():
            if (
                not child.is_dir()
                or not is_valid_commit_hash(child.name)
                or child.name in used
            ):
                continue
            version_file = EngineCache(child).engine_version_file
            try:
                last_access = version_file.stat().st_atime
            except FileNotFoundError:
                last_access = 0.0
            unused.append((child, last_access))

        unused.sort(key=lambda entry: entry[1])
        return unused

    def collect(self, max_unused_caches: int = 0) -> int:
        """
        Delete old unreferenced caches and stray download archives.

        Args:
            max_unused_caches: Number of most recently used unreferenced
                caches to keep

        Returns:
            Number of bytes reclaimed
        """
        if max_unused_caches < 0:
            raise ValueError("max_unused_caches cannot be negative")

        caches_dir = self.config.shared_caches_dir
        if not caches_dir.is_dir():
            return 0

        with self.ctx.locks.gc_lock():
            entries = list(caches_dir.iterdir())
            if len(entries) < max_unused_caches:
                return 0

            used = self.referenced_versions()
            unused = self.unused_caches(used)

            reclaimed = 0
            for cache_dir, _ in unused[: max(0, len(unused) - max_unused_caches)]:
                reclaimed += self._delete_unlocked(cache_dir.name, cache_dir)

            for entry in entries:
                if entry.suffix != ".zip" or not entry.is_file():
                    continue
                reclaimed += self._delete_unlocked(entry.stem, entry)

        logger.info(f"Reclaimed {reclaimed} bytes from {caches_dir}")
        return reclaimed

    def _delete_unlocked(self, engine_version: str, path: Path) -> int:
        with self.ctx.locks.try_engine_lock(engine_version) as acquired:
            if not acquired:
                logger.info(f"Skipping {path}, engine {engine_version} is in use")
                return 0
            logger.debug(f"Deleting {path}")
            return delete_recursive(path)


__all__ = ["GarbageCollector"]
