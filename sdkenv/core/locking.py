"""
Concurrent access control for sdkenv.

The shared engine caches are used by every environment and by every sdkenv
process on the machine. Two processes may try to download the same engine
version, or one may garbage-collect a cache that another is filling. File
locks from the `filelock` library serialize those operations across
processes:

- engine_lock(version): held for the whole of CacheStore.ensure
- gc_lock(): process-wide, held for the whole of GarbageCollector.collect
- try_engine_lock(version): non-blocking probe used by the collector to
  skip a cache that is currently being written

Usage:
    from sdkenv.core.locking import LockManager

    locks = LockManager(config.lock_dir)
    with locks.engine_lock(engine_version):
        # download and extract the engine
        pass
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from filelock import FileLock, Timeout as LockTimeout

logger = logging.getLogger(__name__)


def _safe_lock_name(key: str) -> str:
    return key.replace("/", "-").replace("\\", "-").replace(":", "-")


class LockManager:
    """
    Manages advisory locks for shared sdkenv resources.

    Attributes:
        lock_dir: Directory where lock files are stored
    """

    def __init__(self, lock_dir: Path):
        self.lock_dir = Path(lock_dir)

    def _lock_path(self, name: str) -> Path:
        self.lock_dir.mkdir(parents=True, exist_ok=True)
        return self.lock_dir / name

    @contextmanager
    def engine_lock(self, engine_version: str, timeout: float = 600) -> Iterator[None]:
        """
        Acquire the lock for one engine version's shared cache.

        Args:
            engine_version: Engine version (cache key)
            timeout: Maximum wait time in seconds (long, downloads are slow)

        Raises:
            LockTimeout: If lock can't be acquired within timeout
        """
        lock_path = self._lock_path(f"engine-{_safe_lock_name(engine_version)}.lock")
        lock = FileLock(lock_path, timeout=timeout)

        try:
            with lock:
                logger.debug(f"Acquired engine lock: {lock_path}")
                yield
            logger.debug(f"Released engine lock: {lock_path}")
        except LockTimeout as e:
            raise LockTimeout(
                f"Could not acquire engine lock for {engine_version} after {timeout}s. "
                "Another sdkenv process may be downloading this engine."
            ) from e

    @contextmanager
    def gc_lock(self, timeout: float = 60) -> Iterator[None]:
        """
        Acquire the process-wide garbage collection lock.

        Raises:
            LockTimeout: If lock can't be acquired within timeout
        """
        lock_path = self._lock_path("gc.lock")
        lock = FileLock(lock_path, timeout=timeout)

        try:
            with lock:
                logger.debug(f"Acquired gc lock: {lock_path}")
                yield
            logger.debug(f"Released gc lock: {lock_path}")
        except LockTimeout as e:
            raise LockTimeout(
                f"Could not acquire gc lock after {timeout}s. "
                "Another sdkenv process may be collecting garbage."
            ) from e

    @contextmanager
    def try_engine_lock(self, engine_version: str) -> Iterator[bool]:
        """
        Try to take an engine lock without blocking.

        Yields:
            bool: True if the lock was acquired, False if someone else holds it

        Example:
            >>> with locks.try_engine_lock(version) as acquired:
            ...     if acquired:
            ...         delete_cache(version)
        """
        lock_path = self._lock_path(f"engine-{_safe_lock_name(engine_version)}.lock")
        lock = FileLock(lock_path, timeout=0)

        acquired = False
        try:
            lock.acquire(timeout=0)
            acquired = True
            logger.debug(f"Acquired lock (try_lock): {lock_path}")
        except LockTimeout:
            logger.debug(f"Could not acquire lock (try_lock): {lock_path}")

        try:
            yield acquired
        finally:
            if acquired:
                lock.release()
                logger.debug(f"Released lock (try_lock): {lock_path}")


__all__ = [
    "LockManager",
    "LockTimeout",
]
