"""
Shared engine cache.

Each engine version is downloaded once into <home>/shared/caches/<version>/
and reused by every environment pinned to that version. The cache directory
holds the extracted engine SDK and an `engine.stamp` marker file whose access
time tells the garbage collector when the cache was last used.

Usage:
    from sdkenv.env.engine import CacheStore

    store = CacheStore(ctx)
    downloaded = store.ensure(engine_version)
"""

import logging
import os
import re
import time
from dataclasses import dataclass
from pathlib import Path

from sdkenv.core.config import SdkEnvConfig
from sdkenv.core.context import Context
from sdkenv.core.download import DownloadProgress, download_file
from sdkenv.core.exceptions import DownloadError, ExternalToolError, VersionParseError
from sdkenv.core.filesystem import delete_recursive, extract_zip
from sdkenv.core.platform import BuildTarget
from sdkenv.env.environment import ensure_valid_commit_hash

logger = logging.getLogger(__name__)

_ENGINE_SDK_VERSION_RE = re.compile(r"Engine SDK version: (\S+)")


@dataclass(frozen=True)
class EngineCache:
    """Paths inside one shared engine cache directory."""

    cache_dir: Path

    @property
    def exists(self) -> bool:
        return self.cache_dir.is_dir()

    @property
    def engine_version(self) -> str:
        return self.cache_dir.name

    @property
    def engine_sdk_dir(self) -> Path:
        return self.cache_dir / "engine-sdk"

    @property
    def engine_executable(self) -> Path:
        name = "engine.exe" if os.name == "nt" else "engine"
        return self.engine_sdk_dir / "bin" / name

    @property
    def engine_version_file(self) -> Path:
        return self.cache_dir / "engine.stamp"

    def write_version_file(self):
        self.engine_version_file.write_text(f"{self.engine_version}\n", encoding="utf-8")

    def mark_used(self):
        """Record an access on the version marker, creating it if missing."""
        if not self.engine_version_file.exists():
            self.write_version_file()
            return
        st = self.engine_version_file.stat()
        os.utime(self.engine_version_file, (time.time(), st.st_mtime))


def get_engine_cache(config: SdkEnvConfig, engine_version: str) -> EngineCache:
    return EngineCache(config.shared_caches_dir / engine_version)


def get_engine_sdk_version(ctx: Context, cache: EngineCache) -> str:
    """
    Ask the cached engine tool for its SDK version.

    Raises:
        ExternalToolError: If the tool can't be run or exits non-zero
        VersionParseError: If the output doesn't contain a version
    """
    result = ctx.runner.run([cache.engine_executable, "--version"], check=True)
    output = result.stdout + result.stderr
    match = _ENGINE_SDK_VERSION_RE.search(output)
    if match is None:
        raise VersionParseError(output)
    return match.group(1)


class CacheStore:
    """Downloads, verifies and repairs shared engine caches."""

    def __init__(self, ctx: Context):
        self.ctx = ctx
        self.config = ctx.config

    def get_cache(self, engine_version: str) -> EngineCache:
        return get_engine_cache(self.config, engine_version)

    def ensure(self, engine_version: str) -> bool:
        """
        Make sure the engine for engine_version is cached and working.

        An existing cache is sanity-checked by running its engine tool; a
        cache that fails the check is deleted and downloaded again.

        Args:
            engine_version: Engine version (cache key)

        Returns:
            True if the engine was downloaded by this call

        Raises:
            UnsupportedPlatformError: No engine build for this host
            DownloadError: Artifact could not be downloaded
            InvalidEngineVersionError: engine_version isn't a commit hash
            ExternalToolError: Archive extraction failed
        """
        ensure_valid_commit_hash(engine_version)
        cache = self.get_cache(engine_version)

        with self.ctx.locks.engine_lock(engine_version):
            if cache.exists:
                if self._is_healthy(cache):
                    cache.mark_used()
                    logger.debug(f"Engine {engine_version} already cached")
                    return False
                logger.warning(
                    f"Engine cache {cache.cache_dir} failed its sanity check, deleting"
                )
                delete_recursive(cache.cache_dir)

            self._download(cache)
            return True

    def _is_healthy(self, cache: EngineCache) -> bool:
        self.ctx.report("Checking if the cached engine works")
        try:
            get_engine_sdk_version(self.ctx, cache)
        except (ExternalToolError, VersionParseError, OSError) as e:
            logger.debug(f"Sanity check failed: {e}")
            return False
        return True

    def _download(self, cache: EngineCache):
        engine_version = cache.engine_version
        target = BuildTarget.query(self.ctx.runner)
        zip_file = self.config.shared_caches_dir / f"{engine_version}.zip"

        logger.info(f"Downloading engine {engine_version}")
        try:
            self._fetch(engine_version, target, zip_file)
        except DownloadError as e:
            # Older versions have no Apple-ARM build; the Intel one runs under emulation
            if e.status_code == 404 and target == BuildTarget.MACOS_ARM64:
                logger.info(
                    f"No {target.zip_name} for {engine_version}, "
                    f"falling back to {BuildTarget.MACOS_X64.zip_name}"
                )
                self._fetch(engine_version, BuildTarget.MACOS_X64, zip_file)
            else:
                raise

        logger.debug(f"Unzipping into {cache.cache_dir}")
        self.ctx.report("Unzipping engine")
        try:
            extract_zip(self.ctx.runner, zip_file, cache.cache_dir)
        except BaseException:
            delete_recursive(cache.cache_dir)
            raise

        cache.write_version_file()
        zip_file.unlink()
        logger.info(f"Engine {engine_version} cached at {cache.cache_dir}")

    def _fetch(self, engine_version: str, target: BuildTarget, zip_file: Path):
        url = self.config.engine_download_url(engine_version, target.zip_name)
        self.ctx.report(f"Downloading engine {engine_version}")

        def on_progress(progress: DownloadProgress):
            self.ctx.report(f"Downloading engine: {progress}")

        download_file(
            self.ctx.http,
            url,
            zip_file,
            progress_callback=on_progress,
            timeout=self.config.download_timeout,
            cancel=self.ctx.cancel,
        )


__all__ = [
    "CacheStore",
    "EngineCache",
    "get_engine_cache",
    "get_engine_sdk_version",
]
