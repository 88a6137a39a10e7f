"""
Explicit dependency bundle passed to every sdkenv operation.

Nothing in sdkenv reads configuration or creates collaborators from module
globals. Commands build one Context at start-up and hand it down; tests build
one with fake collaborators. A Context is a context manager; leaving it
closes the HTTP session.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

import requests

from sdkenv.core.config import SdkEnvConfig
from sdkenv.core.git import GitClient
from sdkenv.core.locking import LockManager
from sdkenv.core.process import CancellationToken, ProcessRunner

logger = logging.getLogger(__name__)


@dataclass
class Context:
    """
    Collaborators for one command invocation.

    Attributes:
        config: Paths and URLs
        runner: Subprocess runner
        http: HTTP session used for downloads
        git: Git capability
        locks: Advisory lock manager
        progress: Optional sink for coarse progress descriptions
        cancel: Cancellation token shared with runner and downloads
    """

    config: SdkEnvConfig
    runner: ProcessRunner
    http: requests.Session
    git: GitClient
    locks: LockManager
    progress: Optional[Callable[[str], None]] = None
    cancel: CancellationToken = field(default_factory=CancellationToken)

    @classmethod
    def create(
        cls,
        config: SdkEnvConfig,
        progress: Optional[Callable[[str], None]] = None,
    ) -> "Context":
        cancel = CancellationToken()
        runner = ProcessRunner(default_timeout=config.process_timeout, cancel=cancel)
        return cls(
            config=config,
            runner=runner,
            http=requests.Session(),
            git=GitClient(runner),
            locks=LockManager(config.lock_dir),
            progress=progress,
            cancel=cancel,
        )

    def close(self):
        """Release the HTTP session's pooled connections."""
        self.http.close()

    def __enter__(self) -> "Context":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def report(self, description: str):
        """Send a progress description to the side channel, if any."""
        logger.debug(description)
        if self.progress is not None:
            self.progress(description)


__all__ = ["Context"]
