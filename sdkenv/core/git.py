"""
Git plumbing used by the engine source manager.

GitClient wraps the handful of git commands sdkenv needs. Every mutating
method is idempotent so that an interrupted `prepare-engine` can simply be
run again.
"""

import logging
from pathlib import Path
from typing import Dict, Optional

from sdkenv.core.process import ProcessResult, ProcessRunner

logger = logging.getLogger(__name__)


class GitClient:
    """Runs git commands through a ProcessRunner."""

    def __init__(self, runner: ProcessRunner, executable: str = "git"):
        self.runner = runner
        self.executable = executable

    def _git(
        self, repository: Optional[Path], *args: str, check: bool = True
    ) -> ProcessResult:
        command = [self.executable, *args]
        return self.runner.run(command, cwd=repository, check=check)

    @staticmethod
    def is_repository(repository: Path) -> bool:
        return (repository / ".git").exists()

    def init(self, repository: Path):
        """Initialize a repository (no-op on an existing one)."""
        repository.mkdir(parents=True, exist_ok=True)
        self._git(repository, "init")

    def clone(self, remote: str, repository: Path, no_checkout: bool = False):
        """Clone remote into repository."""
        repository.parent.mkdir(parents=True, exist_ok=True)
        args = ["clone"]
        if no_checkout:
            args.append("--no-checkout")
        args.extend([remote, str(repository)])
        logger.info(f"Cloning {remote} into {repository}")
        self._git(repository.parent, *args)

    def fetch(
        self, repository: Path, remote: str = "origin", all_remotes: bool = False
    ):
        """Fetch one remote, or all configured remotes."""
        if all_remotes:
            self._git(repository, "fetch", "--all", "--tags")
        else:
            self._git(repository, "fetch", remote, "--tags")

    def get_remotes(self, repository: Path) -> Dict[str, str]:
        """Return the configured remotes as name -> fetch URL."""
        result = self._git(repository, "remote", "-v")
        remotes: Dict[str, str] = {}
        for line in result.stdout.splitlines():
            parts = line.split()
            if len(parts) >= 3 and parts[2] == "(fetch)":
                remotes[parts[0]] = parts[1]
        return remotes

    def sync_remotes(self, repository: Path, remotes: Dict[str, str]):
        """
        Make the repository's remotes match exactly the given mapping.

        Remotes not in the mapping are removed, missing ones are added and
        ones with a different URL are updated.
        """
        current = self.get_remotes(repository)

        for name in current:
            if name not in remotes:
                logger.debug(f"Removing remote {name}")
                self._git(repository, "remote", "remove", name)

        for name, url in remotes.items():
            if name not in current:
                logger.debug(f"Adding remote {name} -> {url}")
                self._git(repository, "remote", "add", name, url)
            elif current[name] != url:
                logger.debug(f"Updating remote {name} -> {url}")
                self._git(repository, "remote", "set-url", name, url)

    def checkout(self, repository: Path, ref: str):
        """Force-checkout ref as a detached HEAD."""
        self._git(
            repository,
            "-c",
            "advice.detachedHead=false",
            "checkout",
            "--force",
            "--detach",
            ref,
        )

    def check_commit_exists(self, repository: Path, commit: str) -> bool:
        if not self.is_repository(repository):
            return False
        result = self._git(
            repository, "cat-file", "-e", f"{commit}^{{commit}}", check=False
        )
        return result.ok

    def get_current_commit_hash(self, repository: Path) -> Optional[str]:
        if not self.is_repository(repository):
            return None
        result = self._git(repository, "rev-parse", "HEAD", check=False)
        if not result.ok:
            return None
        return result.stdout.strip() or None

    def show_file(self, repository: Path, ref: str, path: str) -> Optional[str]:
        """Return the contents of path at ref, or None if it doesn't exist."""
        if not self.is_repository(repository):
            return None
        result = self._git(repository, "show", f"{ref}:{path}", check=False)
        if not result.ok:
            return None
        return result.stdout


__all__ = ["GitClient"]
