"""
Engine source checkout for building the engine from source.

A single canonical clone of the engine repository lives at
<home>/shared/engine. Each environment gets its own working tree under
<env>/engine/src/engine whose object database is not its own: the file
`.git/objects/info/alternates` points git at the canonical repository's
objects directory. N environments building the same engine history thus
cost one clone plus N working trees, instead of N clones. The per-env
checkout only reads through that indirection; new objects it fetches land in
its own store, and the canonical repository outlives any one environment.

Third-party build dependencies are shared the same way through gclient's
cache_dir, pointed at <home>/shared/gclient.
"""

import json
import logging
from pathlib import Path
from typing import Dict, Optional

from sdkenv.core.context import Context
from sdkenv.core.exceptions import EngineVersionNotFoundError
from sdkenv.core.process import find_program
from sdkenv.engine.prerequisites import (
    get_engine_build_env_vars,
    install_build_prerequisites,
)
from sdkenv.env.environment import ENGINE_VERSION_PATH, Environment

logger = logging.getLogger(__name__)

GCLIENT_SOLUTION_NAME = "src/engine"


def build_remote_set(canonical_url: str, fork_remote_url: Optional[str]) -> Dict[str, str]:
    """
    Remotes for a per-environment checkout.

    origin is the fork when one is given, otherwise the canonical repository;
    upstream is the canonical repository and only exists alongside a fork.
    """
    if fork_remote_url is None:
        return {"origin": canonical_url}
    return {"upstream": canonical_url, "origin": fork_remote_url}


def render_gclient_file(origin_url: str, cache_dir: Path) -> str:
    """
    Render a .gclient file.

    gclient reads this as Python, not JSON; json.dumps is only used to
    produce correctly escaped string literals.
    """
    return (
        "solutions = [\n"
        "  {\n"
        '    "managed": False,\n'
        f'    "name": {json.dumps(GCLIENT_SOLUTION_NAME)},\n'
        f'    "url": {json.dumps(origin_url)},\n'
        '    "custom_deps": {},\n'
        '    "deps_file": "DEPS",\n'
        '    "safesync_url": "",\n'
        "  }\n"
        "]\n"
        f"cache_dir = {json.dumps(str(cache_dir))}\n"
    )


class EngineSourceManager:
    """Prepares per-environment engine checkouts backed by a shared repository."""

    def __init__(self, ctx: Context):
        self.ctx = ctx
        self.config = ctx.config
        self.git = ctx.git

    @property
    def shared_repository(self) -> Path:
        return self.config.shared_engine_dir

    @property
    def shared_objects_dir(self) -> Path:
        return self.shared_repository / ".git" / "objects"

    def resolve_ref(self, environment: Environment, ref: Optional[str] = None) -> str:
        """
        Pick the engine ref to check out.

        Order: explicit ref, the environment's pinned engine version, then
        the engine version recorded at the SDK checkout's current commit.

        Raises:
            EngineVersionNotFoundError: If none of these yields a ref
        """
        if ref:
            return ref

        engine_version = environment.engine_version
        if engine_version:
            return engine_version

        commit = self.git.get_current_commit_hash(environment.sdk_dir)
        if commit is not None:
            contents = self.git.show_file(environment.sdk_dir, commit, ENGINE_VERSION_PATH)
            if contents and contents.strip():
                return contents.strip()

        raise EngineVersionNotFoundError(
            f"Failed to detect engine version of environment `{environment.name}`\n"
            f"Does `{environment.engine_version_file}` exist?"
        )

    def sync_shared_repository(self):
        """Clone the canonical repository, or fetch into the existing clone."""
        repository = self.shared_repository
        url = self.config.engine_git_url
        self.ctx.report("Updating shared engine repository")
        if self.git.is_repository(repository):
            self.git.sync_remotes(repository, {"origin": url})
            self.git.fetch(repository, remote="origin")
        else:
            self.git.clone(url, repository, no_checkout=True)

    def write_alternates(self, repository: Path):
        alternates_file = repository / ".git" / "objects" / "info" / "alternates"
        alternates_file.parent.mkdir(parents=True, exist_ok=True)
        alternates_file.write_text(f"{self.shared_objects_dir}\n", encoding="utf-8")

    def prepare(
        self,
        environment: Environment,
        ref: Optional[str] = None,
        fork_remote_url: Optional[str] = None,
    ) -> Path:
        """
        Check out engine sources for an environment and sync dependencies.

        Every step is idempotent, so an interrupted run can be resumed by
        calling prepare again.

        Args:
            environment: Environment to prepare
            ref: Engine ref to check out (default: pinned engine version)
            fork_remote_url: Optional fork to use as origin

        Returns:
            Path to the per-environment engine source checkout

        Raises:
            UnsupportedPlatformError: Host can't build the engine
            EngineVersionNotFoundError: No ref could be resolved
            ExternalToolError: git or gclient failed
        """
        install_build_prerequisites(self.ctx)

        ref = self.resolve_ref(environment, ref)
        logger.info(f"Preparing engine {ref} for environment `{environment.name}`")

        if fork_remote_url is not None or not self.git.check_commit_exists(
            self.shared_repository, ref
        ):
            self.sync_shared_repository()

        remotes = build_remote_set(self.config.engine_git_url, fork_remote_url)
        repository = environment.engine_src_dir

        self.ctx.report("Initializing repository")
        if not self.git.is_repository(repository):
            self.git.init(repository)
        self.write_alternates(repository)
        self.git.sync_remotes(repository, remotes)
        if fork_remote_url is not None:
            self.git.fetch(repository, remote="origin")
        self.git.checkout(repository, ref)

        environment.gclient_file.write_text(
            render_gclient_file(remotes["origin"], self.config.shared_gclient_dir),
            encoding="utf-8",
        )

        self.ctx.report("Running gclient sync (this may take awhile)")
        gclient = find_program("gclient", [self.config.depot_tools_dir]) or "gclient"
        self.ctx.runner.run(
            [gclient, "sync"],
            cwd=environment.engine_root_dir,
            env=get_engine_build_env_vars(self.ctx, environment),
            check=True,
        )

        logger.info(f"Engine sources ready at {repository}")
        return repository


__all__ = [
    "EngineSourceManager",
    "build_remote_set",
    "render_gclient_file",
]
