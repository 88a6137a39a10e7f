"""
Pytest configuration and shared fixtures for sdkenv tests.
"""

import io
import os
import time
import zipfile
from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest
import requests

from sdkenv.core.config import SdkEnvConfig
from sdkenv.core.context import Context
from sdkenv.core.exceptions import ExternalToolError
from sdkenv.core.git import GitClient
from sdkenv.core.locking import LockManager
from sdkenv.core.process import ProcessResult, ProcessRunner
from sdkenv.env.engine import get_engine_cache
from sdkenv.env.environment import ENGINE_VERSION_PATH, get_env

ENGINE_VERSION_OUTPUT = "Engine SDK version: 3.2.1 (stable)"


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="run integration tests that need real git/unzip and the network",
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --integration flag is provided."""
    if not config.getoption("--integration"):
        skip_integration = pytest.mark.skip(reason="need --integration option to run")
        for item in items:
            if "integration" in item.keywords:
                item.add_marker(skip_integration)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests (requires --integration)",
    )


# ============================================================================
# Fake collaborators
# ============================================================================


class FakeProcessRunner(ProcessRunner):
    """
    ProcessRunner that never starts a real process.

    Known programs are emulated:

    - sysctl / uname answer from `sysctl_output` / `machine`
    - `<cache>/engine-sdk/bin/engine --version` prints the file's own contents
    - unzip extracts with the zipfile module

    Anything else succeeds with empty output unless a handler was registered
    with `on(program, handler)`.
    """

    def __init__(self):
        super().__init__()
        self.calls: List[List[str]] = []
        self.handlers: Dict[str, Callable[[List[str]], ProcessResult]] = {}
        self.sysctl_output = "0"
        self.sysctl_returncode = 0
        self.machine = "x86_64"

    def on(self, program: str, handler: Callable[[List[str]], ProcessResult]):
        self.handlers[program] = handler

    def programs(self) -> List[str]:
        return [Path(call[0]).name for call in self.calls]

    def run(self, args, cwd=None, env=None, check=False, timeout=None):
        self.cancel.raise_if_cancelled()
        command = [str(a) for a in args]
        self.calls.append(command)
        program = Path(command[0]).name

        if program in self.handlers:
            result = self.handlers[program](command)
        elif program == "sysctl":
            result = ProcessResult(command, self.sysctl_returncode, self.sysctl_output)
        elif program == "uname":
            result = ProcessResult(command, 0, f"{self.machine}\n")
        elif program in ("engine", "engine.exe"):
            result = self._engine(command)
        elif program == "unzip":
            result = self._unzip(command)
        else:
            result = ProcessResult(command, 0)

        if check and not result.ok:
            raise ExternalToolError(
                command, result.returncode, result.stdout, result.stderr
            )
        return result

    def _engine(self, command: List[str]) -> ProcessResult:
        executable = Path(command[0])
        if not executable.is_file():
            raise ExternalToolError(command, 127, message=f"Program not found: {executable}")
        return ProcessResult(command, 0, executable.read_text())

    def _unzip(self, command: List[str]) -> ProcessResult:
        # unzip -o -q <archive> -d <destination>
        archive, destination = Path(command[3]), Path(command[5])
        try:
            with zipfile.ZipFile(archive) as zf:
                zf.extractall(destination)
        except zipfile.BadZipFile:
            return ProcessResult(command, 9, "", f"{archive}: not a zipfile")
        return ProcessResult(command, 0)


class FakeGitClient(GitClient):
    """GitClient that models repositories as directories and records commands."""

    def __init__(self, runner: ProcessRunner):
        super().__init__(runner)
        self.commands: List[List[str]] = []
        self.remotes: Dict[Path, Dict[str, str]] = {}
        self.known_commits: Dict[Path, set] = {}
        self.head: Dict[Path, str] = {}
        self.files: Dict[tuple, str] = {}

    def _record(self, *args):
        self.commands.append([str(a) for a in args])

    def init(self, repository: Path):
        self._record("init", repository)
        (repository / ".git" / "objects").mkdir(parents=True, exist_ok=True)

    def clone(self, remote: str, repository: Path, no_checkout: bool = False):
        self._record("clone", remote, repository)
        (repository / ".git" / "objects").mkdir(parents=True, exist_ok=True)
        self.remotes[repository] = {"origin": remote}

    def fetch(self, repository: Path, remote: str = "origin", all_remotes: bool = False):
        self._record("fetch", repository, "--all" if all_remotes else remote)

    def get_remotes(self, repository: Path) -> Dict[str, str]:
        return dict(self.remotes.get(repository, {}))

    def sync_remotes(self, repository: Path, remotes: Dict[str, str]):
        self._record("sync_remotes", repository, sorted(remotes.items()))
        self.remotes[repository] = dict(remotes)

    def checkout(self, repository: Path, ref: str):
        self._record("checkout", repository, ref)
        self.head[repository] = ref

    def check_commit_exists(self, repository: Path, commit: str) -> bool:
        return commit in self.known_commits.get(repository, set())

    def get_current_commit_hash(self, repository: Path) -> Optional[str]:
        return self.head.get(repository)

    def show_file(self, repository: Path, ref: str, path: str) -> Optional[str]:
        return self.files.get((repository, ref, path))


# ============================================================================
# Shared Test Fixtures
# ============================================================================


@pytest.fixture
def config(tmp_path: Path) -> SdkEnvConfig:
    """Config rooted in a temporary home directory."""
    project = tmp_path / "project"
    project.mkdir()
    return SdkEnvConfig(
        home_dir=tmp_path / "home",
        project_root=project,
        storage_base_url="https://storage.example.com",
    )


@pytest.fixture
def fake_runner() -> FakeProcessRunner:
    return FakeProcessRunner()


@pytest.fixture
def fake_git(fake_runner) -> FakeGitClient:
    return FakeGitClient(fake_runner)


@pytest.fixture
def ctx(config, fake_runner, fake_git) -> Context:
    """Context wired with fake runner and git, and a real HTTP session."""
    return Context(
        config=config,
        runner=fake_runner,
        http=requests.Session(),
        git=fake_git,
        locks=LockManager(config.lock_dir),
        cancel=fake_runner.cancel,
    )


@pytest.fixture
def make_env(config):
    """Factory creating an environment directory, optionally pinned to a version."""

    def _make_env(name: str, engine_version: Optional[str] = None):
        environment = get_env(config, name)
        environment.sdk_dir.mkdir(parents=True, exist_ok=True)
        if engine_version is not None:
            version_file = environment.sdk_dir / ENGINE_VERSION_PATH
            version_file.parent.mkdir(parents=True, exist_ok=True)
            version_file.write_text(f"{engine_version}\n")
        return environment

    return _make_env


@pytest.fixture
def make_cache(config):
    """
    Factory creating a populated engine cache.

    `payload` bytes are written into the engine tree so caches have a known
    size; `last_used` sets the marker's access time (None = no marker).
    """

    def _make_cache(
        engine_version: str,
        last_used: Optional[float] = None,
        payload: int = 1000,
        marker: bool = True,
        engine_output: str = ENGINE_VERSION_OUTPUT,
    ):
        cache = get_engine_cache(config, engine_version)
        executable = cache.engine_executable
        executable.parent.mkdir(parents=True, exist_ok=True)
        executable.write_text(engine_output)
        (cache.engine_sdk_dir / "payload.bin").write_bytes(b"x" * payload)
        if marker:
            cache.write_version_file()
            if last_used is not None:
                os.utime(cache.engine_version_file, (last_used, last_used))
        return cache

    return _make_cache


@pytest.fixture
def engine_zip() -> bytes:
    """In-memory engine artifact with a working engine tool."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        zf.writestr("engine-sdk/bin/engine", ENGINE_VERSION_OUTPUT)
        zf.writestr("engine-sdk/bin/engine.exe", ENGINE_VERSION_OUTPUT)
        zf.writestr("engine-sdk/lib/engine.so", b"\0" * 256)
    return buffer.getvalue()


@pytest.fixture
def days_ago():
    """Timestamp helper: days_ago(3) is three days before now."""

    def _days_ago(days: float) -> float:
        return time.time() - days * 86400

    return _days_ago
