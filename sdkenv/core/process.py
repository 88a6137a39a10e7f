"""
Subprocess execution for sdkenv.

Every external program (git, unzip, 7z, sysctl, the cached engine tool,
gclient) is started through ProcessRunner so that timeouts, cancellation and
error reporting behave the same everywhere, and so tests can substitute a
fake runner.
"""

import logging
import os
import subprocess
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from sdkenv.core.exceptions import ExternalToolError, OperationCancelledError

logger = logging.getLogger(__name__)

IS_WINDOWS = os.name == "nt"


class CancellationToken:
    """Thread-safe cancellation flag shared by one command invocation."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self):
        if self._event.is_set():
            raise OperationCancelledError("Operation was cancelled")


@dataclass
class ProcessResult:
    """Captured result of a finished process."""

    args: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


@dataclass
class ProcessRunner:
    """
    Runs external programs with captured text output.

    Attributes:
        default_timeout: Timeout applied when run() gets none (None = unlimited)
        cancel: Token checked before each process is started
    """

    default_timeout: Optional[float] = None
    cancel: CancellationToken = field(default_factory=CancellationToken)

    def run(
        self,
        args: Sequence[Union[str, Path]],
        cwd: Optional[Path] = None,
        env: Optional[Dict[str, str]] = None,
        check: bool = False,
        timeout: Optional[float] = None,
    ) -> ProcessResult:
        """
        Run a program to completion.

        Args:
            args: Program and arguments
            cwd: Working directory
            env: Variables merged over the current environment
            check: Raise ExternalToolError on non-zero exit
            timeout: Seconds before the process is killed

        Returns:
            ProcessResult with exit code and captured output

        Raises:
            ExternalToolError: On timeout, missing program, or (with check) failure
            OperationCancelledError: If the cancellation token is set
        """
        self.cancel.raise_if_cancelled()

        command = [str(a) for a in args]
        if timeout is None:
            timeout = self.default_timeout

        full_env = None
        if env:
            full_env = dict(os.environ)
            full_env.update(env)

        logger.debug(f"Running: {' '.join(command)}" + (f" (cwd={cwd})" if cwd else ""))

        try:
            completed = subprocess.run(
                command,
                cwd=str(cwd) if cwd else None,
                env=full_env,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise ExternalToolError(
                command,
                -1,
                _decode(e.stdout),
                _decode(e.stderr),
                message=f"`{' '.join(command)}` timed out after {timeout}s",
            ) from e
        except FileNotFoundError as e:
            raise ExternalToolError(
                command,
                127,
                message=f"Program not found: {command[0]}",
            ) from e

        result = ProcessResult(
            args=command,
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )

        if check and not result.ok:
            raise ExternalToolError(
                command, result.returncode, result.stdout, result.stderr
            )

        return result


def _decode(output: Union[bytes, str, None]) -> str:
    if output is None:
        return ""
    if isinstance(output, bytes):
        return output.decode(errors="replace")
    return output


def find_program(
    name: str, search_paths: Optional[List[Path]] = None
) -> Optional[Path]:
    """
    Find an executable in the system PATH or provided search paths.

    Args:
        name: Executable name (e.g., '7z', 'unzip')
        search_paths: Optional list of directories to search

    Returns:
        Path to executable if found, None otherwise
    """
    extensions = [""] if not IS_WINDOWS else ["", ".exe", ".bat", ".cmd"]

    if search_paths is None:
        path_env = os.environ.get("PATH", "")
        search_paths = [Path(p) for p in path_env.split(os.pathsep) if p]

    for directory in search_paths:
        for ext in extensions:
            exe_path = directory / f"{name}{ext}"
            if exe_path.is_file() and os.access(exe_path, os.X_OK):
                return exe_path

    return None


__all__ = [
    "CancellationToken",
    "ProcessResult",
    "ProcessRunner",
    "find_program",
]
