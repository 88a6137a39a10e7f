"""
File system utilities for sdkenv.

This module provides:
- Atomic writes for small state files (prefs, project markers)
- Size-then-delete recursive removal used by garbage collection
- Engine archive extraction through the platform's native unzip tool chain
"""

import errno
import logging
import os
import stat
import tempfile
import time
from pathlib import Path
from typing import Union

from sdkenv.core.exceptions import UnsupportedPlatformError
from sdkenv.core.platform import EngineOS, detect_os
from sdkenv.core.process import ProcessRunner, find_program

logger = logging.getLogger(__name__)

# Bounded retry for "Directory not empty" races during removal
RMDIR_ATTEMPTS = 4
RMDIR_BACKOFF_SECONDS = 0.05


# ============================================================================
# Safe File Operations
# ============================================================================


def atomic_write(
    file_path: Union[str, Path], content: Union[str, bytes], encoding: str = "utf-8"
) -> None:
    """
    Write file atomically using temp file + rename.

    Args:
        file_path: Path to write to
        content: Content to write (string or bytes)
        encoding: Text encoding (used only for string content)
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    temp_fd, temp_path_str = tempfile.mkstemp(
        dir=file_path.parent, prefix=f".{file_path.name}.", suffix=".tmp"
    )
    temp_path = Path(temp_path_str)

    try:
        if isinstance(content, str):
            with open(temp_fd, "w", encoding=encoding) as f:
                f.write(content)
        else:
            with open(temp_fd, "wb") as f:
                f.write(content)

        temp_path.replace(file_path)

    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise


def delete_recursive(path: Union[str, Path]) -> int:
    """
    Delete a file or directory tree and return the bytes it occupied.

    Sizes come from lstat, so directory entries and symlinks count their own
    size and symlinks are never followed. A node that disappears while the
    walk is in progress (another process removed it) contributes zero.

    Args:
        path: File, symlink or directory to delete

    Returns:
        Total size in bytes of everything removed

    Raises:
        OSError: On any I/O error other than a vanished node
    """
    path = Path(path)

    try:
        st = path.lstat()
    except FileNotFoundError:
        return 0

    size = st.st_size

    if not stat.S_ISDIR(st.st_mode):
        try:
            path.unlink()
        except FileNotFoundError:
            return 0
        except PermissionError:
            # Read-only files on Windows
            os.chmod(path, stat.S_IWRITE)
            path.unlink()
        return size

    try:
        children = list(path.iterdir())
    except FileNotFoundError:
        return 0

    for child in children:
        size += delete_recursive(child)

    size += _remove_directory(path)
    return size


def _remove_directory(path: Path) -> int:
    """Remove an emptied directory; returns the bytes of late arrivals deleted."""
    removed = 0
    delay = RMDIR_BACKOFF_SECONDS
    for attempt in range(RMDIR_ATTEMPTS):
        try:
            path.rmdir()
            return removed
        except FileNotFoundError:
            return removed
        except OSError as e:
            if e.errno not in (errno.ENOTEMPTY, errno.EEXIST):
                raise
            if attempt == RMDIR_ATTEMPTS - 1:
                raise
            # Something was written into the directory after we listed it
            logger.debug(f"Directory not empty, retrying removal: {path}")
            time.sleep(delay)
            delay *= 2
            for child in list(path.iterdir()):
                removed += delete_recursive(child)
    return removed


# ============================================================================
# Archive Extraction
# ============================================================================


def extract_zip(runner: ProcessRunner, archive: Path, destination: Path) -> None:
    """
    Extract a zip archive with the host's native tooling.

    Windows prefers 7-Zip when it is on PATH and falls back to PowerShell's
    Expand-Archive; Linux and macOS use unzip. Native tools keep the file
    modes and symlinks that the engine tree relies on.

    Args:
        runner: Process runner
        archive: Zip file to extract
        destination: Directory to extract into (created if missing)

    Raises:
        ExternalToolError: If the extraction tool fails
        UnsupportedPlatformError: On an unknown host OS
    """
    destination.mkdir(parents=True, exist_ok=True)
    os_ = detect_os()

    if os_ == EngineOS.WINDOWS:
        seven_zip = find_program("7z")
        if seven_zip is not None:
            runner.run(
                [seven_zip, "x", "-y", f"-o{destination}", archive],
                check=True,
            )
        else:
            runner.run(
                [
                    "powershell",
                    "-NoProfile",
                    "-Command",
                    "Import-Module Microsoft.PowerShell.Archive; Expand-Archive "
                    f"-Path '{archive}' -DestinationPath '{destination}' -Force",
                ],
                check=True,
            )
    elif os_ in (EngineOS.LINUX, EngineOS.MACOS):
        runner.run(
            ["unzip", "-o", "-q", archive, "-d", destination],
            check=True,
        )
    else:
        raise UnsupportedPlatformError(f"Cannot extract archives on {os_}")


__all__ = [
    "atomic_write",
    "delete_recursive",
    "extract_zip",
]
