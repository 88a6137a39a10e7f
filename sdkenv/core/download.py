"""
Network download with progress reporting and retry logic.

Engine artifacts are a few hundred megabytes, so downloads are streamed to
disk in chunks. Transport errors and 5xx responses are retried with
exponential backoff; 4xx responses are not, since the caller may want to
react to them (a missing Apple-ARM artifact falls back to Apple-Intel).
"""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

import requests
from requests.exceptions import ConnectionError, RequestException, Timeout

from sdkenv.core.exceptions import DownloadError
from sdkenv.core.process import CancellationToken

logger = logging.getLogger(__name__)


@dataclass
class DownloadProgress:
    """Progress information for a download."""

    bytes_downloaded: int
    total_bytes: int
    percentage: float
    speed_bps: float  # bytes per second

    def __str__(self) -> str:
        return format_progress(self)


def download_file(
    session: requests.Session,
    url: str,
    destination: Path,
    progress_callback: Optional[Callable[[DownloadProgress], None]] = None,
    timeout: int = 30,
    max_retries: int = 3,
    cancel: Optional[CancellationToken] = None,
) -> Path:
    """
    Download file from URL to destination.

    Args:
        session: HTTP session to use
        url: URL to download from
        destination: Local path to save file
        progress_callback: Optional callback for progress updates
        timeout: Request timeout in seconds
        max_retries: Maximum number of attempts for retryable failures
        cancel: Optional cancellation token checked between chunks

    Returns:
        Path to downloaded file

    Raises:
        DownloadError: On a non-2xx response or after exhausting retries
        OperationCancelledError: If cancelled mid-download
    """
    if not url:
        raise ValueError("URL cannot be empty")

    destination = Path(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)

    for attempt in range(max_retries):
        try:
            return _download_with_progress(
                session=session,
                url=url,
                destination=destination,
                progress_callback=progress_callback,
                timeout=timeout,
                cancel=cancel,
            )
        except DownloadError as e:
            destination.unlink(missing_ok=True)
            retryable = e.status_code is not None and e.status_code >= 500
            if not retryable or attempt == max_retries - 1:
                raise
            _backoff(attempt, e)
        except (Timeout, ConnectionError, RequestException) as e:
            destination.unlink(missing_ok=True)
            if attempt == max_retries - 1:
                raise DownloadError(
                    f"Download failed after {max_retries} attempts: {e}", url=url
                ) from e
            _backoff(attempt, e)
        except BaseException:
            destination.unlink(missing_ok=True)
            raise

    raise DownloadError("Download failed for unknown reason", url=url)


def _backoff(attempt: int, error: Exception):
    backoff_seconds = 2**attempt
    logger.warning(
        f"Download attempt {attempt + 1} failed: {error}. "
        f"Retrying in {backoff_seconds}s..."
    )
    time.sleep(backoff_seconds)


def _download_with_progress(
    session: requests.Session,
    url: str,
    destination: Path,
    progress_callback: Optional[Callable[[DownloadProgress], None]],
    timeout: int,
    cancel: Optional[CancellationToken],
) -> Path:
    logger.info(f"Downloading from {url}")

    with session.get(url, stream=True, timeout=timeout, allow_redirects=True) as response:
        if not 200 <= response.status_code < 300:
            raise DownloadError(
                f"Request to {url} failed with status {response.status_code}",
                url=url,
                status_code=response.status_code,
            )

        content_length = response.headers.get("content-length")
        total_size = int(content_length) if content_length else 0

        downloaded = 0
        start_time = time.time()
        last_progress_time = start_time

        with open(destination, "wb") as f:
            for chunk in response.iter_content(chunk_size=65536):
                if cancel is not None:
                    cancel.raise_if_cancelled()
                if not chunk:
                    continue
                f.write(chunk)
                downloaded += len(chunk)

                # At most twice per second
                current_time = time.time()
                if progress_callback and (
                    current_time - last_progress_time >= 0.5
                    or downloaded == total_size
                ):
                    elapsed = current_time - start_time
                    progress_callback(
                        DownloadProgress(
                            bytes_downloaded=downloaded,
                            total_bytes=total_size if total_size > 0 else downloaded,
                            percentage=(downloaded / total_size * 100)
                            if total_size > 0
                            else 0,
                            speed_bps=downloaded / elapsed if elapsed > 0 else 0,
                        )
                    )
                    last_progress_time = current_time

    logger.debug(f"Download complete: {destination} ({downloaded} bytes)")
    return destination


def format_progress(progress: DownloadProgress) -> str:
    """
    Format progress for display.

    Example:
        >>> progress = DownloadProgress(52428800, 104857600, 50.0, 1048576)
        >>> print(format_progress(progress))
        50.0/100.0 MB (50.0%) at 1.0 MB/s
    """
    mb_downloaded = progress.bytes_downloaded / 1024 / 1024
    mb_total = progress.total_bytes / 1024 / 1024
    speed_mbps = progress.speed_bps / 1024 / 1024

    if progress.total_bytes > 0 and progress.percentage > 0:
        return (
            f"{mb_downloaded:.1f}/{mb_total:.1f} MB "
            f"({progress.percentage:.1f}%) "
            f"at {speed_mbps:.1f} MB/s"
        )
    return f"{mb_downloaded:.1f} MB at {speed_mbps:.1f} MB/s"


__all__ = [
    "DownloadProgress",
    "download_file",
    "format_progress",
]
