"""
Shared utilities for CLI commands.
"""

import logging

from sdkenv.core.config import load_config
from sdkenv.core.context import Context

logger = logging.getLogger(__name__)


def create_context(args) -> Context:
    """
    Build the command Context from global CLI options.

    Args:
        args: Parsed arguments with config, home and project_root fields

    Returns:
        Context wired with real collaborators
    """
    config = load_config(
        config_file=getattr(args, "config", None),
        home_dir=getattr(args, "home", None),
        project_root=getattr(args, "project_root", None),
    )
    logger.debug(f"Using sdkenv home {config.home_dir}")
    return Context.create(config, progress=_log_progress)


def _log_progress(description: str):
    logger.info(description)


def format_size(size_bytes: int) -> str:
    """
    Format bytes as human-readable size.

    Example:
        >>> format_size(1536)
        '1.5 KB'
    """
    size = float(size_bytes)
    for unit in ["B", "KB", "MB", "GB"]:
        if size < 1024.0:
            return f"{size:.1f} {unit}"
        size /= 1024.0
    return f"{size:.1f} TB"


def print_success(message: str):
    print(f"✓ {message}")
