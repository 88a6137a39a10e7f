"""
Garbage collection command implementation.

Removes shared engine caches no environment references.
"""

import logging

from sdkenv.cli.utils import create_context, format_size, print_success
from sdkenv.env.gc import GarbageCollector

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the gc command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    if args.max_unused < 0:
        logger.error("--max-unused must not be negative")
        return 1

    with create_context(args) as ctx:
        reclaimed = GarbageCollector(ctx).collect(max_unused_caches=args.max_unused)

    if reclaimed:
        print_success(f"Cleaned up caches and reclaimed {format_size(reclaimed)}")
    else:
        print("Nothing to clean up")
    return 0
