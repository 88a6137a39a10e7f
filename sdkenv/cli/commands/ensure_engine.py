"""
Ensure-engine command implementation.

Downloads or repairs one engine version in the shared cache.
"""

import logging

from sdkenv.cli.utils import create_context, print_success
from sdkenv.env.engine import CacheStore

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the ensure-engine command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    with create_context(args) as ctx:
        store = CacheStore(ctx)
        downloaded = store.ensure(args.version)

    if downloaded:
        print_success(f"Downloaded engine {args.version}")
    else:
        print_success(f"Engine {args.version} is already cached")
    logger.debug(f"Engine cache: {store.get_cache(args.version).cache_dir}")
    return 0
