"""
List command implementation.

Lists environments with the SDK version each one resolves to.
"""

import json
import logging

from sdkenv.cli.utils import create_context
from sdkenv.env.listing import EnvironmentRegistry

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the ls command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    with create_context(args) as ctx:
        result = EnvironmentRegistry(ctx).list()
    logger.debug(f"Found {len(result.results)} environments")

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print(result.format())
    return 0
