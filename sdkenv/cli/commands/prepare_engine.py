"""
Prepare-engine command implementation.

Checks out engine sources for an environment so the engine can be built
from source.
"""

import logging

from sdkenv.cli.utils import create_context, print_success
from sdkenv.engine.prepare import EngineSourceManager
from sdkenv.env.environment import ensure_valid_name, get_env

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the prepare-engine command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    with create_context(args) as ctx:
        environment = get_env(ctx.config, ensure_valid_name(args.env))

        if not environment.exists:
            logger.error(f"Environment `{environment.name}` does not exist")
            return 1

        checkout = EngineSourceManager(ctx).prepare(
            environment,
            ref=args.ref,
            fork_remote_url=args.fork,
        )
    print_success(f"Engine sources for `{environment.name}` are at {checkout}")
    return 0
