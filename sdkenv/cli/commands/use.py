"""
Use command implementation.

Selects the environment for the current project or the global default.
"""

import logging

from sdkenv.cli.utils import create_context, print_success
from sdkenv.env.default import set_default_env_name, set_project_env_name
from sdkenv.env.environment import (
    PSEUDO_ENVIRONMENT_NAMES,
    ensure_valid_name,
    get_env,
)

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the use command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    name = ensure_valid_name(args.name)

    with create_context(args) as ctx:
        environment = get_env(ctx.config, name)
        if not environment.exists and name not in PSEUDO_ENVIRONMENT_NAMES:
            logger.warning(f"Environment `{name}` does not exist yet")

        if args.global_:
            set_default_env_name(ctx.config, name)
            print_success(f"Set global default environment to `{name}`")
        else:
            project_file = set_project_env_name(ctx.config, name)
            print_success(f"Switched to environment `{name}` in {project_file}")
    return 0
