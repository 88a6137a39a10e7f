"""
sdkenv CLI argument parser.

This module implements the command-line interface for sdkenv using argparse.
"""

import argparse
import importlib
import logging
import sys
from pathlib import Path
from typing import List, Optional

from sdkenv import __version__
from sdkenv.core.exceptions import SdkEnvError
from sdkenv.core.locking import LockTimeout

logger = logging.getLogger(__name__)


class CLI:
    """sdkenv command-line interface."""

    def __init__(self):
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """
        Create argument parser with all subcommands.

        Returns:
            Configured ArgumentParser instance
        """
        parser = argparse.ArgumentParser(
            prog="sdkenv",
            description="sdkenv - SDK environment and engine cache manager",
            epilog='Use "sdkenv COMMAND --help" for command-specific help',
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )

        # Global options
        parser.add_argument(
            "--version", action="version", version=f"sdkenv {__version__}"
        )
        parser.add_argument(
            "--verbose", "-v", action="store_true", help="Enable verbose output"
        )
        parser.add_argument(
            "--quiet",
            "-q",
            action="store_true",
            help="Enable minimal output (errors only)",
        )
        parser.add_argument(
            "--config",
            type=Path,
            metavar="PATH",
            help="Path to configuration file (default: <home>/config.yaml)",
        )
        parser.add_argument(
            "--home",
            type=Path,
            metavar="PATH",
            help="sdkenv home directory (default: $SDKENV_HOME or ~/.sdkenv)",
        )
        parser.add_argument(
            "--project-root",
            type=Path,
            metavar="PATH",
            default=None,
            help="Project root directory (default: current directory)",
        )

        subparsers = parser.add_subparsers(
            dest="command", help="Available commands", metavar="COMMAND"
        )

        self._add_ls_command(subparsers)
        self._add_gc_command(subparsers)
        self._add_ensure_engine_command(subparsers)
        self._add_prepare_engine_command(subparsers)
        self._add_use_command(subparsers)

        return parser

    def _add_ls_command(self, subparsers):
        """Add 'ls' subcommand."""
        parser = subparsers.add_parser(
            "ls",
            help="List environments",
            description="List environments and the SDK version each one uses",
        )
        parser.add_argument(
            "--json", action="store_true", help="Print machine readable output"
        )

    def _add_gc_command(self, subparsers):
        """Add 'gc' subcommand."""
        parser = subparsers.add_parser(
            "gc",
            help="Remove unused engine caches",
            description=(
                "Remove shared engine caches that no environment references, "
                "oldest first"
            ),
        )
        parser.add_argument(
            "--max-unused",
            type=int,
            default=0,
            metavar="N",
            help="Number of unused caches to keep (default: 0)",
        )

    def _add_ensure_engine_command(self, subparsers):
        """Add 'ensure-engine' subcommand."""
        parser = subparsers.add_parser(
            "ensure-engine",
            help="Download an engine version into the shared cache",
            description=(
                "Make sure an engine version is present and healthy in the "
                "shared cache, downloading or repairing it if necessary"
            ),
        )
        parser.add_argument("version", metavar="VERSION", help="Engine version")

    def _add_prepare_engine_command(self, subparsers):
        """Add 'prepare-engine' subcommand."""
        parser = subparsers.add_parser(
            "prepare-engine",
            help="Check out engine sources for an environment",
            description=(
                "Check out engine sources for an environment, sharing git "
                "objects with the canonical engine repository"
            ),
        )
        parser.add_argument("env", metavar="ENV", help="Environment name")
        parser.add_argument(
            "--ref", metavar="REF", help="Engine ref (default: pinned engine version)"
        )
        parser.add_argument(
            "--fork", metavar="URL", help="Fork of the engine repository to use"
        )

    def _add_use_command(self, subparsers):
        """Add 'use' subcommand."""
        parser = subparsers.add_parser(
            "use",
            help="Select an environment",
            description="Select the environment for this project or globally",
        )
        parser.add_argument("name", metavar="NAME", help="Environment name")
        parser.add_argument(
            "--global",
            dest="global_",
            action="store_true",
            help="Set the global default instead of the project environment",
        )

    def parse_args(self, args: Optional[List[str]] = None):
        """
        Parse command-line arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Parsed arguments namespace
        """
        return self.parser.parse_args(args)

    def run(self, args: Optional[List[str]] = None) -> int:
        """
        Run CLI with given arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        parsed_args = self.parse_args(args)

        self._configure_logging(parsed_args)

        if not parsed_args.command:
            self.parser.print_help()
            return 1

        try:
            return self._dispatch_command(parsed_args)
        except KeyboardInterrupt:
            logger.info("Operation cancelled by user")
            return 130  # Standard exit code for SIGINT
        except (SdkEnvError, LockTimeout) as e:
            logger.error(f"Error: {e}")
            if parsed_args.verbose:
                import traceback

                traceback.print_exc()
            return 1

    def _configure_logging(self, args):
        """
        Configure logging based on verbose/quiet flags.

        Args:
            args: Parsed arguments with verbose/quiet flags
        """
        if args.verbose:
            level = logging.DEBUG
            format_str = "%(levelname)s [%(name)s] %(message)s"
        elif args.quiet:
            level = logging.ERROR
            format_str = "%(levelname)s: %(message)s"
        else:
            level = logging.INFO
            format_str = "%(message)s"

        logging.basicConfig(
            level=level,
            format=format_str,
            force=True,  # Reconfigure if already configured
        )

    def _dispatch_command(self, args) -> int:
        """
        Dispatch to appropriate command handler.

        Args:
            args: Parsed arguments with command field

        Returns:
            Exit code from command handler
        """
        command_map = {
            "ls": "sdkenv.cli.commands.ls",
            "gc": "sdkenv.cli.commands.gc",
            "ensure-engine": "sdkenv.cli.commands.ensure_engine",
            "prepare-engine": "sdkenv.cli.commands.prepare_engine",
            "use": "sdkenv.cli.commands.use",
        }

        module_name = command_map.get(args.command)
        if not module_name:
            logger.error(f"Unknown command: {args.command}")
            return 1

        module = importlib.import_module(module_name)
        return module.run(args)


def main():
    """Main entry point for CLI."""
    cli = CLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()
