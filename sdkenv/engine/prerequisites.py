"""
Host prerequisites for building the engine from source.

Engine builds need the dependency-sync toolkit (depot_tools) plus a few host
programs. One installer exists per supported host OS; other hosts are
rejected up front rather than failing halfway through a sync.
"""

import logging
import os
from abc import ABC, abstractmethod
from typing import Dict, List

from sdkenv.core.context import Context
from sdkenv.core.exceptions import MissingPrerequisiteError, UnsupportedPlatformError
from sdkenv.core.platform import EngineOS, detect_os
from sdkenv.core.process import find_program
from sdkenv.env.environment import Environment

logger = logging.getLogger(__name__)


class PrerequisiteInstaller(ABC):
    """Installs or verifies host programs needed for engine builds."""

    @abstractmethod
    def install(self, ctx: Context) -> None:
        """
        Make sure every prerequisite is present.

        Raises:
            ExternalToolError: If an installation command fails
            MissingPrerequisiteError: If something must be installed by hand
        """
        pass


class LinuxPrerequisiteInstaller(PrerequisiteInstaller):
    """Installs missing build programs with apt-get."""

    # program on PATH -> package providing it
    REQUIRED_PROGRAMS: Dict[str, str] = {
        "python3": "python3",
        "curl": "curl",
        "git": "git",
        "pkg-config": "pkg-config",
        "unzip": "unzip",
    }

    def missing_packages(self) -> List[str]:
        return [
            package
            for program, package in self.REQUIRED_PROGRAMS.items()
            if find_program(program) is None
        ]

    def install(self, ctx: Context) -> None:
        missing = self.missing_packages()
        if not missing:
            logger.debug("All Linux build prerequisites present")
            return

        ctx.report(f"Installing build prerequisites: {', '.join(missing)}")
        command = ["apt-get", "install", "-y", *missing]
        if hasattr(os, "geteuid") and os.geteuid() != 0:
            command.insert(0, "sudo")
        ctx.runner.run(command, check=True)


class WindowsPrerequisiteInstaller(PrerequisiteInstaller):
    """Verifies a Python interpreter is available for gclient."""

    def install(self, ctx: Context) -> None:
        if find_program("python") is None and find_program("py") is None:
            raise MissingPrerequisiteError(
                "Python was not found on PATH. Install Python 3 from "
                "https://www.python.org/downloads/ and try again."
            )


def get_prerequisite_installer(os_: EngineOS) -> PrerequisiteInstaller:
    if os_ == EngineOS.LINUX:
        return LinuxPrerequisiteInstaller()
    elif os_ == EngineOS.WINDOWS:
        return WindowsPrerequisiteInstaller()
    raise UnsupportedPlatformError(
        f"Building the engine is not supported on {os_.value}"
    )


def install_depot_tools(ctx: Context) -> None:
    """Clone the dependency-sync toolkit if it isn't there yet."""
    depot_tools_dir = ctx.config.depot_tools_dir
    if ctx.git.is_repository(depot_tools_dir):
        logger.debug(f"depot_tools already present at {depot_tools_dir}")
        return
    ctx.report("Installing depot_tools")
    ctx.git.clone(ctx.config.depot_tools_git_url, depot_tools_dir)


def install_build_prerequisites(ctx: Context) -> None:
    """Install everything an engine build needs on this host."""
    installer = get_prerequisite_installer(detect_os())
    install_depot_tools(ctx)
    installer.install(ctx)


def get_engine_build_env_vars(ctx: Context, environment: Environment) -> Dict[str, str]:
    """Environment variables for gclient and the engine build."""
    path = os.environ.get("PATH", "")
    env = {
        "PATH": os.pathsep.join(filter(None, [str(ctx.config.depot_tools_dir), path])),
        "DEPOT_TOOLS_UPDATE": "0",
        "SDKENV_ENV": environment.name,
        "SDKENV_ROOT": str(ctx.config.home_dir),
    }
    if detect_os() == EngineOS.WINDOWS:
        env["DEPOT_TOOLS_WIN_TOOLCHAIN"] = "0"
    return env


__all__ = [
    "LinuxPrerequisiteInstaller",
    "PrerequisiteInstaller",
    "WindowsPrerequisiteInstaller",
    "get_engine_build_env_vars",
    "get_prerequisite_installer",
    "install_build_prerequisites",
    "install_depot_tools",
]
