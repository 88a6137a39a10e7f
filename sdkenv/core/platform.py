"""
Host platform resolution for engine downloads.

Engine artifacts are published for a closed set of (OS, architecture) pairs.
This module probes the host and maps it onto that set:

- Windows is assumed to be x64
- macOS asks `sysctl -n hw.optional.arm64` to tell Apple Silicon from Intel
- Linux inspects `uname -m`, matching arm64 aliases before x64 aliases

Anything outside the table raises UnsupportedPlatformError; there is no
silent default.

Usage:
    from sdkenv.core.platform import BuildTarget

    target = BuildTarget.query(ctx.runner)
    print(target.zip_name)  # 'engine-sdk-linux-x64.zip'
"""

import logging
import platform
from enum import Enum
from typing import Dict, Tuple

from sdkenv.core.exceptions import OutputParseError, UnsupportedPlatformError
from sdkenv.core.process import ProcessRunner

logger = logging.getLogger(__name__)


class EngineOS(Enum):
    WINDOWS = "windows"
    MACOS = "macos"
    LINUX = "linux"


class EngineArch(Enum):
    X64 = "x64"
    ARM64 = "arm64"


ARM64_ALIASES = ("arm64", "aarch64", "armv8")
X64_ALIASES = ("x64", "x86_64")


class BuildTarget(Enum):
    """
    A concrete engine artifact, one per supported (OS, architecture) pair.

    The enum value is the artifact file name on the storage server.
    """

    WINDOWS_X64 = "engine-sdk-windows-x64.zip"
    LINUX_X64 = "engine-sdk-linux-x64.zip"
    LINUX_ARM64 = "engine-sdk-linux-arm64.zip"
    MACOS_X64 = "engine-sdk-darwin-x64.zip"
    MACOS_ARM64 = "engine-sdk-darwin-arm64.zip"

    @property
    def zip_name(self) -> str:
        return self.value

    @property
    def os(self) -> EngineOS:
        return _TARGET_PLATFORMS[self][0]

    @property
    def arch(self) -> EngineArch:
        return _TARGET_PLATFORMS[self][1]

    @classmethod
    def from_platform(cls, os_: EngineOS, arch: EngineArch) -> "BuildTarget":
        """
        Look up the artifact for an (OS, architecture) pair.

        Raises:
            UnsupportedPlatformError: If no artifact is published for the pair
        """
        try:
            return _BUILD_TARGETS[(os_, arch)]
        except KeyError:
            raise UnsupportedPlatformError(
                f"Unsupported build target: {os_.value} {arch.value}"
            ) from None

    @classmethod
    def query(cls, runner: ProcessRunner) -> "BuildTarget":
        """
        Probe the host and return its build target.

        Args:
            runner: Process runner used for sysctl / uname

        Raises:
            UnsupportedPlatformError: Unknown OS or architecture
            OutputParseError: sysctl answered something other than 0 or 1
        """
        os_ = detect_os()
        if os_ == EngineOS.WINDOWS:
            arch = EngineArch.X64
        elif os_ == EngineOS.MACOS:
            arch = _detect_macos_arch(runner)
        else:
            arch = _detect_linux_arch(runner)

        target = cls.from_platform(os_, arch)
        logger.debug(f"Resolved build target: {target.name} ({target.zip_name})")
        return target


_BUILD_TARGETS: Dict[Tuple[EngineOS, EngineArch], BuildTarget] = {
    (EngineOS.WINDOWS, EngineArch.X64): BuildTarget.WINDOWS_X64,
    (EngineOS.LINUX, EngineArch.X64): BuildTarget.LINUX_X64,
    (EngineOS.LINUX, EngineArch.ARM64): BuildTarget.LINUX_ARM64,
    (EngineOS.MACOS, EngineArch.X64): BuildTarget.MACOS_X64,
    (EngineOS.MACOS, EngineArch.ARM64): BuildTarget.MACOS_ARM64,
}

_TARGET_PLATFORMS = {target: key for key, target in _BUILD_TARGETS.items()}


def detect_os() -> EngineOS:
    """
    Detect the host operating system.

    Raises:
        UnsupportedPlatformError: If the OS is not Windows, macOS or Linux
    """
    system = platform.system().lower()

    if system == "windows":
        return EngineOS.WINDOWS
    elif system == "darwin":
        return EngineOS.MACOS
    elif system == "linux":
        return EngineOS.LINUX
    else:
        raise UnsupportedPlatformError(f"Unsupported operating system: {system}")


def _detect_macos_arch(runner: ProcessRunner) -> EngineArch:
    result = runner.run(["sysctl", "-n", "hw.optional.arm64"])
    stdout = result.stdout.strip()

    # Intel Macs predate the hw.optional.arm64 key, so a failed query means x64
    if result.returncode != 0 or stdout == "0":
        return EngineArch.X64
    elif stdout == "1":
        return EngineArch.ARM64
    raise OutputParseError(result.stdout, f"Unexpected result from sysctl: `{stdout}`")


def _detect_linux_arch(runner: ProcessRunner) -> EngineArch:
    result = runner.run(["uname", "-m"], check=True)
    machine = result.stdout.strip()

    if any(alias in machine for alias in ARM64_ALIASES):
        return EngineArch.ARM64
    elif any(alias in machine for alias in X64_ALIASES):
        return EngineArch.X64
    raise UnsupportedPlatformError(f"Unrecognized architecture: `{machine}`")


__all__ = [
    "BuildTarget",
    "EngineArch",
    "EngineOS",
    "detect_os",
]
