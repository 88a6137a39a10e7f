"""
Tests for engine build prerequisites.
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from sdkenv.core.exceptions import MissingPrerequisiteError, UnsupportedPlatformError
from sdkenv.core.platform import EngineOS
from sdkenv.engine.prerequisites import (
    LinuxPrerequisiteInstaller,
    WindowsPrerequisiteInstaller,
    get_engine_build_env_vars,
    get_prerequisite_installer,
    install_depot_tools,
)


class TestGetPrerequisiteInstaller:
    """Tests for installer selection."""

    def test_linux(self):
        assert isinstance(
            get_prerequisite_installer(EngineOS.LINUX), LinuxPrerequisiteInstaller
        )

    def test_windows(self):
        assert isinstance(
            get_prerequisite_installer(EngineOS.WINDOWS), WindowsPrerequisiteInstaller
        )

    def test_macos_unsupported(self):
        with pytest.raises(UnsupportedPlatformError, match="macos"):
            get_prerequisite_installer(EngineOS.MACOS)


class TestLinuxPrerequisiteInstaller:
    """Tests for the apt-get based installer."""

    def test_nothing_missing_runs_nothing(self, ctx, fake_runner):
        with patch(
            "sdkenv.engine.prerequisites.find_program", return_value=Path("/usr/bin/x")
        ):
            LinuxPrerequisiteInstaller().install(ctx)

        assert fake_runner.calls == []

    def test_installs_missing_packages(self, ctx, fake_runner):
        def which(name):
            return None if name in ("curl", "unzip") else Path(f"/usr/bin/{name}")

        with patch("sdkenv.engine.prerequisites.find_program", side_effect=which):
            LinuxPrerequisiteInstaller().install(ctx)

        (command,) = fake_runner.calls
        assert command[-4:] == ["install", "-y", "curl", "unzip"]
        if hasattr(os, "geteuid") and os.geteuid() != 0:
            assert command[0] == "sudo"


class TestWindowsPrerequisiteInstaller:
    """Tests for the Windows checks."""

    def test_python_found(self, ctx):
        with patch(
            "sdkenv.engine.prerequisites.find_program",
            side_effect=lambda name: Path("C:/py.exe") if name == "py" else None,
        ):
            WindowsPrerequisiteInstaller().install(ctx)

    def test_python_missing(self, ctx):
        with patch("sdkenv.engine.prerequisites.find_program", return_value=None):
            with pytest.raises(MissingPrerequisiteError, match="Python"):
                WindowsPrerequisiteInstaller().install(ctx)


class TestInstallDepotTools:
    """Tests for install_depot_tools."""

    def test_clones_when_missing(self, ctx, config, fake_git):
        install_depot_tools(ctx)

        assert fake_git.commands == [
            ["clone", config.depot_tools_git_url, str(config.depot_tools_dir)]
        ]

    def test_noop_when_present(self, ctx, config, fake_git):
        (config.depot_tools_dir / ".git").mkdir(parents=True)

        install_depot_tools(ctx)

        assert fake_git.commands == []


class TestEngineBuildEnvVars:
    """Tests for get_engine_build_env_vars."""

    def test_linux(self, ctx, config, make_env):
        environment = make_env("foo")

        with patch("platform.system", return_value="Linux"):
            env = get_engine_build_env_vars(ctx, environment)

        assert env["PATH"].split(os.pathsep)[0] == str(config.depot_tools_dir)
        assert env["DEPOT_TOOLS_UPDATE"] == "0"
        assert env["SDKENV_ENV"] == "foo"
        assert env["SDKENV_ROOT"] == str(config.home_dir)
        assert "DEPOT_TOOLS_WIN_TOOLCHAIN" not in env

    def test_windows_disables_google_toolchain(self, ctx, make_env):
        with patch("platform.system", return_value="Windows"):
            env = get_engine_build_env_vars(ctx, make_env("foo"))

        assert env["DEPOT_TOOLS_WIN_TOOLCHAIN"] == "0"
