"""
Building the engine from source: shared checkouts and host prerequisites.
"""

from .prepare import EngineSourceManager, build_remote_set, render_gclient_file
from .prerequisites import (
    get_engine_build_env_vars,
    get_prerequisite_installer,
    install_build_prerequisites,
    install_depot_tools,
)

__all__ = [
    "EngineSourceManager",
    "build_remote_set",
    "render_gclient_file",
    "get_engine_build_env_vars",
    "get_prerequisite_installer",
    "install_build_prerequisites",
    "install_depot_tools",
]
