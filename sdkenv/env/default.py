"""
Default environment selection.

Two defaults exist side by side:

- Global default: stored in <home>/prefs.json, falls back to "stable"
- Project default: the nearest `.sdkenv.json` walking up from the project
  root, containing {"env": "<name>"}
"""

import json
import logging
from pathlib import Path
from typing import Optional

from sdkenv.core.config import SdkEnvConfig
from sdkenv.core.filesystem import atomic_write
from sdkenv.env.environment import Environment, ensure_valid_name, get_env

logger = logging.getLogger(__name__)

FALLBACK_DEFAULT_ENV = "stable"
PROJECT_FILE_NAME = ".sdkenv.json"


def _read_json(path: Path) -> dict:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        return {}
    except json.JSONDecodeError as e:
        logger.warning(f"Ignoring malformed {path}: {e}")
        return {}
    return data if isinstance(data, dict) else {}


def get_default_env_name(config: SdkEnvConfig) -> str:
    prefs = _read_json(config.prefs_file)
    name = prefs.get("defaultEnvironment")
    if isinstance(name, str) and name:
        return name
    return FALLBACK_DEFAULT_ENV


def set_default_env_name(config: SdkEnvConfig, name: str):
    ensure_valid_name(name)
    prefs = _read_json(config.prefs_file)
    prefs["defaultEnvironment"] = name
    atomic_write(config.prefs_file, json.dumps(prefs, indent=2) + "\n")
    logger.debug(f"Set global default environment to `{name}`")


def find_project_file(start: Path) -> Optional[Path]:
    """Return the nearest .sdkenv.json at or above start."""
    current = start.resolve()
    for directory in (current, *current.parents):
        candidate = directory / PROJECT_FILE_NAME
        if candidate.is_file():
            return candidate
    return None


def get_project_env(config: SdkEnvConfig) -> Optional[Environment]:
    project_file = find_project_file(config.project_root)
    if project_file is None:
        return None
    name = _read_json(project_file).get("env")
    if not isinstance(name, str) or not name:
        return None
    return get_env(config, name)


def set_project_env_name(config: SdkEnvConfig, name: str) -> Path:
    """Pin the project at config.project_root to an environment."""
    ensure_valid_name(name)
    project_file = find_project_file(config.project_root)
    if project_file is None:
        project_file = config.project_root / PROJECT_FILE_NAME
    data = _read_json(project_file)
    data["env"] = name
    atomic_write(project_file, json.dumps(data, indent=2) + "\n")
    logger.debug(f"Switched project {project_file.parent} to `{name}`")
    return project_file


__all__ = [
    "FALLBACK_DEFAULT_ENV",
    "PROJECT_FILE_NAME",
    "find_project_file",
    "get_default_env_name",
    "get_project_env",
    "set_default_env_name",
    "set_project_env_name",
]
