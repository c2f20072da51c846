"""Config file discovery and loading.

Settings live either in a dedicated ``entitymap.toml`` or in the
``[tool.entitymap]`` table of a project's ``pyproject.toml``.  Discovery
walks up from the working directory and stops at the first directory
holding either; ``entitymap.toml`` wins when both are present.

``ENTITYMAP_CONFIG`` (or ``--config``) names a file explicitly and skips
the walk.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from entitymap.config.models import EntitymapConfig

CONFIG_FILENAME = "entitymap.toml"
PYPROJECT_FILENAME = "pyproject.toml"
CONFIG_ENV_VAR = "ENTITYMAP_CONFIG"
TOOL_TABLE = "entitymap"


def read_config_table(path: Path) -> dict[str, Any]:
    """Return the entitymap settings held by *path*.

    For a ``pyproject.toml`` this is the ``[tool.entitymap]`` table (empty
    when absent); for any other file it is the whole document.

    Raises:
        tomllib.TOMLDecodeError: If the file is not valid TOML.
    """
    data = tomllib.loads(path.read_text(encoding="utf-8"))
    if path.name == PYPROJECT_FILENAME:
        tool = data.get("tool", {})
        table = tool.get(TOOL_TABLE, {}) if isinstance(tool, dict) else {}
        return table if isinstance(table, dict) else {}
    return data


def _has_tool_table(pyproject: Path) -> bool:
    try:
        data = tomllib.loads(pyproject.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError:
        return False
    tool = data.get("tool")
    return isinstance(tool, dict) and TOOL_TABLE in tool


def find_config(start: Path | None = None) -> Path | None:
    """Locate the config file for *start* (default: cwd).

    Returns the ``entitymap.toml`` or ``pyproject.toml`` to read, or None.
    An ``ENTITYMAP_CONFIG`` pointing at a missing file yields None rather
    than falling back to the walk.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        p = Path(env_path)
        return p if p.is_file() else None

    directory = (start or Path.cwd()).resolve()
    for candidate_dir in (directory, *directory.parents):
        dedicated = candidate_dir / CONFIG_FILENAME
        if dedicated.is_file():
            return dedicated
        pyproject = candidate_dir / PYPROJECT_FILENAME
        if pyproject.is_file() and _has_tool_table(pyproject):
            return pyproject
    return None


def load_config(path: Path | None = None, cwd: Path | None = None) -> EntitymapConfig:
    """Load and validate config, discovering the file when *path* is None.

    Returns the code defaults when no file is found.
    """
    if path is None:
        path = find_config(cwd)
    if path is None:
        return EntitymapConfig()
    return EntitymapConfig.model_validate(read_config_table(path))
