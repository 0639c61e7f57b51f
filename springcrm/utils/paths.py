"""Where springcrm keeps its config file and JSON collections."""

from __future__ import annotations

import os
import sys
from pathlib import Path

APP_NAME = "springcrm"


def _user_dir(kind: str) -> Path:
    """Per-user base directory for `kind` ("config" or "data")."""
    home = Path.home()
    if sys.platform == "win32":
        if kind == "config":
            return Path(os.environ.get("APPDATA") or home / "AppData" / "Roaming")
        return Path(os.environ.get("LOCALAPPDATA") or home / "AppData" / "Local")
    if sys.platform == "darwin":
        return home / "Library" / "Application Support"
    if kind == "config":
        return Path(os.environ.get("XDG_CONFIG_HOME") or home / ".config")
    return Path(os.environ.get("XDG_DATA_HOME") or home / ".local" / "share")


def default_config_path() -> Path:
    """`config.yaml` under SPRINGCRM_CONFIG_DIR, else the per-user config dir."""
    override = os.environ.get("SPRINGCRM_CONFIG_DIR")
    base = Path(override) if override else _user_dir("config") / APP_NAME
    return base / "config.yaml"


def default_data_dir() -> Path:
    """Directory holding one `<collection>.json` file per collection."""
    return _user_dir("data") / APP_NAME
