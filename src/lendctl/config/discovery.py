"""Config file discovery.

Walk-up finder locates lendctl.toml, the way git finds .git/.
Supports the LENDCTL_CONFIG env var and the --config CLI flag.
"""

from __future__ import annotations

import os
from pathlib import Path

CONFIG_FILENAME = "lendctl.toml"
CONFIG_ENV_VAR = "LENDCTL_CONFIG"


def find_config(start: Path | None = None) -> Path | None:
    """Walk up from *start* (default: cwd) looking for lendctl.toml.

    LENDCTL_CONFIG, when set, wins: its file is returned if it exists and
    None otherwise (no walk-up fallback).
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        p = Path(env_path)
        return p if p.is_file() else None

    current = (start or Path.cwd()).resolve()
    while True:
        candidate = current / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            return None
        current = parent

