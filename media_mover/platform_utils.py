"""
Platform utilities for Media Mover.

Centralises OS detection and the locations of the config and log files
so other modules do not scatter ``sys.platform`` checks around.

Supported platforms:
  - Linux, including Android (Termux)
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

logger = logging.getLogger(__name__)

# ---- platform flags ----------------------------------------------------

IS_LINUX: bool = sys.platform.startswith("linux")

# ---- directories -------------------------------------------------------


def get_config_dir() -> Path:
    """
    Return the application config directory, created if needed.

    ``$XDG_CONFIG_HOME/MediaMover`` (default ``~/.config/MediaMover``).
    """
    base = os.environ.get("XDG_CONFIG_HOME", str(Path.home() / ".config"))
    config_dir = Path(base) / "MediaMover"
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_log_path() -> Path:
    """Return the path to the log file (inside the config directory)."""
    return get_config_dir() / "media_mover.log"


def supports_inotify() -> bool:
    """Return True if the inotify facility can be used on this platform."""
    if not IS_LINUX:
        logger.debug("inotify unavailable on %s", sys.platform)
        return False
    return True
