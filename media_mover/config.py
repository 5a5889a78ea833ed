"""Configuration management for Media Mover.

Stores and retrieves settings from a JSON config file in the
platform-appropriate application data directory. Command-line flags
override the stored values for a single run.
"""

import json
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

from media_mover.platform_utils import (
    get_config_dir as _platform_config_dir,
)
from media_mover.platform_utils import (
    get_log_path as _platform_log_path,
)

logger = logging.getLogger(__name__)

# Directory the tool normally runs from on Android
DEFAULT_EXPECTED_CWD = "/sdcard/DCIM"

# Generic images: only moved out of directories that are not camera folders
IMAGE_EXTENSIONS = [
    "jpg", "jpeg", "png", "gif", "webp", "bmp", "tif", "tiff", "jxl", "apng",
]
# Video and raw containers: moved out of every directory
ALWAYS_EXTENSIONS = ["mp4", "dng"]

# A directory is a camera folder when the tested path segment ends with
# one of the suffixes or equals one of the names.
CAMERA_DIR_SUFFIXES = ["Camera", "_PRO"]
CAMERA_DIR_NAMES = ["100ANDRO"]

# Directories already produced by an earlier in-place run
IGNORED_DIR_PREFIX = "DSC_20"

DEFAULT_CONFIG: dict[str, Any] = {
    "destination_folder": "",
    "watch_roots": ["."],  # relative to the working directory
    "expected_cwd": DEFAULT_EXPECTED_CWD,
    "dry_run": False,
    "in_place": False,
    "settle_delay_seconds": 1.0,
    # ---- path policy ----
    "image_extensions": IMAGE_EXTENSIONS,
    "always_extensions": ALWAYS_EXTENSIONS,
    "camera_dir_suffixes": CAMERA_DIR_SUFFIXES,
    "camera_dir_names": CAMERA_DIR_NAMES,
    "image_dir_depth": 0,  # 0 = first path segment
    "ignored_dir_prefix": IGNORED_DIR_PREFIX,
    # ---- inotify ----
    "event_buffer_size": 0,  # 0 = facility default
    # ---- logging ----
    "log_level": "INFO",
    "log_to_file": False,
    "max_log_size_mb": 10,  # rotate log when it exceeds this size
    "log_backup_count": 3,  # number of rotated log files to keep
}


def _normalise_extensions(values: list[str]) -> list[str]:
    return [ext.lower().strip().lstrip(".") for ext in values if ext.strip()]


def get_config_dir() -> Path:
    """Return the platform-appropriate application config directory."""
    return _platform_config_dir()


def get_config_path() -> Path:
    """Return the path to the configuration file."""
    return get_config_dir() / "config.json"


def get_log_path() -> Path:
    """Return the path to the log file."""
    return _platform_log_path()


class Config:
    """Configuration manager backed by a JSON file."""

    def __init__(self, path: Path | None = None):
        """Load config from *path*, falling back to the platform default."""
        self._path = path or get_config_path()
        self._data: dict[str, Any] = dict(DEFAULT_CONFIG)
        self.load()

    @property
    def path(self) -> Path:
        return self._path

    # ---- persistence ----

    def load(self) -> None:
        """Load configuration from disk, applying defaults for missing keys."""
        if self._path.exists():
            try:
                with open(self._path, encoding="utf-8") as fh:
                    stored = json.load(fh)
                if not isinstance(stored, dict):
                    raise ValueError("top-level value is not an object")
                # Merge stored values over defaults so new keys get defaults
                self._data = {**DEFAULT_CONFIG, **stored}
                logger.info("Configuration loaded from %s", self._path)
            except (ValueError, OSError) as exc:
                logger.warning("Could not read config (%s); using defaults.", exc)
                self._data = dict(DEFAULT_CONFIG)
        else:
            self._data = dict(DEFAULT_CONFIG)
            self.save()
            logger.info("Created default configuration at %s", self._path)

    def save(self) -> None:
        """Persist the current configuration to disk."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._path, "w", encoding="utf-8") as fh:
                json.dump(self._data, fh, indent=2)
            logger.debug("Configuration saved.")
        except OSError as exc:
            logger.error("Failed to save configuration: %s", exc)

    # ---- typed access ----

    def _number(self, key: str, cast: Callable[[Any], Any]) -> Any:
        """Return *key* converted with *cast*, or its default if that fails."""
        value = self._data.get(key, DEFAULT_CONFIG[key])
        try:
            return cast(value)
        except (TypeError, ValueError):
            logger.warning("Invalid %s %r; using %r.", key, value, DEFAULT_CONFIG[key])
            return cast(DEFAULT_CONFIG[key])

    def _string_list(self, key: str) -> list[str]:
        """Return *key* as a list of strings; a lone string becomes one item."""
        value = self._data.get(key, DEFAULT_CONFIG[key])
        if isinstance(value, str):
            return [value]
        if not isinstance(value, list):
            logger.warning("Invalid %s %r; using %r.", key, value, DEFAULT_CONFIG[key])
            return list(DEFAULT_CONFIG[key])
        return [str(v) for v in value]

    # ---- session ----

    @property
    def destination_folder(self) -> str:
        """Return the root of the mirrored destination tree."""
        return self._data["destination_folder"]

    @destination_folder.setter
    def destination_folder(self, value: str) -> None:
        self._data["destination_folder"] = value

    @property
    def watch_roots(self) -> list[str]:
        """Return the watched roots, relative to the working directory."""
        return [r for r in self._string_list("watch_roots") if r.strip()] or ["."]

    @watch_roots.setter
    def watch_roots(self, value: list[str]) -> None:
        self._data["watch_roots"] = [v for v in value if v.strip()] or ["."]

    @property
    def expected_cwd(self) -> str:
        return self._data.get("expected_cwd", DEFAULT_EXPECTED_CWD)

    @property
    def dry_run(self) -> bool:
        return bool(self._data.get("dry_run", False))

    @dry_run.setter
    def dry_run(self, value: bool) -> None:
        self._data["dry_run"] = value

    @property
    def in_place(self) -> bool:
        """Return whether files already present at watch start are moved too."""
        return bool(self._data.get("in_place", False))

    @in_place.setter
    def in_place(self, value: bool) -> None:
        self._data["in_place"] = value

    @property
    def settle_delay(self) -> float:
        """Return the pause before the first move of each batch, in seconds."""
        return max(0.0, self._number("settle_delay_seconds", float))

    # ---- path policy ----

    @property
    def image_extensions(self) -> list[str]:
        return _normalise_extensions(self._string_list("image_extensions"))

    @property
    def always_extensions(self) -> list[str]:
        return _normalise_extensions(self._string_list("always_extensions"))

    @property
    def camera_dir_suffixes(self) -> list[str]:
        return self._string_list("camera_dir_suffixes")

    @property
    def camera_dir_names(self) -> list[str]:
        return self._string_list("camera_dir_names")

    @property
    def image_dir_depth(self) -> int:
        """Return which relative path segment decides camera-folder status."""
        return max(0, self._number("image_dir_depth", int))

    @property
    def ignored_dir_prefix(self) -> str:
        return self._data.get("ignored_dir_prefix", IGNORED_DIR_PREFIX)

    # ---- inotify ----

    @property
    def event_buffer_size(self) -> int:
        """Return the read buffer size in bytes (0 = facility default)."""
        return max(0, self._number("event_buffer_size", int))

    # ---- logging ----

    @property
    def log_level(self) -> str:
        """Return the current logging level name."""
        return self._data.get("log_level", "INFO")

    @log_level.setter
    def log_level(self, value: str) -> None:
        self._data["log_level"] = value

    @property
    def log_to_file(self) -> bool:
        return bool(self._data.get("log_to_file", False))

    @property
    def max_log_size_mb(self) -> int:
        """Return the maximum log file size in MB before rotation."""
        return max(1, self._number("max_log_size_mb", int))

    @property
    def log_backup_count(self) -> int:
        """Return the number of rotated log backups to keep."""
        return max(0, self._number("log_backup_count", int))

    # ---- convenience ----

    def is_configured(self) -> bool:
        """Return True when a destination folder is set."""
        return bool(self.destination_folder)
