"""Path classification rules.

Decides which directories are camera folders, which directories an
in-place run skips, and which file names are moved. Pure functions over
names and relative paths; nothing here touches the filesystem.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import PurePath

from media_mover.config import (
    ALWAYS_EXTENSIONS,
    CAMERA_DIR_NAMES,
    CAMERA_DIR_SUFFIXES,
    IGNORED_DIR_PREFIX,
    IMAGE_EXTENSIONS,
    Config,
)


def is_hidden(name: str) -> bool:
    """Return True for dot-prefixed entry names."""
    return name.startswith(".")


@dataclass(frozen=True)
class PathPolicy:
    """Immutable rule set, built once at startup and shared by reference.

    Images are only relocated out of directories that are *not* camera
    folders; videos and raw files are relocated from everywhere.
    """

    image_extensions: frozenset[str] = frozenset(IMAGE_EXTENSIONS)
    always_extensions: frozenset[str] = frozenset(ALWAYS_EXTENSIONS)
    camera_dir_suffixes: tuple[str, ...] = tuple(CAMERA_DIR_SUFFIXES)
    camera_dir_names: frozenset[str] = frozenset(CAMERA_DIR_NAMES)
    image_dir_depth: int = 0
    ignored_dir_prefix: str = IGNORED_DIR_PREFIX

    @classmethod
    def from_config(cls, cfg: Config) -> PathPolicy:
        return cls(
            image_extensions=frozenset(cfg.image_extensions),
            always_extensions=frozenset(cfg.always_extensions),
            camera_dir_suffixes=tuple(cfg.camera_dir_suffixes),
            camera_dir_names=frozenset(cfg.camera_dir_names),
            image_dir_depth=cfg.image_dir_depth,
            ignored_dir_prefix=cfg.ignored_dir_prefix,
        )

    def is_image_capable(self, relative_path: PurePath | str) -> bool:
        """Return True if *relative_path* lies inside a camera folder.

        Only the segment at ``image_dir_depth`` is tested, so every
        subdirectory of a camera folder is a camera folder too.
        """
        parts = PurePath(relative_path).parts
        if len(parts) <= self.image_dir_depth:
            return False
        segment = parts[self.image_dir_depth]
        return segment in self.camera_dir_names or segment.endswith(
            self.camera_dir_suffixes
        )

    def is_ignorable_directory(self, name: str, in_place: bool) -> bool:
        """Return True if an in-place scan should skip directory *name*."""
        return in_place and bool(self.ignored_dir_prefix) and name.startswith(
            self.ignored_dir_prefix
        )

    def matches(self, file_name: str, directory_eligible: bool) -> bool:
        """Return True if *file_name* should be moved.

        *directory_eligible* is the owning directory's camera-folder flag.
        """
        if is_hidden(file_name):
            return False
        ext = os.path.splitext(file_name)[1].lower().lstrip(".")
        if not ext:
            return False
        if ext in self.always_extensions:
            return True
        return not directory_eligible and ext in self.image_extensions
