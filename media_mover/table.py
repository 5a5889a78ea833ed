"""Bookkeeping of watched directories.

Maps watch handles to :class:`WatchedDirectory` records and keeps the set
of watched inodes, so the same physical directory (hardlink, bind mount,
symlink loop or a re-delivered creation event) is never watched twice.
"""

from __future__ import annotations

import logging
import os
import stat
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path, PurePath

from media_mover.errors import (
    DuplicateInode,
    HandleNotFound,
    InvalidRelativePath,
    NotADirectory,
    WatchRegistrationFailure,
)
from media_mover.events import WatchFacility, WatchHandle
from media_mover.policy import PathPolicy

logger = logging.getLogger(__name__)


def check_relative(relative_path: PurePath) -> None:
    """Raise ``InvalidRelativePath`` unless *relative_path* stays inside the root."""
    if relative_path.is_absolute() or ".." in relative_path.parts:
        raise InvalidRelativePath(relative_path)


@dataclass
class WatchedDirectory:
    """One directory under observation."""

    relative_path: Path
    inode: int
    allow_images: bool = False
    destination_materialized: bool = field(default=False, compare=False)

    def __post_init__(self) -> None:
        self.relative_path = Path(self.relative_path)
        check_relative(self.relative_path)

    def join(self, name: str) -> Path:
        """Return *name* relative to the watch root (``.`` is dropped)."""
        return self.relative_path / name


class WatchTable:
    """Handle -> directory mapping plus the dedup set of inodes.

    Every inode in ``inodes`` belongs to exactly one live entry.
    """

    def __init__(
        self,
        facility: WatchFacility,
        policy: PathPolicy,
        source_root: Path = Path("."),
    ):
        self._facility = facility
        self._policy = policy
        self.source_root = Path(source_root)
        self._dirs: dict[WatchHandle, WatchedDirectory] = {}
        self._inodes: set[int] = set()

    def __len__(self) -> int:
        return len(self._dirs)

    def __contains__(self, handle: object) -> bool:
        return handle in self._dirs

    def __iter__(self) -> Iterator[WatchHandle]:
        return iter(self._dirs)

    @property
    def inodes(self) -> frozenset[int]:
        return frozenset(self._inodes)

    def source_path(self, relative_path: PurePath | str) -> Path:
        return self.source_root / relative_path

    def add(self, relative_path: PurePath | str) -> WatchHandle:
        """Start watching *relative_path* and return its handle.

        Raises ``InvalidRelativePath``, ``NotADirectory`` or
        ``DuplicateInode`` for paths that must be skipped, ``OSError`` if
        the path cannot be stat'ed, and ``WatchRegistrationFailure`` if
        the facility refuses the watch.
        """
        relative_path = Path(relative_path)
        check_relative(relative_path)
        path = self.source_path(relative_path)
        st = os.stat(path)
        if not stat.S_ISDIR(st.st_mode):
            raise NotADirectory(path)

        ino = st.st_ino
        if ino in self._inodes:
            raise DuplicateInode(ino, path)

        try:
            handle = self._facility.add_watch(path)
        except OSError as exc:
            raise WatchRegistrationFailure(f"Cannot watch {path}: {exc}") from exc

        directory = WatchedDirectory(
            relative_path, ino, allow_images=self._policy.is_image_capable(relative_path)
        )
        logger.debug("New: %r", directory)
        old = self._dirs.get(handle)
        if old is not None:
            raise WatchRegistrationFailure(
                f"Duplicate watch handle: {handle} from {old.relative_path}"
            )

        self._dirs[handle] = directory
        self._inodes.add(ino)
        if directory.allow_images:
            logger.info("Watching %s: %s (Photos)", relative_path, handle)
        else:
            logger.info("Watching %s: %s", relative_path, handle)
        return handle

    def remove(self, handle: WatchHandle, deregister: bool = False) -> None:
        """Forget *handle*; with *deregister*, also drop the OS watch.

        Unknown handles are logged, not raised: removal notifications can
        arrive twice for the same directory.
        """
        directory = self._dirs.pop(handle, None)
        if directory is None:
            logger.error("Removing unknown watch handle: %s", handle)
        else:
            if directory.inode in self._inodes:
                self._inodes.discard(directory.inode)
            else:
                logger.error(
                    "Removing unknown inode: %d from %s, %s",
                    directory.inode,
                    directory.relative_path,
                    handle,
                )
            logger.info("Unwatched %s: %s", directory.relative_path, handle)

        if deregister:
            # Raises OSError; the caller decides whether that matters.
            self._facility.remove_watch(handle)

    def descendants(self, handle: WatchHandle) -> list[WatchHandle]:
        """Return the handles of directories below *handle*'s directory."""
        directory = self._dirs.get(handle)
        if directory is None:
            return []
        return [
            h
            for h, d in self._dirs.items()
            if directory.relative_path in d.relative_path.parents
        ]

    def lookup(self, handle: WatchHandle) -> WatchedDirectory:
        try:
            return self._dirs[handle]
        except KeyError:
            raise HandleNotFound(handle) from None
