"""Exception hierarchy for Media Mover.

Per-item errors (one file, one directory) are caught and logged by the
event loop. ``WatchRegistrationFailure`` and a repeated ``ReadFailure``
are fatal and propagate to the command-line layer.
"""

from __future__ import annotations

import os


class MediaMoverError(Exception):
    """Base class for all Media Mover errors."""


class WatchError(MediaMoverError):
    """A directory could not be added to or found in the watch table."""


class NotADirectory(WatchError):
    """The path offered for watching is not a directory."""

    def __init__(self, path: os.PathLike | str):
        self.path = path
        super().__init__(f"Not a directory: {path}")


class DuplicateInode(WatchError):
    """The directory's inode is already being watched."""

    def __init__(self, inode: int, path: os.PathLike | str):
        self.inode = inode
        self.path = path
        super().__init__(f"Duplicate inode: {inode} from {path}")


class HandleNotFound(WatchError):
    """An event referenced a watch handle that is not in the table."""

    def __init__(self, handle: object):
        self.handle = handle
        super().__init__(f"Unknown watch handle: {handle}")


class InvalidRelativePath(WatchError, ValueError):
    """The path is absolute or leaves the watch root through a ``..`` segment."""

    def __init__(self, path: os.PathLike | str):
        self.path = path
        super().__init__(f"Path escapes the watch root: {path}")


class WatchRegistrationFailure(WatchError):
    """The OS refused to register a watch, or returned an inconsistent handle."""


class MoveError(MediaMoverError):
    """Relocating a single file failed."""

    def __init__(self, path: os.PathLike | str, reason: str):
        self.path = path
        super().__init__(f"{reason}: {path}")


class CollisionOnClaim(MoveError):
    """The destination name already exists, so the move was refused."""

    def __init__(self, path: os.PathLike | str):
        super().__init__(path, "Destination already exists")


class ReadFailure(MediaMoverError):
    """Reading the notification stream failed twice in a row."""
