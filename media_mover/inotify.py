"""Linux inotify facility.

Uses the libc bindings that ship with watchdog rather than watchdog's
own ``Inotify`` wrapper: the wrapper keeps its own path bookkeeping and
hides watch descriptors, while the event loop needs the raw descriptors
to track directories by inode.
"""

from __future__ import annotations

import ctypes
import logging
import os
import struct
from collections.abc import Iterator
from pathlib import Path

from watchdog.observers.inotify_c import (
    InotifyConstants,
    inotify_add_watch,
    inotify_init,
    inotify_rm_watch,
)

from media_mover.events import EventFlags, WatchEvent, WatchHandle

logger = logging.getLogger(__name__)

WATCH_MASK = (
    InotifyConstants.IN_CREATE
    | InotifyConstants.IN_MOVED_TO
    | InotifyConstants.IN_DELETE_SELF
    | InotifyConstants.IN_MOVE_SELF
)

# struct inotify_event: wd, mask, cookie, len, then len bytes of name
_EVENT_HEADER = struct.Struct("iIII")
_NAME_MAX = 255
DEFAULT_EVENT_BUFFER_SIZE = 1024 * (_EVENT_HEADER.size + _NAME_MAX + 1)

_FLAG_MAP = (
    (InotifyConstants.IN_CREATE, EventFlags.CREATED),
    (InotifyConstants.IN_MOVED_TO, EventFlags.MOVED_IN),
    (InotifyConstants.IN_DELETE_SELF, EventFlags.DELETED_SELF),
    (InotifyConstants.IN_MOVE_SELF, EventFlags.MOVED_SELF),
    (InotifyConstants.IN_IGNORED, EventFlags.IGNORED),
    (InotifyConstants.IN_ISDIR, EventFlags.IS_DIRECTORY),
    (InotifyConstants.IN_Q_OVERFLOW, EventFlags.OVERFLOW),
)


def _last_os_error(path: os.PathLike | str | None = None) -> OSError:
    err = ctypes.get_errno()
    return OSError(err, os.strerror(err), path)


def parse_event_buffer(buf: bytes) -> Iterator[tuple[int, int, int, bytes]]:
    """Yield ``(wd, mask, cookie, name)`` for each record in *buf*."""
    offset = 0
    while offset + _EVENT_HEADER.size <= len(buf):
        wd, mask, cookie, length = _EVENT_HEADER.unpack_from(buf, offset)
        start = offset + _EVENT_HEADER.size
        name = buf[start : start + length].rstrip(b"\0")
        offset = start + length
        yield wd, mask, cookie, name


def translate(wd: int, mask: int, name: bytes) -> WatchEvent:
    """Convert one raw inotify record into a :class:`WatchEvent`."""
    flags = EventFlags.NONE
    for bit, flag in _FLAG_MAP:
        if mask & bit:
            flags |= flag
    return WatchEvent(WatchHandle(wd), flags, os.fsdecode(name) if name else None)


class InotifyFacility:
    """A single inotify instance.

    Usage:
        with InotifyFacility() as facility:
            handle = facility.add_watch(Path("."))
            events = facility.read_events()
    """

    def __init__(self, buffer_size: int = DEFAULT_EVENT_BUFFER_SIZE):
        fd = inotify_init()
        if fd == -1:
            raise _last_os_error()
        self._fd = fd
        self._buffer_size = max(buffer_size, _EVENT_HEADER.size + _NAME_MAX + 1)

    def __enter__(self) -> InotifyFacility:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"InotifyFacility(fd={self._fd}, buffer_size={self._buffer_size})"

    def add_watch(self, path: Path) -> WatchHandle:
        wd = inotify_add_watch(self._fd, os.fsencode(path), WATCH_MASK)
        if wd == -1:
            raise _last_os_error(path)
        return WatchHandle(wd)

    def remove_watch(self, handle: WatchHandle) -> None:
        if inotify_rm_watch(self._fd, handle.descriptor) == -1:
            raise _last_os_error()

    def read_events(self) -> list[WatchEvent]:
        buf = os.read(self._fd, self._buffer_size)
        return [
            translate(wd, mask, name) for wd, mask, _cookie, name in parse_event_buffer(buf)
        ]

    def close(self) -> None:
        if self._fd != -1:
            os.close(self._fd)
            self._fd = -1
            logger.debug("Closed inotify instance.")
