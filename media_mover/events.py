"""Facility-neutral watch events.

The event loop only depends on the types in this module. A concrete
notification facility (see :mod:`media_mover.inotify`) translates its
own wire format into :class:`WatchEvent` values.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol


@dataclass(frozen=True, order=True)
class WatchHandle:
    """Opaque identifier of one registered watch.

    Only the facility creates handles; everything else compares them
    for equality and uses them as table keys.
    """

    descriptor: int

    def __str__(self) -> str:
        return str(self.descriptor)


class EventFlags(enum.IntFlag):
    """Event classes a facility can report."""

    NONE = 0
    CREATED = enum.auto()
    MOVED_IN = enum.auto()
    DELETED_SELF = enum.auto()
    MOVED_SELF = enum.auto()
    IGNORED = enum.auto()
    IS_DIRECTORY = enum.auto()
    OVERFLOW = enum.auto()


REMOVAL_FLAGS = EventFlags.DELETED_SELF | EventFlags.MOVED_SELF | EventFlags.IGNORED


@dataclass(frozen=True)
class WatchEvent:
    """One notification, already decoded from the facility's format."""

    handle: WatchHandle
    flags: EventFlags
    name: str | None = None

    @property
    def is_removal(self) -> bool:
        return bool(self.flags & REMOVAL_FLAGS)

    @property
    def is_directory(self) -> bool:
        return bool(self.flags & EventFlags.IS_DIRECTORY)

    def __str__(self) -> str:
        flags = "|".join(f.name for f in EventFlags if f and f in self.flags)
        return f"<{self.handle} {flags or 'NONE'} {self.name!r}>"


class WatchFacility(Protocol):
    """What the core needs from a filesystem notification facility."""

    def add_watch(self, path: Path) -> WatchHandle:
        """Watch *path* for created, moved-in, deleted-self and moved-self events."""
        ...

    def remove_watch(self, handle: WatchHandle) -> None:
        """Deregister *handle*."""
        ...

    def read_events(self) -> list[WatchEvent]:
        """Block until at least one event is available and return the batch."""
        ...

    def close(self) -> None:
        ...
