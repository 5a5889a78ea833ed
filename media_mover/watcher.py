"""Watch-and-dispatch loop for Media Mover.

Reads batches of events from a :class:`WatchFacility`, applies directory
removals first, then resolves creation and moved-in events against the
watch table and the path policy: new directories are watched
recursively, matching files are handed to the mover.
"""

from __future__ import annotations

import logging
import os
import time
from collections import deque
from collections.abc import Callable
from pathlib import Path, PurePath

from media_mover.errors import (
    DuplicateInode,
    InvalidRelativePath,
    MoveError,
    NotADirectory,
    ReadFailure,
    WatchError,
    WatchRegistrationFailure,
)
from media_mover.events import EventFlags, WatchEvent, WatchFacility
from media_mover.mover import Mover
from media_mover.policy import PathPolicy, is_hidden
from media_mover.table import WatchTable

logger = logging.getLogger(__name__)


class EventLoop:
    """Single-threaded read/dispatch cycle.

    Usage:
        loop = EventLoop(facility, table, policy, mover)
        loop.watch(".", in_place=False)
        loop.run()
    """

    def __init__(
        self,
        facility: WatchFacility,
        table: WatchTable,
        policy: PathPolicy,
        mover: Mover,
        settle_delay: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._facility = facility
        self.table = table
        self._policy = policy
        self.mover = mover
        self._settle_delay = settle_delay
        self._sleep = sleep
        self._failed = False

    # ---- initial and recursive watching ----

    def watch(self, relative_path: PurePath | str, in_place: bool = False) -> int:
        """Watch *relative_path* and every subdirectory below it.

        With *in_place*, matching files already present are moved and
        ignorable directories are skipped. Returns the number of
        directories added.
        """
        added = 0
        pending = deque([Path(relative_path)])
        while pending:
            rel = pending.popleft()
            try:
                handle = self.table.add(rel)
            except (InvalidRelativePath, NotADirectory, DuplicateInode) as exc:
                logger.error("Error watching: %s", exc)
                continue
            except OSError as exc:
                logger.error("Error watching %s: %s", rel, exc)
                continue
            added += 1

            directory = self.table.lookup(handle)
            try:
                with os.scandir(self.table.source_path(rel)) as it:
                    entries = sorted(it, key=lambda e: e.name)
            except OSError as exc:
                logger.error("Error listing %s: %s", rel, exc)
                continue

            for entry in entries:
                if is_hidden(entry.name):
                    continue
                try:
                    is_dir = entry.is_dir(follow_symlinks=False)
                except OSError:
                    continue
                if is_dir:
                    if self._policy.is_ignorable_directory(entry.name, in_place):
                        logger.debug("Ignored: %s", directory.join(entry.name))
                    else:
                        pending.append(directory.join(entry.name))
                elif in_place and self._policy.matches(entry.name, directory.allow_images):
                    try:
                        self.mover.move_in(directory, entry.name, logging.WARNING)
                    except MoveError as exc:
                        logger.error("Error moving %s: %s", directory.join(entry.name), exc)
        return added

    # ---- event handling ----

    def _handle_removal(self, event: WatchEvent) -> bool:
        """Apply a removal-class event; return False for anything else."""
        if event.flags & EventFlags.IGNORED:
            # Cleanup already happened on the DELETED_SELF / MOVED_SELF event.
            return True
        if event.flags & EventFlags.DELETED_SELF:
            self.table.remove(event.handle)
            return True
        if event.flags & EventFlags.MOVED_SELF:
            # The old path no longer names this directory or anything below
            # it. Drop the whole subtree; a moved-in event rescans it.
            for handle in self.table.descendants(event.handle):
                try:
                    self.table.remove(handle, deregister=True)
                except OSError as exc:
                    logger.error("Error unwatching %s: %s", handle, exc)
            self.table.remove(event.handle, deregister=True)
            return True
        return False

    def _handle(self, event: WatchEvent, settled: bool) -> bool:
        """Apply a creation-class event; return whether the settle delay was paid."""
        if event.flags & EventFlags.OVERFLOW:
            logger.warning("Event queue overflowed; some files may not be moved.")
            return settled
        if not event.name or is_hidden(event.name):
            return settled

        directory = self.table.lookup(event.handle)
        if event.is_directory:
            self.watch(directory.join(event.name), in_place=False)
            return settled

        if not self._policy.matches(event.name, directory.allow_images):
            return settled

        # Give the gallery time to finish scanning the new file, or a
        # stale entry is left in its database.
        if not settled:
            self._sleep(self._settle_delay)
            settled = True
        try:
            self.mover.move_in(directory, event.name, logging.INFO)
        except MoveError as exc:
            logger.error("Error moving %s: %s", directory.join(event.name), exc)
        return settled

    def process(self, events: list[WatchEvent]) -> None:
        """Dispatch one batch: all removals first, then the rest in order."""
        logger.debug("Got %d events: %s", len(events), ", ".join(map(str, events)))

        # Handle removals first so a freed inode is not reported as a duplicate.
        remaining = []
        for event in events:
            try:
                if not self._handle_removal(event):
                    remaining.append(event)
            except OSError as exc:
                logger.error("Error handling removal %s: %s", event, exc)

        settled = False
        for event in remaining:
            try:
                settled = self._handle(event, settled)
            except WatchRegistrationFailure:
                raise
            except WatchError as exc:
                logger.error("Error handling %s: %s", event, exc)

    # ---- main loop ----

    def run_once(self) -> None:
        """Block for one batch of events and dispatch it.

        A read error is tolerated once; a second consecutive one raises
        ``ReadFailure`` so the process does not spin on a broken stream.
        """
        try:
            events = self._facility.read_events()
        except OSError as exc:
            if self._failed:
                raise ReadFailure(f"Error reading events again: {exc}") from exc
            logger.error("Error reading events: %s", exc)
            self._failed = True
            return
        self._failed = False
        self.process(events)

    def run(self) -> None:
        """Dispatch events until a fatal error or an external stop."""
        while True:
            self.run_once()
