"""
Pytest fixtures for Media Mover tests.

Provides a temporary DCIM-like source tree, a destination root, and a
scripted in-memory watch facility standing in for inotify.
"""

import errno
from collections import deque
from pathlib import Path

import pytest

from media_mover.events import EventFlags, WatchEvent, WatchHandle
from media_mover.mover import Mover
from media_mover.policy import PathPolicy
from media_mover.table import WatchTable
from media_mover.watcher import EventLoop


class FakeFacility:
    """Allocates handles like inotify and replays queued event batches."""

    def __init__(self):
        self.watches: dict = {}
        self.removed: list = []
        self.batches: deque = deque()
        self.fail_paths: set = set()
        self.reuse_handle = None
        self.closed = False
        self._next = 1

    def add_watch(self, path):
        path = Path(path)
        if path in self.fail_paths:
            raise OSError(errno.ENOSPC, "No space left on device", str(path))
        if self.reuse_handle is not None:
            return self.reuse_handle
        handle = WatchHandle(self._next)
        self._next += 1
        self.watches[handle] = path
        return handle

    def remove_watch(self, handle):
        self.removed.append(handle)
        if handle not in self.watches:
            raise OSError(errno.EINVAL, "Invalid argument")
        del self.watches[handle]

    def read_events(self):
        if not self.batches:
            # Ends run() the way Ctrl-C would.
            raise KeyboardInterrupt
        batch = self.batches.popleft()
        if isinstance(batch, BaseException):
            raise batch
        return batch

    def close(self):
        self.closed = True

    def handle_for(self, path) -> WatchHandle:
        for handle, watched in self.watches.items():
            if watched == Path(path):
                return handle
        raise KeyError(path)


def event(handle, flags, name=None) -> WatchEvent:
    """Build a WatchEvent for tests."""
    return WatchEvent(handle, flags, name)


CREATED = EventFlags.CREATED
MOVED_IN = EventFlags.MOVED_IN
IS_DIRECTORY = EventFlags.IS_DIRECTORY


@pytest.fixture
def src(tmp_path: Path) -> Path:
    """Create an empty watch root."""
    root = tmp_path / "DCIM"
    root.mkdir()
    return root


@pytest.fixture
def dest(tmp_path: Path) -> Path:
    """Create an empty destination root."""
    root = tmp_path / "Moved"
    root.mkdir()
    return root


@pytest.fixture
def camera_tree(src: Path) -> Path:
    """Create a typical DCIM layout with a camera folder and a screenshot folder."""
    (src / "Camera").mkdir()
    (src / "Screenshots").mkdir()
    (src / ".thumbnails").mkdir()
    return src


@pytest.fixture
def facility() -> FakeFacility:
    return FakeFacility()


@pytest.fixture
def policy() -> PathPolicy:
    return PathPolicy()


@pytest.fixture
def table(facility: FakeFacility, policy: PathPolicy, src: Path) -> WatchTable:
    return WatchTable(facility, policy, src)


@pytest.fixture
def sleeps() -> list:
    """Record settle delays instead of sleeping."""
    return []


@pytest.fixture
def make_loop(facility, policy, table, src, dest, sleeps):
    """Return a factory for EventLoops over the temporary tree."""

    def _make(dry_run: bool = False) -> EventLoop:
        mover = Mover(src, dest, dry_run=dry_run)
        return EventLoop(facility, table, policy, mover, settle_delay=1.0, sleep=sleeps.append)

    return _make


@pytest.fixture
def loop(make_loop) -> EventLoop:
    return make_loop()
