"""
Unit tests for media_mover.table.

Uses the real filesystem for stat() and the fake facility for watches.
"""

import logging
import os
from pathlib import Path

import pytest

from media_mover.errors import (
    DuplicateInode,
    HandleNotFound,
    InvalidRelativePath,
    NotADirectory,
    WatchRegistrationFailure,
)
from media_mover.events import WatchHandle
from media_mover.table import WatchedDirectory, WatchTable


class TestWatchedDirectory:
    """Tests for the WatchedDirectory record."""

    def test_join_drops_dot(self):
        assert WatchedDirectory(Path("."), 1).join("a.mp4") == Path("a.mp4")
        assert WatchedDirectory(Path("Camera"), 1).join("a.mp4") == Path("Camera/a.mp4")

    @pytest.mark.parametrize(
        "path", ["/abs/path", "../outside", "../", "Camera/../..", "Camera/../x"]
    )
    def test_rejects_paths_outside_root(self, path: str):
        with pytest.raises(ValueError):
            WatchedDirectory(Path(path), 1)

    def test_destination_not_materialized_initially(self):
        assert not WatchedDirectory(Path("Camera"), 1).destination_materialized


class TestAdd:
    """Tests for WatchTable.add."""

    def test_registers_directory(self, table: WatchTable, facility, camera_tree: Path):
        handle = table.add("Camera")

        directory = table.lookup(handle)
        assert directory.relative_path == Path("Camera")
        assert directory.inode == os.stat(camera_tree / "Camera").st_ino
        assert directory.allow_images
        assert facility.watches[handle] == camera_tree / "Camera"
        assert directory.inode in table.inodes

    def test_non_camera_directory(self, table: WatchTable, camera_tree: Path):
        handle = table.add("Screenshots")

        assert not table.lookup(handle).allow_images

    def test_root_is_not_camera(self, table: WatchTable, src: Path):
        handle = table.add(".")

        assert table.lookup(handle).relative_path == Path(".")
        assert not table.lookup(handle).allow_images

    def test_not_a_directory(self, table: WatchTable, src: Path):
        (src / "file.mp4").write_text("x")

        with pytest.raises(NotADirectory):
            table.add("file.mp4")
        assert len(table) == 0

    def test_missing_path(self, table: WatchTable):
        with pytest.raises(FileNotFoundError):
            table.add("missing")

    def test_path_leaving_root(self, table: WatchTable, facility, camera_tree: Path):
        with pytest.raises(InvalidRelativePath):
            table.add("Camera/../..")
        assert len(table) == 0
        assert not facility.watches

    def test_duplicate_inode(self, table: WatchTable, facility, camera_tree: Path):
        table.add("Camera")
        (camera_tree / "alias").symlink_to(camera_tree / "Camera")

        with pytest.raises(DuplicateInode) as excinfo:
            table.add("alias")
        assert excinfo.value.inode == os.stat(camera_tree / "Camera").st_ino
        assert len(table) == 1
        assert len(facility.watches) == 1

    def test_registration_failure(self, table: WatchTable, facility, camera_tree: Path):
        facility.fail_paths.add(camera_tree / "Camera")

        with pytest.raises(WatchRegistrationFailure):
            table.add("Camera")
        assert len(table) == 0
        assert not table.inodes

    def test_duplicate_handle_from_facility(self, table: WatchTable, facility, camera_tree: Path):
        handle = table.add("Camera")
        facility.reuse_handle = handle

        with pytest.raises(WatchRegistrationFailure):
            table.add("Screenshots")
        assert table.lookup(handle).relative_path == Path("Camera")


class TestRemove:
    """Tests for WatchTable.remove and lookup."""

    def test_remove_clears_inode(self, table: WatchTable, camera_tree: Path):
        handle = table.add("Camera")
        inode = table.lookup(handle).inode

        table.remove(handle)

        assert handle not in table
        assert inode not in table.inodes
        with pytest.raises(HandleNotFound):
            table.lookup(handle)

    def test_readd_after_remove(self, table: WatchTable, camera_tree: Path):
        handle = table.add("Camera")
        table.remove(handle)

        assert table.add("Camera") != handle
        assert len(table) == 1

    def test_remove_unknown_is_logged(self, table: WatchTable, caplog):
        with caplog.at_level(logging.ERROR):
            table.remove(WatchHandle(42))

        assert "unknown watch handle: 42" in caplog.text

    def test_deregister(self, table: WatchTable, facility, camera_tree: Path):
        handle = table.add("Camera")

        table.remove(handle, deregister=True)

        assert facility.removed == [handle]
        assert handle not in facility.watches

    def test_deregister_failure_raises(self, table: WatchTable, facility):
        with pytest.raises(OSError):
            table.remove(WatchHandle(7), deregister=True)

    def test_inode_set_matches_entries(self, table: WatchTable, camera_tree: Path):
        handles = [table.add(p) for p in (".", "Camera", "Screenshots")]
        table.remove(handles[1])

        assert table.inodes == {table.lookup(h).inode for h in table}
        assert list(table) == [handles[0], handles[2]]
