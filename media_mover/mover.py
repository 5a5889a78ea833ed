"""
File move engine for Media Mover.

Moves one file from the watched tree into the destination tree,
mirroring its relative directory. The rename never replaces an
existing destination file: the name is first claimed by creating it
exclusively, then the source is renamed over the empty placeholder.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from media_mover.errors import CollisionOnClaim, MoveError
from media_mover.table import WatchedDirectory

logger = logging.getLogger(__name__)


@dataclass
class MoveStats:
    """Counters for one session."""
    total_moved: int = 0
    total_failed: int = 0
    total_collisions: int = 0
    last_moved_file: str = ""

    def record_success(self, destination: Path) -> None:
        self.total_moved += 1
        self.last_moved_file = str(destination)

    def record_failure(self, exc: MoveError) -> None:
        if isinstance(exc, CollisionOnClaim):
            self.total_collisions += 1
        self.total_failed += 1

    def summary(self) -> str:
        return (
            f"{self.total_moved} moved, {self.total_failed} failed "
            f"({self.total_collisions} collisions)"
        )


class Mover:
    """
    Relocates files from the watched tree into the destination tree.

    Parameters
    ----------
    source_root : Path
        Directory every ``WatchedDirectory.relative_path`` is relative to.
    destination_root : Path
        Root of the mirrored destination tree.
    dry_run : bool
        If True, only log what would be moved.
    """

    def __init__(self, source_root: Path, destination_root: Path, dry_run: bool = False):
        self.source_root = Path(source_root)
        self.destination_root = Path(destination_root)
        self.dry_run = dry_run
        self.stats = MoveStats()

    def destination_dir(self, directory: WatchedDirectory) -> Path:
        """Return the mirror of *directory*, creating it on first use."""
        path = self.destination_root / directory.relative_path
        if not directory.destination_materialized and not self.dry_run:
            try:
                path.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise MoveError(path, f"Cannot create directory ({exc})") from exc
            directory.destination_materialized = True
        return path

    def move_in(
        self,
        directory: WatchedDirectory,
        name: str,
        level: int = logging.INFO,
    ) -> Path:
        """Move *name* out of *directory* and return its new path.

        Raises ``CollisionOnClaim`` when the destination exists and
        ``MoveError`` for any other failure; the source is left alone in
        both cases.
        """
        try:
            dst = self.destination_dir(directory) / name
            src = self.source_root / directory.join(name)

            if self.dry_run:
                logger.log(level, "Dry run: %s -> %s", src, dst)
                return dst

            # rename() cannot refuse to replace on every filesystem
            # (Android's FUSE lacks RENAME_NOREPLACE), so claim the name first.
            try:
                with open(dst, "x"):
                    pass
            except FileExistsError:
                raise CollisionOnClaim(dst) from None
            except OSError as exc:
                raise MoveError(dst, f"Cannot claim destination ({exc})") from exc

            try:
                os.rename(src, dst)
            except OSError as exc:
                # The empty placeholder stays behind; removing it could race.
                raise MoveError(
                    src, f"Rename failed, placeholder left at {dst} ({exc})"
                ) from exc
        except MoveError as exc:
            self.stats.record_failure(exc)
            raise

        logger.log(level, "Moved %s", src)
        self.stats.record_success(dst)
        return dst
