"""
Command-line runner for Media Mover.

Runs the watch loop in the foreground until SIGINT/SIGTERM:

    cd /sdcard/DCIM
    python -m media_mover /sdcard/Moved            watch the current directory
    python -m media_mover /sdcard/Moved Camera -i  also move files already there
    python -m media_mover /sdcard/Moved -d         dry run, only log

Unless ``-f`` is given the working directory must be the configured
``expected_cwd``, so a stray invocation cannot empty the wrong tree.
"""

from __future__ import annotations

import argparse
import logging
import logging.handlers
import os
import signal
import sys
import time
from collections.abc import Callable, Sequence
from pathlib import Path, PurePath

from media_mover import __app_name__, __version__
from media_mover.config import Config, get_log_path
from media_mover.errors import ReadFailure, WatchRegistrationFailure
from media_mover.events import WatchFacility
from media_mover.mover import Mover
from media_mover.platform_utils import supports_inotify
from media_mover.policy import PathPolicy
from media_mover.table import WatchTable
from media_mover.watcher import EventLoop

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="media-mover",
        description="Move new camera media into a mirrored destination tree.",
    )
    parser.add_argument(
        "destination",
        nargs="?",
        help="destination root (default: destination_folder from the config)",
    )
    parser.add_argument(
        "roots",
        nargs="*",
        help="directories to watch, relative to the working directory (default: .)",
    )
    parser.add_argument("-d", "--dry-run", action="store_true", help="only log intended moves")
    parser.add_argument(
        "-i",
        "--in-place",
        action="store_true",
        help="also move matching files already present when watching starts",
    )
    parser.add_argument(
        "-f", "--force", action="store_true", help="skip the working directory check"
    )
    parser.add_argument("--config", help="path to the JSON config file")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="override the configured log level",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def setup_logging(cfg: Config) -> None:
    """Configure the stderr handler and, if enabled, a rotating file log."""
    level = getattr(logging, cfg.log_level.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    fmt = logging.Formatter(LOG_FORMAT)

    sh = logging.StreamHandler(sys.stderr)
    sh.setLevel(level)
    sh.setFormatter(fmt)
    root_logger.addHandler(sh)

    if cfg.log_to_file:
        fh = logging.handlers.RotatingFileHandler(
            str(get_log_path()),
            maxBytes=cfg.max_log_size_mb * 1024 * 1024,
            backupCount=cfg.log_backup_count,
            encoding="utf-8",
        )
        fh.setLevel(level)
        fh.setFormatter(fmt)
        root_logger.addHandler(fh)


def check_working_directory(expected: str) -> bool:
    """Return True if the working directory is the same directory as *expected*."""
    cwd = os.getcwd()
    try:
        if os.path.samefile(cwd, expected):
            return True
    except OSError as exc:
        logger.error("Cannot compare %s with %s: %s", cwd, expected, exc)
        return False
    logger.error("Not in %s: %s (use -f to override)", expected, cwd)
    return False


def is_valid_root(root: str) -> bool:
    path = PurePath(root)
    return not path.is_absolute() and ".." not in path.parts


def build_event_loop(
    cfg: Config,
    facility: WatchFacility,
    destination: Path,
    source_root: Path = Path("."),
    sleep: Callable[[float], None] = time.sleep,
) -> EventLoop:
    """Wire policy, table, mover and loop together from *cfg*."""
    policy = PathPolicy.from_config(cfg)
    table = WatchTable(facility, policy, source_root)
    mover = Mover(source_root, destination, dry_run=cfg.dry_run)
    return EventLoop(
        facility, table, policy, mover, settle_delay=cfg.settle_delay, sleep=sleep
    )


def _default_facility(cfg: Config) -> WatchFacility:
    from media_mover.inotify import DEFAULT_EVENT_BUFFER_SIZE, InotifyFacility

    return InotifyFacility(cfg.event_buffer_size or DEFAULT_EVENT_BUFFER_SIZE)


def _stop_on_sigterm(signum, frame) -> None:
    raise KeyboardInterrupt


def run(
    argv: Sequence[str] | None = None,
    facility_factory: Callable[[Config], WatchFacility] = _default_facility,
) -> int:
    """Parse *argv*, watch, and return the process exit status."""
    parser = create_parser()
    args = parser.parse_args(argv)

    cfg = Config(Path(args.config) if args.config else None)
    if args.destination:
        cfg.destination_folder = args.destination
    if args.roots:
        cfg.watch_roots = args.roots
    cfg.dry_run = cfg.dry_run or args.dry_run
    cfg.in_place = cfg.in_place or args.in_place
    if args.log_level:
        cfg.log_level = args.log_level

    for root in cfg.watch_roots:
        if not is_valid_root(root):
            parser.error(f"watch root must be relative and inside the working directory: {root}")

    setup_logging(cfg)
    logger.info("%s %s starting.", __app_name__, __version__)

    if not supports_inotify():
        logger.error("%s needs Linux inotify.", __app_name__)
        return 1
    if not cfg.is_configured():
        logger.error("No destination folder given or configured.")
        return 1

    destination = Path(cfg.destination_folder).absolute()
    if not destination.is_dir():
        logger.error("Not a directory: %s", destination)
        return 1
    if not args.force and not check_working_directory(cfg.expected_cwd):
        return 1

    try:
        facility = facility_factory(cfg)
    except OSError as exc:
        logger.critical("Cannot start inotify: %s", exc)
        return 1
    loop = build_event_loop(cfg, facility, destination)
    logger.debug("Facility: %r", facility)
    previous_handler = signal.signal(signal.SIGTERM, _stop_on_sigterm)
    try:
        for root in cfg.watch_roots:
            loop.watch(root, in_place=cfg.in_place)
        if not len(loop.table):
            logger.error("Nothing to watch.")
            return 1
        loop.run()
    except KeyboardInterrupt:
        logger.info("%s stopped.", __app_name__)
        return 0
    except (ReadFailure, WatchRegistrationFailure) as exc:
        logger.critical("%s", exc)
        return 1
    finally:
        logger.info("Session: %s", loop.mover.stats.summary())
        facility.close()
        if previous_handler is not None:
            signal.signal(signal.SIGTERM, previous_handler)
    return 0


def main() -> int:
    """Console-script entry point."""
    return run()


if __name__ == "__main__":
    sys.exit(main())
