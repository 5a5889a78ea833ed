"""Entry point for Media Mover.

Usage:
    python -m media_mover DEST [ROOT ...] [-d] [-i] [-f]
"""

import sys


def main() -> None:
    """Run the watcher from the command line."""
    from media_mover.service import main as service_main

    sys.exit(service_main())


if __name__ == "__main__":
    main()
