"""Task CLI entry point

Usage:
    python -m taskboard.tasks <command> [options]
"""

from .cli import main

if __name__ == "__main__":
    raise SystemExit(main())
