#!/usr/bin/env python3
"""
Phrase drill - quick launcher for a terminal game.

This is a convenience wrapper that starts `play` with the configured
learner and corpus. For every command, use: python -m src.cli.main --help

Usage:
    python play.py           # Play
    python play.py --help    # Show this help

For direct command access:
    python -m src.cli.main play --learner alice
    python -m src.cli.main plan
    python -m src.cli.main progress
"""

import subprocess
import sys


def main():
    """Launch a game from the main CLI."""
    if len(sys.argv) > 1 and sys.argv[1] in ("--help", "-h"):
        print(__doc__)
        return

    subprocess.run([sys.executable, "-m", "src.cli.main", "play", *sys.argv[1:]])


if __name__ == "__main__":
    main()
