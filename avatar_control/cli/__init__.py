"""
CLI subpackage for command-line interface tools.

Available CLI scripts:
- run: Drive avatar frames from a webcam or a recorded session

Usage:
    python -m avatar_control.cli.run --help
"""

__all__ = ["run"]
