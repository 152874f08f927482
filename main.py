"""
TCF Manager — Entry Point.

Single entry point: `python main.py <command>` runs the command-line interface.
"""

from tcf_manager.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
