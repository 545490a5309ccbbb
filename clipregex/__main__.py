"""
Main entry point for running clipregex as a module.

Usage:
    python -m clipregex <command> [options]
"""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
