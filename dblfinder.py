#!/usr/bin/env python3
"""
dblfinder Entry Point

This script provides a convenient entry point for running dblfinder
without requiring package installation.

Usage:
    python3 dblfinder.py [options] [ROOT ...]

This is equivalent to:
    python3 -m dblfinder.cli.main [options] [ROOT ...]
"""

import sys
import os

# Add the current directory to Python path so we can import dblfinder
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

if __name__ == "__main__":
    from dblfinder.cli.main import main
    sys.exit(main())
