"""
dblfinder - Duplicate File Finder

Finds files with identical content across one or more directory trees and
offers controlled removal of the redundant copies.
"""

__version__ = "0.6.0"
__author__ = "dblfinder Team"
__license__ = "MIT"

from .core import duplicates, fingerprint, patterns, resolver, scanner

__all__ = [
    "duplicates",
    "fingerprint",
    "patterns",
    "resolver",
    "scanner",
]
