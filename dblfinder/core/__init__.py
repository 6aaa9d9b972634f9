"""
dblfinder Core Modules

Scanning, fingerprinting, duplicate grouping and resolution.
"""

from . import patterns
from . import scanner
from . import fingerprint
from . import duplicates
from . import resolver

__all__ = [
    "patterns",
    "scanner",
    "fingerprint",
    "duplicates",
    "resolver",
]
