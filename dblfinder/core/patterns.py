#!/usr/bin/env python3
"""
Path Matchers - pluggable path matching for ignore and prefer rules

Anything with a ``matches(path) -> bool`` method can be used wherever the
scanner or the resolution engine expects a matcher.
"""

import re
from typing import Optional, Protocol


class PathMatcher(Protocol):
    """Interface for ignore/prefer rules"""

    def matches(self, path: str) -> bool:
        ...


class RegexMatcher:
    """Match paths with a regular expression (searched anywhere in the path)"""

    def __init__(self, pattern: str):
        self.pattern = pattern
        self._regex = re.compile(pattern)

    def matches(self, path: str) -> bool:
        return self._regex.search(path) is not None

    def __repr__(self) -> str:
        return f"RegexMatcher({self.pattern!r})"


def compile_matcher(pattern: Optional[str]) -> Optional[RegexMatcher]:
    """Build a matcher from a regex, or None when no pattern is configured.

    Raises ValueError if the pattern does not compile.
    """
    if not pattern:
        return None
    try:
        return RegexMatcher(pattern)
    except re.error as e:
        raise ValueError(f"Invalid regular expression {pattern!r}: {e}") from e
