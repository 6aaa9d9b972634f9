#!/usr/bin/env python3
"""
Keep-selection parsing for interactive duplicate resolution

Operators answer "which files should we keep?" with a space separated list
of 1-based indices and inclusive ranges, e.g. ``2-5 7``.
"""

from typing import List, Optional


class SelectionError(ValueError):
    """Raised when a selection line cannot be accepted"""


def _parse_index(token: str, maximum: int) -> int:
    if not token.isdecimal():
        raise SelectionError(f"not a number: {token!r}")
    value = int(token)
    if value < 1 or value > maximum:
        raise SelectionError(f"{value} is outside 1-{maximum}")
    return value


def parse_element(element: str, maximum: int) -> List[int]:
    """Parse one token: a single index ``3`` or an inclusive range ``2-5``"""
    parts = element.split("-")

    if len(parts) > 2:
        raise SelectionError(f"malformed range: {element!r}")

    start = _parse_index(parts[0], maximum)
    end = _parse_index(parts[-1], maximum)

    if start > end:
        raise SelectionError(f"inverted range: {element!r}")

    return list(range(start, end + 1))


def parse_selection(line: str, maximum: int) -> Optional[List[int]]:
    """Parse a keep-selection line.

    Returns the sorted, de-duplicated indices named by the line, or None for
    an empty line, which means keep everything. Any malformed or
    out-of-range token rejects the whole line with SelectionError.
    """
    elements = line.split()
    if not elements:
        return None

    selected = set()
    for element in elements:
        selected.update(parse_element(element, maximum))

    return sorted(selected)
