#!/usr/bin/env python3
"""
Duplicate Set Builder - assemble the final duplicate groups
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Tuple

from .fingerprint import DigestGroups, verify_identical

logger = logging.getLogger(__name__)


@dataclass
class DuplicateSet:
    """Paths sharing both size and fingerprint"""
    size: int
    digest: str
    paths: List[str] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.paths)

    @property
    def wasted_space(self) -> int:
        return self.size * (self.count - 1)

    def members(self) -> List[Tuple[int, str]]:
        """(1-based display index, path) in encounter order"""
        return [(i + 1, path) for i, path in enumerate(self.paths)]


def build_duplicate_sets(
    buckets: Iterable[Tuple[int, DigestGroups]],
) -> Tuple[List[DuplicateSet], int]:
    """Flatten per-bucket digest groups into duplicate sets.

    ``buckets`` yields ``(size, digest -> paths)`` pairs. Groups with a single
    member are dropped. Returns the sets and the number of paths they hold.
    """
    duplicate_sets: List[DuplicateSet] = []
    count = 0

    for size, groups in buckets:
        for digest, paths in groups.items():
            if len(paths) <= 1:
                continue
            duplicate_sets.append(DuplicateSet(size, digest, list(paths)))
            count += len(paths)

    return duplicate_sets, count


def split_by_content(
    duplicate_set: DuplicateSet,
    same: Callable[[str, str], bool] = verify_identical,
) -> List[DuplicateSet]:
    """Split a set into groups whose members are byte-for-byte identical

    Members are compared against the first path of each subgroup; groups
    left with a single member are dropped.
    """
    subgroups: List[List[str]] = []

    for path in duplicate_set.paths:
        for group in subgroups:
            if same(group[0], path):
                group.append(path)
                break
        else:
            subgroups.append([path])

    if len(subgroups) > 1:
        logger.info(
            f"Sampled fingerprint {duplicate_set.digest[:16]} covered "
            f"{len(subgroups)} distinct contents"
        )

    return [
        DuplicateSet(duplicate_set.size, duplicate_set.digest, group)
        for group in subgroups
        if len(group) > 1
    ]


def verify_duplicate_sets(
    duplicate_sets: Iterable[DuplicateSet],
    same: Callable[[str, str], bool] = verify_identical,
) -> Tuple[List[DuplicateSet], int]:
    """Re-check every set byte-for-byte, returning the confirmed sets and path count"""
    verified: List[DuplicateSet] = []
    for duplicate_set in duplicate_sets:
        verified.extend(split_by_content(duplicate_set, same))
    return verified, sum(s.count for s in verified)
