#!/usr/bin/env python3
"""
Inventory Scanner - catalog files by exact size

Walks one or more root trees and builds a mapping from byte size to the
paths having that size. Symlink aliases are skipped so the same physical
file is never counted twice, and any walk or resolution failure aborts the
scan: a partial size map would under-report duplicates.
"""

import logging
import os
import stat
from collections import defaultdict
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Set, Tuple

from .patterns import PathMatcher

logger = logging.getLogger(__name__)

SizeMap = Dict[int, List[str]]


class ScanError(Exception):
    """Fatal error while walking or resolving the scanned trees"""

    def __init__(self, path: str, error: BaseException):
        self.path = path
        self.error = error
        super().__init__(f"{path}: {error}")


class InventoryScanner:
    """Walk root trees and bucket regular files by size"""

    def __init__(self, ignore: Optional[PathMatcher] = None, verbose: bool = False):
        self.ignore = ignore
        self.verbose = verbose
        self.symlinks_skipped = 0
        self.files_ignored = 0
        self.revisits_skipped = 0
        self._seen: Set[Path] = set()
        self._buckets: Dict[int, set] = defaultdict(set)

    def _note(self, msg: str) -> None:
        if self.verbose:
            logger.info(msg)
        else:
            logger.debug(msg)

    @staticmethod
    def _raise_walk_error(error: OSError) -> None:
        raise ScanError(error.filename or "<unknown>", error)

    @staticmethod
    def _resolve(path: Path) -> Path:
        try:
            return path.resolve(strict=True)
        except (OSError, RuntimeError) as e:
            raise ScanError(str(path), e) from e

    def _visit(self, path: str, canonical_parent: Path) -> None:
        if self.ignore is not None and self.ignore.matches(path):
            self.files_ignored += 1
            return

        canonical = self._resolve(Path(path))
        if canonical != canonical_parent / os.path.basename(path):
            self.symlinks_skipped += 1
            self._note(f"symlink found: {canonical} <-> {path}")
            return

        try:
            st = os.stat(path)
        except OSError as e:
            raise ScanError(path, e) from e

        if not stat.S_ISREG(st.st_mode):
            self._note(f"not a regular file, skipped: {path}")
            return

        if canonical in self._seen:
            self.revisits_skipped += 1
            self._note(f"already recorded as {canonical}, skipped: {path}")
            return
        self._seen.add(canonical)

        self._buckets[st.st_size].add(path)

    def scan_root(self, root: str) -> None:
        """Visit every entry under one root"""
        if os.path.lexists(root) and not os.path.isdir(root):
            parent = self._resolve(Path(os.path.dirname(os.path.abspath(root))))
            self._visit(root, parent)
            return

        for dirpath, _dirs, files in os.walk(root, onerror=self._raise_walk_error):
            canonical_parent = self._resolve(Path(dirpath))
            for filename in files:
                self._visit(os.path.join(dirpath, filename), canonical_parent)

    def scan(self, roots: Sequence[str]) -> SizeMap:
        for root in roots:
            logger.debug(f"Scanning: {root}")
            self.scan_root(root)

        return {size: sorted(paths) for size, paths in self._buckets.items()}


def scan_file_sizes(
    roots: Sequence[str],
    ignore: Optional[PathMatcher] = None,
    verbose: bool = False,
) -> SizeMap:
    """Return ``size -> sorted unique paths`` for every regular file under roots.

    Raises ScanError on any directory walk or symlink resolution failure.
    """
    return InventoryScanner(ignore, verbose).scan(roots)


def partition_by_size(file_sizes: SizeMap) -> Tuple[SizeMap, int]:
    """Keep only sizes shared by two or more files.

    Returns the retained buckets and the number of paths they hold.
    """
    same_size: SizeMap = {}
    count = 0

    for size, paths in file_sizes.items():
        if len(paths) <= 1:
            continue
        same_size[size] = paths
        count += len(paths)

    return same_size, count
