#!/usr/bin/env python3
"""
Resolution Engine - decide which copies to keep and remove the rest

For each duplicate set, members matching the prefer rule are kept
automatically; the remaining members are offered to the operator, who names
the ones to keep. Everything not kept is removed (or only reported in dry
run mode). A set is never emptied: if every member would be removed the
deletion is aborted for that set.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from ..utils.selection import SelectionError, parse_selection
from .duplicates import DuplicateSet
from .patterns import PathMatcher

logger = logging.getLogger(__name__)

LIST_ACTION = "list"
KEEP_ACTION = "keep"
FIX_ACTION = "fix"
ACTIONS = (LIST_ACTION, KEEP_ACTION, FIX_ACTION)

# Resolution statuses
LISTED = "listed"
SKIPPED = "skipped"
ABORTED = "aborted"
EXECUTED = "executed"

KEEP_PROMPT = "Which one of these should we keep? (eg: 1 2 3, 2-3)"
RETRY_PROMPT = "again: "


@dataclass
class DeletionOutcome:
    """Result of removing (or pretending to remove) one path"""
    path: str
    dry_run: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class ResolutionDecision:
    """Keep/delete partition of one duplicate set"""
    duplicate_set: DuplicateSet
    status: str
    keep: List[str] = field(default_factory=list)
    delete: List[str] = field(default_factory=list)
    outcomes: List[DeletionOutcome] = field(default_factory=list)

    @property
    def removed(self) -> int:
        return sum(1 for o in self.outcomes if o.ok and not o.dry_run)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if not o.ok)


class ResolutionEngine:
    """Apply the prefer rule, interactive selection and deletion to duplicate sets"""

    def __init__(
        self,
        action: str = LIST_ACTION,
        prefer: Optional[PathMatcher] = None,
        skip_manual: bool = False,
        dry_run: bool = False,
        input_func: Optional[Callable[[str], str]] = None,
        remove_func: Optional[Callable[[str], None]] = None,
    ):
        if action not in ACTIONS:
            raise ValueError(f"Unknown action: {action}")
        self.action = action
        self.prefer = prefer
        self.skip_manual = skip_manual
        self.dry_run = dry_run
        self.input_func = input_func or input
        self.remove_func = remove_func or os.remove

    def _read_line(self, prompt: str) -> str:
        try:
            return self.input_func(prompt)
        except EOFError:
            return ""

    def read_keep(self, eligible: Dict[int, str], maximum: int) -> List[str]:
        """Ask which eligible members to keep; return the ones to delete.

        An empty answer keeps everything. Lines naming an index that is out
        of range or not eligible are rejected and the prompt repeats.
        """
        print(KEEP_PROMPT)
        prompt = ""

        while True:
            line = self._read_line(prompt)
            try:
                keep = parse_selection(line, maximum)
            except SelectionError as e:
                logger.debug(f"Rejected selection {line!r}: {e}")
                prompt = RETRY_PROMPT
                continue

            if keep is None:
                return []

            if not all(index in eligible for index in keep):
                logger.debug(f"Selection {line!r} names a preferred file")
                prompt = RETRY_PROMPT
                continue

            return [path for index, path in eligible.items() if index not in keep]

    def delete_files(self, paths: Sequence[str]) -> List[DeletionOutcome]:
        """Remove paths one by one; failures are reported and do not stop the loop"""
        outcomes = []

        for path in paths:
            if self.dry_run:
                print(f"Removing: {path} (skipped)")
                outcomes.append(DeletionOutcome(path, dry_run=True))
                continue

            print(f"Removing: {path}")
            try:
                self.remove_func(path)
            except OSError as e:
                print(e)
                logger.debug(f"Failed to remove {path}: {e}")
                outcomes.append(DeletionOutcome(path, error=str(e)))
            else:
                print("done.")
                outcomes.append(DeletionOutcome(path))

        return outcomes

    def resolve(self, duplicate_set: DuplicateSet, position: int = 1, total: int = 1) -> ResolutionDecision:
        """Present one set and carry out the operator's decision"""
        print(f"The following files are the same ({position} / {total}):")

        preferred: List[str] = []
        eligible: Dict[int, str] = {}
        for index, path in duplicate_set.members():
            if self.prefer is not None and self.prefer.matches(path):
                print(f"[preferred] {path}")
                preferred.append(path)
                continue
            print(f"[{index}] {path}")
            eligible[index] = path

        if self.action == LIST_ACTION:
            print()
            return ResolutionDecision(duplicate_set, LISTED, keep=list(duplicate_set.paths))

        if self.skip_manual and not preferred:
            print("Preferred file not found, deletion skipped.\n")
            return ResolutionDecision(duplicate_set, SKIPPED, keep=list(duplicate_set.paths))

        delete = self.read_keep(eligible, duplicate_set.count) if eligible else []
        keep = [path for path in duplicate_set.paths if path not in delete]

        if not delete:
            print("Deletion skipped.\n")
            return ResolutionDecision(duplicate_set, SKIPPED, keep=keep)

        if len(delete) == duplicate_set.count:
            print("All files marked for deletion, therefore aborting!\n")
            return ResolutionDecision(duplicate_set, ABORTED, keep=list(duplicate_set.paths))

        outcomes = self.delete_files(delete)
        print("\n")
        return ResolutionDecision(duplicate_set, EXECUTED, keep=keep, delete=delete, outcomes=outcomes)

    def resolve_all(self, duplicate_sets: Sequence[DuplicateSet]) -> List[ResolutionDecision]:
        print()
        total = len(duplicate_sets)
        return [
            self.resolve(duplicate_set, position, total)
            for position, duplicate_set in enumerate(duplicate_sets, 1)
        ]
