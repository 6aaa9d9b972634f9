#!/usr/bin/env python3
"""
dblfinder - Duplicate File Finder

Finds duplicated files under one or more directories and, on request,
deletes the redundant copies.

Pipeline:
- Phase 1: catalog every regular file by exact size
- Phase 2: fingerprint same-size files (sampled prefix, concurrent)
- Phase 3: optional byte-for-byte verification
- Phase 4: list or resolve the duplicate sets (prefer rule, interactive
  keep-selection, dry run)
"""

import argparse
import logging
import sys
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence

from .. import __version__
from ..core.duplicates import DuplicateSet, build_duplicate_sets, verify_duplicate_sets
from ..core.fingerprint import ALGORITHMS, DEFAULT_SAMPLE_SIZE, FingerprintEngine, Fingerprinter
from ..core.patterns import compile_matcher
from ..core.resolver import ACTIONS, LIST_ACTION, EXECUTED, ResolutionDecision, ResolutionEngine
from ..core.scanner import InventoryScanner, ScanError, partition_by_size

# ---------------------------
# Exit Codes
# ---------------------------
EXIT_OK = 0
EXIT_FATAL = 1
EXIT_PARTIAL = 3

# ---------------------------
# Logging Configuration
# ---------------------------
logging.basicConfig(
    level=logging.INFO,
    format='[%(asctime)s] %(levelname)s: %(message)s',
    datefmt='%H:%M:%S'
)
logger = logging.getLogger("dblfinder")

# ---------------------------
# Configuration
# ---------------------------

@dataclass
class Config:
    """Finder configuration with the original tool's defaults"""
    roots: List[str] = field(default_factory=lambda: ["."])
    ignore: Optional[str] = None
    prefer: Optional[str] = None

    # Performance
    fs_limit: int = 100  # max open files while hashing, 0 = unbounded
    sample_size: int = DEFAULT_SAMPLE_SIZE
    hash_algorithm: str = "md5"

    # Resolution
    action: str = LIST_ACTION
    skip_manual: bool = False
    dry_run: bool = False
    verify: bool = False

    # Output
    verbose: bool = False
    quiet: bool = False

    def validate(self) -> None:
        """Validate configuration"""
        if self.fs_limit < 0:
            raise ValueError("fs-limit cannot be negative")
        if self.sample_size < 1:
            raise ValueError("Sample size must be >= 1 byte")
        if self.action not in ACTIONS:
            raise ValueError(f"Unknown action: {self.action}")
        if self.hash_algorithm not in ALGORITHMS:
            raise ValueError(f"Unknown hash algorithm: {self.hash_algorithm}")
        if not self.roots:
            self.roots = ["."]
        # Surface bad patterns before any scanning happens
        compile_matcher(self.ignore)
        compile_matcher(self.prefer)

# ---------------------------
# Statistics
# ---------------------------

@dataclass
class RunStats:
    """Counters collected over one run"""
    unique_sizes: int = 0
    files_to_hash: int = 0
    files_hashed: int = 0
    bytes_read: int = 0
    symlinks_skipped: int = 0
    files_ignored: int = 0

    duplicate_sets: int = 0
    duplicate_files: int = 0
    wasted_space: int = 0

    files_removed: int = 0
    hash_errors: int = 0
    removal_errors: int = 0

    start_time: float = field(default_factory=time.time)
    phase_times: Dict[str, float] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)

    def add_error(self, msg: str) -> None:
        """Add error message"""
        timestamp = datetime.now().strftime("%H:%M:%S")
        self.errors.append(f"[{timestamp}] {msg}")
        if len(self.errors) > 100:  # Keep last 100
            self.errors = self.errors[-100:]

    def get_duration(self) -> float:
        return time.time() - self.start_time

    def start_phase(self, phase: str) -> None:
        self.phase_times[f"{phase}_start"] = time.time()

    def end_phase(self, phase: str) -> None:
        start_key = f"{phase}_start"
        if start_key in self.phase_times:
            self.phase_times[f"{phase}_duration"] = time.time() - self.phase_times[start_key]

# ---------------------------
# Utility Functions
# ---------------------------

def format_size(bytes_val: float) -> str:
    """Format bytes as human readable"""
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if bytes_val < 1024.0:
            return f"{bytes_val:.1f} {unit}"
        bytes_val /= 1024.0
    return f"{bytes_val:.1f} PB"


def parse_size(size_str: str) -> int:
    """Parse human-readable size; plain numbers are bytes"""
    size_str = size_str.strip().upper()

    # Order matters: longer suffixes first to avoid 'B' matching 'MB'
    multipliers = [
        ('TB', 1024**4),
        ('GB', 1024**3),
        ('MB', 1024**2),
        ('KB', 1024),
        ('B', 1),
    ]

    try:
        for suffix, multiplier in multipliers:
            if size_str.endswith(suffix):
                number = size_str[:-len(suffix)].strip()
                return int(float(number) * multiplier)
        return int(size_str)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid size: {size_str!r}")

# ---------------------------
# Finder
# ---------------------------

class DuplicateFinder:
    """Runs the scan -> partition -> fingerprint -> group -> resolve pipeline"""

    def __init__(self, config: Config, resolver: Optional[ResolutionEngine] = None):
        config.validate()
        self.config = config
        self.stats = RunStats()

        self.ignore = compile_matcher(config.ignore)
        self.prefer = compile_matcher(config.prefer)
        self.engine = FingerprintEngine(
            Fingerprinter(config.hash_algorithm, config.sample_size),
            fs_limit=config.fs_limit,
            verbose=config.verbose,
        )
        self.resolver = resolver or ResolutionEngine(
            action=config.action,
            prefer=self.prefer,
            skip_manual=config.skip_manual,
            dry_run=config.dry_run,
        )
        self.decisions: List[ResolutionDecision] = []

        # Set logging level
        if config.quiet:
            logger.setLevel(logging.WARNING)
        elif config.verbose:
            logger.setLevel(logging.DEBUG)
        else:
            logger.setLevel(logging.INFO)

    def find_duplicates(self) -> List[DuplicateSet]:
        """Phases 1-3. Raises ScanError if the trees cannot be walked."""
        self.stats.start_phase("discovery")
        scanner = InventoryScanner(self.ignore, self.config.verbose)
        file_sizes = scanner.scan(self.config.roots)
        self.stats.symlinks_skipped = scanner.symlinks_skipped
        self.stats.files_ignored = scanner.files_ignored
        self.stats.unique_sizes = len(file_sizes)
        self.stats.end_phase("discovery")
        print(f"Found {len(file_sizes)} unique file sizes")

        same_size, count = partition_by_size(file_sizes)
        self.stats.files_to_hash = count
        if count == 0:
            print("No files need to be hashed")
            return []
        print(f"{count} files need to be hashed:")

        self.stats.start_phase("fingerprint")
        buckets = []
        for size in sorted(same_size, reverse=True):
            buckets.append((size, self.engine.hash_bucket(same_size[size])))
        self.stats.files_hashed = self.engine.files_hashed
        self.stats.bytes_read = self.engine.bytes_read
        self.stats.hash_errors = len(self.engine.errors)
        for record in self.engine.errors:
            self.stats.add_error(f"{record.path}: {record.error}")
        self.stats.end_phase("fingerprint")

        duplicate_sets, count = build_duplicate_sets(buckets)

        if self.config.verify and duplicate_sets:
            self.stats.start_phase("verify")
            logger.info(f"Verifying {len(duplicate_sets)} duplicate sets byte-for-byte...")
            duplicate_sets, count = verify_duplicate_sets(duplicate_sets)
            self.stats.end_phase("verify")

        if count == 0:
            print("No files have duplicated hashes")
            return []
        print(f"{count} files have duplicated hashes")

        self.stats.duplicate_sets = len(duplicate_sets)
        self.stats.duplicate_files = count
        self.stats.wasted_space = sum(s.wasted_space for s in duplicate_sets)
        return duplicate_sets

    def resolve(self, duplicate_sets: Sequence[DuplicateSet]) -> List[ResolutionDecision]:
        """Phase 4"""
        self.stats.start_phase("resolve")
        self.decisions = self.resolver.resolve_all(duplicate_sets)
        for decision in self.decisions:
            if decision.status != EXECUTED:
                continue
            self.stats.files_removed += decision.removed
            self.stats.removal_errors += decision.failed
            for outcome in decision.outcomes:
                if not outcome.ok:
                    self.stats.add_error(f"Failed to remove {outcome.path}: {outcome.error}")
        self.stats.end_phase("resolve")
        return self.decisions

    def run(self) -> int:
        """Execute the whole pipeline and return an exit status"""
        logger.debug(f"dblfinder v{__version__}")
        logger.debug(
            f"Algorithm: {self.config.hash_algorithm} | fs-limit: {self.config.fs_limit} | "
            f"Sample: {format_size(self.config.sample_size)}"
        )

        try:
            duplicate_sets = self.find_duplicates()
        except ScanError as e:
            print(f"directory walk returned an error: {e}")
            logger.debug("Scan aborted", exc_info=True)
            return EXIT_FATAL

        if duplicate_sets:
            self.resolve(duplicate_sets)

        if not self.config.quiet:
            generate_report(self.config, self.stats)

        if self.stats.hash_errors or self.stats.removal_errors:
            return EXIT_PARTIAL
        return EXIT_OK


def generate_report(config: Config, stats: RunStats) -> None:
    """Print the closing summary"""
    print("=" * 60)
    print("SUMMARY")
    print("=" * 60)
    print(f"  Duration: {timedelta(seconds=int(stats.get_duration()))}")
    print(f"  Unique sizes: {stats.unique_sizes:,}")
    print(f"  Files hashed: {stats.files_hashed:,} of {stats.files_to_hash:,}")
    if stats.bytes_read:
        print(f"  Data read: {format_size(stats.bytes_read)}")
    if stats.symlinks_skipped:
        print(f"  Symlinks skipped: {stats.symlinks_skipped:,}")
    if stats.files_ignored:
        print(f"  Files ignored: {stats.files_ignored:,}")

    if stats.duplicate_sets:
        print(f"  Duplicate sets: {stats.duplicate_sets:,} ({stats.duplicate_files:,} files)")
        print(f"  Wasted space: {format_size(stats.wasted_space)}")
    if config.action != LIST_ACTION:
        mode = " (dry run)" if config.dry_run else ""
        print(f"  Files removed: {stats.files_removed:,}{mode}")

    if stats.errors:
        print(f"\nErrors encountered: {stats.hash_errors + stats.removal_errors}")
        for error in stats.errors[-5:]:
            print(f"  {error}")

# ---------------------------
# CLI Interface
# ---------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dblfinder",
        description="dblfinder - find duplicated files and optionally delete redundant copies",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    parser.add_argument("roots", nargs="*", default=["."], help="Directories to scan")
    parser.add_argument("--version", action="version", version=__version__, help="Display the version number")
    parser.add_argument("--verbose", "-v", action="store_true", help="Provide verbose output")
    parser.add_argument("--quiet", "-q", action="store_true", help="Quiet mode")

    # Performance
    parser.add_argument("--fs-limit", type=int, default=100, help="Limit the maximum number of open files (0 = unbounded)")
    parser.add_argument(
        "--sample-size",
        type=parse_size,
        default="1MB",
        help="Sample size read from the start of each file for hashing"
    )
    parser.add_argument("--algorithm", choices=ALGORITHMS, default="md5", help="Hash algorithm")

    # Resolution
    parser.add_argument(
        "--action",
        choices=ACTIONS,
        default=LIST_ACTION,
        help="Action to use for duplicates found (list, or keep/fix to choose copies to keep)"
    )
    parser.add_argument("--ignore", help="Regexp to ignore files completely")
    parser.add_argument("--prefer", help="Regexp to keep files if a duplicate matches it")
    parser.add_argument("--skip-manual", action="store_true", help="Skip decisions if prefer did not find anything")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Dry run, nothing will be deleted but deletion logic will be executed"
    )
    parser.add_argument("--verify", action="store_true", help="Confirm duplicates byte-for-byte before acting")

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    config = Config(
        roots=args.roots or ["."],
        ignore=args.ignore,
        prefer=args.prefer,
        fs_limit=args.fs_limit,
        sample_size=args.sample_size,
        hash_algorithm=args.algorithm,
        action=args.action,
        skip_manual=args.skip_manual,
        dry_run=args.dry_run,
        verify=args.verify,
        verbose=args.verbose,
        quiet=args.quiet,
    )

    try:
        finder = DuplicateFinder(config)
    except ValueError as e:
        parser.error(str(e))

    try:
        return finder.run()
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return EXIT_FATAL
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return EXIT_FATAL


if __name__ == "__main__":
    sys.exit(main())
