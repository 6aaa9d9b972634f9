#!/usr/bin/env python3
"""
Fingerprint Engine - concurrent sampled-prefix hashing

Every file in a same-size bucket gets its own worker thread which hashes at
most ``sample_size`` bytes from the start of the file. Workers report one
FingerprintRecord each over a queue, and the engine waits until it has
collected a record for every worker before regrouping the bucket by digest.

Two files that only differ after the sampled prefix get the same digest.
That is the price of speed; use ``verify_identical`` (``--verify``) or a
sample size larger than the biggest file for exact results.
"""

import hashlib
import logging
import queue
import threading
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

# Optional imports
try:
    import xxhash
    XXHASH_AVAILABLE = True
except ImportError:
    XXHASH_AVAILABLE = False

logger = logging.getLogger(__name__)

ALGORITHMS = ("md5", "sha1", "sha256", "xxhash")
DEFAULT_SAMPLE_SIZE = 1024 * 1024  # 1 MB
COMPARE_CHUNK_SIZE = 1024 * 1024

DigestGroups = Dict[str, List[str]]


@dataclass
class FingerprintRecord:
    """Outcome of fingerprinting one file: a digest or an error"""
    path: str
    digest: Optional[str] = None
    error: Optional[str] = None
    bytes_read: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None


class Fingerprinter:
    """Hash the first ``sample_size`` bytes of a file"""

    def __init__(self, algorithm: str = "md5", sample_size: int = DEFAULT_SAMPLE_SIZE):
        if sample_size < 1:
            raise ValueError("Sample size must be >= 1 byte")
        if algorithm not in ALGORITHMS:
            raise ValueError(f"Unknown hash algorithm: {algorithm}")
        if algorithm == "xxhash" and not XXHASH_AVAILABLE:
            logger.warning("xxhash not available, falling back to md5")
            algorithm = "md5"
        self.algorithm = algorithm
        self.sample_size = sample_size

    def _get_hasher(self):
        if self.algorithm == "sha1":
            return hashlib.sha1()
        elif self.algorithm == "sha256":
            return hashlib.sha256()
        elif self.algorithm == "xxhash":
            return xxhash.xxh64()
        return hashlib.md5()

    def compute(self, path: str) -> FingerprintRecord:
        """Fingerprint one file; read failures become error records"""
        try:
            with open(path, "rb") as f:
                data = f.read(self.sample_size)
        except OSError as e:
            return FingerprintRecord(path, error=str(e))

        hasher = self._get_hasher()
        hasher.update(data)
        return FingerprintRecord(path, digest=hasher.hexdigest(), bytes_read=len(data))


class FingerprintEngine:
    """Fingerprint same-size buckets with a bounded number of open files

    ``fs_limit`` caps the number of workers in flight for the lifetime of
    the engine; 0 means unbounded.
    """

    def __init__(self, fingerprinter: Fingerprinter, fs_limit: int = 0, verbose: bool = False):
        if fs_limit < 0:
            raise ValueError("fs_limit cannot be negative")
        self.fingerprinter = fingerprinter
        self.fs_limit = fs_limit
        self.verbose = verbose
        self._gate = threading.BoundedSemaphore(fs_limit) if fs_limit > 0 else None

        self.files_hashed = 0
        self.bytes_read = 0
        self.errors: List[FingerprintRecord] = []

    def _worker(self, path: str, results: "queue.Queue[FingerprintRecord]") -> None:
        try:
            if self.verbose:
                logger.info(f'About to read "{path}"')
            try:
                record = self.fingerprinter.compute(path)
            except Exception as e:
                record = FingerprintRecord(path, error=f"Hash error: {e}")
            results.put(record)
        finally:
            if self._gate is not None:
                self._gate.release()

    def _launch(self, paths: Sequence[str]) -> "queue.Queue[FingerprintRecord]":
        results: "queue.Queue[FingerprintRecord]" = queue.Queue()

        for i, path in enumerate(paths):
            if self._gate is not None:
                self._gate.acquire()
            worker = threading.Thread(
                target=self._worker,
                args=(path, results),
                name=f"fingerprint-{i}",
                daemon=True,
            )
            try:
                worker.start()
            except RuntimeError:
                if self._gate is not None:
                    self._gate.release()
                raise

        return results

    def hash_bucket(self, paths: Sequence[str]) -> DigestGroups:
        """Return ``digest -> sorted paths`` for one bucket"""
        if self.verbose:
            logger.info(f"Hashing files: {list(paths)}")

        results = self._launch(paths)
        groups: DigestGroups = defaultdict(list)

        for _ in range(len(paths)):
            record = results.get()
            self.bytes_read += record.bytes_read

            if not record.ok:
                self.errors.append(record)
                print(f"hash returned an error: {record.path}: {record.error}")
                logger.debug(f"Fingerprint failed for {record.path}: {record.error}")
                continue

            self.files_hashed += 1
            groups[record.digest].append(record.path)
            if self.verbose:
                logger.info(f"calculated {self.fingerprinter.algorithm} for file: {record.path}")

        return {digest: sorted(group) for digest, group in groups.items()}


def verify_identical(path1: str, path2: str, chunk_size: int = COMPARE_CHUNK_SIZE) -> bool:
    """Byte-by-byte comparison"""
    try:
        with open(path1, "rb") as f1, open(path2, "rb") as f2:
            while True:
                chunk1 = f1.read(chunk_size)
                chunk2 = f2.read(chunk_size)

                if chunk1 != chunk2:
                    return False

                if not chunk1:  # EOF
                    return True
    except OSError as e:
        logger.warning(f"Could not compare {path1} and {path2}: {e}")
        return False
