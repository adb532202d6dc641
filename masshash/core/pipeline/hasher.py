"""
Parallel file hasher for MassHash.

Hashes a large set of files (tens of thousands) on a fixed worker pool and
groups the paths by content into a sorted, thread-safe HashIndex.

How a run works
---------------
1. Candidate paths are filtered (predicate AND regular file) into a list.
   An empty list fails fast with ConfigurationError; no pool is created.
2. The list is split into contiguous chunks of ceil(n / workers) files.
3. Each worker walks its chunk in order: read and hash the file, call the
   per-file callback, drop the data, and bucket the (possibly renamed) path
   under its hash in a worker-local dict. Workers share nothing but the
   read-only chunk list and the cancel event.
4. The driver merges every local dict into one HashIndex, sorted once by
   hash and then by path. Sorting once at the end is much faster than
   keeping a shared sorted structure up to date under contention.

A batch is all-or-nothing. The first worker failure sets the cancel event,
cancels pending chunks, joins the pool and raises HashingError with the
worker's exception as its cause. A partial index is never returned: a
missing file would silently hide a duplicate.

Usage
-----
    from masshash.core.pipeline import HasherOptions, ParallelHasher

    def relativize(ref, blob):
        ref.path = ref.path.relative_to(root)

    hasher = ParallelHasher(HasherOptions(workers=8, callback=relativize))
    index = hasher.hash_files(root.rglob("*"))
"""

import math
import os
import threading
import time
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set, TypeVar, Union

from masshash.core.digest import DigestFunc, sha1_hex
from masshash.core.exceptions import (
    ConfigurationError,
    HashingError,
    HashingTimeoutError,
)
from masshash.core.identity import ContentIdentity, HashOnly, Materialized
from masshash.core.logging import StructuredLogger, get_logger
from masshash.core.pipeline.index import HashIndex

T = TypeVar("T")
PathLike = Union[str, Path]
LocalBuckets = Dict[HashOnly, Set[Path]]


class PathRef:
    """
    Mutable reference to the path a file will be indexed under.

    Callbacks may assign ``ref.path`` to relocate the entry, e.g. to make
    it relative to a scan root.
    """

    __slots__ = ("_path",)

    def __init__(self, path: PathLike) -> None:
        self.path = path  # type: ignore[assignment]

    @property
    def path(self) -> Path:
        return self._path

    @path.setter
    def path(self, value: PathLike) -> None:
        if value is None:
            raise TypeError("Indexed path cannot be None")
        self._path = Path(value)

    def __repr__(self) -> str:
        return f"PathRef({str(self._path)!r})"


PathPredicate = Callable[[Path], bool]
FileCallback = Callable[[PathRef, Materialized], None]


def chain_callbacks(*callbacks: Optional[FileCallback]) -> Optional[FileCallback]:
    """
    Combine callbacks into one that runs them in order.

    None entries are skipped; returns None when nothing is left.
    """
    active = [callback for callback in callbacks if callback is not None]
    if not active:
        return None
    if len(active) == 1:
        return active[0]

    def chained(ref: PathRef, blob: Materialized) -> None:
        for callback in active:
            callback(ref, blob)

    return chained


def relativize(root: PathLike) -> FileCallback:
    """Callback indexing each file relative to ``root``."""
    base = Path(root)

    def callback(ref: PathRef, blob: Materialized) -> None:
        ref.path = ref.path.relative_to(base)

    return callback


def available_parallelism() -> int:
    """Number of CPUs this process may run on (at least 1)."""
    if hasattr(os, "sched_getaffinity"):
        return len(os.sched_getaffinity(0)) or 1
    return os.cpu_count() or 1


def partition(items: Sequence[T], parts: int) -> List[Sequence[T]]:
    """
    Split items into contiguous chunks of ceil(len / parts) elements.

    The last chunk may be smaller, and fewer than ``parts`` chunks are
    returned when there are not enough items to fill them.

    Raises:
        ValueError: If parts < 1.
    """
    if parts < 1:
        raise ValueError(f"parts must be >= 1, got {parts}")
    if not items:
        return []
    size = math.ceil(len(items) / parts)
    return [items[i : i + size] for i in range(0, len(items), size)]


@dataclass(frozen=True)
class HasherOptions:
    """
    Configuration for a ParallelHasher.

    Attributes:
        workers: Requested worker count. None means available parallelism;
            out-of-range values are clamped with a warning.
        predicate: Inclusion filter applied before the regular-file check.
        callback: Called with (PathRef, Materialized) for every file before
            its data is dropped. May rename the path or raise to fail the
            batch (e.g. IntegrityError from a verification).
        digest: Digest function used for every file.
        timeout_sec: Optional deadline for the whole batch.
        logger: Observability sink. Defaults to this module's logger.
    """

    workers: Optional[int] = None
    predicate: Optional[PathPredicate] = None
    callback: Optional[FileCallback] = None
    digest: DigestFunc = sha1_hex
    timeout_sec: Optional[float] = None
    logger: Optional[StructuredLogger] = None

    def __post_init__(self) -> None:
        """Validate options before any work starts."""
        if self.workers is not None and (
            isinstance(self.workers, bool) or not isinstance(self.workers, int)
        ):
            raise ConfigurationError(f"workers must be an int, got {self.workers!r}")
        if self.predicate is not None and not callable(self.predicate):
            raise ConfigurationError("predicate must be callable")
        if self.callback is not None and not callable(self.callback):
            raise ConfigurationError("callback must be callable")
        if not callable(self.digest):
            raise ConfigurationError("digest must be callable")
        if self.timeout_sec is not None and self.timeout_sec <= 0:
            raise ConfigurationError(
                f"timeout_sec must be positive, got {self.timeout_sec}"
            )


class ParallelHasher:
    """
    Hashes files on a bounded worker pool into a sorted HashIndex.

    A ParallelHasher holds no per-run state, so one instance can be reused
    for several runs, including concurrent ones.
    """

    def __init__(self, options: Optional[HasherOptions] = None) -> None:
        self._options = options or HasherOptions()
        self._logger = self._options.logger or get_logger(__name__)

    @property
    def options(self) -> HasherOptions:
        return self._options

    def resolve_workers(self) -> int:
        """
        Clamp the requested worker count into [1, available parallelism].
        """
        processors = available_parallelism()
        requested = self._options.workers
        if requested is None:
            return processors

        if requested > processors:
            self._logger.warning(
                "Requested worker count exceeds available processors; clamping",
                requested=requested,
                using=processors,
            )
            return processors
        if requested < 1:
            self._logger.warning(
                "Worker count less than 1; using 1 worker",
                requested=requested,
            )
            return 1
        return requested

    def collect_files(self, paths: Iterable[PathLike]) -> List[Path]:
        """Filter candidates by the predicate and to regular files."""
        predicate = self._options.predicate
        files: List[Path] = []
        for raw_path in paths:
            path = Path(raw_path)
            if predicate is not None and not predicate(path):
                continue
            if path.is_file():
                files.append(path)
        return files

    def hash_files(self, paths: Iterable[PathLike]) -> HashIndex:
        """
        Hash every matching file and group paths by content.

        Args:
            paths: Finite iterable of candidate paths (str or Path).

        Returns:
            HashIndex ordered by hash, then by path.

        Raises:
            ConfigurationError: If no regular file passes the filter.
            HashingError: If any worker fails; chained to the worker error.
            HashingTimeoutError: If timeout_sec elapses first.
            IndexConflictError: If two files end up under one path with
                different hashes.
        """
        workers = self.resolve_workers()
        files = self.collect_files(paths)

        # Fail fast: nothing to hash, no pool to start
        if not files:
            raise ConfigurationError("No files to hash after filtering")

        chunks = partition(files, workers)
        start_time = time.perf_counter()
        partials = self._run_chunks(chunks, workers)
        index = merge_partials(partials)
        duration_ms = (time.perf_counter() - start_time) * 1000

        self._logger.info(
            "Hashing complete",
            files=len(files),
            unique=len(index),
            workers=workers,
            duration_ms=f"{duration_ms:.1f}",
        )
        return index

    def _run_chunks(
        self, chunks: List[Sequence[Path]], workers: int
    ) -> List[LocalBuckets]:
        """
        Run one task per chunk and wait for all of them.

        The pool is always shut down and joined before this returns or
        raises, so no worker outlives the call.
        """
        cancel = threading.Event()
        executor = ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="masshash"
        )
        try:
            futures = [
                executor.submit(self._hash_chunk, chunk, cancel) for chunk in chunks
            ]
            done, not_done = wait(
                futures,
                timeout=self._options.timeout_sec,
                return_when=FIRST_EXCEPTION,
            )

            failure = _first_failure(futures, done)
            if failure is not None:
                self._abort(cancel, futures)
                self._logger.error(
                    "Worker failed; batch aborted",
                    error=f"{type(failure).__name__}: {failure}",
                )
                raise HashingError(
                    f"Hashing batch failed: {type(failure).__name__}: {failure}"
                ) from failure

            if not_done:
                self._abort(cancel, futures)
                self._logger.error(
                    "Hashing deadline exceeded; batch aborted",
                    timeout_sec=self._options.timeout_sec,
                    pending_chunks=len(not_done),
                )
                raise HashingTimeoutError(
                    f"Hashing did not finish within {self._options.timeout_sec}s"
                )

            return [future.result() for future in futures]
        finally:
            executor.shutdown(wait=True, cancel_futures=True)

    @staticmethod
    def _abort(cancel: threading.Event, futures: List["Future[LocalBuckets]"]) -> None:
        """Signal running workers to stop and drop queued chunks."""
        cancel.set()
        for future in futures:
            future.cancel()

    def _hash_chunk(
        self, chunk: Sequence[Path], cancel: threading.Event
    ) -> LocalBuckets:
        """
        Hash one chunk sequentially into a local, unsynchronized dict.

        Stops early, returning what it has, once ``cancel`` is set; the
        driver discards results of cancelled runs.
        """
        digest = self._options.digest
        callback = self._options.callback
        local: LocalBuckets = {}

        for file in chunk:
            if cancel.is_set():
                break

            blob = ContentIdentity.from_path(file, digest=digest)
            ref = PathRef(file)
            if callback is not None:
                callback(ref, blob)

            # Only the hash is kept; the bytes are released with ``blob``
            key = blob.drop_data()
            local.setdefault(key, set()).add(ref.path)

        return local


def _first_failure(
    futures: List["Future[LocalBuckets]"], done: Set["Future[LocalBuckets]"]
) -> Optional[BaseException]:
    """First failed future in submission order, for a stable error."""
    for future in futures:
        if future in done and not future.cancelled():
            error = future.exception()
            if error is not None:
                return error
    return None


def merge_partials(partials: Iterable[LocalBuckets]) -> HashIndex:
    """
    Merge worker-local buckets into one sorted HashIndex.

    Raises:
        IndexConflictError: If one path appears under two hashes.
    """
    merged: LocalBuckets = {}
    for partial in partials:
        for key, paths in partial.items():
            merged.setdefault(key, set()).update(paths)
    return HashIndex(merged)


def hash_files(paths: Iterable[PathLike], **options: object) -> HashIndex:
    """
    Shortcut for ``ParallelHasher(HasherOptions(**options)).hash_files(paths)``.
    """
    return ParallelHasher(HasherOptions(**options)).hash_files(paths)  # type: ignore[arg-type]
