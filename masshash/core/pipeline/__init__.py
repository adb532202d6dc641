"""
Parallel hashing pipeline.

    pipeline/
    ├── hasher.py        # ParallelHasher, HasherOptions, PathRef, partition
    ├── index.py         # HashIndex (sorted, thread-safe hash -> paths)
    └── verification.py  # verify_all, verify_index, expect_hashes

Usage Example
-------------
    from masshash.core.pipeline import HasherOptions, ParallelHasher

    index = ParallelHasher(HasherOptions(workers=4)).hash_files(paths)
"""

from masshash.core.pipeline.hasher import (
    FileCallback,
    HasherOptions,
    ParallelHasher,
    PathPredicate,
    PathRef,
    available_parallelism,
    chain_callbacks,
    hash_files,
    merge_partials,
    partition,
    relativize,
)
from masshash.core.pipeline.index import HashIndex
from masshash.core.pipeline.verification import expect_hashes, verify_all, verify_index

__all__ = [
    "FileCallback",
    "HasherOptions",
    "ParallelHasher",
    "PathPredicate",
    "PathRef",
    "available_parallelism",
    "chain_callbacks",
    "hash_files",
    "merge_partials",
    "partition",
    "relativize",
    "HashIndex",
    "expect_hashes",
    "verify_all",
    "verify_index",
]
