"""MassHash - parallel content hashing and duplicate detection.

Hashes large file sets on a bounded worker pool and groups paths by
identical content into a deterministic, sorted hash -> paths index.

    from masshash import hash_files
    index = hash_files(Path("assets").rglob("*"))
    duplicates = index.duplicates()
"""

__version__ = "1.0.0"

from masshash.core.identity import ContentIdentity, HashOnly, Materialized
from masshash.core.integrity import IntegrityError, IntegrityProblem
from masshash.core.pipeline.hasher import (
    HasherOptions,
    ParallelHasher,
    PathRef,
    hash_files,
)
from masshash.core.pipeline.index import HashIndex

__all__ = [
    "__version__",
    "ContentIdentity",
    "Materialized",
    "HashOnly",
    "IntegrityError",
    "IntegrityProblem",
    "HasherOptions",
    "ParallelHasher",
    "PathRef",
    "hash_files",
    "HashIndex",
]
