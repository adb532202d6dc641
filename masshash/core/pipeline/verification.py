"""
Caller-driven batch verification.

The hashing pass itself is fail-fast per batch. These helpers are for the
other case: checking many identities, or a whole index against a manifest
of expected hashes, and reporting every failure at once in a single
IntegrityError.

    manifest = {"textures/grass.png": "a94a8fe5...", ...}
    index = hash_files(root.rglob("*"), callback=relativize(root))
    verify_index(index, manifest)   # raises one IntegrityError listing all problems
"""

from pathlib import Path
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Union

from masshash.core.exceptions import IdentityStateError
from masshash.core.identity import ContentIdentity, Materialized
from masshash.core.integrity import IntegrityError, IntegrityProblem
from masshash.core.pipeline.hasher import FileCallback, PathRef
from masshash.core.pipeline.index import HashIndex

PathLike = Union[str, Path]


def verify_all(
    identities: Iterable[ContentIdentity],
    message: str = "Integrity verification failed",
) -> int:
    """
    Verify every identity, collecting all failures.

    Hash-only identities cannot be verified and are reported as problems.

    Returns:
        Number of identities verified.

    Raises:
        IntegrityError: One error carrying a problem per failed identity.
    """
    problems: List[IntegrityProblem] = []
    count = 0
    for identity in identities:
        count += 1
        try:
            identity.verify()
        except (IntegrityError, IdentityStateError) as exc:
            problems.append(IntegrityProblem.from_thrown(exc))

    if problems:
        raise IntegrityError(message, *problems)
    return count


def verify_index(
    index: HashIndex,
    expected: Mapping[PathLike, str],
    *,
    strict: bool = False,
    message: str = "Index does not match the expected hashes",
) -> int:
    """
    Compare an index against a manifest of expected path -> hash entries.

    Problems are reported in path order: HashMismatch for changed content,
    MissingFile for manifest entries absent from the index and, when
    ``strict``, UnexpectedFile for indexed paths not in the manifest.

    Returns:
        Number of manifest entries checked.

    Raises:
        IntegrityError: If any problem was found.
    """
    normalized: Dict[Path, str] = {Path(path): hash for path, hash in expected.items()}
    problems: List[IntegrityProblem] = []

    for path in sorted(normalized):
        expected_hash = normalized[path]
        try:
            actual = index.identity_of(path)
        except KeyError:
            problems.append(
                IntegrityProblem(
                    kind="MissingFile",
                    detail=f"{path} was not found",
                    expected_hash=expected_hash,
                )
            )
            continue
        if not actual.hash_equals(expected_hash):
            problems.append(
                IntegrityProblem.hash_mismatch(expected_hash, actual.hash, str(path))
            )

    if strict:
        for path in sorted(index.paths()):
            if path not in normalized:
                problems.append(
                    IntegrityProblem(
                        kind="UnexpectedFile",
                        detail=f"{path} is not in the manifest",
                        actual_hash=index.identity_of(path).hash,
                    )
                )

    if problems:
        raise IntegrityError(message, *problems)
    return len(normalized)


def expect_hashes(
    expected: Mapping[PathLike, str],
    *,
    key: Optional[Callable[[Path], PathLike]] = None,
    require_listed: bool = False,
) -> FileCallback:
    """
    Build a hasher callback that checks each file against a manifest.

    The callback raises IntegrityError inside the worker on the first
    mismatch, which fails the whole hashing batch.

    Args:
        expected: Manifest of path -> expected hash.
        key: Maps the indexed path to its manifest key (default: as is).
        require_listed: Also fail on files missing from the manifest.
    """
    normalized: Dict[Path, str] = {Path(path): hash for path, hash in expected.items()}

    def callback(ref: PathRef, blob: Materialized) -> None:
        lookup = Path(key(ref.path)) if key is not None else ref.path
        expected_hash = normalized.get(lookup)
        if expected_hash is None:
            if require_listed:
                raise IntegrityError(
                    None,
                    IntegrityProblem(
                        kind="UnexpectedFile",
                        detail=f"{lookup} is not in the manifest",
                        actual_hash=blob.hash,
                    ),
                )
            return
        if not blob.hash_equals(expected_hash):
            raise IntegrityError.hash_mismatch(
                expected_hash, blob.hash, subject=str(lookup)
            )

    return callback
