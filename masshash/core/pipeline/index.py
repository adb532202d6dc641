"""
Sorted, thread-safe hash -> paths index.

HashIndex is the result of a hashing run. Keys are HashOnly identities
ordered by hash string; each key maps to the paths sharing that content,
ordered by natural Path ordering. A path appears under exactly one hash.

Every read and write takes the index lock, and reads return snapshots
(tuples, or views over a copied dict), so an index can be shared between
threads after it is built.

    index = hash_files(paths)
    for identity, paths in index.duplicates().items():
        print(identity.hash, [str(p) for p in paths])
"""

import threading
from bisect import insort
from pathlib import Path
from typing import (
    Dict,
    ItemsView,
    Iterable,
    Iterator,
    KeysView,
    List,
    Mapping,
    Optional,
    Tuple,
    Union,
    ValuesView,
)

from masshash.core.exceptions import IndexConflictError
from masshash.core.identity import ContentIdentity, HashOnly

IndexKey = Union[ContentIdentity, str]
PathLike = Union[str, Path]


def _as_key(key: IndexKey) -> HashOnly:
    """Normalize a key to a hash-only identity."""
    if isinstance(key, HashOnly):
        return key
    if isinstance(key, ContentIdentity):
        return key.drop_data()
    if isinstance(key, str):
        return HashOnly(key)
    raise TypeError(f"Index keys must be identities or hash strings, got {type(key).__name__}")


class HashIndex(Mapping[HashOnly, Tuple[Path, ...]]):
    """
    Read-mostly multimap from content identity to paths.

    Lookups accept an identity (either variant) or a plain hash string.
    """

    def __init__(
        self, groups: Optional[Mapping[IndexKey, Iterable[PathLike]]] = None
    ) -> None:
        self._lock = threading.RLock()
        self._entries: Dict[HashOnly, List[Path]] = {}
        self._owners: Dict[Path, HashOnly] = {}
        if groups:
            self._build(groups)

    def _build(self, groups: Mapping[IndexKey, Iterable[PathLike]]) -> None:
        """Merge unsorted groups, then sort once by hash and by path."""
        buckets: Dict[HashOnly, set] = {}
        owners: Dict[Path, HashOnly] = {}

        for key, paths in groups.items():
            identity = _as_key(key)
            bucket = buckets.setdefault(identity, set())
            for raw_path in paths:
                path = Path(raw_path)
                owner = owners.setdefault(path, identity)
                if owner != identity:
                    raise IndexConflictError(
                        f"Path {path} indexed under both {owner.hash} and {identity.hash}"
                    )
                bucket.add(path)

        self._entries = {
            identity: sorted(buckets[identity])
            for identity in sorted(buckets)
            if buckets[identity]
        }
        self._owners = owners

    # ------------------------------------------------------------------
    # Mapping protocol
    # ------------------------------------------------------------------

    def __getitem__(self, key: IndexKey) -> Tuple[Path, ...]:
        try:
            identity = _as_key(key)
        except (TypeError, ValueError) as e:
            raise KeyError(key) from e
        with self._lock:
            return tuple(self._entries[identity])

    def __iter__(self) -> Iterator[HashOnly]:
        with self._lock:
            return iter(list(self._entries))

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        try:
            identity = _as_key(key)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return False
        with self._lock:
            return identity in self._entries

    def keys(self) -> KeysView[HashOnly]:
        return self.snapshot().keys()

    def values(self) -> ValuesView[Tuple[Path, ...]]:
        return self.snapshot().values()

    def items(self) -> ItemsView[HashOnly, Tuple[Path, ...]]:
        return self.snapshot().items()

    def __repr__(self) -> str:
        return f"HashIndex(hashes={len(self)}, paths={self.path_count})"

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def snapshot(self) -> Dict[HashOnly, Tuple[Path, ...]]:
        """Consistent copy of the whole index, in index order."""
        with self._lock:
            return {key: tuple(paths) for key, paths in self._entries.items()}

    def hashes(self) -> List[str]:
        """All hash strings, ascending."""
        with self._lock:
            return [key.hash for key in self._entries]

    def paths(self) -> List[Path]:
        """Every indexed path, ordered by hash then path."""
        with self._lock:
            return [path for paths in self._entries.values() for path in paths]

    @property
    def path_count(self) -> int:
        """Number of indexed paths across all hashes."""
        with self._lock:
            return len(self._owners)

    def identity_of(self, path: PathLike) -> HashOnly:
        """
        Reverse lookup: the identity a path is indexed under.

        Raises:
            KeyError: If the path is not indexed.
        """
        with self._lock:
            return self._owners[Path(path)]

    def duplicates(self) -> "HashIndex":
        """New index holding only hashes shared by more than one path."""
        with self._lock:
            groups = {
                key: list(paths)
                for key, paths in self._entries.items()
                if len(paths) > 1
            }
        return HashIndex(groups)

    def to_dict(self) -> Dict[str, List[str]]:
        """Plain ``{hash: [path, ...]}`` in index order, for reporting."""
        with self._lock:
            return {
                key.hash: [str(path) for path in paths]
                for key, paths in self._entries.items()
            }

    # ------------------------------------------------------------------
    # Synchronized mutation
    # ------------------------------------------------------------------

    def put(self, key: IndexKey, path: PathLike) -> bool:
        """
        Index a path under a hash, keeping both orderings.

        Returns:
            True if the path was added, False if it was already present
            under the same hash.

        Raises:
            IndexConflictError: If the path is indexed under another hash.
        """
        identity = _as_key(key)
        path = Path(path)
        with self._lock:
            owner = self._owners.get(path)
            if owner is not None:
                if owner != identity:
                    raise IndexConflictError(
                        f"Path {path} indexed under both {owner.hash} and {identity.hash}"
                    )
                return False

            self._owners[path] = identity
            if identity in self._entries:
                insort(self._entries[identity], path)
            else:
                self._entries[identity] = [path]
                self._entries = {k: self._entries[k] for k in sorted(self._entries)}
            return True

    def discard(self, path: PathLike) -> bool:
        """
        Remove a path; drops its hash when no paths remain.

        Returns:
            True if the path was indexed.
        """
        path = Path(path)
        with self._lock:
            identity = self._owners.pop(path, None)
            if identity is None:
                return False
            paths = self._entries[identity]
            paths.remove(path)
            if not paths:
                del self._entries[identity]
            return True

