"""
Content identity: a value wrapping raw bytes and/or their hash.

A ContentIdentity is one of two variants:

**Materialized**
    Holds the raw bytes and their hash. The hash is always the digest of
    the data; building one with a mismatched expected hash raises
    IntegrityError, so an invalid instance never exists.

**HashOnly**
    Holds just the hash. Produced by ``drop_data()`` (or ``of()``) and used
    as a cheap index key once the bytes are no longer needed.

Equality, ordering and ``__hash__`` depend only on the hash string, so both
variants are interchangeable as dictionary keys:

    blob = ContentIdentity.from_bytes(b"test")
    key = blob.drop_data()
    assert blob == key and {key: 1}[blob] == 1
"""

from abc import ABC, abstractmethod
from functools import total_ordering
from pathlib import Path
from typing import Any, BinaryIO, Optional, Union

from masshash.core.digest import DigestFunc, sha1_hex
from masshash.core.exceptions import DataAlreadyDroppedError, DataUnavailableError
from masshash.core.integrity import IntegrityError

BytesLike = Union[bytes, bytearray, memoryview]
HashLike = Union[str, "ContentIdentity"]


def _hash_value(hash: HashLike) -> str:
    """Accept either a hash string or an identity."""
    if isinstance(hash, ContentIdentity):
        return hash.hash
    if isinstance(hash, str):
        return hash
    raise TypeError(f"Expected hash string or ContentIdentity, got {type(hash).__name__}")


@total_ordering
class ContentIdentity(ABC):
    """
    Base class for content identities, compared by hash only.

    Use the factory methods rather than instantiating variants directly:
    from_bytes(), from_path(), from_stream() and of().
    """

    __slots__ = ("_hash",)

    def __init__(self, hash: str) -> None:
        if not isinstance(hash, str):
            raise TypeError(f"Hash must be a string, got {type(hash).__name__}")
        if not hash:
            raise ValueError("Hash cannot be empty")
        self._hash = hash

    @property
    def hash(self) -> str:
        """Hex digest identifying the content."""
        return self._hash

    @property
    @abstractmethod
    def data(self) -> bytes:
        """Raw bytes; raises DataUnavailableError once dropped."""

    @property
    @abstractmethod
    def is_transient(self) -> bool:
        """True when the identity no longer holds its data."""

    @abstractmethod
    def drop_data(self) -> "HashOnly":
        """Return a hash-only identity sharing this hash."""

    @abstractmethod
    def verify(self) -> None:
        """Recompute the digest of the data and compare it to the hash."""

    def hash_equals(self, other: HashLike) -> bool:
        """Compare against another identity or a hash string."""
        return self._hash == _hash_value(other)

    def data_equals(self, other: Union[BytesLike, "ContentIdentity"]) -> bool:
        """Compare raw bytes against bytes or another identity's data."""
        if isinstance(other, ContentIdentity):
            return self.data == other.data
        return self.data == bytes(other)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ContentIdentity):
            return self._hash == other._hash
        return NotImplemented

    def __lt__(self, other: object) -> bool:
        if isinstance(other, ContentIdentity):
            return self._hash < other._hash
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._hash)

    def __str__(self) -> str:
        return self._hash

    def __repr__(self) -> str:
        return f"{type(self).__name__}(hash={self._hash!r})"

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    @staticmethod
    def of(hash: str) -> "HashOnly":
        """Identity for a known hash, with no data."""
        return HashOnly(hash)

    @staticmethod
    def from_bytes(
        data: BytesLike,
        expected_hash: Optional[HashLike] = None,
        *,
        digest: DigestFunc = sha1_hex,
    ) -> "Materialized":
        """
        Hash bytes, optionally checking them against an expected hash.

        Args:
            data: Content to hash. Copied, so later mutation of a bytearray
                does not affect the identity.
            expected_hash: If given, the computed hash must match it.
            digest: Digest function to use.

        Returns:
            Materialized identity.

        Raises:
            TypeError: If data is None or not bytes-like.
            IntegrityError: If expected_hash does not match.
        """
        return Materialized(data, expected_hash, digest=digest)

    @staticmethod
    def from_path(
        path: Union[str, Path],
        expected_hash: Optional[HashLike] = None,
        *,
        digest: DigestFunc = sha1_hex,
    ) -> "Materialized":
        """
        Read a whole file and hash it.

        Raises:
            OSError: If the file cannot be read.
            IntegrityError: If expected_hash does not match.
        """
        data = Path(path).read_bytes()
        return Materialized(data, expected_hash, digest=digest)

    @staticmethod
    def from_stream(
        stream: BinaryIO,
        expected_hash: Optional[HashLike] = None,
        *,
        digest: DigestFunc = sha1_hex,
    ) -> "Materialized":
        """Read a binary stream to the end and hash its content."""
        return Materialized(stream.read(), expected_hash, digest=digest)


class Materialized(ContentIdentity):
    """Identity that still holds its data."""

    __slots__ = ("_data", "_digest")

    def __init__(
        self,
        data: BytesLike,
        hash: Optional[HashLike] = None,
        *,
        digest: DigestFunc = sha1_hex,
    ) -> None:
        if data is None:
            raise TypeError("Input bytes cannot be None")
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise TypeError(f"Expected bytes-like data, got {type(data).__name__}")

        payload = bytes(data)
        actual = digest(payload)
        if hash is not None:
            expected = _hash_value(hash)
            if actual != expected:
                raise IntegrityError.hash_mismatch(expected, actual)

        super().__init__(actual)
        self._data = payload
        self._digest = digest

    @property
    def data(self) -> bytes:
        return self._data

    @property
    def is_transient(self) -> bool:
        return False

    def drop_data(self) -> "HashOnly":
        """
        Return a new HashOnly identity with the same hash.

        This instance keeps its data for as long as it stays referenced.
        """
        return HashOnly(self._hash)

    def verify(self) -> None:
        """
        Raises:
            IntegrityError: If the data no longer hashes to the stored hash.
        """
        actual = self._digest(self._data)
        if actual != self._hash:
            raise IntegrityError.hash_mismatch(self._hash, actual)

    def __reduce__(self) -> Any:
        return (_rebuild_materialized, (self._data, self._hash, self._digest))


def _rebuild_materialized(
    data: bytes, hash: str, digest: DigestFunc
) -> Materialized:
    return Materialized(data, hash, digest=digest)


class HashOnly(ContentIdentity):
    """Identity whose data was dropped, or never held."""

    __slots__ = ()

    @property
    def data(self) -> bytes:
        raise DataUnavailableError("Data unavailable: was the data dropped?")

    @property
    def is_transient(self) -> bool:
        return True

    def drop_data(self) -> "HashOnly":
        raise DataAlreadyDroppedError("Data already dropped")

    def verify(self) -> None:
        raise DataUnavailableError(
            f"Nothing to verify: identity {self._hash} holds no data"
        )

    def __reduce__(self) -> Any:
        return (HashOnly, (self._hash,))
