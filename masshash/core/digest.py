"""
Content digest functions.

A digest function turns raw bytes into a lowercase hex string. The pipeline
only ever sees the DigestFunc callable, so the algorithm can be swapped
without touching hashing or indexing code.

    from masshash.core.digest import get_digest
    sha256 = get_digest("sha256")
    sha256(b"test")
"""

import hashlib
from functools import lru_cache, partial
from typing import Callable

from masshash.core.exceptions import ConfigurationError

DigestFunc = Callable[[bytes], str]

DEFAULT_ALGORITHM = "sha1"


def sha1_hex(data: bytes) -> str:
    """
    Hash bytes with SHA-1.

    Args:
        data: Bytes to hash.

    Returns:
        40 lowercase hex characters, no separators.

    Raises:
        TypeError: If data is None.
    """
    if data is None:
        raise TypeError("Input bytes cannot be None")
    return hashlib.sha1(data).hexdigest()


def _hashlib_hex(name: str, data: bytes) -> str:
    """Hex digest with any hashlib algorithm; module level so partials pickle."""
    if data is None:
        raise TypeError("Input bytes cannot be None")
    return hashlib.new(name, data).hexdigest()


@lru_cache(maxsize=None)
def get_digest(algorithm: str = DEFAULT_ALGORITHM) -> DigestFunc:
    """
    Resolve a hashlib algorithm name to a digest function.

    Args:
        algorithm: Any name accepted by hashlib.new() ("sha1", "sha256",
            "blake2b", ...). Case-insensitive.

    Returns:
        Digest function producing lowercase hex.

    Raises:
        ConfigurationError: If the algorithm is unknown or has a variable
            length digest (shake_*).
    """
    name = algorithm.lower().strip()
    if name == DEFAULT_ALGORITHM:
        return sha1_hex

    if name not in hashlib.algorithms_available:
        raise ConfigurationError(f"Unknown hash algorithm: {algorithm!r}")
    if name.startswith("shake_"):
        raise ConfigurationError(
            f"Variable length algorithm not supported: {algorithm!r}"
        )

    return partial(_hashlib_hex, name)
