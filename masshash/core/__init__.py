"""
Core Infrastructure for MassHash.

Architecture Position
---------------------
    CLI (outermost)
      └── **Core** (you are here)
            ├── pipeline/   parallel hasher, hash index, batch verification
            └── leaf modules below

Components
----------
**Content identity (identity.py, digest.py)**
    Materialized / HashOnly values compared by hash, plus the swappable
    digest function that produces the hashes.

**Integrity (integrity.py)**
    IntegrityProblem and the aggregating IntegrityError.

**Exceptions (exceptions.py)**
    MassHashError hierarchy with error codes and fix suggestions.

**Logging (logging.py)**
    Structured logging with context binding.

**Configuration (config.py, config_loaders.py)**
    Pydantic models loaded from YAML with environment overrides.

Config is not re-exported here to avoid circular imports. Import it
directly:
    from masshash.core.config_loaders import load_config
"""

from masshash.core.digest import DigestFunc, get_digest, sha1_hex
from masshash.core.exceptions import (
    ConfigurationError,
    DataAlreadyDroppedError,
    DataUnavailableError,
    HashingError,
    HashingTimeoutError,
    IdentityStateError,
    IndexConflictError,
    MassHashError,
)
from masshash.core.identity import ContentIdentity, HashOnly, Materialized
from masshash.core.integrity import IntegrityError, IntegrityProblem

__all__ = [
    "DigestFunc",
    "get_digest",
    "sha1_hex",
    "MassHashError",
    "ConfigurationError",
    "IdentityStateError",
    "DataUnavailableError",
    "DataAlreadyDroppedError",
    "HashingError",
    "HashingTimeoutError",
    "IndexConflictError",
    "ContentIdentity",
    "Materialized",
    "HashOnly",
    "IntegrityError",
    "IntegrityProblem",
]
