"""
Centralized Exception Hierarchy for MassHash.

This module defines the custom exceptions raised by MassHash.
All exceptions inherit from MassHashError for easy catching.

Each exception includes:
- error_code: Unique identifier for documentation lookup (e.g., "MH-HASH-001")
- why_it_happened: Explanation of the root cause
- how_to_fix: Actionable steps to resolve the issue

Usage
-----
    from masshash.core.exceptions import MassHashError, HashingError

    try:
        index = hash_files(paths)
    except HashingError as e:
        logger.error(f"Hashing failed: {e}")
    except MassHashError as e:
        logger.error(f"MassHash error: {e}")

Exception Hierarchy
-------------------
    MassHashError (base)
    ├── ConfigurationError
    ├── IdentityStateError
    │   ├── DataUnavailableError
    │   └── DataAlreadyDroppedError
    ├── HashingError
    │   └── HashingTimeoutError
    ├── IndexConflictError
    └── IntegrityError          (defined in masshash.core.integrity)
"""

from typing import List, Optional


def get_root_cause(exc: BaseException) -> BaseException:
    """Extract the root cause from a chain of exceptions.

    Follows nested __cause__ and __context__ attributes to find
    the original error that started the chain.

    Args:
        exc: Exception to analyze

    Returns:
        Root cause exception (may be the same as input)
    """
    seen = set()
    current = exc

    while current is not None:
        if id(current) in seen:
            break
        seen.add(id(current))

        # Prefer explicit cause over implicit context
        if current.__cause__ is not None:
            current = current.__cause__
        elif current.__context__ is not None:
            current = current.__context__
        else:
            break

    return current


class MassHashError(Exception):
    """
    Base exception for all MassHash errors.

    Includes helpful error information:
    - error_code: Unique code for documentation lookup
    - why_it_happened: Explanation of the root cause
    - how_to_fix: List of actionable suggestions

    Example
    -------
        try:
            index = ParallelHasher(options).hash_files(paths)
        except MassHashError as e:
            logger.error(f"Hashing failed: {e}")
            print(f"Fix: {e.how_to_fix}")
    """

    error_code: str = "MH-ERR-000"
    why_it_happened: str = "An unexpected error occurred"
    how_to_fix: List[str] = ["Check the error message for details"]

    def __init__(
        self,
        message: str = "",
        *,
        error_code: Optional[str] = None,
        why_it_happened: Optional[str] = None,
        how_to_fix: Optional[List[str]] = None,
    ) -> None:
        """Initialize MassHashError with helpful information.

        Args:
            message: Human-readable error message
            error_code: Unique identifier (e.g., "MH-HASH-001")
            why_it_happened: Explanation of root cause
            how_to_fix: List of actionable fix suggestions
        """
        super().__init__(message)

        if error_code is not None:
            self.error_code = error_code
        if why_it_happened is not None:
            self.why_it_happened = why_it_happened
        if how_to_fix is not None:
            self.how_to_fix = how_to_fix

    @property
    def user_message(self) -> str:
        """Get the user-friendly error message."""
        return str(self)

    def get_root_cause(self) -> BaseException:
        """Get the root cause of this exception chain."""
        return get_root_cause(self)


# ============================================================================
# Configuration Exceptions
# ============================================================================


class ConfigurationError(MassHashError):
    """
    Raised when the hasher or the application is misconfigured.

    This occurs when:
    - No files remain after filtering
    - A predicate, callback or digest is not callable
    - A configuration file is missing or invalid
    """

    error_code = "MH-CFG-001"
    why_it_happened = "The hashing run was configured with invalid or empty input"
    how_to_fix = [
        "Check that the input paths exist and are regular files",
        "Loosen the inclusion predicate or extension filter",
        "Validate the configuration file syntax",
    ]


# ============================================================================
# Content Identity Exceptions
# ============================================================================


class IdentityStateError(MassHashError):
    """
    Base exception for operations invalid in the identity's current state.
    """

    error_code = "MH-ID-000"
    why_it_happened = "The operation is not valid for a hash-only identity"
    how_to_fix = ["Keep a reference to the materialized identity"]


class DataUnavailableError(IdentityStateError):
    """
    Raised when raw data is requested from a hash-only identity.

    Example
    -------
        dropped = ContentIdentity.from_bytes(b"test").drop_data()
        dropped.data
        # Raises: DataUnavailableError("Data unavailable: was the data dropped?")
    """

    error_code = "MH-ID-001"
    why_it_happened = "The identity's data was dropped to conserve memory"
    how_to_fix = [
        "Read the data before calling drop_data()",
        "Re-read the file with ContentIdentity.from_path()",
    ]


class DataAlreadyDroppedError(IdentityStateError):
    """
    Raised when drop_data() is called on an identity without data.
    """

    error_code = "MH-ID-002"
    why_it_happened = "drop_data() was called on an identity that holds no data"
    how_to_fix = ["Call drop_data() only once per materialized identity"]


# ============================================================================
# Pipeline Exceptions
# ============================================================================


class HashingError(MassHashError):
    """
    Raised when a parallel hashing batch fails.

    The batch is all-or-nothing: any worker failure (unreadable file,
    integrity mismatch raised by the callback, unexpected fault) aborts the
    whole run. The worker's exception is available as __cause__.
    """

    error_code = "MH-HASH-001"
    why_it_happened = (
        "A worker failed while hashing its files, so no partial index was "
        "produced"
    )
    how_to_fix = [
        "Inspect the chained cause for the failing file",
        "Check file permissions and that files are not being modified",
        "Re-run once the failing file is fixed or excluded",
    ]


class HashingTimeoutError(HashingError):
    """
    Raised when a hashing batch exceeds the caller-imposed deadline.
    """

    error_code = "MH-HASH-002"
    why_it_happened = "The hashing batch did not finish before its deadline"
    how_to_fix = [
        "Increase timeout_sec",
        "Increase the worker count",
        "Hash a smaller set of files",
    ]


class IndexConflictError(MassHashError):
    """
    Raised when one path would be indexed under two different hashes.

    This usually means a callback renamed two different files to the same
    path.
    """

    error_code = "MH-IDX-001"
    why_it_happened = "The same path was associated with two different hashes"
    how_to_fix = ["Make sure the per-file callback maps files to unique paths"]
