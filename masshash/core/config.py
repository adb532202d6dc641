"""
Configuration models for MassHash.

    MassHashConfig
    ├── HashingConfig   # workers, algorithm, deadline, extension filter
    └── LoggingConfig   # level, log file, console output

Every field has a default, so zero-config operation works. Load from YAML
with masshash.core.config_loaders.load_config().

    hashing:
      workers: 8
      algorithm: sha1
      extensions: [".pak", ".png"]
    logging:
      level: ${MASSHASH_LOG_LEVEL:INFO}
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from masshash.core.digest import DEFAULT_ALGORITHM, get_digest
from masshash.core.logging import StructuredLogger
from masshash.core.pipeline.hasher import FileCallback, HasherOptions, PathPredicate


class HashingConfig(BaseModel):
    """Parallel hashing settings."""

    workers: Optional[int] = Field(
        default=None, description="Worker count; clamped to available CPUs"
    )
    algorithm: str = Field(default=DEFAULT_ALGORITHM, description="hashlib algorithm")
    timeout_sec: Optional[float] = Field(default=None, gt=0)
    extensions: List[str] = Field(
        default_factory=list, description="Only hash files with these suffixes"
    )

    @field_validator("algorithm")
    @classmethod
    def validate_algorithm(cls, value: str) -> str:
        name = value.lower().strip()
        if name not in hashlib.algorithms_available or name.startswith("shake_"):
            raise ValueError(f"Unsupported hash algorithm: {value}")
        return name

    @field_validator("extensions")
    @classmethod
    def normalize_extensions(cls, value: List[str]) -> List[str]:
        return [ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in value]


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: str = "INFO"
    file_path: Optional[Path] = None
    console: bool = True

    @field_validator("level")
    @classmethod
    def validate_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {value}")
        return level


class MassHashConfig(BaseModel):
    """Main MassHash configuration."""

    hashing: HashingConfig = Field(default_factory=HashingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def extension_predicate(self) -> Optional[PathPredicate]:
        """Suffix filter built from ``hashing.extensions``, if any."""
        extensions = frozenset(self.hashing.extensions)
        if not extensions:
            return None

        def predicate(path: Path) -> bool:
            return path.suffix.lower() in extensions

        return predicate

    def to_options(
        self,
        predicate: Optional[PathPredicate] = None,
        callback: Optional[FileCallback] = None,
        logger: Optional[StructuredLogger] = None,
    ) -> HasherOptions:
        """
        Build HasherOptions from this configuration.

        An explicit predicate is combined (AND) with the extension filter.
        """
        suffix_filter = self.extension_predicate()
        if predicate is not None and suffix_filter is not None:
            explicit = predicate

            def combined(path: Path) -> bool:
                return suffix_filter(path) and explicit(path)

            predicate = combined
        elif suffix_filter is not None:
            predicate = suffix_filter

        return HasherOptions(
            workers=self.hashing.workers,
            predicate=predicate,
            callback=callback,
            digest=get_digest(self.hashing.algorithm),
            timeout_sec=self.hashing.timeout_sec,
            logger=logger,
        )
