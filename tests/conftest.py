"""
Shared pytest fixtures and configuration for MassHash tests.

Fixture Organization
--------------------
- **make_tree**: Builds a file tree from a {relative path: bytes} mapping
- **sample_tree**: Small tree with one duplicate pair and one unique file
- **cpus**: Pins available_parallelism() for deterministic worker counts
- **reset_logging**: Restores the default logging configuration
"""

from pathlib import Path
from typing import Callable, Dict

import pytest

from masshash.core import logging as mh_logging
from masshash.core.pipeline import hasher


@pytest.fixture
def make_tree(tmp_path: Path) -> Callable[[Dict[str, bytes]], Path]:
    """Return a builder writing {relative path: content} under tmp_path."""

    def build(files: Dict[str, bytes]) -> Path:
        root = tmp_path / "tree"
        root.mkdir(exist_ok=True)
        for relative, content in files.items():
            target = root / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)
        return root

    return build


@pytest.fixture
def sample_tree(make_tree) -> Path:
    """a.txt and sub/b.txt share content; c.txt is unique."""
    return make_tree(
        {
            "a.txt": b"test",
            "sub/b.txt": b"test",
            "c.txt": b"other",
        }
    )


@pytest.fixture
def cpus(monkeypatch) -> Callable[[int], None]:
    """Pin the processor count seen by the hasher."""

    def pin(count: int) -> None:
        monkeypatch.setattr(hasher, "available_parallelism", lambda: count)

    return pin


@pytest.fixture(autouse=True)
def reset_logging():
    """Keep logging configuration from leaking between tests."""
    yield
    mh_logging.configure_logging(level="INFO")
