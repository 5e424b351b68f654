"""
Core domain package.

This package contains the library synchronization engine: schema management,
identity resolution, metadata extraction, directory scanning and removal.
It is independent of the command surface so hosts can embed it directly.

We intentionally keep exports minimal; consumers should usually import from the
specific module they need (e.g. `music_indexer.core.library`).
"""

from __future__ import annotations

__all__: list[str] = [
    "CoreError",
    "SchemaInitError",
    "MusicLibraryError",
    "MusicLibraryNotReadyError",
]


class CoreError(Exception):
    """Base class for core-layer exceptions."""


class SchemaInitError(CoreError):
    """Raised when the store rejects schema creation. Nothing can run without a schema."""


class MusicLibraryError(CoreError):
    """Base error for MusicLibrary operations."""


class MusicLibraryNotReadyError(MusicLibraryError):
    """Raised when operations are attempted before the library is initialized."""
