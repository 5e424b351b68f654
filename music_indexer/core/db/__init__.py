"""
Internal DB subpackage.

This package splits the storage layer into focused units (models, schema and
query groups per entity kind) while keeping `LibraryDb` as the single public
interface that the rest of the codebase imports.

External code should import `LibraryDb` from `music_indexer.core.library_db`.
"""

from __future__ import annotations

# Models / DTOs
from .models import (
    Album,
    AlbumId,
    Artist,
    ArtistId,
    MusicDir,
    MusicDirId,
    Track,
    TrackId,
    TrackMetadata,
)

# Schema / migrations
from .schema import SCHEMA_VERSION, ensure_schema, migrate

__all__ = [
    # models
    "Album",
    "AlbumId",
    "Artist",
    "ArtistId",
    "MusicDir",
    "MusicDirId",
    "Track",
    "TrackId",
    "TrackMetadata",
    # schema
    "SCHEMA_VERSION",
    "ensure_schema",
    "migrate",
]
