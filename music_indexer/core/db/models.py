"""
DB models (DTOs) and small normalization helpers.

This module is intentionally lightweight:
- No DB connection knowledge
- No SQL
- Pure dataclasses + helper functions

Optional foreign keys are always `XId | None`: `None` means "absent/unknown",
never a sentinel integer.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import NewType

MusicDirId = NewType("MusicDirId", int)
ArtistId = NewType("ArtistId", int)
AlbumId = NewType("AlbumId", int)
TrackId = NewType("TrackId", int)

# Largest value SQLite can store in an INTEGER column (signed 64-bit).
SQLITE_MAX_INTEGER = 2**63 - 1


@dataclass(frozen=True, slots=True)
class MusicDir:
    """A root directory the user asked to index. `path` is canonical and unique."""

    id: MusicDirId
    path: str


@dataclass(frozen=True, slots=True)
class Artist:
    id: ArtistId
    name: str


@dataclass(frozen=True, slots=True)
class Album:
    """
    Album record as stored in SQLite.

    Identity is the pair (name, artist_id); `artist_id=None` is the
    "unknown/various artist" bucket, distinct from any named artist.
    """

    id: AlbumId
    name: str
    artist_id: ArtistId | None = None


@dataclass(frozen=True, slots=True)
class TrackMetadata:
    """
    Tag-derived metadata for one track (1:1 with `Track`).

    Notes:
    - `title` is never empty; it falls back to the file name stem.
    - `track_number` is None when the tag is missing or zero.
    """

    track_id: TrackId
    title: str
    track_number: int | None = None
    artist_id: ArtistId | None = None
    album_id: AlbumId | None = None


@dataclass(frozen=True, slots=True)
class Track:
    """
    Canonical track record as stored in SQLite.

    `file_path` is the stable unique identifier for a local file.
    `metadata` is populated by list queries that join `track_metadata`.
    """

    id: TrackId
    file_path: str
    parent_dir_id: MusicDirId
    metadata: TrackMetadata | None = None

    @property
    def title(self) -> str:
        if self.metadata is not None:
            return self.metadata.title
        return Path(self.file_path).stem


def normalize_text(value: str | None) -> str | None:
    """
    Normalize optional text fields:
    - strip whitespace
    - coerce empty strings to None
    """
    if value is None:
        return None
    v = value.strip()
    return v if v else None


def normalize_track_number(value: int | None) -> int | None:
    """
    Many encoders write 0 instead of omitting the field; treat 0 (and negatives) as absent.

    Values that do not fit a SQLite INTEGER are garbage tags and are dropped as well.
    """
    if value is None:
        return None
    n = int(value)
    return n if 0 < n <= SQLITE_MAX_INTEGER else None
