"""
Metadata extraction pipeline.

Given a track already known to the library, read its tags, resolve the artist
and album identities, cache the album art once per album and persist one
`track_metadata` row.

Failures here are soft: an invalid track id, an untagged or unreadable file or
a store error all yield None so the scanner can move on to the next file.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import aiosqlite

from music_indexer.core.artwork import AlbumArtCache
from music_indexer.core.db.models import (
    AlbumId,
    ArtistId,
    TrackId,
    TrackMetadata,
    normalize_text,
    normalize_track_number,
)
from music_indexer.core.library_db import LibraryDb
from music_indexer.core.tags import MutagenTagReader, TagReader

logger = logging.getLogger(__name__)


class MetadataExtractor:
    """
    Reads tags for a track and stores the normalized result.

    Dependencies are passed in explicitly (no process-wide state), so tests can
    point the art cache at a temporary directory and swap the tag reader.
    """

    def __init__(
        self,
        *,
        db: LibraryDb,
        art_cache: AlbumArtCache,
        tag_reader: TagReader | None = None,
    ) -> None:
        self._db = db
        self._art_cache = art_cache
        self._tag_reader: TagReader = tag_reader or MutagenTagReader()

    @property
    def tag_reader(self) -> TagReader:
        return self._tag_reader

    @property
    def art_cache(self) -> AlbumArtCache:
        return self._art_cache

    async def extract_and_store(
        self, track_id: TrackId, file_path: str | Path
    ) -> TrackMetadata | None:
        path = Path(file_path)
        try:
            async with self._db.savepoint("extract_metadata_sp"):
                return await self._extract_and_store(track_id, path)
        except (aiosqlite.Error, OSError) as e:
            logger.error("Failed to store metadata for %s: %s", path, e)
            return None

    async def _extract_and_store(self, track_id: TrackId, path: Path) -> TrackMetadata | None:
        if not await self._db.track_exists(track_id):
            logger.warning("Cannot extract metadata: track id %s does not exist", track_id)
            return None

        tags = await asyncio.to_thread(self._tag_reader.read_tags, path)
        if tags is None or tags.is_empty:
            logger.debug("No tag data in %s", path)
            return None

        title = normalize_text(tags.title) or path.stem

        artist_id: ArtistId | None = None
        artist_name = normalize_text(tags.artist)
        if artist_name:
            artist_id = await self._db.get_or_create_artist(artist_name)

        album_id: AlbumId | None = None
        album_name = normalize_text(tags.album)
        if album_name:
            album_id = await self._db.get_or_create_album(album_name, artist_id)

        metadata = TrackMetadata(
            track_id=track_id,
            title=title,
            track_number=normalize_track_number(tags.track_number),
            artist_id=artist_id,
            album_id=album_id,
        )
        if await self._db.upsert_track_metadata(metadata) is None:
            return None

        # Last step: no store write may follow the art file.
        if album_id is not None:
            await self._art_cache.ensure(album_id, path, self._tag_reader)
        return metadata
