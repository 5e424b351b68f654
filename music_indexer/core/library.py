from __future__ import annotations

import logging
from pathlib import Path

from music_indexer.core import MusicLibraryError, MusicLibraryNotReadyError
from music_indexer.core.artwork import AlbumArtCache
from music_indexer.core.db.models import (
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
from music_indexer.core.library_db import LibraryDb
from music_indexer.core.metadata import MetadataExtractor
from music_indexer.core.scanner import LibraryScanner, ScanReport
from music_indexer.core.tags import TagReader

logger = logging.getLogger(__name__)

__all__ = [
    "Album",
    "AlbumId",
    "Artist",
    "ArtistId",
    "MusicDir",
    "MusicDirId",
    "MusicLibrary",
    "MusicLibraryError",
    "MusicLibraryNotReadyError",
    "Track",
    "TrackId",
    "TrackMetadata",
]


class MusicLibrary:
    """
    High-level facade for the music library.

    This is the surface host applications and the command line use: schema
    init, scanning, get-or-create per entity, removal and flat enumeration.

    Dependencies:
    - `LibraryDb` for persistence
    - `MetadataExtractor` + `AlbumArtCache` for tags and album art
    - `LibraryScanner` for walking directories
    """

    def __init__(
        self,
        *,
        db: LibraryDb,
        data_dir: Path,
        tag_reader: TagReader | None = None,
    ) -> None:
        self._db = db
        self._data_dir = Path(data_dir)
        self._tag_reader = tag_reader
        self._art_cache: AlbumArtCache | None = None
        self._scanner: LibraryScanner | None = None
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    async def initialize(self) -> None:
        """
        Initialize underlying storage and prepare the library.

        Contract:
        - `LibraryDb` must already be open.
        - schema/migrations are ensured here; `SchemaInitError` propagates.
        """
        if not self._db.is_open:
            raise MusicLibraryError(
                "LibraryDb is not open. Open it before initializing MusicLibrary."
            )

        await self._db.ensure_schema()
        self._art_cache = AlbumArtCache(self._data_dir)
        extractor = MetadataExtractor(
            db=self._db, art_cache=self._art_cache, tag_reader=self._tag_reader
        )
        self._scanner = LibraryScanner(db=self._db, extractor=extractor)
        self._initialized = True

    # ---- Scanning ----

    async def scan(self, path: str | Path) -> MusicDirId | None:
        return await self._require_scanner().scan(path)

    async def scan_with_report(self, path: str | Path) -> ScanReport | None:
        return await self._require_scanner().scan_with_report(path)

    async def rebuild(self) -> list[ScanReport]:
        """Re-scan all known music directories ("build library")."""
        return await self._require_scanner().rebuild()

    async def prune_missing(self) -> int:
        return await self._require_scanner().prune_missing()

    # ---- Removal ----

    async def remove_directory(self, path: str | Path) -> bool:
        self._require_initialized()
        return await self._db.remove_music_dir(path)

    async def remove_track(self, track_id: TrackId) -> bool:
        self._require_initialized()
        return await self._db.remove_track(track_id)

    async def tracks_of_directory(self, mdir_id: MusicDirId) -> list[TrackId]:
        self._require_initialized()
        return await self._db.track_ids_of_music_dir(mdir_id)

    # ---- Identity resolution ----

    async def get_or_create_music_dir(self, path: str | Path) -> MusicDirId | None:
        self._require_initialized()
        mdir_id = await self._db.get_or_create_music_dir(path)
        await self._db.commit()
        return mdir_id

    async def get_or_create_artist(self, name: str) -> ArtistId | None:
        self._require_initialized()
        artist_id = await self._db.get_or_create_artist(name)
        await self._db.commit()
        return artist_id

    async def get_or_create_album(
        self, name: str, artist_id: ArtistId | None = None
    ) -> AlbumId | None:
        self._require_initialized()
        album_id = await self._db.get_or_create_album(name, artist_id)
        await self._db.commit()
        return album_id

    async def get_or_create_track(
        self, file_path: str | Path, parent_dir_id: MusicDirId
    ) -> TrackId | None:
        self._require_initialized()
        track_id = await self._db.get_or_create_track(file_path, parent_dir_id)
        await self._db.commit()
        return track_id

    # ---- Browse APIs ----

    async def get_music_dirs(self) -> tuple[MusicDir, ...]:
        self._require_initialized()
        return tuple(await self._db.list_music_dirs())

    async def get_artists(self) -> tuple[Artist, ...]:
        self._require_initialized()
        return tuple(await self._db.list_artists())

    async def get_albums(self) -> tuple[Album, ...]:
        self._require_initialized()
        return tuple(await self._db.list_albums())

    async def get_tracks(self) -> tuple[Track, ...]:
        """Return all tracks; `Track.metadata` is None for untagged files."""
        self._require_initialized()
        return tuple(await self._db.list_tracks())

    async def get_artist(self, artist_id: ArtistId) -> Artist | None:
        self._require_initialized()
        return await self._db.get_artist(artist_id)

    async def get_album(self, album_id: AlbumId) -> Album | None:
        self._require_initialized()
        return await self._db.get_album(album_id)

    async def get_track(self, track_id: TrackId) -> Track | None:
        self._require_initialized()
        return await self._db.get_track(track_id)

    async def get_track_metadata(self, track_id: TrackId) -> TrackMetadata | None:
        self._require_initialized()
        return await self._db.get_track_metadata(track_id)

    def album_art_path(self, album_id: AlbumId) -> Path | None:
        """Path of the cached album art, or None if this album has none cached."""
        cache = self._require_art_cache()
        return cache.path_for(album_id) if cache.has(album_id) else None

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise MusicLibraryNotReadyError(
                "MusicLibrary is not initialized. Call await MusicLibrary.initialize() first."
            )

    def _require_scanner(self) -> LibraryScanner:
        self._require_initialized()
        assert self._scanner is not None
        return self._scanner

    def _require_art_cache(self) -> AlbumArtCache:
        self._require_initialized()
        assert self._art_cache is not None
        return self._art_cache
