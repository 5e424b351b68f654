"""
Music library database access layer.

Goals:
- SQLite + aiosqlite, async/await friendly.
- Idempotent: every entity is resolved by its natural key, so re-running a scan
  yields the same ids and never duplicates rows.
- Per-entity failures are soft: invalid paths and dangling foreign keys are
  logged and reported as `None`/`False`, never raised.

Note:
- Models/DTOs and normalization helpers live in `music_indexer.core.db.models`
- Schema/migrations live in `music_indexer.core.db.schema`
- Query functions live in `music_indexer.core.db.queries_*` modules
- `LibraryDb` remains the public facade used by the rest of the codebase
"""

from __future__ import annotations

import contextlib
import logging
from pathlib import Path
from typing import AsyncIterator

import aiosqlite

from music_indexer.core.db import queries_albums, queries_artists, queries_dirs, queries_tracks
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
    normalize_text,
    normalize_track_number,
)
from music_indexer.core.db.schema import ensure_schema as ensure_schema_sql
from music_indexer.core.paths import (
    canonical_path,
    is_existing_dir,
    is_existing_file,
    is_storable_path,
)

logger = logging.getLogger(__name__)


class LibraryDb:
    """
    Async access layer for the music library DB.

    Usage:
        db = LibraryDb("library.sqlite3")
        await db.open()
        await db.ensure_schema()
        ... queries ...
        await db.close()

    Notes:
    - A single connection is owned by a single writer; there is no internal
      locking. Run one scan or removal pass at a time.
    """

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = str(db_path)
        self._conn: aiosqlite.Connection | None = None

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    async def open(self) -> None:
        if self._conn is not None:
            return
        self._conn = await aiosqlite.connect(self._db_path)
        self._conn.row_factory = aiosqlite.Row

        await self._conn.execute("PRAGMA foreign_keys = ON;")
        await self._conn.execute("PRAGMA journal_mode = WAL;")
        await self._conn.execute("PRAGMA synchronous = NORMAL;")
        await self._conn.execute("PRAGMA temp_store = MEMORY;")

    async def close(self) -> None:
        if self._conn is None:
            return
        await self._conn.close()
        self._conn = None

    def _require_conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("LibraryDb is not open. Call await db.open() first.")
        return self._conn

    async def ensure_schema(self) -> None:
        """
        Create or migrate schema to current version.

        Raises:
            SchemaInitError: fatal, nothing else can run without the schema.
        """
        conn = self._require_conn()
        await ensure_schema_sql(conn)

    async def commit(self) -> None:
        conn = self._require_conn()
        await conn.commit()

    async def rollback(self) -> None:
        conn = self._require_conn()
        await conn.rollback()

    @contextlib.asynccontextmanager
    async def savepoint(self, name: str) -> AsyncIterator[aiosqlite.Connection]:
        """
        Run a group of statements as one unit.

        On any exception the savepoint is rolled back and the exception re-raised,
        so partial completion is never visible.
        """
        conn = self._require_conn()
        await conn.execute(f"SAVEPOINT {name};")
        try:
            yield conn
        except BaseException:
            await conn.execute(f"ROLLBACK TO SAVEPOINT {name};")
            await conn.execute(f"RELEASE SAVEPOINT {name};")
            raise
        await conn.execute(f"RELEASE SAVEPOINT {name};")

    # ===========================================================================
    # Music directories
    # ===========================================================================

    async def lookup_music_dir_id(self, path: str | Path) -> MusicDirId | None:
        abs_path = canonical_path(path)
        if not is_storable_path(abs_path):
            return None
        return await queries_dirs.lookup_music_dir_id(self._require_conn(), str(abs_path))

    async def music_dir_exists(self, mdir_id: int) -> bool:
        return await queries_dirs.music_dir_exists(self._require_conn(), mdir_id)

    async def get_or_create_music_dir(self, path: str | Path) -> MusicDirId | None:
        """
        Resolve a directory by its canonical path, inserting it if new.

        Returns None if the path does not exist or is not a directory.
        """
        conn = self._require_conn()
        abs_path = canonical_path(path)
        if not is_existing_dir(abs_path):
            logger.warning("Path doesn't exist or is not a directory: %s", path)
            return None
        if not is_storable_path(abs_path):
            logger.warning("Path is not valid UTF-8, skipping: %r", str(abs_path))
            return None

        key = str(abs_path)
        mdir_id = await queries_dirs.lookup_music_dir_id(conn, key)
        if mdir_id is not None:
            return mdir_id

        await queries_dirs.insert_music_dir(conn, key)
        mdir_id = await queries_dirs.lookup_music_dir_id(conn, key)
        logger.info("Added music directory: %s", key)
        return mdir_id

    async def get_music_dir(self, mdir_id: int) -> MusicDir | None:
        return await queries_dirs.get_music_dir_by_id(self._require_conn(), mdir_id)

    async def list_music_dirs(self) -> list[MusicDir]:
        return await queries_dirs.list_music_dirs(self._require_conn())

    # ===========================================================================
    # Artists
    # ===========================================================================

    async def lookup_artist_id(self, name: str) -> ArtistId | None:
        artist = normalize_text(name)
        if artist is None:
            return None
        return await queries_artists.lookup_artist_id(self._require_conn(), artist)

    async def artist_exists(self, artist_id: int) -> bool:
        return await queries_artists.artist_exists(self._require_conn(), artist_id)

    async def get_or_create_artist(self, name: str) -> ArtistId | None:
        """Get or create an artist by name. Empty names resolve to None."""
        conn = self._require_conn()
        artist = normalize_text(name)
        if artist is None:
            return None

        artist_id = await queries_artists.lookup_artist_id(conn, artist)
        if artist_id is not None:
            return artist_id

        await queries_artists.insert_artist(conn, artist)
        return await queries_artists.lookup_artist_id(conn, artist)

    async def get_artist(self, artist_id: int) -> Artist | None:
        return await queries_artists.get_artist_by_id(self._require_conn(), artist_id)

    async def list_artists(self) -> list[Artist]:
        return await queries_artists.list_artists(self._require_conn())

    # ===========================================================================
    # Albums
    # ===========================================================================

    async def lookup_album_id(self, name: str, artist_id: ArtistId | None = None) -> AlbumId | None:
        album = normalize_text(name)
        if album is None:
            return None
        return await queries_albums.lookup_album_id(self._require_conn(), album, artist_id)

    async def album_exists(self, album_id: int) -> bool:
        return await queries_albums.album_exists(self._require_conn(), album_id)

    async def get_or_create_album(
        self, name: str, artist_id: ArtistId | None = None
    ) -> AlbumId | None:
        """
        Get or create an album by (name, artist_id).

        `artist_id=None` files the album under the unknown/various-artist bucket.
        A supplied `artist_id` must already exist, otherwise None is returned.
        """
        conn = self._require_conn()
        album = normalize_text(name)
        if album is None:
            return None
        if artist_id is not None and not await queries_artists.artist_exists(conn, artist_id):
            logger.warning("Cannot create album %r: artist id %s does not exist", album, artist_id)
            return None

        album_id = await queries_albums.lookup_album_id(conn, album, artist_id)
        if album_id is not None:
            return album_id

        await queries_albums.insert_album(conn, album, artist_id)
        return await queries_albums.lookup_album_id(conn, album, artist_id)

    async def get_album(self, album_id: int) -> Album | None:
        return await queries_albums.get_album_by_id(self._require_conn(), album_id)

    async def list_albums(self) -> list[Album]:
        return await queries_albums.list_albums(self._require_conn())

    # ===========================================================================
    # Tracks
    # ===========================================================================

    async def lookup_track_id(self, file_path: str | Path) -> TrackId | None:
        abs_path = canonical_path(file_path)
        if not is_storable_path(abs_path):
            return None
        return await queries_tracks.lookup_track_id(self._require_conn(), str(abs_path))

    async def track_exists(self, track_id: int) -> bool:
        return await queries_tracks.track_exists(self._require_conn(), track_id)

    async def get_or_create_track(
        self, file_path: str | Path, parent_dir_id: MusicDirId | None
    ) -> TrackId | None:
        """
        Resolve a track by its canonical file path, inserting it if new.

        Returns None if `parent_dir_id` is not an existing music directory, or
        the file does not exist / is not a regular file.
        """
        conn = self._require_conn()
        if parent_dir_id is None or not await queries_dirs.music_dir_exists(conn, parent_dir_id):
            logger.warning(
                "Cannot add track %s: music directory id %s does not exist", file_path, parent_dir_id
            )
            return None

        abs_path = canonical_path(file_path)
        if not is_existing_file(abs_path):
            logger.warning("Path doesn't exist or is not a regular file: %s", file_path)
            return None
        if not is_storable_path(abs_path):
            logger.warning("Path is not valid UTF-8, skipping: %r", str(abs_path))
            return None

        key = str(abs_path)
        track_id = await queries_tracks.lookup_track_id(conn, key)
        if track_id is not None:
            return track_id

        await queries_tracks.insert_track(conn, key, parent_dir_id)
        return await queries_tracks.lookup_track_id(conn, key)

    async def get_track(self, track_id: int) -> Track | None:
        return await queries_tracks.get_track_by_id(self._require_conn(), track_id)

    async def list_tracks(self) -> list[Track]:
        return await queries_tracks.list_tracks(self._require_conn())

    async def track_ids_of_music_dir(self, mdir_id: int) -> list[TrackId]:
        """Ids of the tracks bound to a music directory (empty for unknown ids)."""
        return await queries_tracks.list_track_ids_by_music_dir(self._require_conn(), mdir_id)

    # ===========================================================================
    # Track metadata
    # ===========================================================================

    async def get_track_metadata(self, track_id: int) -> TrackMetadata | None:
        return await queries_tracks.get_track_metadata(self._require_conn(), track_id)

    async def upsert_track_metadata(self, metadata: TrackMetadata) -> TrackId | None:
        """
        Insert or replace the metadata row of a track.

        Every referenced id must exist; otherwise nothing is written and None
        is returned.
        """
        conn = self._require_conn()
        title = normalize_text(metadata.title)
        if title is None:
            logger.warning("Refusing metadata without title for track id %s", metadata.track_id)
            return None
        if not await queries_tracks.track_exists(conn, metadata.track_id):
            logger.warning("Cannot store metadata: track id %s does not exist", metadata.track_id)
            return None
        if metadata.artist_id is not None and not await queries_artists.artist_exists(
            conn, metadata.artist_id
        ):
            logger.warning("Cannot store metadata: artist id %s does not exist", metadata.artist_id)
            return None
        if metadata.album_id is not None and not await queries_albums.album_exists(
            conn, metadata.album_id
        ):
            logger.warning("Cannot store metadata: album id %s does not exist", metadata.album_id)
            return None

        await queries_tracks.replace_track_metadata(
            conn,
            TrackMetadata(
                track_id=metadata.track_id,
                title=title,
                track_number=normalize_track_number(metadata.track_number),
                artist_id=metadata.artist_id,
                album_id=metadata.album_id,
            ),
        )
        return metadata.track_id

    # ===========================================================================
    # Removal
    # ===========================================================================

    async def remove_track(self, track_id: int) -> bool:
        """Delete a track and its metadata. Returns False for unknown ids or on error."""
        conn = self._require_conn()
        if not await queries_tracks.track_exists(conn, track_id):
            return False
        try:
            async with self.savepoint("remove_track_sp"):
                await queries_tracks.delete_track_metadata(conn, track_id)
                await queries_tracks.delete_track(conn, track_id)
            await conn.commit()
        except aiosqlite.Error as e:
            logger.error("Failed to remove track id %s: %s", track_id, e)
            return False
        return True

    async def remove_music_dir(self, path: str | Path) -> bool:
        """
        Remove a music directory together with its tracks and their metadata.

        Deletes walk the foreign-key chain bottom-up (metadata, tracks, directory)
        inside one savepoint: either all three happen or none.
        """
        conn = self._require_conn()
        abs_path = canonical_path(path)
        if not is_existing_dir(abs_path):
            logger.warning("Path doesn't exist or is not a directory: %s", path)
            return False

        mdir_id = None
        if is_storable_path(abs_path):
            mdir_id = await queries_dirs.lookup_music_dir_id(conn, str(abs_path))
        if mdir_id is None:
            logger.warning("Trying to remove a directory that isn't in the library: %s", path)
            return False

        try:
            async with self.savepoint("remove_music_dir_sp"):
                metadata_deleted = await queries_tracks.delete_track_metadata_by_music_dir(
                    conn, mdir_id
                )
                tracks_deleted = await queries_tracks.delete_tracks_by_music_dir(conn, mdir_id)
                await queries_dirs.delete_music_dir(conn, mdir_id)
            await conn.commit()
        except aiosqlite.Error as e:
            logger.error("Failed to remove music directory %s: %s", abs_path, e)
            return False

        logger.info(
            "Removed music directory %s (%d tracks, %d metadata rows)",
            abs_path,
            tracks_deleted,
            metadata_deleted,
        )
        return True
