"""
Track and track-metadata DB queries used by `music_indexer.core.library_db.LibraryDb`.

Design:
- Functions are *pure DB helpers*: they take an open `aiosqlite.Connection`
  and return ids, rows or affected-row counts.
- No commits here; transaction boundaries belong to `LibraryDb`.
- These functions assume `conn.row_factory = aiosqlite.Row`.
"""

from __future__ import annotations

import aiosqlite

from music_indexer.core.db.models import (
    AlbumId,
    ArtistId,
    MusicDirId,
    Track,
    TrackId,
    TrackMetadata,
)

_TRACK_COLUMNS = """
    t.id, t.file_path, t.parent_dir_id,
    tm.track_id AS tm_track_id, tm.title, tm.track_number, tm.artist_id, tm.album_id
"""


def _row_to_metadata(row: aiosqlite.Row) -> TrackMetadata:
    return TrackMetadata(
        track_id=TrackId(int(row["track_id"])),
        title=row["title"],
        track_number=int(row["track_number"]) if row["track_number"] is not None else None,
        artist_id=ArtistId(int(row["artist_id"])) if row["artist_id"] is not None else None,
        album_id=AlbumId(int(row["album_id"])) if row["album_id"] is not None else None,
    )


def _row_to_track(row: aiosqlite.Row) -> Track:
    metadata: TrackMetadata | None = None
    if row["tm_track_id"] is not None:
        metadata = TrackMetadata(
            track_id=TrackId(int(row["tm_track_id"])),
            title=row["title"],
            track_number=int(row["track_number"]) if row["track_number"] is not None else None,
            artist_id=ArtistId(int(row["artist_id"])) if row["artist_id"] is not None else None,
            album_id=AlbumId(int(row["album_id"])) if row["album_id"] is not None else None,
        )
    return Track(
        id=TrackId(int(row["id"])),
        file_path=str(row["file_path"]),
        parent_dir_id=MusicDirId(int(row["parent_dir_id"])),
        metadata=metadata,
    )


# ---------------------------------------------------------------------------
# Tracks
# ---------------------------------------------------------------------------


async def lookup_track_id(conn: aiosqlite.Connection, file_path: str) -> TrackId | None:
    cursor = await conn.execute("SELECT id FROM tracks WHERE file_path = ?;", (file_path,))
    row = await cursor.fetchone()
    return TrackId(int(row["id"])) if row is not None else None


async def track_exists(conn: aiosqlite.Connection, track_id: int) -> bool:
    cursor = await conn.execute(
        "SELECT EXISTS(SELECT 1 FROM tracks WHERE id = ?) AS e;", (int(track_id),)
    )
    row = await cursor.fetchone()
    return bool(row["e"]) if row else False


async def insert_track(conn: aiosqlite.Connection, file_path: str, parent_dir_id: int) -> None:
    await conn.execute(
        "INSERT OR IGNORE INTO tracks (file_path, parent_dir_id) VALUES (?, ?);",
        (file_path, int(parent_dir_id)),
    )


async def get_track_by_id(conn: aiosqlite.Connection, track_id: int) -> Track | None:
    cursor = await conn.execute(
        f"""
        SELECT {_TRACK_COLUMNS}
        FROM tracks t
        LEFT JOIN track_metadata tm ON tm.track_id = t.id
        WHERE t.id = ?;
        """,
        (int(track_id),),
    )
    row = await cursor.fetchone()
    return _row_to_track(row) if row is not None else None


async def list_tracks(conn: aiosqlite.Connection) -> list[Track]:
    """All tracks with their metadata (if any), ordered by id."""
    cursor = await conn.execute(
        f"""
        SELECT {_TRACK_COLUMNS}
        FROM tracks t
        LEFT JOIN track_metadata tm ON tm.track_id = t.id
        ORDER BY t.id;
        """
    )
    rows = await cursor.fetchall()
    return [_row_to_track(r) for r in rows]


async def list_track_ids_by_music_dir(conn: aiosqlite.Connection, mdir_id: int) -> list[TrackId]:
    cursor = await conn.execute(
        "SELECT id FROM tracks WHERE parent_dir_id = ? ORDER BY id;", (int(mdir_id),)
    )
    rows = await cursor.fetchall()
    return [TrackId(int(r["id"])) for r in rows]


async def delete_track(conn: aiosqlite.Connection, track_id: int) -> int:
    cursor = await conn.execute("DELETE FROM tracks WHERE id = ?;", (int(track_id),))
    return cursor.rowcount


async def delete_tracks_by_music_dir(conn: aiosqlite.Connection, mdir_id: int) -> int:
    cursor = await conn.execute("DELETE FROM tracks WHERE parent_dir_id = ?;", (int(mdir_id),))
    return cursor.rowcount


# ---------------------------------------------------------------------------
# Track metadata
# ---------------------------------------------------------------------------


async def get_track_metadata(conn: aiosqlite.Connection, track_id: int) -> TrackMetadata | None:
    cursor = await conn.execute(
        """
        SELECT track_id, title, track_number, artist_id, album_id
        FROM track_metadata
        WHERE track_id = ?;
        """,
        (int(track_id),),
    )
    row = await cursor.fetchone()
    return _row_to_metadata(row) if row is not None else None


async def replace_track_metadata(conn: aiosqlite.Connection, metadata: TrackMetadata) -> None:
    """INSERT OR REPLACE keyed by track_id, so re-extraction overwrites stale values."""
    await conn.execute(
        """
        INSERT OR REPLACE INTO track_metadata (track_id, title, track_number, artist_id, album_id)
        VALUES (:track_id, :title, :track_number, :artist_id, :album_id);
        """,
        {
            "track_id": int(metadata.track_id),
            "title": metadata.title,
            "track_number": metadata.track_number,
            "artist_id": int(metadata.artist_id) if metadata.artist_id is not None else None,
            "album_id": int(metadata.album_id) if metadata.album_id is not None else None,
        },
    )


async def delete_track_metadata(conn: aiosqlite.Connection, track_id: int) -> int:
    cursor = await conn.execute("DELETE FROM track_metadata WHERE track_id = ?;", (int(track_id),))
    return cursor.rowcount


async def delete_track_metadata_by_music_dir(conn: aiosqlite.Connection, mdir_id: int) -> int:
    cursor = await conn.execute(
        """
        DELETE FROM track_metadata
        WHERE track_id IN (SELECT id FROM tracks WHERE parent_dir_id = ?);
        """,
        (int(mdir_id),),
    )
    return cursor.rowcount
