"""
Album-related DB queries used by `music_indexer.core.library_db.LibraryDb`.

Album identity is (name, artist_id). `artist_id` may be NULL, so lookups use
`IS ?` instead of `= ?`: with `=` a NULL artist would never match and every
scan would try to create the "unknown artist" album again.

These functions assume `conn.row_factory = aiosqlite.Row`.
"""

from __future__ import annotations

import aiosqlite

from music_indexer.core.db.models import Album, AlbumId, ArtistId


def _row_to_album(row: aiosqlite.Row) -> Album:
    artist_id = row["artist_id"]
    return Album(
        id=AlbumId(int(row["id"])),
        name=row["name"],
        artist_id=ArtistId(int(artist_id)) if artist_id is not None else None,
    )


async def lookup_album_id(
    conn: aiosqlite.Connection, name: str, artist_id: int | None
) -> AlbumId | None:
    cursor = await conn.execute(
        "SELECT id FROM albums WHERE name = ? AND artist_id IS ?;",
        (name, int(artist_id) if artist_id is not None else None),
    )
    row = await cursor.fetchone()
    return AlbumId(int(row["id"])) if row is not None else None


async def album_exists(conn: aiosqlite.Connection, album_id: int) -> bool:
    cursor = await conn.execute(
        "SELECT EXISTS(SELECT 1 FROM albums WHERE id = ?) AS e;", (int(album_id),)
    )
    row = await cursor.fetchone()
    return bool(row["e"]) if row else False


async def insert_album(conn: aiosqlite.Connection, name: str, artist_id: int | None) -> None:
    await conn.execute(
        "INSERT OR IGNORE INTO albums (name, artist_id) VALUES (?, ?);",
        (name, int(artist_id) if artist_id is not None else None),
    )


async def get_album_by_id(conn: aiosqlite.Connection, album_id: int) -> Album | None:
    cursor = await conn.execute(
        "SELECT id, name, artist_id FROM albums WHERE id = ?;", (int(album_id),)
    )
    row = await cursor.fetchone()
    return _row_to_album(row) if row is not None else None


async def list_albums(conn: aiosqlite.Connection) -> list[Album]:
    cursor = await conn.execute("SELECT id, name, artist_id FROM albums ORDER BY id;")
    rows = await cursor.fetchall()
    return [_row_to_album(r) for r in rows]
