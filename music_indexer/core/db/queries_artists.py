"""
Artist-related DB queries used by `music_indexer.core.library_db.LibraryDb`.

These functions assume `conn.row_factory = aiosqlite.Row`.
Do NOT interpolate user input into SQL.
"""

from __future__ import annotations

import aiosqlite

from music_indexer.core.db.models import Artist, ArtistId


async def lookup_artist_id(conn: aiosqlite.Connection, name: str) -> ArtistId | None:
    cursor = await conn.execute("SELECT id FROM artists WHERE name = ?;", (name,))
    row = await cursor.fetchone()
    return ArtistId(int(row["id"])) if row is not None else None


async def artist_exists(conn: aiosqlite.Connection, artist_id: int) -> bool:
    cursor = await conn.execute(
        "SELECT EXISTS(SELECT 1 FROM artists WHERE id = ?) AS e;", (int(artist_id),)
    )
    row = await cursor.fetchone()
    return bool(row["e"]) if row else False


async def insert_artist(conn: aiosqlite.Connection, name: str) -> None:
    await conn.execute("INSERT OR IGNORE INTO artists (name) VALUES (?);", (name,))


async def get_artist_by_id(conn: aiosqlite.Connection, artist_id: int) -> Artist | None:
    cursor = await conn.execute("SELECT id, name FROM artists WHERE id = ?;", (int(artist_id),))
    row = await cursor.fetchone()
    if row is None:
        return None
    return Artist(id=ArtistId(int(row["id"])), name=row["name"])


async def list_artists(conn: aiosqlite.Connection) -> list[Artist]:
    cursor = await conn.execute("SELECT id, name FROM artists ORDER BY id;")
    rows = await cursor.fetchall()
    return [Artist(id=ArtistId(int(r["id"])), name=r["name"]) for r in rows]
