"""
Music-directory DB queries used by `music_indexer.core.library_db.LibraryDb`.

Design:
- Functions are *pure DB helpers*: they take an open `aiosqlite.Connection`
  and return ids or materialized rows.
- Paths are passed in already canonicalized; no filesystem access here.
- These functions assume `conn.row_factory = aiosqlite.Row`.
"""

from __future__ import annotations

import aiosqlite

from music_indexer.core.db.models import MusicDir, MusicDirId


def _row_to_music_dir(row: aiosqlite.Row) -> MusicDir:
    return MusicDir(id=MusicDirId(int(row["id"])), path=str(row["path"]))


async def lookup_music_dir_id(conn: aiosqlite.Connection, path: str) -> MusicDirId | None:
    cursor = await conn.execute("SELECT id FROM music_dirs WHERE path = ?;", (path,))
    row = await cursor.fetchone()
    return MusicDirId(int(row["id"])) if row is not None else None


async def music_dir_exists(conn: aiosqlite.Connection, mdir_id: int) -> bool:
    cursor = await conn.execute(
        "SELECT EXISTS(SELECT 1 FROM music_dirs WHERE id = ?) AS e;", (int(mdir_id),)
    )
    row = await cursor.fetchone()
    return bool(row["e"]) if row else False


async def insert_music_dir(conn: aiosqlite.Connection, path: str) -> None:
    await conn.execute("INSERT OR IGNORE INTO music_dirs (path) VALUES (?);", (path,))


async def get_music_dir_by_id(conn: aiosqlite.Connection, mdir_id: int) -> MusicDir | None:
    cursor = await conn.execute("SELECT id, path FROM music_dirs WHERE id = ?;", (int(mdir_id),))
    row = await cursor.fetchone()
    return _row_to_music_dir(row) if row is not None else None


async def list_music_dirs(conn: aiosqlite.Connection) -> list[MusicDir]:
    cursor = await conn.execute("SELECT id, path FROM music_dirs ORDER BY id;")
    rows = await cursor.fetchall()
    return [_row_to_music_dir(r) for r in rows]


async def delete_music_dir(conn: aiosqlite.Connection, mdir_id: int) -> int:
    cursor = await conn.execute("DELETE FROM music_dirs WHERE id = ?;", (int(mdir_id),))
    return cursor.rowcount
