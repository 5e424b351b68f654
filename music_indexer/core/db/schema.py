"""
Database schema + migrations for the music library.

Design notes:
- We use SQLite `PRAGMA user_version` as the schema version.
- Migrations are forward-only (no downgrade support).
- Every statement is `IF NOT EXISTS`; `ensure_schema()` runs them on every
  startup, so a missing table is recreated even when the version is current.

Foreign-key chain: track_metadata -> tracks -> music_dirs, and
track_metadata/albums -> artists, track_metadata -> albums. Deletes must walk
the chain bottom-up (see `LibraryDb.remove_music_dir`).
"""

from __future__ import annotations

from typing import Final

import aiosqlite

from music_indexer.core import SchemaInitError

# Bump when you change the schema and add a migration in `migrate()`.
SCHEMA_VERSION: Final[int] = 1

_TABLES: Final[tuple[str, ...]] = (
    """
    CREATE TABLE IF NOT EXISTS music_dirs (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        path TEXT NOT NULL UNIQUE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS artists (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL UNIQUE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS albums (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        artist_id INTEGER REFERENCES artists(id),
        UNIQUE(name, artist_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS tracks (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        file_path TEXT NOT NULL UNIQUE,
        parent_dir_id INTEGER NOT NULL REFERENCES music_dirs(id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS track_metadata (
        track_id INTEGER PRIMARY KEY REFERENCES tracks(id),
        title TEXT NOT NULL,
        track_number INTEGER,
        artist_id INTEGER REFERENCES artists(id),
        album_id INTEGER REFERENCES albums(id)
    )
    """,
)

_INDEXES: Final[tuple[str, ...]] = (
    # UNIQUE(name, artist_id) treats NULLs as distinct; the unknown-artist bucket
    # still has to be unique per album name.
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_albums_name_no_artist ON albums(name) WHERE artist_id IS NULL;",
    "CREATE INDEX IF NOT EXISTS idx_albums_artist_id ON albums(artist_id);",
    "CREATE INDEX IF NOT EXISTS idx_tracks_parent_dir_id ON tracks(parent_dir_id);",
    "CREATE INDEX IF NOT EXISTS idx_track_metadata_artist_id ON track_metadata(artist_id);",
    "CREATE INDEX IF NOT EXISTS idx_track_metadata_album_id ON track_metadata(album_id);",
)


async def _create_current_schema(conn: aiosqlite.Connection) -> None:
    for ddl in _TABLES:
        await conn.execute(ddl)
    for ddl in _INDEXES:
        await conn.execute(ddl)


async def ensure_schema(conn: aiosqlite.Connection) -> None:
    """
    Create or migrate schema to current version.

    This function assumes `conn` is an open aiosqlite connection. It enables
    foreign-key enforcement itself so callers cannot forget it.

    Raises:
        SchemaInitError: the store is newer than supported or rejected the DDL.
    """
    try:
        await conn.execute("PRAGMA foreign_keys = ON;")

        cursor = await conn.execute("PRAGMA user_version;")
        row = await cursor.fetchone()
        current = int(row[0]) if row is not None else 0

        if current > SCHEMA_VERSION:
            raise SchemaInitError(
                f"Database schema version {current} is newer than supported {SCHEMA_VERSION}."
            )

        if current < SCHEMA_VERSION:
            await migrate(conn, from_version=current, to_version=SCHEMA_VERSION)
            await conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION};")
        else:
            # Recreate anything dropped from a store already at this version.
            await _create_current_schema(conn)
        await conn.commit()
    except aiosqlite.Error as e:
        raise SchemaInitError(f"Failed to initialize schema: {e}") from e


async def migrate(conn: aiosqlite.Connection, *, from_version: int, to_version: int) -> None:
    """
    Perform forward-only migrations.

    Keep migrations small. If you need a big refactor, create a new DB.
    """
    # v0 -> v1
    if from_version == 0 and to_version >= 1:
        await _create_current_schema(conn)
        await conn.commit()
        from_version = 1

    if from_version != to_version:
        raise SchemaInitError(f"No migration path from {from_version} to {to_version}.")
