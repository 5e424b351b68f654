"""
Tests for the MusicLibrary facade.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from conftest import FakeTagReader, write_flac, write_mp3
from music_indexer.core import MusicLibraryError, MusicLibraryNotReadyError
from music_indexer.core.db.models import AlbumId
from music_indexer.core.library import MusicLibrary
from music_indexer.core.library_db import LibraryDb
from music_indexer.core.tags import TagData


@pytest.fixture
async def library(db: LibraryDb, data_dir: Path) -> MusicLibrary:
    lib = MusicLibrary(db=db, data_dir=data_dir)
    await lib.initialize()
    return lib


class TestMusicLibraryLifecycle:
    async def test_requires_open_db(self, data_dir: Path) -> None:
        lib = MusicLibrary(db=LibraryDb(":memory:"), data_dir=data_dir)
        with pytest.raises(MusicLibraryError):
            await lib.initialize()
        assert not lib.initialized

    async def test_not_ready_before_initialize(self, db: LibraryDb, data_dir: Path) -> None:
        lib = MusicLibrary(db=db, data_dir=data_dir)

        with pytest.raises(MusicLibraryNotReadyError):
            await lib.get_tracks()
        with pytest.raises(MusicLibraryNotReadyError):
            await lib.scan(data_dir)
        with pytest.raises(MusicLibraryNotReadyError):
            lib.album_art_path(AlbumId(1))

    async def test_initialize_creates_art_dir(self, library: MusicLibrary, data_dir: Path) -> None:
        assert library.initialized
        assert library.data_dir == data_dir
        assert data_dir.is_dir()


class TestMusicLibraryOperations:
    async def test_scan_and_browse(self, library: MusicLibrary, music_dir: Path) -> None:
        write_flac(
            music_dir / "01.flac",
            tags={"title": "Opening", "tracknumber": "1", "artist": "Alice", "album": "LP"},
            picture=b"art",
        )
        write_mp3(music_dir / "02.mp3", tags={"title": "Closing", "artist": "Alice", "album": "LP"})

        mdir_id = await library.scan(music_dir)

        assert mdir_id is not None
        assert len(await library.get_music_dirs()) == 1
        assert [a.name for a in await library.get_artists()] == ["Alice"]
        albums = await library.get_albums()
        assert [a.name for a in albums] == ["LP"]

        tracks = await library.get_tracks()
        assert isinstance(tracks, tuple)
        assert [t.title for t in tracks] == ["Opening", "Closing"]
        assert await library.tracks_of_directory(mdir_id) == [t.id for t in tracks]

        art = library.album_art_path(albums[0].id)
        assert art is not None
        assert art.read_bytes() == b"art"

        track = await library.get_track(tracks[0].id)
        assert track == tracks[0]
        assert await library.get_track_metadata(tracks[0].id) == tracks[0].metadata
        assert await library.get_album(albums[0].id) == albums[0]

    async def test_album_art_path_absent(self, library: MusicLibrary) -> None:
        album_id = await library.get_or_create_album("No Cover")
        assert album_id is not None
        assert library.album_art_path(album_id) is None

    async def test_get_or_create_commits(
        self, library: MusicLibrary, db: LibraryDb, music_dir: Path
    ) -> None:
        f = write_mp3(music_dir / "x.mp3")

        mdir_id = await library.get_or_create_music_dir(music_dir)
        artist_id = await library.get_or_create_artist("Alice")
        album_id = await library.get_or_create_album("LP", artist_id)
        track_id = await library.get_or_create_track(f, mdir_id)
        await db.rollback()

        assert None not in (mdir_id, artist_id, album_id, track_id)
        assert await library.get_artist(artist_id) is not None
        assert await library.get_album(album_id) is not None
        assert await library.get_track(track_id) is not None

    async def test_remove_directory_and_track(
        self, library: MusicLibrary, music_dir: Path
    ) -> None:
        write_mp3(music_dir / "a.mp3")
        write_mp3(music_dir / "b.mp3")
        mdir_id = await library.scan(music_dir)
        assert mdir_id is not None
        first, second = await library.tracks_of_directory(mdir_id)

        assert await library.remove_track(first)
        assert await library.tracks_of_directory(mdir_id) == [second]

        assert await library.remove_directory(music_dir)
        assert await library.tracks_of_directory(mdir_id) == []
        assert await library.get_music_dirs() == ()

    async def test_rebuild_and_prune(self, library: MusicLibrary, music_dir: Path) -> None:
        gone = write_mp3(music_dir / "gone.mp3")
        await library.scan(music_dir)
        write_mp3(music_dir / "new.mp3")
        gone.unlink()

        reports = await library.rebuild()
        assert [r.files_seen for r in reports] == [1]
        assert len(await library.get_tracks()) == 2

        assert await library.prune_missing() == 1
        assert [t.title for t in await library.get_tracks()] == ["new"]


async def test_custom_tag_reader(db: LibraryDb, data_dir: Path, music_dir: Path) -> None:
    write_mp3(music_dir / "a.mp3")
    reader = FakeTagReader(tags={"a.mp3": TagData(title="From Reader", artist="R")})
    lib = MusicLibrary(db=db, data_dir=data_dir, tag_reader=reader)
    await lib.initialize()

    await lib.scan(music_dir)

    assert [t.title for t in await lib.get_tracks()] == ["From Reader"]
    assert [a.name for a in await lib.get_artists()] == ["R"]
