"""
Tests for music_indexer.core.metadata and music_indexer.core.artwork.

The tag reader is faked so these tests exercise resolution and persistence
rather than mutagen.
"""

from __future__ import annotations

from pathlib import Path

import aiosqlite
import pytest

from conftest import FakeTagReader
from music_indexer.core.artwork import AlbumArtCache
from music_indexer.core.db.models import AlbumId, TrackId, TrackMetadata
from music_indexer.core.library_db import LibraryDb
from music_indexer.core.metadata import MetadataExtractor
from music_indexer.core.tags import TagData


async def _add_track(db: LibraryDb, music_dir: Path, name: str) -> tuple[TrackId, Path]:
    f = music_dir / name
    f.parent.mkdir(parents=True, exist_ok=True)
    f.write_bytes(b"")
    mdir_id = await db.get_or_create_music_dir(music_dir)
    track_id = await db.get_or_create_track(f, mdir_id)
    assert track_id is not None
    return track_id, f


def _extractor(db: LibraryDb, data_dir: Path, reader: FakeTagReader) -> MetadataExtractor:
    return MetadataExtractor(db=db, art_cache=AlbumArtCache(data_dir), tag_reader=reader)


class TestMetadataExtractor:
    async def test_full_tags(self, db: LibraryDb, music_dir: Path, data_dir: Path) -> None:
        track_id, f = await _add_track(db, music_dir, "a.flac")
        reader = FakeTagReader(
            tags={"a.flac": TagData(title="Song", track_number=4, artist="Alice", album="LP")}
        )

        meta = await _extractor(db, data_dir, reader).extract_and_store(track_id, f)

        artist_id = await db.lookup_artist_id("Alice")
        album_id = await db.lookup_album_id("LP", artist_id)
        assert artist_id is not None and album_id is not None
        assert meta == TrackMetadata(
            track_id=track_id, title="Song", track_number=4, artist_id=artist_id, album_id=album_id
        )
        assert await db.get_track_metadata(track_id) == meta

    async def test_unknown_track_id(self, db: LibraryDb, music_dir: Path, data_dir: Path) -> None:
        f = music_dir / "a.flac"
        f.write_bytes(b"")
        reader = FakeTagReader(tags={"a.flac": TagData(title="Song")})

        assert await _extractor(db, data_dir, reader).extract_and_store(TrackId(99), f) is None
        assert reader.tag_calls == []

    async def test_no_tags_stores_nothing(
        self, db: LibraryDb, music_dir: Path, data_dir: Path
    ) -> None:
        track_id, f = await _add_track(db, music_dir, "b.mp3")
        reader = FakeTagReader()

        assert await _extractor(db, data_dir, reader).extract_and_store(track_id, f) is None
        assert await db.get_track_metadata(track_id) is None
        assert await db.list_artists() == []

    async def test_title_falls_back_to_file_stem(
        self, db: LibraryDb, music_dir: Path, data_dir: Path
    ) -> None:
        track_id, f = await _add_track(db, music_dir, "07 Intro.flac")
        reader = FakeTagReader(tags={"07 Intro.flac": TagData(album="LP")})

        meta = await _extractor(db, data_dir, reader).extract_and_store(track_id, f)

        assert meta is not None
        assert meta.title == "07 Intro"
        assert meta.artist_id is None

    async def test_zero_track_number_is_absent(
        self, db: LibraryDb, music_dir: Path, data_dir: Path
    ) -> None:
        track_id, f = await _add_track(db, music_dir, "a.flac")
        reader = FakeTagReader(tags={"a.flac": TagData(title="Song", track_number=0)})

        meta = await _extractor(db, data_dir, reader).extract_and_store(track_id, f)

        assert meta is not None
        assert meta.track_number is None

    async def test_album_without_artist_uses_unknown_bucket(
        self, db: LibraryDb, music_dir: Path, data_dir: Path
    ) -> None:
        t1, f1 = await _add_track(db, music_dir, "a.flac")
        t2, f2 = await _add_track(db, music_dir, "b.flac")
        reader = FakeTagReader(
            tags={
                "a.flac": TagData(title="A", album="Compilation"),
                "b.flac": TagData(title="B", album="Compilation", artist="Bob"),
            }
        )
        extractor = _extractor(db, data_dir, reader)

        m1 = await extractor.extract_and_store(t1, f1)
        m2 = await extractor.extract_and_store(t2, f2)

        assert m1 is not None and m2 is not None
        assert m1.album_id != m2.album_id
        album = await db.get_album(m1.album_id)
        assert album is not None
        assert album.artist_id is None

    async def test_same_album_shares_id(
        self, db: LibraryDb, music_dir: Path, data_dir: Path
    ) -> None:
        t1, f1 = await _add_track(db, music_dir, "a.flac")
        t2, f2 = await _add_track(db, music_dir, "b.mp3")
        reader = FakeTagReader(
            tags={
                "a.flac": TagData(title="A", artist="Alice", album="LP"),
                "b.mp3": TagData(title="B", artist="Alice", album="LP"),
            }
        )
        extractor = _extractor(db, data_dir, reader)

        m1 = await extractor.extract_and_store(t1, f1)
        m2 = await extractor.extract_and_store(t2, f2)

        assert m1 is not None and m2 is not None
        assert m1.album_id == m2.album_id
        assert m1.artist_id == m2.artist_id
        assert len(await db.list_artists()) == 1

    async def test_reextraction_overwrites(
        self, db: LibraryDb, music_dir: Path, data_dir: Path
    ) -> None:
        track_id, f = await _add_track(db, music_dir, "a.flac")
        reader = FakeTagReader(tags={"a.flac": TagData(title="Old", track_number=1)})
        extractor = _extractor(db, data_dir, reader)
        await extractor.extract_and_store(track_id, f)

        reader.tags["a.flac"] = TagData(title="New", track_number=2)
        await extractor.extract_and_store(track_id, f)

        meta = await db.get_track_metadata(track_id)
        assert meta is not None
        assert (meta.title, meta.track_number) == ("New", 2)

    async def test_store_error_rolls_back_resolved_rows(
        self,
        db: LibraryDb,
        music_dir: Path,
        data_dir: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        track_id, f = await _add_track(db, music_dir, "a.flac")
        await db.commit()
        reader = FakeTagReader(
            tags={"a.flac": TagData(title="A", artist="Alice", album="LP")},
            pictures={"a.flac": b"cover"},
        )

        async def failing_upsert(metadata: TrackMetadata) -> TrackId | None:
            raise aiosqlite.OperationalError("disk I/O error")

        monkeypatch.setattr(db, "upsert_track_metadata", failing_upsert)

        assert await _extractor(db, data_dir, reader).extract_and_store(track_id, f) is None
        assert await db.list_artists() == []
        assert await db.list_albums() == []
        assert await db.track_exists(track_id)
        assert reader.picture_calls == []
        assert list(data_dir.iterdir()) == []


class TestAlbumArt:
    async def test_art_written_once_per_album(
        self, db: LibraryDb, music_dir: Path, data_dir: Path
    ) -> None:
        t1, f1 = await _add_track(db, music_dir, "a.flac")
        t2, f2 = await _add_track(db, music_dir, "b.flac")
        reader = FakeTagReader(
            tags={
                "a.flac": TagData(title="A", artist="Alice", album="LP"),
                "b.flac": TagData(title="B", artist="Alice", album="LP"),
            },
            pictures={"a.flac": b"first-cover", "b.flac": b"second-cover"},
        )
        extractor = _extractor(db, data_dir, reader)

        m1 = await extractor.extract_and_store(t1, f1)
        await extractor.extract_and_store(t2, f2)

        assert m1 is not None and m1.album_id is not None
        art = data_dir / str(m1.album_id)
        assert art.read_bytes() == b"first-cover"
        assert reader.picture_calls == [f1]

    async def test_no_album_no_art(self, db: LibraryDb, music_dir: Path, data_dir: Path) -> None:
        track_id, f = await _add_track(db, music_dir, "a.flac")
        reader = FakeTagReader(
            tags={"a.flac": TagData(title="A", artist="Alice")},
            pictures={"a.flac": b"cover"},
        )

        await _extractor(db, data_dir, reader).extract_and_store(track_id, f)

        assert reader.picture_calls == []
        assert list(data_dir.iterdir()) == []

    async def test_album_without_picture(
        self, db: LibraryDb, music_dir: Path, data_dir: Path
    ) -> None:
        track_id, f = await _add_track(db, music_dir, "a.flac")
        reader = FakeTagReader(tags={"a.flac": TagData(title="A", album="LP")})

        meta = await _extractor(db, data_dir, reader).extract_and_store(track_id, f)

        assert meta is not None
        assert reader.picture_calls == [f]
        assert list(data_dir.iterdir()) == []


class TestAlbumArtCache:
    def test_creates_data_dir(self, data_dir: Path) -> None:
        assert not data_dir.exists()
        AlbumArtCache(data_dir)
        assert data_dir.is_dir()

    async def test_ensure_read_evict(self, tmp_path: Path, data_dir: Path) -> None:
        cache = AlbumArtCache(data_dir)
        reader = FakeTagReader(pictures={"a.flac": b"img"})
        album_id = AlbumId(5)

        assert await cache.ensure(album_id, tmp_path / "a.flac", reader) is True
        assert await cache.ensure(album_id, tmp_path / "a.flac", reader) is False
        assert cache.path_for(album_id) == data_dir / "5"
        assert cache.read(album_id) == b"img"
        assert len(reader.picture_calls) == 1

        assert cache.evict(album_id) is True
        assert cache.evict(album_id) is False
        assert cache.read(album_id) is None

    async def test_no_temp_files_left(self, tmp_path: Path, data_dir: Path) -> None:
        cache = AlbumArtCache(data_dir)
        reader = FakeTagReader(pictures={"a.flac": b"img"})

        await cache.ensure(AlbumId(1), tmp_path / "a.flac", reader)

        assert [p.name for p in data_dir.iterdir()] == ["1"]


@pytest.mark.parametrize("track_number", [None, -3])
async def test_non_positive_track_numbers_ignored(
    db: LibraryDb, music_dir: Path, data_dir: Path, track_number: int | None
) -> None:
    track_id, f = await _add_track(db, music_dir, "a.flac")
    reader = FakeTagReader(tags={"a.flac": TagData(title="T", track_number=track_number)})

    meta = await _extractor(db, data_dir, reader).extract_and_store(track_id, f)

    assert meta is not None
    assert meta.track_number is None
