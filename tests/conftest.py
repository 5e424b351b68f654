"""
Shared fixtures: an in-memory library DB, real FLAC/MP3 files built with
mutagen, and a counting fake tag reader.
"""

from __future__ import annotations

import struct
from pathlib import Path

import pytest
from mutagen.flac import FLAC, Picture
from mutagen.id3 import APIC, ID3, TALB, TIT2, TPE1, TRCK

from music_indexer.core.library_db import LibraryDb
from music_indexer.core.tags import TagData

_ID3_FRAMES = {"title": TIT2, "artist": TPE1, "album": TALB, "tracknumber": TRCK}


def _streaminfo_block() -> bytes:
    # min/max block size, min/max frame size, then 20-bit sample rate,
    # 3-bit channels-1, 5-bit bits-per-sample-1, 36-bit total samples, md5.
    packed = (44100 << 44) | (1 << 41) | (15 << 36)
    body = struct.pack(">HH", 4096, 4096) + b"\x00" * 6 + packed.to_bytes(8, "big") + b"\x00" * 16
    # 0x80: last metadata block, type 0 (STREAMINFO)
    return bytes([0x80, 0x00, 0x00, len(body)]) + body


def write_flac(
    path: Path, *, tags: dict[str, str] | None = None, picture: bytes | None = None
) -> Path:
    """Write a minimal (audio-less) FLAC file, optionally tagged."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"fLaC" + _streaminfo_block())
    if tags or picture:
        audio = FLAC(path)
        if tags:
            audio.add_tags()
            for key, value in tags.items():
                audio[key] = value
        if picture:
            pic = Picture()
            pic.type = 3
            pic.mime = "image/jpeg"
            pic.data = picture
            audio.add_picture(pic)
        audio.save()
    return path


def write_mp3(
    path: Path, *, tags: dict[str, str] | None = None, picture: bytes | None = None
) -> Path:
    """Write a stub MP3 body, optionally with an ID3v2 tag in front."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"\xff\xfb\x90\x00" + b"\x00" * 413)
    if tags or picture:
        id3 = ID3()
        for key, value in (tags or {}).items():
            id3.add(_ID3_FRAMES[key](encoding=3, text=[value]))
        if picture:
            id3.add(APIC(encoding=3, mime="image/jpeg", type=3, desc="Cover", data=picture))
        id3.save(path)
    return path


class FakeTagReader:
    """TagReader keyed by file name that records every call."""

    def __init__(
        self,
        tags: dict[str, TagData] | None = None,
        pictures: dict[str, bytes] | None = None,
        failures: dict[str, Exception] | None = None,
    ) -> None:
        self.tags = dict(tags or {})
        self.pictures = dict(pictures or {})
        # Raised from read_picture, after tags (and artist/album rows) are resolved.
        self.failures = dict(failures or {})
        self.tag_calls: list[Path] = []
        self.picture_calls: list[Path] = []

    def read_tags(self, path: Path) -> TagData | None:
        self.tag_calls.append(path)
        return self.tags.get(path.name)

    def read_picture(self, path: Path) -> bytes | None:
        self.picture_calls.append(path)
        if path.name in self.failures:
            raise self.failures[path.name]
        return self.pictures.get(path.name)


@pytest.fixture
async def db():
    """Create an in-memory database for testing."""
    db = LibraryDb(":memory:")
    await db.open()
    await db.ensure_schema()
    yield db
    await db.close()


@pytest.fixture
def music_dir(tmp_path: Path) -> Path:
    path = tmp_path / "music"
    path.mkdir()
    return path


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "data"
