"""
Tag reading for supported audio containers.

The indexer does not decode tags itself; mutagen does. This module narrows
mutagen's many shapes down to the four fields the library stores (title, track
number, artist, album) plus the raw bytes of an embedded picture.

Supported formats are a small closed set keyed by file extension. Dispatch is
by extension, not by inspecting the object mutagen returns.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Protocol

from mutagen import MutagenError
from mutagen.flac import FLAC
from mutagen.id3 import ID3

logger = logging.getLogger(__name__)

# ID3 picture type for "Cover (front)".
_APIC_FRONT_COVER = 3


class AudioFormat(Enum):
    """Audio containers the indexer understands, keyed by file extension."""

    FLAC = ".flac"
    MP3 = ".mp3"

    @property
    def extension(self) -> str:
        return self.value

    @classmethod
    def from_path(cls, path: str | Path) -> AudioFormat | None:
        """
        Match a path to a format by case-sensitive suffix.

        `song.FLAC` is not recognized; this mirrors what the indexer has always
        accepted and keeps matching predictable.
        """
        name = str(path)
        for fmt in cls:
            if name.endswith(fmt.value):
                return fmt
        return None


SUPPORTED_EXTENSIONS: frozenset[str] = frozenset(fmt.extension for fmt in AudioFormat)


def is_supported_file_type(path: str | Path) -> bool:
    return AudioFormat.from_path(path) is not None


@dataclass(frozen=True, slots=True)
class TagData:
    """
    Tag fields read from a file. Every field is optional.

    A reader returns None instead of a TagData whose fields are all empty.
    """

    title: str | None = None
    track_number: int | None = None
    artist: str | None = None
    album: str | None = None

    @property
    def is_empty(self) -> bool:
        return (
            self.title is None
            and not self.track_number
            and self.artist is None
            and self.album is None
        )


class TagReader(Protocol):
    """Black-box tag collaborator used by the metadata pipeline."""

    def read_tags(self, path: Path) -> TagData | None: ...

    def read_picture(self, path: Path) -> bytes | None: ...


def _clean_str(value: str | None) -> str | None:
    if value is None:
        return None
    s = value.strip()
    return s if s else None


def _first_text(value: Any) -> str | None:
    """
    Mutagen returns different shapes depending on container/tag type:
    - ID3 frames
    - lists of strings
    - plain strings
    - objects with `.text`
    We normalize to a single string (first item if multiple).
    """
    if value is None:
        return None

    if isinstance(value, (list, tuple)):
        if not value:
            return None
        return _first_text(value[0])

    # Mutagen ID3 frames often have `.text` list
    text = getattr(value, "text", None)
    if text is not None:
        return _first_text(text)

    try:
        s = str(value)
    except Exception:
        return None

    return _clean_str(s)


def _parse_int_maybe(value: Any) -> int | None:
    """
    Parse things like:
    - "3"
    - "3/12"
    - ["3/12"]
    - mutagen frame objects
    """
    s = _first_text(value)
    if not s:
        return None

    # handle "3/12"
    if "/" in s:
        s = s.split("/", 1)[0].strip()

    try:
        return int(s)
    except ValueError:
        return None


def _tags_get(tags: Any, keys: Iterable[str]) -> Any:
    if not tags:
        return None
    for k in keys:
        if k in tags:
            return tags[k]
    return None


def _tag_data(tags: Any, *, title: str, track: str, artist: str, album: str) -> TagData | None:
    data = TagData(
        title=_first_text(_tags_get(tags, (title,))),
        track_number=_parse_int_maybe(_tags_get(tags, (track,))),
        artist=_first_text(_tags_get(tags, (artist,))),
        album=_first_text(_tags_get(tags, (album,))),
    )
    return None if data.is_empty else data


class MutagenTagReader:
    """
    `TagReader` backed by mutagen.

    - FLAC: Vorbis comments (title/tracknumber/artist/album), first picture block.
    - MP3: ID3v2 frames (TIT2/TRCK/TPE1/TALB), APIC frame (front cover preferred).

    Unreadable, unsupported or untagged files yield None; mutagen errors are
    logged at DEBUG and never raised.
    """

    def read_tags(self, path: Path) -> TagData | None:
        fmt = AudioFormat.from_path(path)
        try:
            if fmt is AudioFormat.FLAC:
                return self._read_flac_tags(path)
            if fmt is AudioFormat.MP3:
                return self._read_mp3_tags(path)
        except (MutagenError, OSError) as e:
            logger.debug("Tag read failed for %s: %s", path, e)
        return None

    def read_picture(self, path: Path) -> bytes | None:
        fmt = AudioFormat.from_path(path)
        try:
            if fmt is AudioFormat.FLAC:
                return self._read_flac_picture(path)
            if fmt is AudioFormat.MP3:
                return self._read_mp3_picture(path)
        except (MutagenError, OSError) as e:
            logger.debug("Artwork extraction failed for %s: %s", path, e)
        return None

    @staticmethod
    def _read_flac_tags(path: Path) -> TagData | None:
        audio = FLAC(path)
        if audio.tags is None:
            return None
        # Vorbis comment keys are case-insensitive in mutagen.
        return _tag_data(
            audio.tags, title="title", track="tracknumber", artist="artist", album="album"
        )

    @staticmethod
    def _read_mp3_tags(path: Path) -> TagData | None:
        # Raises ID3NoHeaderError (a MutagenError) when the file carries no ID3v2 tag.
        tags = ID3(path)
        return _tag_data(tags, title="TIT2", track="TRCK", artist="TPE1", album="TALB")

    @staticmethod
    def _read_flac_picture(path: Path) -> bytes | None:
        audio = FLAC(path)
        if not audio.pictures:
            return None
        return bytes(audio.pictures[0].data)

    @staticmethod
    def _read_mp3_picture(path: Path) -> bytes | None:
        tags = ID3(path)
        apic_frames = tags.getall("APIC")
        if not apic_frames:
            return None
        cover = next((f for f in apic_frames if f.type == _APIC_FRONT_COVER), apic_frames[0])
        return bytes(cover.data)
