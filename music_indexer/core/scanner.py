from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from pathlib import Path

from music_indexer.core.db.models import MusicDirId
from music_indexer.core.library_db import LibraryDb
from music_indexer.core.metadata import MetadataExtractor
from music_indexer.core.paths import canonical_path, is_existing_dir, is_existing_file
from music_indexer.core.tags import SUPPORTED_EXTENSIONS

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ScanConfig:
    """
    Configuration for walking a music folder.

    Extension matching is a case-sensitive suffix comparison; no MIME sniffing.
    Symlinked files are followed (their canonical path is what gets stored);
    directory symlinks are not descended into.
    """

    root: Path
    extensions: frozenset[str] = SUPPORTED_EXTENSIONS


@dataclass(frozen=True, slots=True)
class ScanIssue:
    path: Path
    message: str


@dataclass(slots=True)
class ScanReport:
    """Summary of one directory scan."""

    music_dir_id: MusicDirId
    root: Path
    files_seen: int = 0
    tracks_indexed: int = 0
    metadata_stored: int = 0
    issues: list[ScanIssue] = field(default_factory=list)


def _has_supported_extension(path: Path, extensions: frozenset[str]) -> bool:
    name = path.name
    return any(name.endswith(ext) for ext in extensions)


async def iter_audio_files(config: ScanConfig) -> AsyncIterator[Path]:
    """
    Asynchronously yields audio file paths under `config.root`.

    Implementation notes:
    - We collect file paths in a thread to avoid blocking the event loop on large trees.
    - We keep it simple and predictable: extension-based filtering only.
    - Paths come out sorted so repeated scans assign ids in the same order.
    """
    root = config.root
    if not root.exists():
        raise FileNotFoundError(root)
    if not root.is_dir():
        raise NotADirectoryError(root)

    def _walk() -> list[Path]:
        paths: list[Path] = []
        for p in root.rglob("*"):
            try:
                if not p.is_file():
                    continue
                if not _has_supported_extension(p, config.extensions):
                    continue
                paths.append(p)
            except OSError:
                # Ignore broken permissions/paths during walk.
                continue
        paths.sort(key=str)
        return paths

    paths = await asyncio.to_thread(_walk)
    for p in paths:
        yield p


class LibraryScanner:
    """
    Walks music directories and drives the identity resolver + metadata pipeline per file.

    One bad file never aborts a directory: per-file problems are collected as
    `ScanIssue`s and the walk continues. Each file is committed on its own.
    """

    def __init__(self, *, db: LibraryDb, extractor: MetadataExtractor) -> None:
        self._db = db
        self._extractor = extractor

    async def scan(self, path: str | Path) -> MusicDirId | None:
        """
        Recursively scan a directory given its relative or absolute path.

        Returns the music directory id (also when no audio files were found),
        or None if `path` is not an existing directory.
        """
        report = await self.scan_with_report(path)
        return report.music_dir_id if report is not None else None

    async def scan_with_report(self, path: str | Path) -> ScanReport | None:
        root = canonical_path(path)
        if not is_existing_dir(root):
            logger.warning("Path doesn't exist or is not a directory: %s", path)
            return None

        mdir_id = await self._db.get_or_create_music_dir(root)
        if mdir_id is None:
            return None
        await self._db.commit()

        report = ScanReport(music_dir_id=mdir_id, root=root)
        async for file_path in iter_audio_files(ScanConfig(root=root)):
            report.files_seen += 1
            await self._index_file(report, file_path)

        logger.info(
            "Scanned %s: %d files, %d tracks, %d with metadata, %d issues",
            root,
            report.files_seen,
            report.tracks_indexed,
            report.metadata_stored,
            len(report.issues),
        )
        return report

    async def _index_file(self, report: ScanReport, file_path: Path) -> None:
        try:
            track_id = await self._db.get_or_create_track(file_path, report.music_dir_id)
            if track_id is None:
                report.issues.append(ScanIssue(path=file_path, message="track not indexed"))
                return

            metadata = await self._extractor.extract_and_store(track_id, file_path)
            await self._db.commit()
        except Exception as e:  # noqa: BLE001 - one bad file must not stop the scan
            await self._db.rollback()
            msg = f"{type(e).__name__}: {e}"
            report.issues.append(ScanIssue(path=file_path, message=msg))
            logger.debug("Scan issue for %s: %s", file_path, msg)
            return

        report.tracks_indexed += 1
        if metadata is not None:
            report.metadata_stored += 1
        logger.info("%d - INDEXED: %s", report.tracks_indexed, file_path)

    async def rebuild(self) -> list[ScanReport]:
        """
        Re-scan every music directory already known to the library.

        Tracks whose files have disappeared are left alone; see `prune_missing()`.
        """
        reports: list[ScanReport] = []
        for mdir in await self._db.list_music_dirs():
            report = await self.scan_with_report(mdir.path)
            if report is not None:
                reports.append(report)
        return reports

    async def prune_missing(self) -> int:
        """
        Remove tracks whose backing file no longer exists. Returns the number removed.

        This is an explicit pass; neither `scan()` nor `rebuild()` delete anything.
        """
        removed = 0
        for track in await self._db.list_tracks():
            if is_existing_file(Path(track.file_path)):
                continue
            if await self._db.remove_track(track.id):
                removed += 1
                logger.info("Pruned missing track: %s", track.file_path)
        return removed
