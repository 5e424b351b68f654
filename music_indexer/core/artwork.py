import asyncio
import contextlib
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from music_indexer.core.db.models import AlbumId
from music_indexer.core.tags import TagReader

logger = logging.getLogger(__name__)


class AlbumArtCache:
    """
    On-disk cache of embedded album art, one file per album.

    Layout:
    - {data_dir}/{album_id}: raw picture bytes exactly as extracted from the
      audio file. No extension, no MIME sidecar.

    Album ids are stable, so the file name never needs to change. Art is
    written at most once per album: once the file exists, later tracks of the
    same album do not touch it or re-read their pictures.

    Writes go through a temporary file + `os.replace`, so a concurrent reader
    never sees a half-written picture. The existence check itself is not
    guarded; run one writer at a time.
    """

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, album_id: AlbumId) -> Path:
        return self.data_dir / str(int(album_id))

    def has(self, album_id: AlbumId) -> bool:
        return self.path_for(album_id).exists()

    def read(self, album_id: AlbumId) -> Optional[bytes]:
        path = self.path_for(album_id)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None

    async def ensure(self, album_id: AlbumId, file_path: Path, reader: TagReader) -> bool:
        """
        Make sure album art for `album_id` is cached, extracting it from `file_path` if needed.

        Returns:
            True if a picture was written by this call, False if it was already
            cached or the file has no embedded picture.
        """
        if self.has(album_id):
            return False

        data = await asyncio.to_thread(reader.read_picture, file_path)
        if not data:
            return False

        await asyncio.to_thread(self._write_atomic, self.path_for(album_id), data)
        logger.debug("Cached album art for album id %s from %s", album_id, file_path)
        return True

    def evict(self, album_id: AlbumId) -> bool:
        """Remove cached art for an album. Returns True if a file was removed."""
        try:
            self.path_for(album_id).unlink()
        except FileNotFoundError:
            return False
        return True

    def _write_atomic(self, target: Path, data: bytes) -> None:
        fd, tmp_name = tempfile.mkstemp(dir=self.data_dir, prefix=".art-")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_name, target)
        except BaseException:
            with contextlib.suppress(OSError):
                os.unlink(tmp_name)
            raise
