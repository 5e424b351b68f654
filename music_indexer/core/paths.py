"""Filesystem path helpers shared by the identity resolver and the scanner."""

from __future__ import annotations

from pathlib import Path


def canonical_path(path: str | Path) -> Path:
    """
    Return the absolute, symlink-resolved form of `path`.

    Directories and tracks are stored under this form so lookups by path are
    exact matches regardless of how the caller spelled the path.
    """
    return Path(path).expanduser().resolve()


def is_existing_dir(path: Path) -> bool:
    try:
        return path.is_dir()
    except OSError:
        return False


def is_existing_file(path: Path) -> bool:
    try:
        return path.is_file()
    except OSError:
        return False


def is_storable_path(path: Path) -> bool:
    """
    True if `path` can be stored as UTF-8 text.

    On POSIX, file names that are not valid UTF-8 come back from the OS with
    surrogate escapes; SQLite refuses to bind such strings.
    """
    try:
        str(path).encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True
