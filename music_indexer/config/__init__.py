"""
Configuration management for the music indexer.

Settings come from an optional TOML file; command-line options override them.
The resulting `IndexerConfig` is passed explicitly to whoever needs it (there is
no module-level mutable configuration).

Example `~/.config/music-indexer/config.toml`:

    [indexer]
    db_path = "~/.local/share/music-indexer/library.sqlite3"
    data_dir = "~/.local/share/music-indexer"
"""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = Path("~/.local/share/music-indexer")
DEFAULT_DB_NAME = "library.sqlite3"
DEFAULT_CONFIG_PATH = Path("~/.config/music-indexer/config.toml")


@dataclass(frozen=True, slots=True)
class IndexerConfig:
    """
    Loaded indexer configuration.

    `data_dir` holds the album-art cache (one file per album id).
    """

    db_path: Path
    data_dir: Path

    def with_overrides(
        self, *, db_path: Path | None = None, data_dir: Path | None = None
    ) -> IndexerConfig:
        return IndexerConfig(
            db_path=_expand(db_path) if db_path is not None else self.db_path,
            data_dir=_expand(data_dir) if data_dir is not None else self.data_dir,
        )


def _expand(path: str | Path) -> Path:
    return Path(path).expanduser()


def default_config() -> IndexerConfig:
    data_dir = _expand(DEFAULT_DATA_DIR)
    return IndexerConfig(db_path=data_dir / DEFAULT_DB_NAME, data_dir=data_dir)


def _parse_indexer_section(data: dict[str, Any]) -> IndexerConfig:
    defaults = default_config()
    section = data.get("indexer", {})
    if not isinstance(section, dict):
        raise ValueError("[indexer] must be a table")

    data_dir = _expand(section["data_dir"]) if "data_dir" in section else defaults.data_dir
    if "db_path" in section:
        db_path = _expand(section["db_path"])
    else:
        db_path = data_dir / DEFAULT_DB_NAME
    return IndexerConfig(db_path=db_path, data_dir=data_dir)


def load_config(config_path: Path | None = None) -> IndexerConfig:
    """
    Load indexer configuration from a TOML file.

    Args:
        config_path: Path to the TOML file. If None, the default location is
            used when it exists; otherwise built-in defaults are returned.

    Returns:
        Loaded IndexerConfig instance.
    """
    if config_path is None:
        config_path = _expand(DEFAULT_CONFIG_PATH)
        if not config_path.exists():
            logger.debug("No config file at %s, using defaults", config_path)
            return default_config()

    logger.debug("Loading indexer config from %s", config_path)

    with Path(config_path).open("rb") as f:
        data = tomllib.load(f)

    return _parse_indexer_section(data)
