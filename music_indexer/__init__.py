"""
music-indexer - index local audio files into a relational library store.

The indexer discovers music directories, recognizes supported audio files,
extracts embedded tag metadata and keeps a normalized SQLite database that a
music player can query.
"""

__version__ = "0.1.0"
__license__ = "GPL-2.0"

from music_indexer.core.library import MusicLibrary

__all__ = ["MusicLibrary", "__version__"]
