"""
Music Indexer - Entry Point

Run with: python -m music_indexer <COMMAND> ...
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from music_indexer import __version__
from music_indexer.config import IndexerConfig, load_config
from music_indexer.core import SchemaInitError
from music_indexer.core.library import MusicLibrary
from music_indexer.core.library_db import LibraryDb

logger = logging.getLogger("music_indexer")

LIST_TARGETS = ("mdirs", "music-dirs", "artists", "albums", "tracks")


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application."""
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Reduce noise from third-party libraries
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="music-indexer",
        description="Index music files and their metadata into a SQLite library",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose (debug) logging",
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a TOML config file (default: ~/.config/music-indexer/config.toml)",
    )

    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="Path to the library database (overrides config)",
    )

    parser.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help="Directory for cached album art (overrides config)",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    commands = parser.add_subparsers(dest="command", metavar="COMMAND")

    commands.add_parser("help", help="Display this message")

    add = commands.add_parser(
        "add", aliases=["insert"], help="Scan directories (relative or absolute paths)"
    )
    add.add_argument("directories", nargs="+", type=Path, metavar="DIRECTORY")

    lst = commands.add_parser("list", help="List everything of one kind")
    lst.add_argument("what", choices=LIST_TARGETS)

    commands.add_parser("build", help="Rescan every known directory")

    remove = commands.add_parser("remove", help="Remove directories and their tracks")
    remove.add_argument("directories", nargs="+", type=Path, metavar="DIRECTORY")

    commands.add_parser("prune", help="Drop tracks whose files no longer exist")

    return parser


async def _run_add(library: MusicLibrary, directories: list[Path]) -> int:
    status = 0
    for directory in directories:
        report = await library.scan_with_report(directory)
        if report is None:
            print(f"{directory}: not a directory", file=sys.stderr)
            status = 1
            continue
        print(
            f"{report.root}: id={report.music_dir_id} files={report.files_seen} "
            f"tracks={report.tracks_indexed} metadata={report.metadata_stored} "
            f"issues={len(report.issues)}"
        )
    return status


async def _run_list(library: MusicLibrary, what: str) -> int:
    if what in ("mdirs", "music-dirs"):
        for mdir in await library.get_music_dirs():
            print(f"{mdir.id}\t{mdir.path}")
    elif what == "artists":
        for artist in await library.get_artists():
            print(f"{artist.id}\t{artist.name}")
    elif what == "albums":
        for album in await library.get_albums():
            artist = "" if album.artist_id is None else str(album.artist_id)
            print(f"{album.id}\t{album.name}\t{artist}")
    else:
        for track in await library.get_tracks():
            number = ""
            if track.metadata is not None and track.metadata.track_number is not None:
                number = str(track.metadata.track_number)
            print(f"{track.id}\t{number}\t{track.title}\t{track.file_path}")
    return 0


async def _run_remove(library: MusicLibrary, directories: list[Path]) -> int:
    status = 0
    for directory in directories:
        if not await library.remove_directory(directory):
            print(f"{directory}: not in the library", file=sys.stderr)
            status = 1
    return status


async def run_command(args: argparse.Namespace, config: IndexerConfig) -> int:
    """Open the library, run one command, close the library."""
    config.db_path.parent.mkdir(parents=True, exist_ok=True)
    db = LibraryDb(config.db_path)
    await db.open()
    try:
        library = MusicLibrary(db=db, data_dir=config.data_dir)
        await library.initialize()

        if args.command in ("add", "insert"):
            return await _run_add(library, args.directories)
        if args.command == "list":
            return await _run_list(library, args.what)
        if args.command == "build":
            reports = await library.rebuild()
            print(f"Rescanned {len(reports)} directories")
            return 0
        if args.command == "remove":
            return await _run_remove(library, args.directories)
        if args.command == "prune":
            removed = await library.prune_missing()
            print(f"Pruned {removed} missing tracks")
            return 0
        raise ValueError(f"Unknown command: {args.command}")
    finally:
        await db.close()


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the application."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(verbose=args.verbose)

    if args.command in (None, "help"):
        parser.print_help()
        return 0

    try:
        config = load_config(args.config).with_overrides(db_path=args.db, data_dir=args.data_dir)
        return asyncio.run(run_command(args, config))
    except SchemaInitError as e:
        logger.error("Cannot initialize the library database: %s", e)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as e:
        logger.exception("Fatal error: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
