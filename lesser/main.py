#!/usr/bin/env python3
"""
lesser - Main Entry Point
Page through piped input and files, optionally tracking appends
"""
import argparse
import logging
import sys
from pathlib import Path
from typing import BinaryIO, List, Optional, Sequence

from pydantic import ValidationError

from lesser import __version__
from lesser.config import LOG_LEVELS, PagerConfig
from lesser.errors import SourceIOError
from lesser.ingest.coordinator import IngestionCoordinator
from lesser.ingest.readers import FileReader, LineReader, StreamReader, WatchingFileReader
from lesser.session import PagerSession
from lesser.sources.multiplexer import SourceMultiplexer
from lesser.sources.source import Source
from lesser.store.line_store import LineStore
from lesser.store.timestamps import LogTimestampParser, TimestampParser, no_timestamps
from lesser.UI.app import run_app
from lesser.util import configure_logging, detach_piped_stdin
from lesser.viewport.controller import ViewportController

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lesser",
        description="Interactive terminal pager for piped input and files.",
        epilog="Keys: arrows/u/d scroll, / search, r regex search, g go to line, "
               "s next source, m merged view, q quit.",
    )
    parser.add_argument("files", nargs="*", type=Path, metavar="FILE",
                        help="files to page (stdin is used when it is piped)")
    parser.add_argument("-w", "--watch", action="store_true",
                        help="keep following files as they grow")
    parser.add_argument("-m", "--merge", action="store_true",
                        help="start in the timestamp-merged view of all sources")
    parser.add_argument("--log-file", default=None,
                        help="where to write diagnostics (default: user cache directory; empty to disable)")
    parser.add_argument("--log-level", choices=LOG_LEVELS, default=None, type=str.upper,
                        help="diagnostic log level")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def timestamp_parser_for(config: PagerConfig) -> TimestampParser:
    if not config.timestamp_formats:
        return no_timestamps
    return LogTimestampParser(config.timestamp_formats)


def open_sources(paths: Sequence[Path], config: PagerConfig,
                 stdin: Optional[BinaryIO] = None) -> List[Source]:
    """
    Create one source per input, piped stdin first

    Args:
        paths: Files named on the command line
        config: Settings (watch mode, encoding, poll interval)
        stdin: Piped input stream, if any

    Returns:
        Sources numbered in order

    Raises:
        SourceIOError: If a file cannot be opened; nothing stays open
    """
    parse_timestamp = timestamp_parser_for(config)
    sources: List[Source] = []

    def add(name: str, reader: LineReader, watch_mode: bool = False) -> None:
        source_id = len(sources)
        store = LineStore(source_id, timestamp_parser=parse_timestamp)
        sources.append(Source(source_id, name, store, reader, watch_mode=watch_mode))

    try:
        if stdin is not None:
            add("stdin", StreamReader(stdin, name="stdin", encoding=config.encoding))
        for path in paths:
            if config.watch:
                reader = WatchingFileReader(path, encoding=config.encoding,
                                            poll_interval=config.poll_interval)
            else:
                reader = FileReader(path, encoding=config.encoding)
            add(str(path), reader, watch_mode=config.watch)
    except SourceIOError:
        for source in sources:
            source.reader.close()
        raise
    return sources


def build_session(sources: Sequence[Source], config: PagerConfig) -> PagerSession:
    multiplexer = SourceMultiplexer(sources, merged=config.merge)
    controller = ViewportController(
        multiplexer,
        page_height=config.page_height,
        match_context=config.match_context,
    )
    return PagerSession(multiplexer, IngestionCoordinator(sources), controller)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Run the pager

    Returns:
        0 on normal quit, 1 if an input could not be opened
    """
    args = build_parser().parse_args(argv)

    try:
        config = PagerConfig.from_env(
            watch=args.watch or None,
            merge=args.merge or None,
            log_file=args.log_file,
            log_level=args.log_level,
        )
    except ValidationError as e:
        print(f"lesser: invalid configuration:\n{e}", file=sys.stderr)
        return 1

    try:
        configure_logging(config)
    except OSError as e:
        print(f"lesser: logging disabled: {e}", file=sys.stderr)

    try:
        piped = detach_piped_stdin()
        if piped is None and not args.files:
            print("lesser: nothing to page (name a file or pipe input in)", file=sys.stderr)
            return 1
        sources = open_sources(args.files, config, stdin=piped)
    except SourceIOError as e:
        logger.error(f"Cannot open input: {e}")
        print(f"lesser: {e}", file=sys.stderr)
        return 1

    logger.info(f"Paging {', '.join(source.display_name for source in sources)}")
    return run_app(build_session(sources, config))


def run() -> None:
    """Console script entry point"""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nlesser terminated by user", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    run()
