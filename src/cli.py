#!/usr/bin/env python3
"""
CLI for the development server and the standalone watcher.

Usage:
    python -m src.cli serve --dev --watch src
    python -m src.cli watch src tests
"""

import argparse
import logging
import signal
import sys
import threading
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from src.dev_server import DevServer, DevServerConfig
from src.watcher import AutoShutdownPlugin, WatchEventLoop, WatcherConfig


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("cli")

# Conventional exit status for a process ended by Ctrl+C
EXIT_INTERRUPTED = 130


class GracefulShutdown:
    """Handle graceful shutdown on SIGINT/SIGTERM."""

    def __init__(self):
        self.should_exit = False
        signal.signal(signal.SIGINT, self._handler)
        signal.signal(signal.SIGTERM, self._handler)

    def _handler(self, signum, frame):
        logger.info("Received shutdown signal, stopping...")
        self.should_exit = True


def server_config_from_args(args: argparse.Namespace) -> DevServerConfig:
    """Environment config with command line overrides applied."""
    cfg = DevServerConfig.from_env()
    if args.host is not None:
        cfg.host = args.host
    if args.port is not None:
        cfg.port = args.port
    if args.dev:
        cfg.dev_mode = True
    if args.watch:
        cfg.watch_paths = [Path(p) for p in args.watch]
    return cfg


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the development server."""
    cfg = server_config_from_args(args)

    plugins = []
    if cfg.dev_mode:
        plugins.append(AutoShutdownPlugin(cfg.watch_paths, WatcherConfig(
            poll_interval_ms=args.poll_interval_ms,
        )))
        logger.info("Dev mode: server stops on changes under "
                    + ", ".join(str(p) for p in cfg.watch_paths))

    server = DevServer(cfg, plugins)
    server.serve()
    logger.info("Server stopped")
    return 0


def cmd_watch(args: argparse.Namespace) -> int:
    """Block until something changes under the given roots."""
    roots = [Path(r) for r in args.roots]

    for root in roots:
        if not root.exists():
            logger.error(f"Root path does not exist: {root}")
            return 1
        if not root.is_dir():
            logger.error(f"Root path is not a directory: {root}")
            return 1

    config = WatcherConfig(
        poll_interval_ms=args.poll_interval_ms,
        follow_symlinks=args.follow_symlinks,
    )
    changed = threading.Event()
    shutdown = GracefulShutdown()

    loop = WatchEventLoop(roots, changed.set, config=config)
    loop.start()

    logger.info(f"Watching {len(roots)} root(s)")
    for root in roots:
        logger.info(f"  - {root}")
    logger.info("Press Ctrl+C to stop")

    while not shutdown.should_exit:
        if changed.wait(timeout=0.5):
            logger.info("Change detected")
            return config.exit_code

    loop.stop(timeout=2.0)
    logger.info("Watcher stopped")
    return EXIT_INTERRUPTED


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Development server that stops itself when its sources change",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Serve with auto shutdown on changes under ./src
  python -m src.cli serve --dev

  # Serve and watch extra directories
  python -m src.cli serve --dev --watch src templates

  # Wait for the next change and exit (for shell relaunch loops)
  python -m src.cli watch src
        """,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the development server")
    serve_parser.add_argument("--host", default=None, help="Bind address (or DEV_SERVER_HOST, default: 127.0.0.1)")
    serve_parser.add_argument("--port", type=int, default=None, help="Port (or DEV_SERVER_PORT, default: 9000)")
    serve_parser.add_argument("--dev", action="store_true", help="Stop the server on source changes (or DEV_MODE)")
    serve_parser.add_argument("--watch", nargs="+", default=None, help="Directories to watch in dev mode (default: src)")
    serve_parser.add_argument("--poll-interval-ms", type=int, default=300, help="Watch poll interval in ms")
    serve_parser.set_defaults(func=cmd_serve)

    # Watch command
    watch_parser = subparsers.add_parser("watch", help="Exit on the first change under the given roots")
    watch_parser.add_argument("roots", nargs="+", help="Root directories to watch")
    watch_parser.add_argument("--poll-interval-ms", type=int, default=300, help="Poll interval in ms")
    watch_parser.add_argument("--follow-symlinks", action="store_true", help="Descend into symlinked directories")
    watch_parser.set_defaults(func=cmd_watch)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()

    args = build_parser().parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
