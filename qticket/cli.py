"""
QueueTicket command line.

    qticket serve                     run the web/document server
    qticket distributor --queue NAME  issue and call numbers from a terminal
    qticket display --queue NAME      terminal display board
    qticket cleanup [--remote URL]    run the inactivity sweep once
"""

from __future__ import annotations

import argparse
import sys
from datetime import timedelta
from typing import List, Optional

from .storage.base import KeyValueStorage
from .storage.json_files import JsonFileStorage, ServerFileStorage
from .storage.mirrored import MirroredStorage
from .storage.remote import RemoteDocumentStore
from .utils.config import Settings, config_manager
from .utils.exceptions import QueueTicketError
from .utils.logger import get_logger, setup_logger

logger = get_logger(__name__)


def _configure_logging(settings: Settings) -> None:
    cfg = settings.logging
    setup_logger(
        log_level=cfg.level,
        log_format=cfg.format,
        file_path=cfg.file_path,
        max_bytes=cfg.max_bytes,
        backup_count=cfg.backup_count,
    )


def _server_storage(settings: Settings) -> ServerFileStorage:
    return ServerFileStorage(settings.server.auth_path(), settings.server.backup_path())


def cmd_serve(args: argparse.Namespace, settings: Settings) -> int:
    import uvicorn

    from web.main import app

    host = args.host or settings.server.host
    port = args.port or settings.server.port
    logger.info("Starting queue server", host=host, port=port)
    uvicorn.run(app, host=host, port=port, reload=False)
    return 0


def cmd_distributor(args: argparse.Namespace, settings: Settings) -> int:
    from ui.distributor_console import DistributorConsole

    remote_url = args.remote or (settings.remote.base_url if settings.remote.enabled else None)
    storage: KeyValueStorage = JsonFileStorage(args.local_dir or settings.remote.local_dir)
    mirrored = None
    if remote_url:
        mirrored = MirroredStorage(
            storage, RemoteDocumentStore(remote_url, timeout=settings.remote.timeout_seconds)
        )
        storage = mirrored
    try:
        DistributorConsole(storage, settings.display.link_base_url).run(args.queue)
    finally:
        if mirrored is not None:
            mirrored.close()
    return 0


def cmd_display(args: argparse.Namespace, settings: Settings) -> int:
    from ui.display_board import DisplayBoard

    from .services.display_reader import DisplayReader
    from .services.queue_state_store import QueueStateStore

    storage: KeyValueStorage
    if args.remote:
        storage = RemoteDocumentStore(args.remote, timeout=settings.remote.timeout_seconds)
    else:
        storage = _server_storage(settings)

    reader = DisplayReader(QueueStateStore(storage, args.queue), viewer_number=args.number)
    DisplayBoard(reader, interval=args.interval or settings.display.poll_interval_seconds).run()
    return 0


def cmd_cleanup(args: argparse.Namespace, settings: Settings) -> int:
    from .services.cleanup import CleanupService
    from .services.credential_store import CredentialStore

    if args.remote:
        remote = RemoteDocumentStore(args.remote, timeout=settings.remote.timeout_seconds)
        result = remote.cleanup_status() if args.status else remote.trigger_cleanup()
        for field, value in result.items():
            print(f"{field}: {value}")
        return 0

    storage = _server_storage(settings)
    service = CleanupService(
        CredentialStore(storage),
        storage,
        max_inactive=timedelta(days=settings.cleanup.max_inactive_days),
    )
    report = service.run_cleanup()
    print(f"Checked {report.checked} queue(s), removed {len(report.removed)}")
    for name in report.removed:
        print(f"  - {name}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="qticket", description="QueueTicket queue numbers and displays")
    parser.add_argument("--config", default=None, help="path to settings.yaml")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_serve = sub.add_parser("serve", help="run the web/document server")
    p_serve.add_argument("--host", default=None)
    p_serve.add_argument("--port", type=int, default=None)
    p_serve.set_defaults(func=cmd_serve)

    p_dist = sub.add_parser("distributor", help="issue and call numbers for one queue")
    p_dist.add_argument("--queue", required=True)
    p_dist.add_argument("--remote", default=None, help="document server URL to mirror to")
    p_dist.add_argument("--local-dir", default=None, help="directory for the local copy")
    p_dist.set_defaults(func=cmd_distributor)

    p_display = sub.add_parser("display", help="terminal display board for one queue")
    p_display.add_argument("--queue", required=True)
    p_display.add_argument("--number", type=int, default=None, help="your ticket number")
    p_display.add_argument("--remote", default=None, help="document server URL instead of local files")
    p_display.add_argument("--interval", type=float, default=None, help="seconds between refreshes")
    p_display.set_defaults(func=cmd_display)

    p_cleanup = sub.add_parser("cleanup", help="remove inactive queues now")
    p_cleanup.add_argument("--remote", default=None, help="ask this document server to run its sweep")
    p_cleanup.add_argument("--status", action="store_true", help="with --remote, only show the last run")
    p_cleanup.set_defaults(func=cmd_cleanup)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = config_manager.load_settings(args.config)
        _configure_logging(settings)
        return args.func(args, settings)
    except QueueTicketError as e:
        logger.error("Command failed", command=args.cmd, error=str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
