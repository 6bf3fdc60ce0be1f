"""
VitalGate command line.

Usage:
    vitalgate serve [--host 0.0.0.0] [--port 8000] [--reload]
    vitalgate create-admin --email <email> --password <password> --full-name <name>
                           [--fcm-token <token>] [--id <id>]
    vitalgate sync --source export.json [--watch] [--base-url URL] [--token TOKEN]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from vitalgate.config import get_settings
from vitalgate.core.logging_config import configure_logging
from vitalgate.sync.records import HISTORY_RANGE_DAYS, SYNC_INTERVAL_HOURS, interval_seconds

logger = logging.getLogger(__name__)


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the API under uvicorn."""
    import uvicorn

    uvicorn.run(
        "vitalgate.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=get_settings().log_level.lower(),
    )
    return 0


def cmd_create_admin(args: argparse.Namespace) -> int:
    """Create a user account unless the e-mail is already registered."""
    from vitalgate.services.auth import UserExistsError, get_auth_service

    try:
        user = get_auth_service().create_user(
            email=args.email,
            password=args.password,
            full_name=args.full_name,
            fcm_token=args.fcm_token,
            user_id=args.id,
        )
    except UserExistsError as exc:
        print(str(exc))
        return 0
    except Exception as exc:
        logger.exception("Failed to create admin user")
        print(f"Failed to create admin user: {exc}", file=sys.stderr)
        return 1

    print(f"Admin user created: {user.email}")
    return 0


def cmd_sync(args: argparse.Namespace) -> int:
    """Upload device export records to the API, once or on a schedule."""
    from vitalgate.sync.source import JsonExportSource
    from vitalgate.sync.worker import SyncHistoryLog, SyncWorker

    source_path = Path(args.source)
    if not source_path.exists():
        print(f"Error: Source file not found: {source_path}", file=sys.stderr)
        return 1

    worker = SyncWorker(
        JsonExportSource(source_path),
        base_url=args.base_url,
        access_token=args.token,
        history_range=args.history_range,
        batch_size=args.batch_size,
        history_log=SyncHistoryLog(Path(args.history_log)) if args.history_log else None,
    )

    if args.watch:
        interval = interval_seconds(args.interval or get_settings().sync_interval)
        print(f"Syncing every {interval // 3600}h (Ctrl+C to stop)")
        try:
            asyncio.run(worker.run_forever(interval))
        except KeyboardInterrupt:
            print("Stopped")
        return 0

    result = asyncio.run(worker.run(is_background_sync=False))
    if result.skipped:
        print("Not authenticated: set a base URL and access token. Nothing synced.")
        return 0

    print(f"Sync completed: {result.success_count} uploaded, {result.failed_count} failed")
    for error in result.errors:
        print(f"  {error}", file=sys.stderr)
    return 0 if result.failed_count == 0 else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vitalgate",
        description="VitalGate API and health-data sync client",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Run the API server")
    serve_parser.add_argument("--host", default="0.0.0.0", help="Bind address (default: 0.0.0.0)")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port (default: 8000)")
    serve_parser.add_argument("--reload", action="store_true", help="Reload on code changes")

    # create-admin command
    admin_parser = subparsers.add_parser("create-admin", help="Create a user account")
    admin_parser.add_argument("--email", required=True)
    admin_parser.add_argument("--password", required=True)
    admin_parser.add_argument("--full-name", required=True, dest="full_name")
    admin_parser.add_argument("--fcm-token", dest="fcm_token", help="Device push token")
    admin_parser.add_argument("--id", help="User id (default: random UUID)")

    # sync command
    sync_parser = subparsers.add_parser("sync", help="Upload device records to the API")
    sync_parser.add_argument("--source", required=True, help="Device export JSON file")
    sync_parser.add_argument("--watch", action="store_true", help="Keep syncing at --interval")
    sync_parser.add_argument(
        "--interval",
        choices=list(SYNC_INTERVAL_HOURS),
        help="Sync interval for --watch (default: from settings)",
    )
    sync_parser.add_argument(
        "--history-range",
        choices=list(HISTORY_RANGE_DAYS),
        dest="history_range",
        help="How far back each sync reads (default: from settings)",
    )
    sync_parser.add_argument("--base-url", dest="base_url", help="API base URL")
    sync_parser.add_argument("--token", help="Access token")
    sync_parser.add_argument("--batch-size", type=int, dest="batch_size", help="Records per request")
    sync_parser.add_argument("--history-log", dest="history_log", help="Sync history JSON file")

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    configure_logging(get_settings().log_level)

    commands = {
        "serve": cmd_serve,
        "create-admin": cmd_create_admin,
        "sync": cmd_sync,
    }
    return commands[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
