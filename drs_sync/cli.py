"""
Command-line interface for the DRS -> Airtable sync.

    python -m drs_sync scrape [--date=YYYY-MM-DD] [--dry-run]
    python -m drs_sync pull   [--date=... | --start=... --end=...] [--dry-run]
    python -m drs_sync export [--date=...] [--out=DIR] [--sync]
    python -m drs_sync relay  [--host=0.0.0.0] [--port=8787]

Exit codes: 0 success, 1 runtime failure, 2 missing configuration.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from drs_sync.config.settings import Settings
from drs_sync.exceptions import ConfigurationError, DRSSyncError
from drs_sync.pipeline import AIRTABLE_SETTINGS, run_export, run_pull, run_scrape
from drs_sync.utils.diagnostics import FileDiagnosticSink
from drs_sync.utils.helpers import today_local, today_utc
from drs_sync.utils.logger import configure_logging
from drs_sync.utils.validators import validate_date_format, validate_date_range

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="drs_sync",
        description="Sync DRS daily orders into Airtable",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    scrape = sub.add_parser("scrape", help="Log into DRS, scrape the orders table, upsert to Airtable")
    scrape.add_argument("--date", help="Target date YYYY-MM-DD (default: DATE env or today UTC)")
    scrape.add_argument("--dry-run", action="store_true", help="Do not write to Airtable")

    pull = sub.add_parser("pull", help="Pull orders from the relay, upsert to Airtable")
    pull.add_argument("--date", help="Target date YYYY-MM-DD (default: DATE env or today UTC)")
    pull.add_argument("--start", help="Range start YYYY-MM-DD (default: START env)")
    pull.add_argument("--end", help="Range end YYYY-MM-DD (default: END env)")
    pull.add_argument("--dry-run", action="store_true", help="Do not write to Airtable")

    export = sub.add_parser("export", help="Download the DRS daily report as CSV")
    export.add_argument("--date", help="Report date YYYY-MM-DD (default: DATE env or today)")
    export.add_argument("--out", help="Output directory (default: OUT_DIR env or ./exports)")
    export.add_argument("--sync", action="store_true", help="Also upsert the CSV rows to Airtable")

    relay = sub.add_parser("relay", help="Serve the CORS relay for the DRS JSON API")
    relay.add_argument("--host", default="0.0.0.0")
    relay.add_argument("--port", type=int, default=8787)

    return parser


def _require_date(value: str, label: str = "date") -> str:
    if not validate_date_format(value):
        raise ConfigurationError(f"Invalid {label} {value!r} (expected YYYY-MM-DD)")
    return value


def _cmd_scrape(args, settings: Settings) -> dict:
    required = ["drs_username", "drs_password", "drs_orders_url"]
    if not settings.drs_login_url:
        required.append("drs_base")
    if not args.dry_run:
        required.extend(AIRTABLE_SETTINGS)
    settings.require(*required)

    date = _require_date(args.date or settings.date or today_utc())
    return run_scrape(
        settings,
        date,
        diagnostics=FileDiagnosticSink(settings.diagnostics_dir),
        dry_run=args.dry_run,
    )


def _cmd_pull(args, settings: Settings) -> dict:
    required = ["worker_url"]
    if not args.dry_run:
        required.extend(AIRTABLE_SETTINGS)
    settings.require(*required)

    start = args.start or settings.start
    end = args.end or settings.end
    date = args.date or settings.date or today_utc()
    if start or end:
        start, end = start or end, end or start
        if not validate_date_range(start, end):
            raise ConfigurationError(f"Invalid date range {start}..{end}")
    else:
        _require_date(date)

    return run_pull(
        settings,
        date=date,
        start=start,
        end=end,
        diagnostics=FileDiagnosticSink(settings.diagnostics_dir),
        dry_run=args.dry_run,
    )


def _cmd_export(args, settings: Settings) -> dict:
    required = ["drs_username", "drs_password"]
    if not (settings.drs_login_url or settings.drs_base):
        required.append("drs_login_url")
    if args.sync:
        required.extend(AIRTABLE_SETTINGS)
    settings.require(*required)

    date = _require_date(args.date or settings.date or today_local())
    out_dir = Path(args.out) if args.out else settings.out_dir
    return run_export(
        settings,
        date,
        out_dir=out_dir,
        diagnostics=FileDiagnosticSink(settings.diagnostics_dir),
        sync=args.sync,
    )


def _cmd_relay(args, settings: Settings) -> dict:
    from drs_sync.relay.app import create_app

    missing = settings.missing("drs_base", "drs_dev_key", "drs_api_token")
    if missing:
        logger.warning(f"Relay starting without {', '.join(missing)}; requests will get 500")
    create_app(settings).run(host=args.host, port=args.port)
    return {}


COMMANDS = {
    "scrape": _cmd_scrape,
    "pull": _cmd_pull,
    "export": _cmd_export,
    "relay": _cmd_relay,
}


def _fail(error: Exception) -> None:
    print(json.dumps({"error": str(error), "type": error.__class__.__name__}), file=sys.stderr)


def main(argv: Optional[List[str]] = None, settings: Optional[Settings] = None) -> int:
    """Main entry point; returns the process exit code."""
    args = build_parser().parse_args(argv)

    try:
        settings = settings or Settings.from_env()
    except ConfigurationError as e:
        _fail(e)
        return EXIT_CONFIG

    configure_logging("DEBUG" if args.verbose else settings.log_level, settings.log_file or None)

    try:
        summary = COMMANDS[args.command](args, settings)
    except ConfigurationError as e:
        logger.error(str(e))
        _fail(e)
        return EXIT_CONFIG
    except DRSSyncError as e:
        logger.error(f"{e.__class__.__name__}: {e}")
        _fail(e)
        return EXIT_FAILURE
    except Exception as e:
        logger.exception("Unexpected failure")
        _fail(e)
        return EXIT_FAILURE

    if summary:
        print(json.dumps(summary, indent=2))
    return EXIT_OK
