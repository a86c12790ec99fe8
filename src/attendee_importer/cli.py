"""Command line entry point.

Usage::

    attendee-importer --event https://.../events/1234/registrations --csv attendees.csv
    attendee-importer --event ... --sheet "https://docs.google.com/spreadsheets/d/<id>/edit#gid=0"
    attendee-importer --web --port 3000
"""

from __future__ import annotations

import argparse
import asyncio
import os
from pathlib import Path
from typing import List, Optional

from .config import Settings, ensure_auth_dir, load_settings
from .errors import ImporterError
from .logger import logger, progress, set_log_profile, step, success
from .models import Credentials, ImportResult
from .orchestrator import run_importer
from .report import render_attendees, render_summary, write_failures
from .session import SessionConfig
from .sources import load_attendees


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Import attendees from CSV or Google Sheets into an event")
    parser.add_argument("-w", "--web", action="store_true", help="Start the web UI instead of importing")
    parser.add_argument("-p", "--port", type=int, default=3000, help="Port for the web UI")
    parser.add_argument("-c", "--csv", help="CSV file path")
    parser.add_argument("--sheet", default=settings.google_sheet_url or None, help="Google Sheets URL")
    parser.add_argument("-e", "--event", default=settings.event_url or None, help="Event registrations URL")
    parser.add_argument("--email", default=settings.email or None, help="Login email")
    parser.add_argument("--password", default=settings.password or None, help="Login password")
    parser.add_argument("-s", "--slow", type=int, default=settings.slow_mo_ms, help="Slow motion delay in ms")
    parser.add_argument("-a", "--auth", default=str(settings.auth_state_path), help="Auth state file path")
    parser.add_argument("--failures", default=str(settings.failures_path), help="Where to write failure details")
    visibility = parser.add_mutually_exclusive_group()
    visibility.add_argument("--headed", dest="headless", action="store_false", help="Show the browser window")
    visibility.add_argument("--headless", dest="headless", action="store_true", help="Hide the browser window")
    parser.set_defaults(headless=settings.headless)
    parser.add_argument(
        "--log-profile",
        choices=["quiet", "user", "debug", "verbose"],
        default=None,
        help="Console verbosity",
    )
    return parser


def _credentials(args: argparse.Namespace) -> Optional[Credentials]:
    if args.email and args.password:
        return Credentials(email=args.email, password=args.password)
    return None


async def run_cli_import(args: argparse.Namespace, settings: Settings) -> ImportResult:
    location = args.csv or args.sheet
    step("Parsing attendee source...")
    attendees = await load_attendees(location)
    success(f"Found {len(attendees)} attendees")
    render_attendees(attendees)

    ensure_auth_dir(args.auth)
    session_config = SessionConfig(
        target_url=args.event,
        auth_state_path=Path(args.auth),
        headless=args.headless,
        slow_mo_ms=args.slow,
        credentials=_credentials(args),
    )
    step("Starting import...")
    return await run_importer(attendees, session_config, settings.throttle)


def main(argv: Optional[List[str]] = None) -> int:
    settings = load_settings(os.getenv("ENV_FILE", ".env"))
    args = build_parser(settings).parse_args(argv)
    if args.log_profile:
        set_log_profile(args.log_profile)

    if args.web:
        from .web import start_web_ui

        start_web_ui(settings, port=args.port)
        return 0

    if not args.event:
        logger.error("Event URL is required. Use --event or -e")
        return 1
    if not (args.csv or args.sheet):
        logger.error("CSV file is required. Use --csv/-c or --sheet")
        return 1

    try:
        result = asyncio.run(run_cli_import(args, settings))
    except ImporterError as exc:
        logger.error(f"Error: {exc}")
        return 1

    render_summary(result)
    exported = write_failures(result, args.failures)
    if exported is not None:
        progress(f"Failure details saved to {exported}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
