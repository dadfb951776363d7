from __future__ import annotations

import argparse
import logging
import sys
import threading
from pathlib import Path
from typing import Optional, Sequence

from school_portal.api.attendance import AttendanceApi
from school_portal.api.http import ApiClient
from school_portal.config.credential_store import CredentialProvider, LocalStorage
from school_portal.config.settings import Settings, settings
from school_portal.logging_setup import configure_logging
from school_portal.services.attendance_month import AttendanceMonthViewModel
from school_portal.services.attendance_reducers import status_letter
from school_portal.services.gradebook import GradebookViewModel
from school_portal.services.qr_render import render_ascii, render_png

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="school-portal", description="Teacher tools for the school portal.")
    parser.add_argument("--token", help="Bearer token; defaults to the stored teacher token.")
    parser.add_argument("--log-level", default=None, help="Overrides LOG_LEVEL.")
    commands = parser.add_subparsers(dest="command", required=True)

    month = commands.add_parser("month", help="Print the attendance grid for a month.")
    month.add_argument("course_instance")
    month.add_argument("--year", type=int)
    month.add_argument("--month", type=int)

    live = commands.add_parser("live", help="Open today's session and show the rotating QR code.")
    live.add_argument("course_instance")
    live.add_argument("--qr-png", type=Path, help="Also write every QR code to this PNG file.")

    grades = commands.add_parser("gradebook", help="Export the gradebook as CSV.")
    grades.add_argument("course_instance")
    grades.add_argument("--csv", type=Path, required=True)
    return parser


def build_client(config: Settings, token: Optional[str]) -> ApiClient:
    if token:
        credentials = CredentialProvider.static("token_teacher", token)
    else:
        credentials = CredentialProvider(local=LocalStorage(config.credentials_path))
    return ApiClient(config.backend_url, credentials, timeout=config.request_timeout)


def format_grid(view: AttendanceMonthViewModel) -> str:
    data = view.data
    if data is None:
        return view.error or "No data."

    name_width = max([len(student.display_name) for student in data.students] + [7])
    days = range(1, data.days_in_month + 1)
    header = " " * name_width + " " + "".join(f"{day % 10}" for day in days) + "  pres   %"
    lines = [f"{view.month_name} {data.year}", header]
    for row in view.grid_rows():
        letters = "".join(status_letter(cell.status) if cell.has_session else "." for cell in row.cells)
        lines.append(
            f"{row.student.display_name:<{name_width}} {letters}  {row.present_count:>4} {row.percent:>3}"
        )

    overall = view.overall()
    if overall is not None:
        lines.append(
            f"Sessions: {data.session_count}  Students: {len(data.students)}  Average: {overall.avg_percent}%"
        )
    return "\n".join(lines)


def run_month(client: ApiClient, args: argparse.Namespace) -> int:
    view = AttendanceMonthViewModel(AttendanceApi(client), args.course_instance, year=args.year, month=args.month)
    if view.load_month() is None:
        print(view.error or "Failed to load month", file=sys.stderr)
        return 1
    print(format_grid(view))
    return 0


def run_live(client: ApiClient, args: argparse.Namespace) -> int:
    shown = {"value": ""}

    def on_change(view: AttendanceMonthViewModel) -> None:
        value = view.live.qr_value
        if not value or value == shown["value"]:
            return
        shown["value"] = value
        print(render_ascii(value), flush=True)
        if args.qr_png:
            render_png(value, args.qr_png)

    view = AttendanceMonthViewModel(
        AttendanceApi(client), args.course_instance, alert=lambda message: print(message, file=sys.stderr)
    )
    view.load_month()
    if not view.open_today_session():
        return 1

    # on_change is attached after opening so the initial grid load stays quiet
    view.on_change = on_change
    if view.live.qr_value:
        on_change(view)
    print("Session is live. Press Ctrl-C to close it.", file=sys.stderr)
    try:
        threading.Event().wait()
    except KeyboardInterrupt:
        pass
    finally:
        view.close_live_session()
        view.dispose()
    return 0


def run_gradebook(client: ApiClient, args: argparse.Namespace) -> int:
    view = GradebookViewModel(client, args.course_instance)
    if view.load() is None:
        print(view.error or "Failed to load gradebook", file=sys.stderr)
        return 1
    view.export_csv(args.csv)
    print(f"Wrote {args.csv}")
    return 0


COMMANDS = {
    "month": run_month,
    "live": run_live,
    "gradebook": run_gradebook,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level or settings.log_level)
    logger.debug("Using %s", settings)
    client = build_client(settings, args.token)
    return COMMANDS[args.command](client, args)


if __name__ == "__main__":
    sys.exit(main())
