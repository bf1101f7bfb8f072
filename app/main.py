from __future__ import annotations

import argparse
import getpass
import logging
import sys
from datetime import date
from logging.handlers import RotatingFileHandler
from pathlib import Path

from app.application.dto.preop_form_dto import PreopFormFilters
from app.bootstrap.startup import create_first_admin, initialize_database
from app.config import DB_FILE, LOG_DIR, default_database_url, settings
from app.container import Container, build_container

ROOT_DIR = Path(__file__).resolve().parent.parent

logger = logging.getLogger(__name__)


def _setup_logging() -> Path:
    log_path = LOG_DIR / "app.log"
    handler = RotatingFileHandler(log_path, maxBytes=2_000_000, backupCount=3, encoding="utf-8")
    formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(settings.log_level)
    root_logger.addHandler(handler)
    return log_path


def _install_exception_hook(log_path: Path) -> None:
    def _handle_exception(exc_type, exc, tb) -> None:
        logging.getLogger(__name__).error("Unhandled exception", exc_info=(exc_type, exc, tb))
        print(f"Unexpected error. Details: {log_path}", file=sys.stderr)
        sys.__excepthook__(exc_type, exc, tb)

    sys.excepthook = _handle_exception


def _parse_date(raw: str) -> date:
    try:
        return date.fromisoformat(raw.strip())
    except ValueError as exc:
        raise argparse.ArgumentTypeError("dates must be in YYYY-MM-DD format") from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="preop-checklist", description="Pre-operative checklist records")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("init-db", help="Create or upgrade the database schema.")

    admin = commands.add_parser("create-admin", help="Create the first administrator account.")
    admin.add_argument("--login", required=True)
    admin.add_argument("--full-name", required=True)
    admin.add_argument("--password", help="Prompted for when omitted.")

    listing = commands.add_parser("list", help="List forms with their readiness status.")
    listing.add_argument("--from", dest="date_from", type=_parse_date)
    listing.add_argument("--to", dest="date_to", type=_parse_date)
    listing.add_argument("--ward")
    listing.add_argument("--page", type=int, default=1)
    listing.add_argument("--limit", type=int, default=20)

    search = commands.add_parser("search", help="Find forms by HN.")
    search.add_argument("hn")

    summary = commands.add_parser("summary", help="Count forms per readiness status.")
    summary.add_argument("--from", dest="date_from", type=_parse_date)
    summary.add_argument("--to", dest="date_to", type=_parse_date)
    summary.add_argument("--ward")
    return parser


def _format_item(item) -> str:
    return f"{item.form_date} {item.form_time}  {item.hn:<12} {item.patient_name:<30} {item.status:<7} {item.status_message}"


def _run_command(args: argparse.Namespace, container: Container) -> int:
    if args.command == "init-db":
        print("Database is up to date.")
        return 0

    if args.command == "create-admin":
        password = args.password or getpass.getpass("Password: ")
        user_id = create_first_admin(
            container.user_admin_service,
            login=args.login,
            full_name=args.full_name,
            password=password,
        )
        print(f"Administrator created (id={user_id}).")
        return 0

    if args.command == "list":
        filters = PreopFormFilters(ward=args.ward, date_from=args.date_from, date_to=args.date_to)
        page = container.preop_form_service.list_forms(filters, page=args.page, limit=args.limit)
        for item in page.items:
            print(_format_item(item))
        print(f"Page {page.page}, {len(page.items)} of {page.total_count} form(s).")
        return 0

    if args.command == "search":
        items = container.preop_form_service.search_by_hn(args.hn)
        for item in items:
            print(_format_item(item))
        if not items:
            print("No forms found.")
        return 0

    if args.command == "summary":
        filters = PreopFormFilters(ward=args.ward, date_from=args.date_from, date_to=args.date_to)
        for key, value in container.dashboard_service.status_summary(filters).items():
            print(f"{key:<18} {value}")
        return 0

    raise ValueError(f"Unknown command: {args.command}")


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    log_path = _setup_logging()
    _install_exception_hook(log_path)
    db_file = DB_FILE if settings.database_url == default_database_url() else None
    if not initialize_database(
        root_dir=ROOT_DIR,
        db_file=db_file,
        database_url=settings.database_url,
        log_dir=LOG_DIR,
    ):
        print(f"Database initialisation failed. Details: {log_path}", file=sys.stderr)
        return 1

    container = build_container()
    try:
        return _run_command(args, container)
    except ValueError as exc:
        logger.info("Command %s failed: %s", args.command, exc)
        print(f"Error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
