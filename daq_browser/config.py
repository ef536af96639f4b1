"""Command-line and environment configuration."""

import argparse
import logging
import os
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .timeresolve import DEFAULT_REFERENCE_TZ, parse_hhmm

DB_ENV = "DAQ_LOG_DIR"
TZ_ENV = "DAQ_BROWSER_TZ"
LOG_ENV = "DAQ_BROWSER_LOG"

DB_NAME = "daq_logs.db"
USAGE_HINT = (
    "Usage: daq-browser --db path/to/daq_logs.db "
    "[--hutch HUTCH] [--date YYYY-MM-DD] [--time HH:MM] [--mouse]"
)


class ConfigError(Exception):
    """Startup configuration is unusable."""


@dataclass(frozen=True)
class BrowserConfig:
    db_path: Path
    hutch: str = ""
    date: str = ""
    time: str = ""
    mouse: bool = False
    tz: str = DEFAULT_REFERENCE_TZ
    log_file: Path | None = None
    log_level: str = "INFO"


def db_candidates() -> list[Path]:
    return [
        Path(DB_NAME),
        Path("..") / DB_NAME,
        Path.home() / "proj-debug-daq" / DB_NAME,
    ]


def find_database(explicit: str | None) -> Path | None:
    """--db, then $DAQ_LOG_DIR, then the usual locations."""
    if explicit:
        return Path(explicit)
    env = os.environ.get(DB_ENV)
    if env:
        path = Path(env)
        # The variable may name the database or the directory holding it
        return path / DB_NAME if path.is_dir() else path
    for candidate in db_candidates():
        if candidate.exists():
            return candidate
    return None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="daq-browser",
        description="Browse indexed DAQ errors by hutch, day and time.",
    )
    parser.add_argument("--db", help=f"Path to {DB_NAME} (default: ${DB_ENV} or common locations)")
    parser.add_argument("--hutch", default="", help="Hutch to browse (tmo, mfx, ...)")
    parser.add_argument("--date", default="", help="Date to browse (YYYY-MM-DD)")
    parser.add_argument("--time", default="", help="Time to jump to (HH:MM)")
    parser.add_argument("--mouse", action="store_true", help="Enable mouse support")
    parser.add_argument("--tz", default=os.environ.get(TZ_ENV, DEFAULT_REFERENCE_TZ),
                        help="Reference timezone for days and times")
    parser.add_argument("--log-file", default=os.environ.get(LOG_ENV),
                        help="Write a debug log to this file")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser


def load_config(argv: list[str] | None = None) -> BrowserConfig:
    args = build_parser().parse_args(argv)

    db_path = find_database(args.db)
    if db_path is None:
        raise ConfigError(f"Could not find {DB_NAME}\n{USAGE_HINT}")
    if not db_path.exists():
        raise ConfigError(f"Database not found: {db_path}\n{USAGE_HINT}")

    try:
        ZoneInfo(args.tz)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigError(f"Unknown timezone: {args.tz}") from e

    if args.date and not _is_iso_date(args.date):
        raise ConfigError(f"Invalid --date {args.date!r}, expected YYYY-MM-DD")
    if args.time and parse_hhmm(args.time) < 0:
        raise ConfigError(f"Invalid --time {args.time!r}, expected HH:MM")

    return BrowserConfig(
        db_path=db_path,
        hutch=args.hutch,
        date=args.date,
        time=args.time,
        mouse=args.mouse,
        tz=args.tz,
        log_file=Path(args.log_file) if args.log_file else None,
        log_level=args.log_level,
    )


def _is_iso_date(value: str) -> bool:
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def configure_logging(config: BrowserConfig) -> None:
    """Log to a file; the terminal belongs to the TUI. No file → logging stays off."""
    if config.log_file is None:
        logging.getLogger().addHandler(logging.NullHandler())
        return
    logging.basicConfig(
        level=getattr(logging, config.log_level),
        filename=str(config.log_file),
        filemode="a",
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
        encoding="utf-8",
    )
