"""Per-cell value normalization.

Uploads arrive with inconsistent date conventions (different export tools,
different locales) while the destination column is a fixed DATETIME, so
every recognizable date is rewritten into one storage grammar:
YYYY-MM-DD HH:MM:SS. Grammars are tried in order and the first match wins:

1. empty -> None
2. native date/datetime cell -> its own wall-clock fields
3. D/M/YYYY [H:M[:S]]       (day first, "/" or "-")
4. YYYY/M/D [H:M[:S]]       (year first, "/" or "-")
5. D-MON-YY(YY) [H:M[:S]]   (English or Indonesian month abbreviation)
6. anything else is passed through unchanged

The month table is read from config/date_formats.yaml.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

from sheetsink.core.config import get_settings
from sheetsink.core.models import CellKind, CellValue, NormalizedRow, classify_cell

_TIME = r"(?:[ T](?P<hour>\d{1,2}):(?P<minute>\d{1,2})(?::(?P<second>\d{1,2}))?)?"

DAY_FIRST = re.compile(
    rf"^(?P<day>\d{{1,2}})[/-](?P<month>\d{{1,2}})[/-](?P<year>\d{{4}}){_TIME}$"
)
YEAR_FIRST = re.compile(
    rf"^(?P<year>\d{{4}})[/-](?P<month>\d{{1,2}})[/-](?P<day>\d{{1,2}}){_TIME}$"
)
MONTH_NAME = re.compile(
    rf"^(?P<day>\d{{1,2}})[/-](?P<mon>[A-Za-z]{{3}})[/-](?P<year>\d{{4}}|\d{{2}}){_TIME}$"
)


@dataclass(frozen=True)
class DateFormatConfig:
    """Month abbreviation table and two-digit year base."""

    months: Mapping[str, int]
    two_digit_year_base: int = 2000

    def month_number(self, abbreviation: str) -> int | None:
        return self.months.get(abbreviation.lower())


def load_date_format_config(config_path: Path | None = None) -> DateFormatConfig:
    """Load the date format configuration from YAML.

    Args:
        config_path: Optional path to config file. If None, uses default from settings.

    Returns:
        DateFormatConfig instance
    """
    if config_path is None:
        config_path = get_settings().config_path / "date_formats.yaml"

    with open(config_path, encoding="utf-8") as f:
        config_dict = yaml.safe_load(f) or {}

    months: dict[str, int] = {}
    for number, abbreviations in (config_dict.get("month_abbreviations") or {}).items():
        for abbreviation in abbreviations:
            months[str(abbreviation).lower()] = int(number)

    return DateFormatConfig(
        months=months,
        two_digit_year_base=int(config_dict.get("two_digit_year_base", 2000)),
    )


@lru_cache
def get_date_format_config() -> DateFormatConfig:
    """Get the cached default date format configuration."""
    return load_date_format_config()


def format_datetime(value: datetime | date) -> str:
    """Render a date or datetime as YYYY-MM-DD HH:MM:SS without timezone conversion."""
    if isinstance(value, datetime):
        hour, minute, second = value.hour, value.minute, value.second
    else:
        hour = minute = second = 0
    return (
        f"{value.year:04d}-{value.month:02d}-{value.day:02d} "
        f"{hour:02d}:{minute:02d}:{second:02d}"
    )


def _build(
    year: int, month: int, day: int, groups: Mapping[str, str | None]
) -> datetime | None:
    try:
        return datetime(
            year,
            month,
            day,
            int(groups["hour"] or 0),
            int(groups["minute"] or 0),
            int(groups["second"] or 0),
        )
    except ValueError:
        # Matches the grammar but names an impossible date or time
        return None


def parse_date_text(text: str, config: DateFormatConfig | None = None) -> datetime | None:
    """Parse a string in one of the accepted date grammars.

    Returns:
        The parsed datetime, or None if no grammar matches
    """
    text = text.strip()

    if match := DAY_FIRST.match(text):
        groups = match.groupdict()
        return _build(int(groups["year"]), int(groups["month"]), int(groups["day"]), groups)

    if match := YEAR_FIRST.match(text):
        groups = match.groupdict()
        return _build(int(groups["year"]), int(groups["month"]), int(groups["day"]), groups)

    if match := MONTH_NAME.match(text):
        config = config or get_date_format_config()
        groups = match.groupdict()
        month = config.month_number(groups["mon"])
        if month is None:
            return None
        year = int(groups["year"])
        if len(groups["year"]) == 2:
            year += config.two_digit_year_base
        return _build(year, month, int(groups["day"]), groups)

    return None


def parse_datetime(value: CellValue) -> datetime | None:
    """Interpret a raw cell as a calendar date/time, if it is one."""
    match classify_cell(value):
        case CellKind.DATETIME:
            if isinstance(value, datetime):
                return value
            assert isinstance(value, date)
            return datetime(value.year, value.month, value.day)
        case CellKind.TEXT if isinstance(value, str):
            return parse_date_text(value)
        case _:
            return None


def normalize_value(value: CellValue) -> Any:
    """Canonicalize one raw cell for the sink.

    Dates become YYYY-MM-DD HH:MM:SS strings, empty cells become None and
    everything else is returned unchanged. Time-of-day and duration cells
    are rendered as text since drivers cannot bind them generically.
    """
    match classify_cell(value):
        case CellKind.EMPTY:
            return None
        case CellKind.DATETIME:
            assert isinstance(value, date)
            return format_datetime(value)
        case CellKind.INTEGER | CellKind.DECIMAL:
            return value
        case CellKind.TEXT:
            if isinstance(value, str):
                parsed = parse_date_text(value)
                return format_datetime(parsed) if parsed is not None else value
            if isinstance(value, time | timedelta):
                return str(value)
            return value


def normalize_row(
    row: Mapping[str, CellValue], mapping: Mapping[str, str | None]
) -> NormalizedRow:
    """Normalize a raw row into sink column names.

    Args:
        row: Raw row keyed by original header
        mapping: Sink column name -> original header (None when the file has
            no such column, which yields NULL)
    """
    return {
        column: normalize_value(row.get(header)) if header is not None else None
        for column, header in mapping.items()
    }
