"""Date recognition and per-cell value normalization."""

from sheetsink.analysis.temporal.normalize import (
    DateFormatConfig,
    format_datetime,
    get_date_format_config,
    load_date_format_config,
    normalize_row,
    normalize_value,
    parse_date_text,
    parse_datetime,
)

__all__ = [
    "DateFormatConfig",
    "format_datetime",
    "get_date_format_config",
    "load_date_format_config",
    "normalize_row",
    "normalize_value",
    "parse_date_text",
    "parse_datetime",
]
