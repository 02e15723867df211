"""Listing output format selection and TTY auto-detection."""

from __future__ import annotations

import sys
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from odbcsv.core.models import Listing
    from odbcsv.formatters.base import Formatter


class OutputFormat(StrEnum):
    TABLE = "table"
    JSON = "json"
    CSV = "csv"


def detect_tty() -> bool:
    return sys.stdout.isatty()


def resolve_format(format_flag: str | None) -> str:
    """Explicit --format wins; otherwise table on a TTY and csv in pipes."""
    if format_flag is not None:
        return format_flag
    return "table" if detect_tty() else "csv"


def get_formatter(format_flag: str | None = None, *, width: int = 40) -> Formatter:
    # Formatter modules register themselves on import.
    import odbcsv.formatters.csv  # noqa: F401
    import odbcsv.formatters.json  # noqa: F401
    import odbcsv.formatters.table  # noqa: F401
    from odbcsv.formatters.base import registry

    fmt_name = resolve_format(format_flag)
    kwargs: dict[str, object] = {}
    if fmt_name == "table":
        kwargs["width"] = width
    return registry.get(fmt_name, **kwargs)


def write_listing(formatter: Formatter, listing: Listing) -> None:
    for line in formatter.format(listing):
        sys.stdout.write(line + "\n")
