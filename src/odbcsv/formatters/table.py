"""Rich table formatter for listings."""

from __future__ import annotations

import shutil
from io import StringIO
from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table

from odbcsv.formatters.base import registry

if TYPE_CHECKING:
    from collections.abc import Iterator

    from odbcsv.core.models import Listing

_EMPTY = "Nothing to show"


def _clip(value: str, width: int) -> str:
    return value if len(value) <= width else value[: width - 1] + "…"


@registry.register("table")
class TableFormatter:
    def __init__(self, width: int = 40) -> None:
        self.width = width

    def format(self, listing: Listing) -> Iterator[str]:
        if not listing.rows:
            yield _EMPTY
            return

        table = Table(show_edge=True, pad_edge=True)
        for header in listing.headers:
            table.add_column(header, no_wrap=True)
        for row in listing.rows:
            table.add_row(*(_clip("" if v is None else str(v), self.width) for v in row))

        buf = StringIO()
        term_width = shutil.get_terminal_size((120, 24)).columns
        Console(file=buf, force_terminal=True, width=term_width).print(table)
        yield buf.getvalue().rstrip("\n")
