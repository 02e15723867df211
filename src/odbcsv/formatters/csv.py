"""CSV formatter for listings."""

from __future__ import annotations

import csv
from io import StringIO
from typing import TYPE_CHECKING

from odbcsv.formatters.base import registry

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from odbcsv.core.models import Listing


def _csv_line(values: Sequence[object]) -> str:
    buf = StringIO()
    csv.writer(buf, lineterminator="").writerow(
        ["" if v is None else str(v) for v in values]
    )
    return buf.getvalue()


@registry.register("csv")
class CSVFormatter:
    def __init__(self, no_header: bool = False) -> None:
        self.no_header = no_header

    def format(self, listing: Listing) -> Iterator[str]:
        if not self.no_header:
            yield _csv_line(listing.headers)
        for row in listing.rows:
            yield _csv_line(row)
