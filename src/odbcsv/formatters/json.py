"""JSON formatter for listings."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from odbcsv.formatters.base import registry

if TYPE_CHECKING:
    from collections.abc import Iterator

    from odbcsv.core.models import Listing


def _plain(val: Any) -> Any:
    if isinstance(val, (int, float, str, bool, type(None))):
        return val
    return str(val)


@registry.register("json")
class JSONFormatter:
    def __init__(self, compact: bool = False) -> None:
        self.compact = compact

    def format(self, listing: Listing) -> Iterator[str]:
        records = [
            {h: _plain(v) for h, v in zip(listing.headers, row, strict=True)}
            for row in listing.rows
        ]
        yield json.dumps(records, indent=None if self.compact else 2)
