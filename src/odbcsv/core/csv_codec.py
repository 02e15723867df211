"""CSV framing at the edges of the pipelines (RFC 4180 via the csv module).

Fields are handed to the engine already unescaped and leave it as plain
text; quoting and escaping stay here.
"""

from __future__ import annotations

import csv
from typing import TYPE_CHECKING

from odbcsv.core.exceptions import EncodingError, OutputError

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence
    from typing import IO


class CsvSource:
    """Lazy sequence of CSV rows with an optional header row."""

    def __init__(self, stream: IO[str], *, has_header: bool = True) -> None:
        self._reader = csv.reader(stream)
        self.has_header = has_header
        self.header: list[str] | None = None
        self._pending: list[str] | None = None
        self._started = False

    @property
    def line_num(self) -> int:
        return self._reader.line_num

    def _next(self) -> list[str] | None:
        """Next non-blank row; blank lines carry no fields and are skipped."""
        try:
            row = next(self._reader)
            while not row:
                row = next(self._reader)
        except StopIteration:
            return None
        except UnicodeDecodeError as e:
            msg = f"CSV input near line {self._reader.line_num + 1} is not valid text: {e.reason}"
            raise EncodingError(msg) from e
        except csv.Error as e:
            raise EncodingError(f"Malformed CSV at line {self._reader.line_num}: {e}") from e
        return row

    def _start(self) -> None:
        if self._started:
            return
        self._started = True
        if self.has_header:
            self.header = self._next()
        else:
            self._pending = self._next()

    @property
    def column_count(self) -> int | None:
        """Field count of the header, or of the first row when there is none."""
        self._start()
        if self.header is not None:
            return len(self.header)
        if self._pending is not None:
            return len(self._pending)
        return None

    def __iter__(self) -> Iterator[list[str]]:
        self._start()
        if self._pending is not None:
            row, self._pending = self._pending, None
            yield row
        while (row := self._next()) is not None:
            yield row


class CsvSink:
    """Writes CSV rows; ``None`` fields are written as ``null_text``."""

    def __init__(self, stream: IO[str], *, null_text: str = "") -> None:
        self._writer = csv.writer(stream, lineterminator="\n")
        self.null_text = null_text
        self.rows_written = 0

    def write_row(self, fields: Sequence[str | None]) -> None:
        try:
            self._writer.writerow(
                [self.null_text if f is None else f for f in fields]
            )
        except OSError as e:
            raise OutputError(f"Failed to write CSV output: {e}") from e
        self.rows_written += 1
