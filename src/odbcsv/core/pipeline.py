"""Read (query -> CSV) and write (CSV -> statement) pipelines.

Each pipeline owns one RowBatch and runs strictly sequentially: a batch
is fully fetched and converted, or fully bound and executed, before the
next one starts, because the buffers are reused in place.
"""

from __future__ import annotations

import time
from enum import StrEnum
from itertools import islice
from typing import TYPE_CHECKING

import sentry_sdk
import structlog

from odbcsv.core.buffers import RowBatch
from odbcsv.core.binder import PositionalBinder
from odbcsv.core.conversions import DEFAULT_MAX_TEXT_WIDTH
from odbcsv.core.exceptions import (
    BufferConsistencyError,
    EncodingError,
    ParameterCountError,
    ValueTooLargeError,
)
from odbcsv.core.models import ReadSummary, WriteSummary
from odbcsv.core.resolver import resolve, resolve_parameters

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from odbcsv.core.csv_codec import CsvSink
    from odbcsv.core.drivers.base import Connection
    from odbcsv.core.models import ColumnDescriptor

DEFAULT_BATCH_SIZE = 5000


class ReadState(StrEnum):
    PREPARED = "prepared"
    EXECUTED = "executed"
    FETCHING = "fetching"
    CONVERTING = "converting"
    DRAINED = "drained"


class WriteState(StrEnum):
    PREPARED = "prepared"
    READING = "reading"
    BINDING = "binding"
    EXECUTING = "executing"
    FLUSHING = "flushing"
    DONE = "done"


def _check_batch_size(batch_size: int) -> None:
    if batch_size <= 0:
        raise BufferConsistencyError(f"Batch size must be positive, got {batch_size}")


def _at_row(e: ValueTooLargeError | EncodingError, offset: int) -> Exception:
    """Re-express a batch-relative error against the whole transfer."""
    if isinstance(e, ValueTooLargeError):
        return ValueTooLargeError(e.column, offset + e.row, e.size, e.limit)
    return EncodingError(f"{e.message} (batch starting at data row {offset + 1})")


class ReadPipeline:
    """Streams a query's result set into a CSV sink batch by batch."""

    def __init__(
        self,
        connection: Connection,
        sql: str,
        sink: CsvSink,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        max_text_width: int = DEFAULT_MAX_TEXT_WIDTH,
        encoding: str = "utf-8",
        write_header: bool = True,
    ) -> None:
        _check_batch_size(batch_size)
        self.connection = connection
        self.sql = sql
        self.sink = sink
        self.batch_size = batch_size
        self.max_text_width = max_text_width
        self.encoding = encoding
        self.write_header = write_header
        self.state: ReadState | None = None
        self.descriptors: list[ColumnDescriptor] = []
        self.fetch_sizes: list[int] = []

    def run(self) -> ReadSummary:
        log = structlog.get_logger()
        start_time = time.monotonic()
        rows = 0

        statement = self.connection.prepare(self.sql)
        self.state = ReadState.PREPARED
        try:
            result_set = statement.execute_query()
            try:
                self.state = ReadState.EXECUTED
                self.descriptors = resolve(result_set)
                batch = RowBatch.allocate(
                    self.descriptors,
                    self.batch_size,
                    encoding=self.encoding,
                    max_text_width=self.max_text_width,
                )
                log.debug(
                    "row batch allocated",
                    columns=len(batch.columns),
                    capacity_rows=batch.capacity_rows,
                    nbytes=batch.nbytes,
                )
                if self.write_header:
                    self.sink.write_row([d.name for d in self.descriptors])

                while True:
                    self.state = ReadState.FETCHING
                    fetched = result_set.fetch_into(batch)
                    if fetched == 0:
                        break
                    self.fetch_sizes.append(fetched)
                    log.debug("batch fetched", batch=len(self.fetch_sizes), rows=fetched)

                    self.state = ReadState.CONVERTING
                    try:
                        for row_index in range(batch.rows_filled):
                            self.sink.write_row(batch.row_text(row_index))
                    except (ValueTooLargeError, EncodingError) as e:
                        raise _at_row(e, rows) from e
                    rows += fetched
            finally:
                result_set.close()
        finally:
            statement.close()

        self.state = ReadState.DRAINED
        return ReadSummary(
            columns=len(self.descriptors),
            rows=rows,
            batches=len(self.fetch_sizes),
            elapsed_s=time.monotonic() - start_time,
        )


class WritePipeline:
    """Loads CSV rows into a prepared statement, one execute per batch."""

    def __init__(
        self,
        connection: Connection,
        sql: str,
        descriptors: Sequence[ColumnDescriptor] | None = None,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        null_text: str | None = "",
        max_text_width: int = DEFAULT_MAX_TEXT_WIDTH,
        encoding: str = "utf-8",
    ) -> None:
        _check_batch_size(batch_size)
        self.connection = connection
        self.sql = sql
        self.descriptors = list(descriptors) if descriptors is not None else []
        self.batch_size = batch_size
        self.null_text = null_text
        self.max_text_width = max_text_width
        self.encoding = encoding
        self.state: WriteState | None = None
        self.execute_sizes: list[int] = []

    def _field(self, text: str) -> str | None:
        return None if self.null_text is not None and text == self.null_text else text

    def run(
        self, rows: Iterable[Sequence[str]], *, column_count: int | None
    ) -> WriteSummary:
        """Insert ``rows``; ``column_count`` is the CSV's field count.

        Without target descriptors the parameters are typed from the
        driver's description of the prepared statement.

        The count is checked against the statement's placeholders before
        anything executes. ``None`` means the input has no rows at all.
        """
        log = structlog.get_logger()
        start_time = time.monotonic()
        total = 0

        statement = self.connection.prepare(self.sql)
        self.state = WriteState.PREPARED
        try:
            if not self.descriptors:
                self.descriptors = resolve_parameters(statement)
            width = len(self.descriptors)
            placeholders = statement.num_params()
            if placeholders != width:
                raise ParameterCountError(placeholders, width, "(target columns)")
            if column_count is not None and column_count != placeholders:
                raise ParameterCountError(placeholders, column_count)

            batch = RowBatch.allocate(
                self.descriptors,
                self.batch_size,
                encoding=self.encoding,
                max_text_width=self.max_text_width,
            )
            binder = PositionalBinder(statement, batch)
            source = iter(rows)

            while True:
                self.state = WriteState.READING
                chunk = list(islice(source, batch.capacity_rows))
                if not chunk:
                    break

                self.state = WriteState.BINDING
                batch.reset()
                try:
                    for row_index, row in enumerate(chunk):
                        if len(row) != width:
                            raise ParameterCountError(
                                width, len(row), f"(data row {total + row_index + 1})"
                            )
                        for buf, text in zip(batch.columns, row, strict=True):
                            buf.from_text(row_index, self._field(text))
                except (ValueTooLargeError, EncodingError) as e:
                    raise _at_row(e, total) from e
                batch.rows_filled = len(chunk)
                binder.bind()

                final = len(chunk) < batch.capacity_rows
                self.state = WriteState.FLUSHING if final else WriteState.EXECUTING
                with sentry_sdk.start_span(
                    op="db.execute", description=self.sql[:100]
                ) as span:
                    binder.execute()
                    span.set_data("row_count", len(chunk))
                self.execute_sizes.append(len(chunk))
                total += len(chunk)
                if final:
                    break
        finally:
            statement.close()

        self.state = WriteState.DONE
        log.debug("write pipeline done", rows=total, batches=len(self.execute_sizes))
        return WriteSummary(
            columns=width,
            rows=total,
            batches=len(self.execute_sizes),
            elapsed_s=time.monotonic() - start_time,
        )
