"""Where SQL text and CSV streams come from and go to.

SQL precedence: inline (-e) > file argument > piped stdin. CSV input and
output default to stdin/stdout when no path is given.
"""

from __future__ import annotations

import io
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

from odbcsv.core.exceptions import EncodingError, InputError, OutputError

if TYPE_CHECKING:
    from collections.abc import Iterator
    from typing import IO


def stdin_is_tty() -> bool:
    try:
        return sys.stdin.isatty()
    except (ValueError, AttributeError):
        return False


def resolve_query_source(
    inline: str | None,
    file_path: str | None,
    *,
    encoding: str = "utf-8",
) -> str:
    """Return SQL text from the highest-priority source that is present."""
    if inline is not None:
        return inline

    if file_path is not None:
        path = Path(file_path)
        if not path.is_file():
            msg = (
                f"Query file not found: {file_path}\n"
                "Use -e for inline queries or pipe the query via stdin."
            )
            raise InputError(msg)
        try:
            return path.read_text(encoding=encoding)
        except UnicodeDecodeError as e:
            raise EncodingError(f"Query file {file_path} is not valid {encoding}") from e

    if not stdin_is_tty():
        sql = sys.stdin.read()
        if sql.strip():
            return sql

    raise InputError("No query provided. Use -e, a file path, or pipe to stdin.")


def _std_stream(stream: IO[str], encoding: str) -> IO[str]:
    """Wrap a standard stream's buffer with the transfer encoding."""
    buffer = getattr(stream, "buffer", None)
    if buffer is None:
        return stream
    stream.flush()
    return io.TextIOWrapper(buffer, encoding=encoding, newline="", write_through=True)


@contextmanager
def open_csv_input(path: str | None, *, encoding: str = "utf-8") -> Iterator[IO[str]]:
    if path is None:
        stream = _std_stream(sys.stdin, encoding)
        try:
            yield stream
        finally:
            if stream is not sys.stdin:
                stream.detach()
        return

    try:
        handle = open(path, encoding=encoding, newline="")  # noqa: SIM115
    except FileNotFoundError as e:
        raise InputError(f"CSV file not found: {path}") from e
    except OSError as e:
        raise InputError(f"Cannot open CSV file {path}: {e}") from e
    with handle:
        yield handle


@contextmanager
def open_csv_output(path: str | None, *, encoding: str = "utf-8") -> Iterator[IO[str]]:
    if path is None:
        stream = _std_stream(sys.stdout, encoding)
        try:
            yield stream
        finally:
            if stream is not sys.stdout:
                stream.flush()
                stream.detach()
        return

    try:
        handle = open(path, "w", encoding=encoding, newline="")  # noqa: SIM115
    except OSError as e:
        raise OutputError(f"Cannot write CSV file {path}: {e}") from e
    with handle:
        yield handle
