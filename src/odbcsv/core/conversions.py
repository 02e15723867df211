"""Per-type buffer width and text conversion rules.

Every SqlType maps to exactly one TypeRule. Widths are in bytes of the
transfer encoding and include the terminator where the rule has one.
"""

from __future__ import annotations

import codecs
import datetime as dt
import decimal
from collections.abc import Callable
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from odbcsv.core.exceptions import EncodingError
from odbcsv.core.models import ColumnDescriptor, SqlType

DEFAULT_MAX_TEXT_WIDTH = 4096

INTEGER_TEXT_WIDTH = 20
FLOAT_TEXT_WIDTH = 24
NUMERIC_TEXT_WIDTH = 40
DATE_TEXT_WIDTH = 10
TIMESTAMP_TEXT_WIDTH = 32

_SAMPLE_CHARS = ("\U0010ffff", "あ", "é", "a")


@lru_cache(maxsize=32)
def max_bytes_per_char(encoding: str) -> int:
    """Largest number of bytes one character takes in ``encoding``."""
    try:
        encoder = codecs.getincrementalencoder(encoding)(errors="ignore")
    except LookupError as e:
        raise EncodingError(f"Unknown encoding: {encoding!r}") from e
    # Prime the encoder so BOM-emitting codecs do not inflate the sample.
    encoder.encode("a")
    return max(1, *(len(encoder.encode(ch)) for ch in _SAMPLE_CHARS))


def render_text(value: Any) -> str:
    return value if isinstance(value, str) else str(value)


def render_integer(value: Any) -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, decimal.Decimal):
        return format(value, "f")
    return str(value)


def render_float(value: Any) -> str:
    return repr(float(value))


def render_numeric(value: Any) -> str:
    if isinstance(value, decimal.Decimal):
        return format(value, "f")
    if isinstance(value, float):
        return repr(value)
    return str(value)


def render_date(value: Any) -> str:
    if isinstance(value, dt.datetime):
        return value.date().isoformat()
    if isinstance(value, dt.date):
        return value.isoformat()
    return str(value)


def render_timestamp(value: Any) -> str:
    if isinstance(value, dt.datetime):
        return value.isoformat(sep=" ")
    if isinstance(value, (dt.date, dt.time)):
        return value.isoformat()
    return str(value)


def render_binary(value: Any) -> str:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex().upper()
    return str(value)


def text_param(text: str) -> Any:
    return text


def binary_param(text: str) -> Any:
    try:
        return bytes.fromhex(text)
    except ValueError as e:
        raise EncodingError(f"Invalid hexadecimal binary value: {text[:32]!r}") from e


@dataclass(frozen=True)
class TypeRule:
    """Width rule plus to/from-text conversions for one SqlType."""

    fixed_width: int | None
    terminated: bool
    render: Callable[[Any], str]
    to_param: Callable[[str], Any]
    per_char: bool = False
    min_width: int = 0

    def cell_byte_width(
        self, display_size: int, encoding: str, max_text_width: int
    ) -> int:
        terminator = 1 if self.terminated else 0
        if self.fixed_width is not None:
            return self.fixed_width + terminator
        if display_size <= 0:
            return max_text_width + terminator
        width = display_size
        if self.per_char:
            width *= max_bytes_per_char(encoding)
        return max(width, self.min_width) + terminator


TYPE_RULES: dict[SqlType, TypeRule] = {
    SqlType.CHAR: TypeRule(None, True, render_text, text_param, per_char=True),
    SqlType.WCHAR: TypeRule(None, True, render_text, text_param, per_char=True),
    SqlType.NUMERIC: TypeRule(
        None, True, render_numeric, text_param, min_width=NUMERIC_TEXT_WIDTH
    ),
    SqlType.INTEGER: TypeRule(INTEGER_TEXT_WIDTH, True, render_integer, text_param),
    SqlType.FLOAT: TypeRule(FLOAT_TEXT_WIDTH, True, render_float, text_param),
    SqlType.DATE: TypeRule(DATE_TEXT_WIDTH, True, render_date, text_param),
    SqlType.TIMESTAMP: TypeRule(
        TIMESTAMP_TEXT_WIDTH, True, render_timestamp, text_param
    ),
    SqlType.BINARY: TypeRule(None, False, render_binary, binary_param),
    SqlType.UNKNOWN: TypeRule(None, True, render_text, text_param, per_char=True),
}


def rule_for(sql_type: SqlType) -> TypeRule:
    return TYPE_RULES[sql_type]


def cell_byte_width(
    descriptor: ColumnDescriptor,
    *,
    encoding: str = "utf-8",
    max_text_width: int = DEFAULT_MAX_TEXT_WIDTH,
) -> int:
    """Bytes one buffer cell needs so no value of ``descriptor`` is truncated."""
    return rule_for(descriptor.sql_type).cell_byte_width(
        descriptor.display_size, encoding, max_text_width
    )
