"""Tests for JSONFormatter."""

import json

import pytest

from odbcsv.core.models import Listing
from odbcsv.formatters.base import Formatter
from odbcsv.formatters.json import JSONFormatter

LISTING = Listing(
    headers=["name", "ordinal", "nullable"],
    rows=[("id", 1, "no"), ("created", 2, "yes")],
)


@pytest.mark.unit
def test_json_formatter_implements_protocol():
    assert isinstance(JSONFormatter(), Formatter)


@pytest.mark.unit
def test_json_formatter_records():
    output = "\n".join(JSONFormatter().format(LISTING))
    assert json.loads(output) == [
        {"name": "id", "ordinal": 1, "nullable": "no"},
        {"name": "created", "ordinal": 2, "nullable": "yes"},
    ]


@pytest.mark.unit
def test_json_formatter_compact():
    lines = list(JSONFormatter(compact=True).format(LISTING))
    assert len(lines) == 1
    assert "\n" not in lines[0]


@pytest.mark.unit
def test_json_formatter_stringifies_other_values():
    from pathlib import PurePosixPath

    listing = Listing(headers=["path"], rows=[(PurePosixPath("/etc/odbc.ini"),)])
    assert json.loads(next(JSONFormatter().format(listing))) == [
        {"path": "/etc/odbc.ini"}
    ]


@pytest.mark.unit
def test_json_formatter_empty():
    assert list(JSONFormatter().format(Listing(headers=["a"], rows=[]))) == ["[]"]
