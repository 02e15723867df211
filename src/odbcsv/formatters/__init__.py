"""Output formatters for catalogue listings."""

from odbcsv.formatters.base import Formatter, FormatterRegistry, registry
from odbcsv.formatters.csv import CSVFormatter
from odbcsv.formatters.json import JSONFormatter
from odbcsv.formatters.table import TableFormatter
