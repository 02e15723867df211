"""odbcsv - bulk transfer between ODBC data sources and CSV files."""

from odbcsv.__about__ import __version__

__all__ = ["__version__"]
