"""Exception hierarchy for odbcsv.

All exceptions carry an exit_code for CLI return value mapping.
Nothing in this hierarchy is retried; every error terminates the run.
"""

from __future__ import annotations

from odbcsv.core.exit_codes import ExitCode


class OdbcsvError(Exception):
    """Base exception for all odbcsv errors."""

    exit_code: int = ExitCode.GENERAL_ERROR

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConnectError(OdbcsvError):
    """Data source unreachable, login rejected, driver missing."""

    exit_code: int = ExitCode.NETWORK_ERROR


class InputError(OdbcsvError):
    """File not found, no query provided."""

    exit_code: int = ExitCode.INPUT_ERROR


class OutputError(OdbcsvError):
    """Output file cannot be written."""

    exit_code: int = ExitCode.OUTPUT_ERROR


class ConfigError(OdbcsvError):
    """Malformed config, missing profile, conflicting connection options."""

    exit_code: int = ExitCode.CONFIG_ERROR


class SchemaError(OdbcsvError):
    """Column metadata reported by the driver is unusable."""

    exit_code: int = ExitCode.SCHEMA_ERROR


class DataError(OdbcsvError):
    """A value cannot be transferred without corrupting it."""

    exit_code: int = ExitCode.DATA_ERROR


class EncodingError(DataError):
    """Bytes are not valid text in the transfer encoding."""


class ValueTooLargeError(DataError):
    """A value does not fit into its column buffer."""

    def __init__(self, column: str, row: int, size: int, limit: int) -> None:
        self.column = column
        self.row = row
        self.size = size
        self.limit = limit
        super().__init__(
            f"Value in column '{column}' at row {row} is {size} bytes; "
            f"the column buffer holds at most {limit} bytes"
        )


class ParameterCountError(DataError):
    """CSV column count does not match the statement's placeholders."""

    def __init__(self, expected: int, actual: int, detail: str = "") -> None:
        self.expected = expected
        self.actual = actual
        msg = f"Statement has {expected} placeholder(s) but CSV has {actual} column(s)"
        if detail:
            msg = f"{msg} {detail}"
        super().__init__(msg)


class DriverExecError(OdbcsvError):
    """A fetch or execute round trip failed in the driver."""

    exit_code: int = ExitCode.DRIVER_ERROR

    def __init__(self, message: str, diagnostic: str = "") -> None:
        self.diagnostic = diagnostic
        super().__init__(message)


class TimeoutError(DriverExecError):
    """Statement cancelled by the driver's timeout."""

    exit_code: int = ExitCode.TIMEOUT


class BufferConsistencyError(OdbcsvError):
    """Internal buffer invariant violated. Always a defect."""

    exit_code: int = ExitCode.INTERNAL_ERROR
