"""Standard exit codes for odbcsv.

Exit codes follow Unix conventions; internal defects use EX_SOFTWARE.
"""

from enum import IntEnum


class ExitCode(IntEnum):
    """Exit codes for odbcsv commands."""

    SUCCESS = 0
    GENERAL_ERROR = 1
    USAGE_ERROR = 2
    INPUT_ERROR = 3
    OUTPUT_ERROR = 4
    NETWORK_ERROR = 5
    TIMEOUT = 6
    CONFIG_ERROR = 7
    SCHEMA_ERROR = 8
    DATA_ERROR = 9
    DRIVER_ERROR = 10
    INTERNAL_ERROR = 70
