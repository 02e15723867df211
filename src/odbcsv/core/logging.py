"""structlog setup for odbcsv.

stdout may carry CSV, so every log line goes to stderr.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog

# Longest SQL text kept in a log event.
MAX_LOGGED_SQL = 200


class _StderrLoggerFactory:
    # CliRunner swaps sys.stderr per invocation; look it up per logger.
    def __call__(self, *args: Any, **kwargs: Any) -> structlog.PrintLogger:
        return structlog.PrintLogger(file=sys.stderr)


def _shorten_sql(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Collapse whitespace in ``sql`` fields and cut them at MAX_LOGGED_SQL."""
    sql = event_dict.get("sql")
    if isinstance(sql, str):
        sql = " ".join(sql.split())
        if len(sql) > MAX_LOGGED_SQL:
            sql = sql[: MAX_LOGGED_SQL - 3] + "..."
        event_dict["sql"] = sql
    return event_dict


def setup_logging(verbose: bool = False) -> None:
    """Log at INFO, or DEBUG (per-batch events) when ``verbose``."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            _shorten_sql,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if verbose else logging.INFO
        ),
        context_class=dict,
        logger_factory=_StderrLoggerFactory(),
        cache_logger_on_first_use=False,
    )


@contextmanager
def transfer_context(command: str, **fields: Any) -> Iterator[None]:
    """Tag every event logged during one transfer with its command and target."""
    with structlog.contextvars.bound_contextvars(command=command, **fields):
        yield
