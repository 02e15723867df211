"""Sentry integration for error tracking and round-trip spans.

Sentry stays disabled unless a DSN is configured; sentry_sdk calls made
while uninitialised are no-ops.
"""

from __future__ import annotations

import sentry_sdk

from odbcsv.__about__ import __version__


def setup_sentry(dsn: str | None, environment: str = "local") -> bool:
    """Initialize Sentry when a DSN is available. Returns True if enabled."""
    if not dsn:
        return False
    sentry_sdk.init(
        dsn=dsn,
        traces_sample_rate=0.03,
        environment=environment,
        release=__version__,
        attach_stacktrace=True,
        send_default_pii=False,
    )
    return True
