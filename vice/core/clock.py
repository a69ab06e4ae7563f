"""Wall clock used for entry timestamps and "today" checks.

Tests patch ``vice.core.clock.now`` to pin time.
"""

from __future__ import annotations

from datetime import date, datetime


def now() -> datetime:
    return datetime.now().astimezone()


def today() -> date:
    return now().date()
