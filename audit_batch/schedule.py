"""
Pure schedule evaluation for periodic client audits.

Contract:
    ``should_fire(schedule, as_of)`` and ``compute_next_run()`` are PURE --
    no I/O, no clock reads.  All timestamps come from the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from audit_config.schema import AuditFrequency

_INTERVALS: dict[AuditFrequency, timedelta] = {
    AuditFrequency.DAILY: timedelta(days=1),
    AuditFrequency.WEEKLY: timedelta(weeks=1),
}


@dataclass(frozen=True)
class ClientSchedule:
    """Immutable snapshot of one client's audit schedule."""

    client_id: str
    frequency: AuditFrequency
    next_run_at: datetime | None = None
    last_run_at: datetime | None = None
    last_run_succeeded: bool | None = None


def is_periodic(frequency: AuditFrequency) -> bool:
    """REAL_TIME is subscription-driven and never scheduled."""
    return frequency in _INTERVALS


def should_fire(schedule: ClientSchedule, as_of: datetime) -> bool:
    """Determine if a schedule should fire at the given time.

    Rules:
        - Non-periodic frequencies never fire.
        - A schedule without ``next_run_at`` fires immediately.
        - Otherwise fires once ``as_of >= next_run_at``.
    """
    if not is_periodic(schedule.frequency):
        return False
    if schedule.next_run_at is None:
        return True
    return as_of >= schedule.next_run_at


def compute_next_run(
    frequency: AuditFrequency,
    last_run_at: datetime,
) -> datetime | None:
    """Next run time after ``last_run_at``; None for non-periodic frequencies."""
    delta = _INTERVALS.get(frequency)
    if delta is None:
        return None
    return last_run_at + delta
