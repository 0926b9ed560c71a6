"""Start/end time arithmetic for appointments.

Invariant: end_time == start_time + duration.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta


def compute_end_time(start_at: datetime, duration_minutes: int) -> datetime:
    return start_at + timedelta(minutes=duration_minutes)


def minutes_between(start: datetime, end: datetime) -> int:
    return int((end - start).total_seconds() // 60)


@dataclass(frozen=True)
class ScheduleWindow:
    """The resolved time slot for an update."""

    start_time: datetime
    end_time: datetime
    duration: int
    changed: bool = False


def resolve_update_window(
    existing_start: datetime,
    existing_end: datetime,
    start_at: datetime | None = None,
    duration: int | None = None,
) -> ScheduleWindow:
    """Apply an update's time fields to an existing slot.

    - start and duration given: end = start + duration
    - only start: the existing length is kept (end - start of the stored slot)
    - only duration: the existing start is kept
    - neither: nothing changes
    """
    existing_duration = minutes_between(existing_start, existing_end)

    if start_at is not None and duration is not None:
        return ScheduleWindow(start_at, compute_end_time(start_at, duration), duration, changed=True)

    if start_at is not None:
        return ScheduleWindow(
            start_at,
            start_at + (existing_end - existing_start),
            existing_duration,
            changed=True,
        )

    if duration is not None:
        return ScheduleWindow(
            existing_start,
            compute_end_time(existing_start, duration),
            duration,
            changed=True,
        )

    return ScheduleWindow(existing_start, existing_end, existing_duration)
