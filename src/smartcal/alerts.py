"""Alert trigger computation for reminders with minutes-before offsets.

A reminder with ``time="10:00"`` and ``alerts=(15, 60)`` fires at 09:45 and
09:00 on every date it occurs.  Offsets may reach back across midnight, so
occurrences up to ``max_offset`` minutes ahead of ``now`` are considered.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, time, timedelta

from .models import Reminder
from .recurrence import ReminderSnapshot

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class AlertTrigger:
    """A reminder alert due at ``fires_at``."""

    reminder: Reminder
    minutes_before: int
    event_at: datetime
    fires_at: datetime


def _event_datetime(reminder: Reminder, day) -> datetime:
    hours, minutes = (int(part) for part in reminder.time.split(":"))
    return datetime.combine(day, time(hours, minutes))


def _truncate(moment: datetime) -> datetime:
    return moment.replace(second=0, microsecond=0)


def due_alerts(snapshot: ReminderSnapshot, now: datetime) -> list[AlertTrigger]:
    """Return every alert whose trigger minute equals the minute of ``now``.

    ``now`` is compared as wall-clock time; a tz-aware value is reduced to
    its local wall clock.  Completed reminders never alert.
    """
    minute = _truncate(now).replace(tzinfo=None)
    candidates = [r for r in snapshot.all_reminders() if r.alerts and not r.is_completed]
    if not candidates:
        return []

    horizon_days = max(max(r.alerts) for r in candidates) // (24 * 60) + 1
    triggers: list[AlertTrigger] = []

    for offset_days in range(horizon_days + 1):
        day = minute.date() + timedelta(days=offset_days)
        for reminder in snapshot.reminders_on(day):
            if not reminder.alerts or reminder.is_completed:
                continue
            event_at = _event_datetime(reminder, day)
            for minutes_before in reminder.alerts:
                fires_at = event_at - timedelta(minutes=minutes_before)
                if fires_at == minute:
                    triggers.append(
                        AlertTrigger(reminder, minutes_before, event_at, fires_at)
                    )
                    _LOGGER.debug(
                        "Alert due for %s%s (%d min before %s)",
                        reminder.id,
                        " (recurring)" if reminder.is_recurring else "",
                        minutes_before,
                        event_at.isoformat(),
                    )
    return triggers


class AlertChecker:
    """Evaluates alerts at most once per wall-clock minute.

    Callers may tick as often as they like (e.g. every second); repeated ticks
    within the same minute return nothing.
    """

    def __init__(self) -> None:
        self._last_minute: datetime | None = None

    def check(self, snapshot: ReminderSnapshot, now: datetime) -> list[AlertTrigger]:
        minute = _truncate(now).replace(tzinfo=None)
        if minute == self._last_minute:
            return []
        self._last_minute = minute
        return due_alerts(snapshot, now)

    def reset(self) -> None:
        self._last_minute = None
