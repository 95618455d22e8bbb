"""Recurrence occurrence engine.

Answers one question: does a reminder occur on a given calendar date?
Recurring reminders are never expanded into stored occurrence lists; every
view (a single day, a month grid, an alert tick) recomputes membership per
date from the anchor date and the repeat frequency.

All functions here are pure.  ``ReminderSnapshot`` is immutable, so the sync
layer replaces it wholesale whenever the store changes.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, timedelta
from types import MappingProxyType

from dateutil.relativedelta import SU, relativedelta
from dateutil.rrule import DAILY, rrule

from ._dates import DateLike, to_calendar_date
from .models import Reminder, RepeatFrequency

__all__ = [
    "CalendarDay",
    "ReminderSnapshot",
    "active_on",
    "is_occurrence",
    "month_grid",
    "to_calendar_date",
]

GRID_CELLS = 42  # six full weeks


def _same_weekday(anchor: date, target: date) -> bool:
    return target.weekday() == anchor.weekday()


def _same_day_of_month(anchor: date, target: date) -> bool:
    # Strict equality: a day-31 anchor has no occurrence in 30-day months.
    return target.day == anchor.day


def _same_month_and_day(anchor: date, target: date) -> bool:
    # Feb 29 anchors only match in leap years.
    return (target.month, target.day) == (anchor.month, anchor.day)


_MATCHERS: dict[RepeatFrequency, Callable[[date, date], bool]] = {
    RepeatFrequency.DAILY: lambda anchor, target: True,
    RepeatFrequency.WEEKLY: _same_weekday,
    RepeatFrequency.MONTHLY: _same_day_of_month,
    RepeatFrequency.YEARLY: _same_month_and_day,
}


def is_occurrence(reminder: Reminder, target: DateLike) -> bool:
    """Return whether ``reminder`` produces an occurrence on ``target``.

    Non-recurring reminders occur only on their anchor date.  Recurring
    reminders occur on the anchor date and on every later date matching
    their frequency, never before the anchor.

    Raises:
        InvalidDateError: If ``target`` is a string that is not an ISO date.
    """
    anchor = to_calendar_date(reminder.date)
    day = to_calendar_date(target)

    if reminder.repeat is RepeatFrequency.NONE:
        return day == anchor
    if day < anchor:
        return False
    return _MATCHERS[reminder.repeat](anchor, day)


def _by_time(reminders: Iterable[Reminder]) -> list[Reminder]:
    # Zero-padded "HH:mm" sorts chronologically as a string; sort is stable.
    return sorted(reminders, key=lambda r: r.time)


def active_on(
    non_recurring: Mapping[date, Iterable[Reminder]],
    recurring: Iterable[Reminder],
    day: DateLike,
) -> list[Reminder]:
    """Return every reminder active on ``day``, ordered by time.

    Args:
        non_recurring: Non-recurring reminders keyed by their anchor date;
            keys may be ``date`` objects or ISO strings.
        recurring: Flat collection of recurring reminders.
        day: The date to evaluate.

    Raises:
        InvalidDateError: If ``day`` or a map key is not a calendar date.
    """
    target = to_calendar_date(day)
    matches = [
        reminder
        for key, items in non_recurring.items()
        if to_calendar_date(key) == target
        for reminder in items
    ]
    matches.extend(r for r in recurring if is_occurrence(r, target))
    return _by_time(matches)


@dataclass(frozen=True)
class ReminderSnapshot:
    """Immutable view of a user's reminders, partitioned for fast lookups.

    Build with :meth:`from_reminders`; never mutate, replace instead.
    """

    by_date: Mapping[date, tuple[Reminder, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    recurring: tuple[Reminder, ...] = ()

    @classmethod
    def from_reminders(cls, reminders: Iterable[Reminder]) -> ReminderSnapshot:
        """Split reminders into the per-date map and the recurring list."""
        by_date: dict[date, list[Reminder]] = {}
        recurring: list[Reminder] = []
        for reminder in reminders:
            if reminder.is_recurring:
                recurring.append(reminder)
            else:
                by_date.setdefault(reminder.date, []).append(reminder)
        return cls(
            by_date=MappingProxyType({d: tuple(items) for d, items in by_date.items()}),
            recurring=tuple(recurring),
        )

    def __len__(self) -> int:
        return sum(len(items) for items in self.by_date.values()) + len(self.recurring)

    def all_reminders(self) -> list[Reminder]:
        """Every stored reminder, non-recurring first in date order."""
        result: list[Reminder] = []
        for day in sorted(self.by_date):
            result.extend(self.by_date[day])
        result.extend(self.recurring)
        return result

    def find(self, reminder_id: str) -> Reminder | None:
        """Look up a stored reminder by id."""
        return next((r for r in self.all_reminders() if r.id == reminder_id), None)

    def reminders_on(self, day: DateLike) -> list[Reminder]:
        """Reminders active on ``day``, ordered by time."""
        target = to_calendar_date(day)
        # by_date is keyed by date already; pass only the matching bucket.
        return active_on({target: self.by_date.get(target, ())}, self.recurring, target)

    def occurrences_between(self, start: DateLike, end: DateLike) -> dict[date, list[Reminder]]:
        """Bucket active reminders for every date in ``[start, end]``.

        Dates without any reminder are omitted.  Each bucket is computed
        independently, so the cost is ``days x recurring rules``.
        """
        first = to_calendar_date(start)
        last = to_calendar_date(end)
        buckets: dict[date, list[Reminder]] = {}
        if last < first:
            return buckets
        for moment in rrule(DAILY, dtstart=first, until=last):
            day = moment.date()
            active = self.reminders_on(day)
            if active:
                buckets[day] = active
        return buckets


@dataclass(frozen=True)
class CalendarDay:
    """A single cell of a month grid."""

    date: date
    is_current_month: bool
    is_today: bool


def month_grid(year: int, month: int, *, today: date | None = None) -> list[CalendarDay]:
    """Return the 42 cells of a Sunday-first month view.

    Leading and trailing cells belong to the adjacent months.
    """
    first = date(year, month, 1)
    grid_start = first + relativedelta(weekday=SU(-1))
    return [
        CalendarDay(
            date=day,
            is_current_month=(day.year, day.month) == (year, month),
            is_today=day == today,
        )
        for day in (grid_start + timedelta(days=offset) for offset in range(GRID_CELLS))
    ]
