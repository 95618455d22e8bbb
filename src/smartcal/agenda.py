"""Search, statistics and filtering over reminder and todo snapshots."""

from __future__ import annotations

import enum
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Union

from dateutil.relativedelta import relativedelta

from ._dates import DateLike, to_calendar_date
from .models import EventCategory, Reminder, Todo
from .recurrence import ReminderSnapshot

TodosByDate = Mapping[date, tuple[Todo, ...]]

TODO_SORT_KEY = "00:00"


class ResultKind(str, enum.Enum):
    REMINDER = "reminder"
    RECURRING = "recurring"
    TODO = "todo"


@dataclass(frozen=True)
class SearchResult:
    """A single search hit; recurring reminders are dated at their anchor."""

    kind: ResultKind
    item: Union[Reminder, Todo]
    date: date
    sort_key: str


@dataclass(frozen=True)
class CalendarStats:
    """Dashboard numbers for one month."""

    total_todos: int
    completed_todos: int
    completion_rate: int  # whole percent
    month_events_count: int
    category_counts: dict[EventCategory, int] = field(default_factory=dict)

    @property
    def total_categorized(self) -> int:
        return sum(self.category_counts.values())


def group_todos_by_date(todos: Iterable[Todo]) -> dict[date, tuple[Todo, ...]]:
    grouped: dict[date, list[Todo]] = {}
    for todo in todos:
        grouped.setdefault(todo.date, []).append(todo)
    return {day: tuple(items) for day, items in grouped.items()}


def sorted_todos(todos: TodosByDate) -> list[Todo]:
    """All todos flattened, newest date first."""
    flat = [todo for items in todos.values() for todo in items]
    return sorted(flat, key=lambda t: t.date, reverse=True)


def toggle_todo(todo: Todo) -> Todo:
    return replace(todo, completed=not todo.completed)


def _category(reminder: Reminder) -> EventCategory:
    return reminder.category or EventCategory.OTHER


def filter_by_category(
    reminders: Iterable[Reminder],
    category: EventCategory | str | None,
) -> list[Reminder]:
    """Keep reminders in ``category``; ``None`` or ``"all"`` keeps everything."""
    if category is None or category == "all":
        return list(reminders)
    wanted = EventCategory(category)
    return [r for r in reminders if _category(r) is wanted]


def _matches(term: str, *texts: str | None) -> bool:
    return any(text and term in text.lower() for text in texts)


def search(
    snapshot: ReminderSnapshot,
    todos: TodosByDate,
    query: str,
) -> list[SearchResult]:
    """Case-insensitive substring search over reminders and todos.

    Results are ordered by date, then time; todos sort as midnight.
    """
    term = query.strip().lower()
    if not term:
        return []

    results: list[SearchResult] = []
    for day, reminders in snapshot.by_date.items():
        for reminder in reminders:
            if _matches(term, reminder.title, reminder.description):
                results.append(SearchResult(ResultKind.REMINDER, reminder, day, reminder.time))
    for reminder in snapshot.recurring:
        if _matches(term, reminder.title, reminder.description):
            results.append(
                SearchResult(ResultKind.RECURRING, reminder, reminder.date, reminder.time)
            )
    for day, day_todos in todos.items():
        for todo in day_todos:
            if _matches(term, todo.text):
                results.append(SearchResult(ResultKind.TODO, todo, day, TODO_SORT_KEY))

    results.sort(key=lambda r: (r.date, r.sort_key))
    return results


def compute_stats(
    snapshot: ReminderSnapshot,
    todos: TodosByDate,
    month_of: DateLike,
) -> CalendarStats:
    """Todo completion and event counts for the month containing ``month_of``.

    The monthly event count includes every recurring occurrence in the month;
    the category distribution counts each recurring rule once.
    """
    all_todos = [todo for items in todos.values() for todo in items]
    completed = sum(1 for todo in all_todos if todo.completed)
    rate = round(completed * 100 / len(all_todos)) if all_todos else 0

    first = to_calendar_date(month_of).replace(day=1)
    last = first + relativedelta(months=1, days=-1)

    counts = {category: 0 for category in EventCategory}
    for day, reminders in snapshot.by_date.items():
        if first <= day <= last:
            for reminder in reminders:
                counts[_category(reminder)] += 1
    for reminder in snapshot.recurring:
        counts[_category(reminder)] += 1

    month_events = sum(
        len(active) for active in snapshot.occurrences_between(first, last).values()
    )

    return CalendarStats(
        total_todos=len(all_todos),
        completed_todos=completed,
        completion_rate=rate,
        month_events_count=month_events,
        category_counts=counts,
    )
