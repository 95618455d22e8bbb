"""Reminder calendar core: recurrence engine plus an async cloud-sync client."""

from .const import __version__
from ._client import SmartCalApiClient
from .agenda import CalendarStats, SearchResult, compute_stats, filter_by_category, search
from .alerts import AlertChecker, AlertTrigger, due_alerts
from .config import SmartCalConfig
from .exceptions import (
    ApiConnectionError,
    ApiResponseError,
    AuthenticationError,
    ConfigError,
    ExtractionError,
    InvalidDateError,
    InvalidReminderError,
    PermissionDeniedError,
    RateLimitError,
    SmartCalError,
)
from .extraction import SmartEventExtractor
from .history import ActionType, UndoHistory
from .models import (
    EventCategory,
    Language,
    Reminder,
    RepeatFrequency,
    SmartEventExtraction,
    Theme,
    Todo,
    User,
    UserPreferences,
)
from .recurrence import (
    CalendarDay,
    ReminderSnapshot,
    active_on,
    is_occurrence,
    month_grid,
    to_calendar_date,
)
from .sync import PreferencesSync, ReminderSync, TodoSync

__all__ = [
    "__version__",
    "SmartCalApiClient",
    "SmartCalConfig",
    "SmartEventExtractor",
    "ReminderSync",
    "TodoSync",
    "PreferencesSync",
    "ApiConnectionError",
    "ApiResponseError",
    "AuthenticationError",
    "ConfigError",
    "ExtractionError",
    "InvalidDateError",
    "InvalidReminderError",
    "PermissionDeniedError",
    "RateLimitError",
    "SmartCalError",
    "EventCategory",
    "Language",
    "Reminder",
    "RepeatFrequency",
    "SmartEventExtraction",
    "Theme",
    "Todo",
    "User",
    "UserPreferences",
    "CalendarDay",
    "ReminderSnapshot",
    "active_on",
    "is_occurrence",
    "month_grid",
    "to_calendar_date",
    "CalendarStats",
    "SearchResult",
    "compute_stats",
    "filter_by_category",
    "search",
    "AlertChecker",
    "AlertTrigger",
    "due_alerts",
    "ActionType",
    "UndoHistory",
]
