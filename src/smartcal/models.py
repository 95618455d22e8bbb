"""Data models for reminders, todos and the surrounding records."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date
from typing import Any, TypeVar

import voluptuous as vol

from ._dates import format_date, to_calendar_date
from .const import DEFAULT_COLOR
from .exceptions import InvalidDateError, InvalidReminderError

_EnumT = TypeVar("_EnumT", bound=enum.Enum)

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class RepeatFrequency(str, enum.Enum):
    """How often a reminder recurs after its anchor date."""

    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class EventCategory(str, enum.Enum):
    """Reminder categories shown as colored tags."""

    WORK = "work"
    PERSONAL = "personal"
    STUDY = "study"
    HEALTH = "health"
    TRAVEL = "travel"
    OTHER = "other"


class Theme(str, enum.Enum):
    DARK = "dark"
    LIGHT = "light"


class Language(str, enum.Enum):
    ZH = "zh"
    EN = "en"


def _calendar_date(value: Any) -> date:
    try:
        return to_calendar_date(value)
    except InvalidDateError as err:
        raise vol.Invalid(str(err)) from err


REMINDER_SCHEMA = vol.Schema(
    {
        vol.Required("id"): vol.Coerce(str),
        vol.Required("date"): _calendar_date,
        vol.Required("time"): vol.Match(TIME_PATTERN),
        vol.Optional("title", default=""): vol.Any(None, str),
        vol.Optional("description"): vol.Any(None, str),
        vol.Optional("color", default=DEFAULT_COLOR): vol.Any(None, str),
        vol.Optional("category"): object,
        vol.Optional("created_at", default=0): vol.Coerce(int),
        vol.Optional("repeat"): vol.Any(None, vol.Coerce(RepeatFrequency)),
        vol.Optional("alerts"): vol.Any(None, [vol.All(vol.Coerce(int), vol.Range(min=0))]),
        vol.Optional("is_completed", default=False): vol.Any(None, bool),
    },
    extra=vol.ALLOW_EXTRA,
)

TODO_SCHEMA = vol.Schema(
    {
        vol.Required("id"): vol.Coerce(str),
        vol.Required("date"): _calendar_date,
        vol.Optional("text", default=""): vol.Any(None, str),
        vol.Optional("completed", default=False): vol.Any(None, bool),
        vol.Optional("created_at", default=0): vol.Coerce(int),
    },
    extra=vol.ALLOW_EXTRA,
)

EXTRACTION_SCHEMA = vol.Schema(
    {
        vol.Required("title"): str,
        vol.Required("date"): _calendar_date,
        vol.Required("time"): vol.Match(TIME_PATTERN),
        vol.Optional("description", default=""): vol.Any(None, str),
    },
    extra=vol.REMOVE_EXTRA,
)


def _validate(schema: vol.Schema, data: dict[str, Any], kind: str) -> dict[str, Any]:
    """Run a voluptuous schema, translating failures into library errors."""
    try:
        return schema(data)
    except vol.Invalid as err:
        error_cls = InvalidDateError if err.path and err.path[0] == "date" else InvalidReminderError
        raise error_cls(f"Invalid {kind} {data.get('id', '?')}: {err}") from err


def _parse_enum(enum_cls: type[_EnumT], value: Any, default: _EnumT | None) -> _EnumT | None:
    """Parse an enum value leniently, falling back to ``default`` when unknown."""
    if value is None:
        return default
    try:
        return enum_cls(value)
    except ValueError:
        return default


@dataclass(frozen=True)
class User:
    """Signed-in user identity."""

    id: str
    username: str

    @classmethod
    def from_auth_response(cls, data: dict[str, Any]) -> User:
        """Construct from an identity-toolkit sign-in or sign-up response."""
        return cls(
            id=str(data.get("local_id") or data["user_id"]),
            username=data.get("email") or "User",
        )


@dataclass(frozen=True)
class Reminder:
    """A calendar reminder, optionally recurring from its anchor date."""

    id: str
    title: str
    date: date  # anchor date for recurring reminders
    time: str  # "HH:mm", not used in occurrence math
    color: str = DEFAULT_COLOR
    created_at: int = 0  # Unix milliseconds
    description: str | None = None
    category: EventCategory | None = None
    repeat: RepeatFrequency = RepeatFrequency.NONE
    alerts: tuple[int, ...] = field(default_factory=tuple)  # minutes before
    is_completed: bool = False

    def __post_init__(self) -> None:
        # Accept plain strings and None from callers; store enums and dates.
        try:
            repeat = RepeatFrequency(self.repeat or RepeatFrequency.NONE)
            category = None if self.category is None else EventCategory(self.category)
        except ValueError as err:
            raise InvalidReminderError(f"Invalid reminder {self.id}: {err}") from err
        object.__setattr__(self, "repeat", repeat)
        object.__setattr__(self, "category", category)
        object.__setattr__(self, "date", to_calendar_date(self.date))
        object.__setattr__(self, "alerts", tuple(self.alerts))

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> Reminder:
        """Construct from a decamelized document dict.

        Raises:
            InvalidDateError: If ``date`` is not a calendar date.
            InvalidReminderError: On any other shape violation, including an
                unknown ``repeat`` value.
        """
        valid = _validate(REMINDER_SCHEMA, data, "reminder")
        return cls(
            id=valid["id"],
            title=valid["title"] or "",
            date=valid["date"],
            time=valid["time"],
            color=valid["color"] or DEFAULT_COLOR,
            created_at=valid["created_at"],
            description=valid.get("description"),
            category=_parse_enum(EventCategory, valid.get("category"), EventCategory.OTHER),
            repeat=valid.get("repeat") or RepeatFrequency.NONE,
            alerts=tuple(valid.get("alerts") or ()),
            is_completed=bool(valid["is_completed"]),
        )

    @property
    def is_recurring(self) -> bool:
        """Whether this reminder repeats after its anchor date."""
        return self.repeat is not RepeatFrequency.NONE

    def to_api_dict(self) -> dict[str, Any]:
        """Convert to the persisted document shape (snake_case).

        Optional fields are omitted rather than stored as null.
        """
        data: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "date": format_date(self.date),
            "time": self.time,
            "color": self.color,
            "created_at": self.created_at,
            "repeat": self.repeat.value,
            "alerts": list(self.alerts),
            "is_completed": self.is_completed,
        }
        if self.description is not None:
            data["description"] = self.description
        if self.category is not None:
            data["category"] = self.category.value
        return data


@dataclass(frozen=True)
class Todo:
    """A dated todo item."""

    id: str
    text: str
    date: date
    completed: bool = False
    created_at: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "date", to_calendar_date(self.date))

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> Todo:
        """Construct from a decamelized document dict."""
        valid = _validate(TODO_SCHEMA, data, "todo")
        return cls(
            id=valid["id"],
            text=valid["text"] or "",
            date=valid["date"],
            completed=bool(valid["completed"]),
            created_at=valid["created_at"],
        )

    def to_api_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "completed": self.completed,
            "date": format_date(self.date),
            "created_at": self.created_at,
        }


@dataclass(frozen=True)
class UserPreferences:
    """Per-user settings synced through the store."""

    theme: Theme | None = None
    language: Language | None = None

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> UserPreferences:
        """Construct from a decamelized document dict, ignoring unknown values."""
        return cls(
            theme=_parse_enum(Theme, data.get("theme"), None),
            language=_parse_enum(Language, data.get("language"), None),
        )

    def to_api_dict(self) -> dict[str, Any]:
        """Only the fields that are set, for a merge update."""
        data: dict[str, Any] = {}
        if self.theme is not None:
            data["theme"] = self.theme.value
        if self.language is not None:
            data["language"] = self.language.value
        return data


@dataclass(frozen=True)
class SmartEventExtraction:
    """Structured event extracted from free text."""

    title: str
    date: date
    time: str
    description: str = ""

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> SmartEventExtraction:
        valid = _validate(EXTRACTION_SCHEMA, data, "extraction")
        return cls(
            title=valid["title"],
            date=valid["date"],
            time=valid["time"],
            description=valid["description"] or "",
        )
