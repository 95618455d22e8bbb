"""JSON export and import of a user's reminders and todos."""

from __future__ import annotations

import json
import time
from collections.abc import Iterable
from typing import Any

from ._serialization import camelize, decamelize
from .const import EXPORT_FORMAT_VERSION
from .exceptions import InvalidReminderError
from .models import Reminder, Todo


def export_payload(
    reminders: Iterable[Reminder],
    todos: Iterable[Todo],
    *,
    exported_at: int | None = None,
) -> dict[str, Any]:
    """Build the export document; keys are camelCase like the stored documents."""
    return camelize(
        {
            "version": EXPORT_FORMAT_VERSION,
            "exported_at": int(time.time() * 1000) if exported_at is None else exported_at,
            "reminders": [r.to_api_dict() for r in reminders],
            "todos": [t.to_api_dict() for t in todos],
        }
    )


def dumps(reminders: Iterable[Reminder], todos: Iterable[Todo]) -> str:
    return json.dumps(export_payload(reminders, todos), ensure_ascii=False, indent=2)


def parse_import(payload: str | bytes | dict[str, Any]) -> tuple[list[Reminder], list[Todo]]:
    """Parse an export document.

    A bare list is accepted as a list of reminders.  Every item must be
    valid; a single bad item rejects the whole import.

    Raises:
        InvalidReminderError: On malformed JSON or any invalid item.
    """
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except ValueError as err:
            raise InvalidReminderError(f"Import is not valid JSON: {err}") from err

    if isinstance(payload, list):
        payload = {"reminders": payload}
    if not isinstance(payload, dict):
        raise InvalidReminderError("Import must be a JSON object or list")

    data = decamelize(payload)
    version = data.get("version", EXPORT_FORMAT_VERSION)
    if version != EXPORT_FORMAT_VERSION:
        raise InvalidReminderError(f"Unsupported export version: {version}")

    raw_reminders = data.get("reminders") or []
    raw_todos = data.get("todos") or []
    if not isinstance(raw_reminders, list) or not isinstance(raw_todos, list):
        raise InvalidReminderError("'reminders' and 'todos' must be lists")

    reminders = [Reminder.from_api_response(_as_dict(item)) for item in raw_reminders]
    todos = [Todo.from_api_response(_as_dict(item)) for item in raw_todos]
    return reminders, todos


def _as_dict(item: Any) -> dict[str, Any]:
    if not isinstance(item, dict):
        raise InvalidReminderError(f"Expected an object, got {type(item).__name__}")
    return item
