"""Tests for JSON export and import."""

from __future__ import annotations

import json
from datetime import date

import pytest

from smartcal.backup import dumps, export_payload, parse_import
from smartcal.exceptions import InvalidDateError, InvalidReminderError
from smartcal.models import EventCategory, Reminder, RepeatFrequency, Todo

REMINDERS = [
    Reminder(
        id="r1",
        title="Standup",
        date=date(2024, 4, 1),
        time="09:30",
        category=EventCategory.WORK,
        repeat=RepeatFrequency.DAILY,
        alerts=(5,),
    ),
    Reminder(id="r2", title="Dentist", date=date(2024, 5, 3), time="15:30",
             category=EventCategory.HEALTH),
]
TODOS = [Todo(id="t1", text="Buy milk", date=date(2024, 5, 3), completed=True)]


class TestExport:
    def test_payload_shape(self):
        payload = export_payload(REMINDERS, TODOS, exported_at=1714550400000)
        assert payload["version"] == 1
        assert payload["exportedAt"] == 1714550400000
        assert payload["reminders"][0]["createdAt"] == 0
        assert payload["reminders"][0]["isCompleted"] is False
        assert payload["todos"][0]["date"] == "2024-05-03"

    def test_dumps_round_trip(self):
        assert parse_import(dumps(REMINDERS, TODOS)) == (REMINDERS, TODOS)

    def test_dumps_keeps_unicode(self):
        text = dumps([Reminder(id="r", title="看牙医", date=date(2024, 5, 3), time="10:00")], [])
        assert "看牙医" in text


class TestImport:
    def test_bare_list_is_reminders(self):
        raw = [{"id": "r9", "title": "Gym", "date": "2024-05-06", "time": "18:00"}]
        reminders, todos = parse_import(json.dumps(raw))
        assert [r.id for r in reminders] == ["r9"]
        assert todos == []

    def test_missing_sections(self):
        assert parse_import({"version": 1}) == ([], [])

    def test_invalid_json(self):
        with pytest.raises(InvalidReminderError):
            parse_import("{not json")

    def test_unsupported_version(self):
        with pytest.raises(InvalidReminderError, match="version"):
            parse_import({"version": 2, "reminders": []})

    def test_one_bad_item_rejects_all(self):
        raw = {
            "reminders": [
                {"id": "a", "date": "2024-05-06", "time": "18:00"},
                {"id": "b", "date": "2024-02-30", "time": "18:00"},
            ]
        }
        with pytest.raises(InvalidDateError):
            parse_import(raw)

    @pytest.mark.parametrize(
        "payload",
        ['"just a string"', {"reminders": {"id": "x"}}, {"todos": ["not an object"]}],
    )
    def test_wrong_shapes(self, payload):
        with pytest.raises(InvalidReminderError):
            parse_import(payload)
