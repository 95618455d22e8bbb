"""Undo history for reminder and todo mutations."""

from __future__ import annotations

import enum
import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from typing import Union

from ._client import SmartCalApiClient
from .const import DEFAULT_HISTORY_DEPTH
from .models import Reminder, Todo, User

_LOGGER = logging.getLogger(__name__)


class ActionType(str, enum.Enum):
    ADD_REMINDER = "ADD_REMINDER"
    UPDATE_REMINDER = "UPDATE_REMINDER"
    DELETE_REMINDER = "DELETE_REMINDER"
    ADD_TODO = "ADD_TODO"
    UPDATE_TODO = "UPDATE_TODO"
    DELETE_TODO = "DELETE_TODO"


@dataclass(frozen=True)
class HistoryItem:
    """One undoable mutation.

    ``data`` is whatever is needed to revert it: the added item (deleted on
    undo), the state before an update (written back), or the deleted item
    (re-added).
    """

    action: ActionType
    data: Union[Reminder, Todo]


class UndoHistory:
    """Bounded stack of mutations that can be reverted in LIFO order."""

    def __init__(self, max_depth: int = DEFAULT_HISTORY_DEPTH) -> None:
        self._items: deque[HistoryItem] = deque(maxlen=max_depth)

    def __len__(self) -> int:
        return len(self._items)

    @property
    def can_undo(self) -> bool:
        return bool(self._items)

    def record(self, action: ActionType, data: Reminder | Todo) -> None:
        expected = Reminder if action.value.endswith("_REMINDER") else Todo
        if not isinstance(data, expected):
            raise TypeError(f"{action.value} needs a {expected.__name__}, got {type(data).__name__}")
        self._items.append(HistoryItem(action, data))

    def clear(self) -> None:
        self._items.clear()

    def track_session(self, client: SmartCalApiClient) -> Callable[[], None]:
        """Clear the history whenever ``client`` signs out.

        Returns:
            A callable that stops tracking.
        """

        def on_auth_change(user: User | None) -> None:
            if user is None and self._items:
                _LOGGER.debug("Signed out, dropping %d undo entries", len(self._items))
                self._items.clear()

        return client.subscribe_to_auth_changes(on_auth_change)

    async def async_undo(self, client: SmartCalApiClient, user_id: str) -> HistoryItem | None:
        """Revert the most recent mutation through ``client``.

        Returns the reverted item, or ``None`` when there is nothing to undo.
        The item is only dropped from the stack once the revert succeeded.
        """
        if not self._items:
            return None
        item = self._items[-1]
        data = item.data

        # Updates revert with a full write: fields the update added must go.
        if item.action is ActionType.ADD_REMINDER:
            await client.async_delete_reminder(user_id, data.id)
        elif item.action in (ActionType.UPDATE_REMINDER, ActionType.DELETE_REMINDER):
            await client.async_add_reminder(user_id, data)
        elif item.action is ActionType.ADD_TODO:
            await client.async_delete_todo(user_id, data.id)
        else:
            await client.async_add_todo(user_id, data)

        self._items.pop()
        _LOGGER.debug("Undid %s of %s", item.action.value, data.id)
        return item
