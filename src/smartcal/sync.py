"""Polling feeds that turn the document store into immutable snapshots.

Each feed polls one user collection, and whenever the fetched content
differs from the previous poll it publishes a brand-new snapshot to its
subscribers.  Nothing downstream ever mutates a snapshot; callers simply
swap in the latest one.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from datetime import date
from types import MappingProxyType
from typing import Generic, TypeVar

from ._client import SmartCalApiClient
from .agenda import group_todos_by_date
from .exceptions import AuthenticationError, SmartCalError
from .models import Todo, UserPreferences
from .recurrence import ReminderSnapshot

_LOGGER = logging.getLogger(__name__)

_DataT = TypeVar("_DataT")

ErrorCallback = Callable[[SmartCalError], None]


class StoreSync(Generic[_DataT]):
    """Polls a user's collection and publishes snapshots on change.

    Subclasses implement ``_async_fetch``.
    """

    name = "store"

    def __init__(
        self,
        client: SmartCalApiClient,
        user_id: str,
        *,
        interval: float,
    ) -> None:
        self._client = client
        self._user_id = user_id
        self._interval = interval
        self._data: _DataT | None = None
        self._listeners: list[tuple[Callable[[_DataT], None], ErrorCallback | None]] = []
        self._task: asyncio.Task[None] | None = None

    @property
    def data(self) -> _DataT | None:
        """The latest snapshot, or ``None`` before the first successful poll."""
        return self._data

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def subscribe(
        self,
        on_data: Callable[[_DataT], None],
        on_error: ErrorCallback | None = None,
    ) -> Callable[[], None]:
        """Register callbacks; ``on_data`` fires at once if a snapshot exists.

        Returns:
            A callable that removes the subscription.
        """
        entry = (on_data, on_error)
        self._listeners.append(entry)
        if self._data is not None:
            on_data(self._data)

        def unsubscribe() -> None:
            if entry in self._listeners:
                self._listeners.remove(entry)

        return unsubscribe

    async def async_refresh(self) -> _DataT | None:
        """Poll once.

        Store errors are logged and forwarded to ``on_error`` callbacks, then
        re-raised so the caller can decide whether to keep polling.
        """
        try:
            data = await self._async_fetch()
        except SmartCalError as err:
            _LOGGER.warning("%s sync for %s failed: %s", self.name, self._user_id, err)
            self._notify_error(err)
            raise

        if data != self._data:
            _LOGGER.debug("%s snapshot for %s changed", self.name, self._user_id)
            self._data = data
            self._notify_data(data)
        return self._data

    async def async_start(self) -> None:
        """Fetch the first snapshot, then keep polling in the background."""
        if self.running:
            return
        try:
            await self.async_refresh()
        except AuthenticationError:
            raise
        except SmartCalError:
            # Already reported; the background loop retries.
            pass
        self._task = asyncio.create_task(self._run(), name=f"smartcal-{self.name}-sync")

    async def async_stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.async_refresh()
            except AuthenticationError:
                _LOGGER.info("Stopping %s sync for %s: session ended", self.name, self._user_id)
                return
            except SmartCalError:
                continue

    async def _async_fetch(self) -> _DataT:
        raise NotImplementedError

    def _notify_data(self, data: _DataT) -> None:
        for on_data, _ in list(self._listeners):
            try:
                on_data(data)
            except Exception:  # noqa: BLE001
                _LOGGER.exception("%s subscriber raised", self.name)

    def _notify_error(self, err: SmartCalError) -> None:
        for _, on_error in list(self._listeners):
            if on_error is None:
                continue
            try:
                on_error(err)
            except Exception:  # noqa: BLE001
                _LOGGER.exception("%s error callback raised", self.name)


class ReminderSync(StoreSync[ReminderSnapshot]):
    """Feed of :class:`ReminderSnapshot` objects."""

    name = "reminders"

    async def _async_fetch(self) -> ReminderSnapshot:
        return ReminderSnapshot.from_reminders(
            await self._client.async_get_reminders(self._user_id)
        )


class TodoSync(StoreSync[Mapping[date, tuple[Todo, ...]]]):
    """Feed of read-only date to todos mappings."""

    name = "todos"

    async def _async_fetch(self) -> Mapping[date, tuple[Todo, ...]]:
        todos = await self._client.async_get_todos(self._user_id)
        return MappingProxyType(group_todos_by_date(todos))


class PreferencesSync(StoreSync[UserPreferences]):
    name = "preferences"

    async def _async_fetch(self) -> UserPreferences:
        return await self._client.async_get_preferences(self._user_id)
