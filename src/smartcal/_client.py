"""SmartCal API client for the Firestore document store."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from typing import Any, TypeVar

import aiohttp

from ._auth import AuthListener, FirebaseAuth
from ._serialization import from_document, to_document_fields
from .config import SmartCalConfig
from .const import (
    DEFAULT_PAGE_SIZE,
    PREFERENCES_DOCUMENT,
    REMINDERS_COLLECTION,
    TODOS_COLLECTION,
)
from .exceptions import (
    ApiConnectionError,
    ApiResponseError,
    AuthenticationError,
    PermissionDeniedError,
    RateLimitError,
)
from .models import Reminder, Todo, User, UserPreferences

_LOGGER = logging.getLogger(__name__)

_ModelT = TypeVar("_ModelT", Reminder, Todo)


class SmartCalApiClient:
    """Async client for the SmartCal backend (auth + document store).

    Usage::

        async with aiohttp.ClientSession() as session:
            client = SmartCalApiClient(config, session)
            user = await client.authenticate("user@example.com", "password")
            reminders = await client.async_get_reminders(user.id)

    If no session is provided, the client creates and manages its own.
    The caller is responsible for calling ``async_close()`` when done
    (or use the client as an async context manager).
    """

    def __init__(
        self,
        config: SmartCalConfig,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._config = config
        self._owns_session = session is None
        self._session = session or aiohttp.ClientSession()
        self._auth = FirebaseAuth(
            self._session,
            api_key=config.api_key,
            signin_url=config.signin_url,
            signup_url=config.signup_url,
            token_url=config.token_url,
        )

    async def __aenter__(self) -> SmartCalApiClient:
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.async_close()

    @property
    def authenticated(self) -> bool:
        """Whether the client has an active authenticated session."""
        return self._auth.is_authenticated

    @property
    def current_user(self) -> User | None:
        return self._auth.current_user

    # ------------------------------------------------------------------ #
    #  Authentication
    # ------------------------------------------------------------------ #

    async def authenticate(self, email: str, password: str) -> User:
        """Sign in with email and password.

        Raises:
            AuthenticationError: On invalid credentials.
            ApiConnectionError: If the server is unreachable.
        """
        return await self._auth.sign_in(email, password)

    async def register(self, email: str, password: str) -> User:
        """Create a new account and sign in to it."""
        return await self._auth.register(email, password)

    async def logout(self) -> None:
        """Sign out. Never raises; listeners receive ``None``."""
        self._auth.sign_out()

    def subscribe_to_auth_changes(self, callback: AuthListener) -> Callable[[], None]:
        """Call ``callback`` with the signed-in user now and on every change."""
        return self._auth.subscribe(callback)

    async def async_close(self) -> None:
        """Close the HTTP session if the client owns it."""
        if self._owns_session:
            await self._session.close()

    # ------------------------------------------------------------------ #
    #  Reminders
    # ------------------------------------------------------------------ #

    async def async_get_reminders(self, user_id: str) -> list[Reminder]:
        """Fetch all reminders of a user.

        Documents that do not validate are logged and skipped.
        """
        path = REMINDERS_COLLECTION.format(user_id=user_id)
        return self._parse_all(Reminder, await self._list_documents(path))

    async def async_add_reminder(self, user_id: str, reminder: Reminder) -> None:
        """Store a reminder, replacing any document with the same id."""
        path = REMINDERS_COLLECTION.format(user_id=user_id)
        await self._set_document(f"{path}/{reminder.id}", reminder.to_api_dict())

    async def async_update_reminder(self, user_id: str, reminder: Reminder) -> None:
        """Merge a reminder's fields into its stored document."""
        path = REMINDERS_COLLECTION.format(user_id=user_id)
        await self._set_document(f"{path}/{reminder.id}", reminder.to_api_dict(), merge=True)

    async def async_delete_reminder(self, user_id: str, reminder_id: str) -> None:
        path = REMINDERS_COLLECTION.format(user_id=user_id)
        await self._request("DELETE", self._document_url(f"{path}/{reminder_id}"))

    # ------------------------------------------------------------------ #
    #  Todos
    # ------------------------------------------------------------------ #

    async def async_get_todos(self, user_id: str) -> list[Todo]:
        """Fetch all todos of a user, skipping invalid documents."""
        path = TODOS_COLLECTION.format(user_id=user_id)
        return self._parse_all(Todo, await self._list_documents(path))

    async def async_add_todo(self, user_id: str, todo: Todo) -> None:
        path = TODOS_COLLECTION.format(user_id=user_id)
        await self._set_document(f"{path}/{todo.id}", todo.to_api_dict())

    async def async_update_todo(self, user_id: str, todo: Todo) -> None:
        path = TODOS_COLLECTION.format(user_id=user_id)
        await self._set_document(f"{path}/{todo.id}", todo.to_api_dict(), merge=True)

    async def async_delete_todo(self, user_id: str, todo_id: str) -> None:
        path = TODOS_COLLECTION.format(user_id=user_id)
        await self._request("DELETE", self._document_url(f"{path}/{todo_id}"))

    # ------------------------------------------------------------------ #
    #  Preferences
    # ------------------------------------------------------------------ #

    async def async_get_preferences(self, user_id: str) -> UserPreferences:
        """Fetch preferences; a missing document yields empty preferences."""
        url = self._document_url(PREFERENCES_DOCUMENT.format(user_id=user_id))
        try:
            data = await self._request("GET", url)
        except ApiResponseError as err:
            if err.status_code == 404:
                return UserPreferences()
            raise
        return UserPreferences.from_api_response(from_document(data or {}))

    async def async_update_preferences(self, user_id: str, prefs: UserPreferences) -> None:
        """Merge the set preference fields into the stored document."""
        body = prefs.to_api_dict()
        if not body:
            return
        await self._set_document(
            PREFERENCES_DOCUMENT.format(user_id=user_id), body, merge=True
        )

    # ------------------------------------------------------------------ #
    #  Bulk import
    # ------------------------------------------------------------------ #

    async def async_import_data(
        self,
        user_id: str,
        reminders: Iterable[Reminder],
        todos: Iterable[Todo],
    ) -> None:
        """Store many reminders and todos concurrently.

        The first failure is raised after all writes have settled.
        """
        writes = [self.async_add_reminder(user_id, r) for r in reminders]
        writes.extend(self.async_add_todo(user_id, t) for t in todos)
        results = await asyncio.gather(*writes, return_exceptions=True)
        errors = [r for r in results if isinstance(r, BaseException)]
        if errors:
            _LOGGER.warning("%d of %d imported items failed", len(errors), len(results))
            raise errors[0]

    # ------------------------------------------------------------------ #
    #  Internal document helpers
    # ------------------------------------------------------------------ #

    def _document_url(self, path: str) -> str:
        return f"{self._config.documents_url}/{path}"

    @staticmethod
    def _parse_all(model: type[_ModelT], raw: list[dict[str, Any]]) -> list[_ModelT]:
        items: list[_ModelT] = []
        for document in raw:
            try:
                items.append(model.from_api_response(from_document(document)))
            except ValueError:
                # InvalidReminderError, or a field type the codec cannot decode.
                _LOGGER.warning(
                    "Skipping invalid %s document %s",
                    model.__name__.lower(),
                    document.get("name"),
                    exc_info=True,
                )
        return items

    async def _list_documents(self, path: str) -> list[dict[str, Any]]:
        """List every document of a collection, following page tokens."""
        url = self._document_url(path)
        documents: list[dict[str, Any]] = []
        page_token: str | None = None

        while True:
            params = {"pageSize": str(DEFAULT_PAGE_SIZE)}
            if page_token:
                params["pageToken"] = page_token
            data = await self._request("GET", url, params=params) or {}
            documents.extend(data.get("documents", []))
            page_token = data.get("nextPageToken")
            if not page_token:
                break

        return documents

    async def _set_document(self, path: str, data: dict[str, Any], *, merge: bool = False) -> None:
        """Write a document; ``merge`` limits the write to the given fields."""
        fields = to_document_fields(data)
        params: list[tuple[str, str]] | None = None
        if merge:
            params = [("updateMask.fieldPaths", key) for key in fields]
        await self._request(
            "PATCH", self._document_url(path), params=params, json_body={"fields": fields}
        )

    # ------------------------------------------------------------------ #
    #  Internal HTTP layer
    # ------------------------------------------------------------------ #

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, str] | list[tuple[str, str]] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> Any:
        """Execute an authenticated store request.

        Raises:
            AuthenticationError: On 401 responses (the session is dropped).
            PermissionDeniedError: On 403 responses.
            RateLimitError: On 429 responses.
            ApiResponseError: On other non-2xx responses.
            ApiConnectionError: On network errors.
        """
        headers = await self._auth.async_get_headers()

        kwargs: dict[str, Any] = {"headers": headers}
        if params:
            kwargs["params"] = params
        if json_body is not None:
            kwargs["json"] = json_body

        _LOGGER.debug("%s %s", method, url)
        try:
            async with self._session.request(method, url, **kwargs) as resp:
                if resp.status == 401:
                    self._auth.mark_unauthenticated()
                    raise AuthenticationError(f"Authentication failed: HTTP {resp.status}")

                if resp.status == 403:
                    raise PermissionDeniedError(f"Access denied: {await resp.text()}")

                if resp.status == 429:
                    retry_after = resp.headers.get("Retry-After")
                    raise RateLimitError(
                        retry_after=float(retry_after) if retry_after else None,
                    )

                if resp.status == 204:
                    return None

                if resp.status >= 400:
                    body = await resp.text()
                    raise ApiResponseError(
                        f"API error: HTTP {resp.status} - {body}",
                        status_code=resp.status,
                    )

                text = await resp.text()
                return await resp.json(content_type=None) if text.strip() else None

        except aiohttp.ClientError as err:
            raise ApiConnectionError(f"Connection error: {err}") from err
