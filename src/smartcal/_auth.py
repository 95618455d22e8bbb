"""Authentication handler for the Firebase identity REST API."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Any

import aiohttp

from ._serialization import decamelize
from .const import TOKEN_EXPIRY_MARGIN_SECONDS
from .exceptions import ApiConnectionError, AuthenticationError
from .models import User

_LOGGER = logging.getLogger(__name__)

AuthListener = Callable[[User | None], None]

# Identity toolkit error codes that mean "the credentials are wrong".
_CREDENTIAL_ERRORS = {
    "EMAIL_NOT_FOUND": "Invalid email or password",
    "INVALID_PASSWORD": "Invalid email or password",
    "INVALID_LOGIN_CREDENTIALS": "Invalid email or password",
    "USER_DISABLED": "This account has been disabled",
    "EMAIL_EXISTS": "An account with this email already exists",
    "WEAK_PASSWORD": "Password should be at least 6 characters",
    "INVALID_EMAIL": "Invalid email address",
    "TOKEN_EXPIRED": "Session expired, please sign in again",
    "INVALID_REFRESH_TOKEN": "Session expired, please sign in again",
}


class FirebaseAuth:
    """Manages an email/password session and its short-lived ID token.

    Lifecycle:
        1. ``sign_in()`` or ``register()`` obtains an ID token and a refresh
           token.
        2. ``async_get_headers()`` returns a bearer header, refreshing the ID
           token first when it is about to expire.
        3. ``sign_out()`` forgets both tokens.

    Listeners registered with ``subscribe()`` are told about every change of
    the signed-in user.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        *,
        api_key: str,
        signin_url: str,
        signup_url: str,
        token_url: str,
    ) -> None:
        self._session = session
        self._api_key = api_key
        self._signin_url = signin_url
        self._signup_url = signup_url
        self._token_url = token_url
        self._user: User | None = None
        self._id_token: str | None = None
        self._refresh_token: str | None = None
        self._expires_at: float = 0.0
        self._refresh_lock = asyncio.Lock()
        self._listeners: list[AuthListener] = []

    @property
    def current_user(self) -> User | None:
        return self._user

    @property
    def is_authenticated(self) -> bool:
        return self._user is not None and self._id_token is not None

    async def sign_in(self, email: str, password: str) -> User:
        """Sign in with email and password.

        Raises:
            AuthenticationError: On invalid credentials.
            ApiConnectionError: If the server is unreachable.
        """
        data = await self._post_credentials(self._signin_url, email, password)
        return self._start_session(data)

    async def register(self, email: str, password: str) -> User:
        """Create an account and sign in to it.

        Raises:
            AuthenticationError: If the email is taken or the password is weak.
            ApiConnectionError: If the server is unreachable.
        """
        data = await self._post_credentials(self._signup_url, email, password)
        return self._start_session(data)

    def sign_out(self) -> None:
        """Forget the current session and notify listeners."""
        had_user = self._user is not None
        self._user = None
        self._id_token = None
        self._refresh_token = None
        self._expires_at = 0.0
        if had_user:
            self._notify()

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        """Register a listener, called immediately with the current user.

        Returns:
            A callable that removes the listener.
        """
        self._listeners.append(listener)
        listener(self._user)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def async_get_headers(self) -> dict[str, str]:
        """Build headers for an authenticated store request.

        Raises:
            AuthenticationError: If not signed in, or the refresh failed.
        """
        if not self.is_authenticated:
            raise AuthenticationError("Not authenticated. Call authenticate() first.")
        if time.monotonic() >= self._expires_at:
            await self._refresh()
        return {
            "Authorization": f"Bearer {self._id_token}",
            "Content-Type": "application/json",
        }

    def mark_unauthenticated(self) -> None:
        """Force a sign-out after the store rejected our token."""
        _LOGGER.debug("Store rejected the session token, signing out")
        self.sign_out()

    def _start_session(self, data: dict[str, Any]) -> User:
        self._user = User.from_auth_response(data)
        self._id_token = data["id_token"]
        self._refresh_token = data.get("refresh_token")
        self._expires_at = self._expiry(data.get("expires_in"))
        _LOGGER.debug("Signed in as %s", self._user.id)
        self._notify()
        return self._user

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._user)
            except Exception:  # noqa: BLE001
                _LOGGER.exception("Auth listener raised")

    @staticmethod
    def _expiry(expires_in: Any) -> float:
        try:
            seconds = int(expires_in)
        except (TypeError, ValueError):
            seconds = 3600
        return time.monotonic() + max(seconds - TOKEN_EXPIRY_MARGIN_SECONDS, 0)

    async def _refresh(self) -> None:
        """Exchange the refresh token for a new ID token."""
        async with self._refresh_lock:
            if time.monotonic() < self._expires_at:
                return
            if self._refresh_token is None:
                self.sign_out()
                raise AuthenticationError("Session expired, please sign in again")
            try:
                async with self._session.post(
                    self._token_url,
                    params={"key": self._api_key},
                    data={
                        "grant_type": "refresh_token",
                        "refresh_token": self._refresh_token,
                    },
                ) as resp:
                    if resp.status != 200:
                        message = await self._error_message(resp)
                        self.sign_out()
                        raise AuthenticationError(
                            _CREDENTIAL_ERRORS.get(message, f"Token refresh failed: {message}")
                        )
                    data = decamelize(await resp.json())
            except aiohttp.ClientError as err:
                raise ApiConnectionError(f"Connection error during token refresh: {err}") from err

        self._id_token = data["id_token"]
        self._refresh_token = data.get("refresh_token", self._refresh_token)
        self._expires_at = self._expiry(data.get("expires_in"))
        _LOGGER.debug("Refreshed ID token for %s", self._user.id if self._user else "?")

    async def _post_credentials(self, url: str, email: str, password: str) -> dict[str, Any]:
        payload = {"email": email, "password": password, "returnSecureToken": True}
        try:
            async with self._session.post(
                url, params={"key": self._api_key}, json=payload
            ) as resp:
                if resp.status == 200:
                    return decamelize(await resp.json())
                message = await self._error_message(resp)
        except aiohttp.ClientError as err:
            raise ApiConnectionError(f"Connection error during login: {err}") from err

        # Messages may carry a suffix: "WEAK_PASSWORD : Password should be ..."
        code = message.split(" ", 1)[0]
        raise AuthenticationError(_CREDENTIAL_ERRORS.get(code, f"Login failed: {message}"))

    @staticmethod
    async def _error_message(resp: aiohttp.ClientResponse) -> str:
        try:
            body = await resp.json(content_type=None)
            return str(body["error"]["message"])
        except (ValueError, KeyError, TypeError):
            return f"HTTP {resp.status}"
