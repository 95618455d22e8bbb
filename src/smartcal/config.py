"""Configuration for the SmartCal client library."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Final

import voluptuous as vol

from .const import (
    AUTH_BASE,
    DEFAULT_DATABASE,
    DEFAULT_GEMINI_MODEL,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DOCUMENTS_PATH,
    FIRESTORE_BASE,
    GEMINI_BASE,
    TOKEN_BASE,
)
from .exceptions import ConfigError

CONF_API_KEY: Final = "api_key"
CONF_PROJECT_ID: Final = "project_id"
CONF_DATABASE: Final = "database"
CONF_GEMINI_API_KEY: Final = "gemini_api_key"
CONF_GEMINI_MODEL: Final = "gemini_model"
CONF_POLL_INTERVAL: Final = "poll_interval"
CONF_AUTH_URL: Final = "auth_url"
CONF_TOKEN_URL: Final = "token_url"
CONF_FIRESTORE_URL: Final = "firestore_url"
CONF_GEMINI_URL: Final = "gemini_url"

ENV_PREFIX: Final = "SMARTCAL_"

_NON_EMPTY = vol.All(str, vol.Length(min=1))
_URL = vol.All(str, vol.Match(r"^https?://"), lambda url: url.rstrip("/"))

CONFIG_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_API_KEY): _NON_EMPTY,
        vol.Required(CONF_PROJECT_ID): _NON_EMPTY,
        vol.Optional(CONF_DATABASE, default=DEFAULT_DATABASE): _NON_EMPTY,
        vol.Optional(CONF_GEMINI_API_KEY): vol.Any(None, _NON_EMPTY),
        vol.Optional(CONF_GEMINI_MODEL, default=DEFAULT_GEMINI_MODEL): _NON_EMPTY,
        vol.Optional(CONF_POLL_INTERVAL, default=DEFAULT_POLL_INTERVAL_SECONDS): vol.All(
            vol.Coerce(float), vol.Range(min=1)
        ),
        vol.Optional(CONF_AUTH_URL, default=AUTH_BASE): _URL,
        vol.Optional(CONF_TOKEN_URL, default=TOKEN_BASE): _URL,
        vol.Optional(CONF_FIRESTORE_URL, default=FIRESTORE_BASE): _URL,
        vol.Optional(CONF_GEMINI_URL, default=GEMINI_BASE): _URL,
    }
)

_KNOWN_KEYS = frozenset(marker.schema for marker in CONFIG_SCHEMA.schema)


@dataclass(frozen=True)
class SmartCalConfig:
    """Validated connection settings.

    The ``*_url`` fields default to Google's public endpoints and exist so
    the client can be pointed at the Firebase emulators.
    """

    api_key: str
    project_id: str
    database: str = DEFAULT_DATABASE
    gemini_api_key: str | None = None
    gemini_model: str = DEFAULT_GEMINI_MODEL
    poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS
    auth_url: str = AUTH_BASE
    token_url_base: str = TOKEN_BASE
    firestore_url: str = FIRESTORE_BASE
    gemini_url: str = GEMINI_BASE

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SmartCalConfig:
        """Validate a mapping of settings.

        Raises:
            ConfigError: If a required key is missing or a value is invalid.
        """
        try:
            valid = CONFIG_SCHEMA(dict(data))
        except vol.Invalid as err:
            raise ConfigError(f"Invalid configuration: {err}") from err
        return cls(
            api_key=valid[CONF_API_KEY],
            project_id=valid[CONF_PROJECT_ID],
            database=valid[CONF_DATABASE],
            gemini_api_key=valid.get(CONF_GEMINI_API_KEY),
            gemini_model=valid[CONF_GEMINI_MODEL],
            poll_interval=valid[CONF_POLL_INTERVAL],
            auth_url=valid[CONF_AUTH_URL],
            token_url_base=valid[CONF_TOKEN_URL],
            firestore_url=valid[CONF_FIRESTORE_URL],
            gemini_url=valid[CONF_GEMINI_URL],
        )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> SmartCalConfig:
        """Read ``SMARTCAL_*`` variables, e.g. ``SMARTCAL_API_KEY``.

        Variables that do not name a known setting are ignored.
        """
        environ = os.environ if environ is None else environ
        data = {}
        for key, value in environ.items():
            name = key[len(ENV_PREFIX):].lower()
            if key.startswith(ENV_PREFIX) and value and name in _KNOWN_KEYS:
                data[name] = value
        return cls.from_dict(data)

    @property
    def signin_url(self) -> str:
        return f"{self.auth_url}/accounts:signInWithPassword"

    @property
    def signup_url(self) -> str:
        return f"{self.auth_url}/accounts:signUp"

    @property
    def token_url(self) -> str:
        return f"{self.token_url_base}/token"

    @property
    def documents_url(self) -> str:
        path = DOCUMENTS_PATH.format(project_id=self.project_id, database=self.database)
        return f"{self.firestore_url}/{path}"

    @property
    def generate_content_url(self) -> str:
        return f"{self.gemini_url}/models/{self.gemini_model}:generateContent"
