"""Natural-language event extraction through the Gemini REST API."""

from __future__ import annotations

import json
import logging
from typing import Any

import aiohttp

from ._dates import DateLike, format_date, to_calendar_date
from .config import SmartCalConfig
from .const import DEFAULT_TIME
from .exceptions import (
    ApiConnectionError,
    ApiResponseError,
    ConfigError,
    ExtractionError,
    RateLimitError,
)
from .models import Language, SmartEventExtraction

_LOGGER = logging.getLogger(__name__)

_LANGUAGE_NAMES = {Language.ZH: "Chinese", Language.EN: "English"}

PROMPT_TEMPLATE = """
Current Date Reference (YYYY-MM-DD): {reference}
User Language Preference: {language}

User Input: "{text}"

Task: Extract event details from the user input.
Rules:
1. Interpret relative dates (e.g., "next Friday", "tomorrow", "下周五", "明天") based on the Current Date Reference.
2. If no time is specified, default to "{default_time}".
3. If no date is specified, default to the Current Date Reference.
4. Extract the title in the language of the User Input.
5. Return a JSON object matching the schema.
"""

RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "title": {"type": "STRING", "description": "Short title of the event"},
        "date": {"type": "STRING", "description": "Date in YYYY-MM-DD format"},
        "time": {"type": "STRING", "description": "Time in HH:mm 24-hour format"},
        "description": {
            "type": "STRING",
            "description": "Additional details found in input, or empty string",
        },
    },
    "required": ["title", "date", "time", "description"],
}


def build_prompt(text: str, reference_date: DateLike, language: Language | str) -> str:
    """Render the extraction prompt for ``text``."""
    return PROMPT_TEMPLATE.format(
        reference=format_date(to_calendar_date(reference_date)),
        language=_LANGUAGE_NAMES[Language(language)],
        text=text,
        default_time=DEFAULT_TIME,
    )


class SmartEventExtractor:
    """Turns free text such as "dentist next Friday 3pm" into an event.

    The session is borrowed, never closed here.
    """

    def __init__(self, config: SmartCalConfig, session: aiohttp.ClientSession) -> None:
        if not config.gemini_api_key:
            raise ConfigError("Gemini API key is missing; set SMARTCAL_GEMINI_API_KEY")
        self._config = config
        self._session = session

    async def async_parse(
        self,
        text: str,
        reference_date: DateLike,
        language: Language | str = Language.EN,
    ) -> SmartEventExtraction | None:
        """Extract a structured event, or ``None`` when the model returns nothing.

        Raises:
            RateLimitError: When the quota is exhausted.
            ApiResponseError: On other error responses.
            ApiConnectionError: On network errors.
            ExtractionError: If the model output is not a valid event.
        """
        body = {
            "contents": [
                {"role": "user", "parts": [{"text": build_prompt(text, reference_date, language)}]}
            ],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": RESPONSE_SCHEMA,
            },
        }
        headers = {"x-goog-api-key": self._config.gemini_api_key or ""}

        try:
            async with self._session.post(
                self._config.generate_content_url, json=body, headers=headers
            ) as resp:
                if resp.status == 429:
                    retry_after = resp.headers.get("Retry-After")
                    raise RateLimitError(
                        "Extraction quota exhausted",
                        retry_after=float(retry_after) if retry_after else None,
                    )
                if resp.status >= 400:
                    raise ApiResponseError(
                        f"Extraction failed: HTTP {resp.status} - {await resp.text()}",
                        status_code=resp.status,
                    )
                data = await resp.json(content_type=None)
        except aiohttp.ClientError as err:
            raise ApiConnectionError(f"Connection error during extraction: {err}") from err

        output = _response_text(data)
        if not output:
            _LOGGER.debug("Extraction returned no content for %r", text)
            return None

        try:
            payload = json.loads(output)
            if not isinstance(payload, dict):
                raise TypeError(f"expected an object, got {type(payload).__name__}")
            return SmartEventExtraction.from_api_response(payload)
        except (ValueError, TypeError) as err:
            raise ExtractionError(f"Unusable extraction output: {output!r}") from err


def _response_text(data: Any) -> str:
    """Concatenate the text parts of the first candidate."""
    try:
        parts = data["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError):
        return ""
    return "".join(part.get("text", "") for part in parts if isinstance(part, dict)).strip()
