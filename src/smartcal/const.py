"""Constants for the SmartCal client library."""

from typing import Final

__version__ = "0.1.0"

AUTH_BASE: Final = "https://identitytoolkit.googleapis.com/v1"
TOKEN_BASE: Final = "https://securetoken.googleapis.com/v1"

FIRESTORE_BASE: Final = "https://firestore.googleapis.com/v1"
DOCUMENTS_PATH: Final = "projects/{project_id}/databases/{database}/documents"

REMINDERS_COLLECTION: Final = "users/{user_id}/reminders"
TODOS_COLLECTION: Final = "users/{user_id}/todos"
PREFERENCES_DOCUMENT: Final = "users/{user_id}/settings/general"

GEMINI_BASE: Final = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_GEMINI_MODEL: Final = "gemini-2.5-flash"

DEFAULT_DATABASE: Final = "(default)"
DEFAULT_PAGE_SIZE: Final = 300
DEFAULT_POLL_INTERVAL_SECONDS: Final = 30
# Refresh the ID token this many seconds before it actually expires.
TOKEN_EXPIRY_MARGIN_SECONDS: Final = 60

DEFAULT_TIME: Final = "09:00"
DEFAULT_COLOR: Final = "bg-blue-500"
DEFAULT_HISTORY_DEPTH: Final = 50
EXPORT_FORMAT_VERSION: Final = 1
