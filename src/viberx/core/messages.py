from collections.abc import Mapping
from types import MappingProxyType

DEFAULT_ERROR_MESSAGE = "An unexpected error occurred. Please try again."

ERROR_MESSAGES: Mapping[str, str] = MappingProxyType(
    {
        "access_denied": "You denied access to your Spotify account. Please try again to use VibeRX.",
        "missing_params": "Something went wrong with the login process. Please try again.",
        "session_expired": "Your login session expired. Please try again.",
        "state_mismatch": "Security check failed. Please try again.",
        "token_exchange_failed": "Failed to connect to Spotify. Please try again.",
        "profile_fetch_failed": "Failed to fetch your Spotify profile. Please try again.",
        "database_error": "A server error occurred. Please try again later.",
    },
)


def get_error_message(code: str | None) -> str | None:
    """Map a login error code to a short, non-technical message."""
    if not code:
        return None
    return ERROR_MESSAGES.get(code, DEFAULT_ERROR_MESSAGE)
