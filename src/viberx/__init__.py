"""VibeRX - Spotify sign-in and cookie sessions for FastAPI."""

from viberx.alchemy import AlchemyUserAdapter, DatabaseSettings, User
from viberx.app import create_app
from viberx.client.spotify import SpotifyClient
from viberx.core.callback import CallbackErrorCode, CallbackHandler
from viberx.core.exceptions import (
    AuthenticationError,
    ConfigurationError,
    NoActiveSessionError,
    NoRefreshTokenError,
    OAuthError,
    ProviderRejectedError,
    RefreshFailedError,
    RefreshRejectedError,
    VibeRXError,
)
from viberx.core.messages import ERROR_MESSAGES, get_error_message
from viberx.core.settings import CookieSettings, GuardSettings, SpotifySettings, URLSettings, VibeRXSettings
from viberx.core.viberx import VibeRX
from viberx.middleware.guard import GuardAction, GuardDecision, RouteGuard
from viberx.providers.spotify import SpotifyOAuthProvider, SpotifyTokenResponse, SpotifyUserProfile
from viberx.session.cookies import CookieJar, CookieNames, SessionCookieStore
from viberx.session.models import OAuthAttempt, Session, SessionUser, TokenSet
from viberx.session.refresh import TokenRefresher
from viberx.utils.crypto import PKCEPair, generate_code_challenge, generate_pkce, generate_random_string

__version__ = "0.1.0"

__all__ = [  # noqa: RUF022
    # Core
    "VibeRX",
    "VibeRXSettings",
    "create_app",
    # Settings
    "CookieSettings",
    "GuardSettings",
    "SpotifySettings",
    "URLSettings",
    "DatabaseSettings",
    # Session
    "CookieJar",
    "CookieNames",
    "SessionCookieStore",
    "Session",
    "SessionUser",
    "OAuthAttempt",
    "TokenSet",
    "TokenRefresher",
    # Provider and client
    "SpotifyOAuthProvider",
    "SpotifyTokenResponse",
    "SpotifyUserProfile",
    "SpotifyClient",
    # Callback and routing
    "CallbackHandler",
    "CallbackErrorCode",
    "RouteGuard",
    "GuardAction",
    "GuardDecision",
    "ERROR_MESSAGES",
    "get_error_message",
    # Persistence
    "AlchemyUserAdapter",
    "User",
    # Exceptions
    "VibeRXError",
    "AuthenticationError",
    "NoRefreshTokenError",
    "RefreshRejectedError",
    "NoActiveSessionError",
    "RefreshFailedError",
    "OAuthError",
    "ProviderRejectedError",
    "ConfigurationError",
    # Utils
    "PKCEPair",
    "generate_code_challenge",
    "generate_pkce",
    "generate_random_string",
    "__version__",
]
