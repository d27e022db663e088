import logging

from viberx.core.exceptions import NoRefreshTokenError, ProviderRejectedError, RefreshRejectedError
from viberx.providers.spotify import SpotifyOAuthProvider
from viberx.session.cookies import SessionCookieStore

logger = logging.getLogger(__name__)


class TokenRefresher:
    """Exchanges the stored refresh token for a new access token.

    Shared by the ``/api/auth/refresh`` endpoint and ``SpotifyClient``.
    Concurrent refreshes from one browser are not serialized; a provider that
    rotates refresh tokens may leave the slower response's cookie in place.
    """

    def __init__(self, provider: SpotifyOAuthProvider) -> None:
        self.provider = provider

    async def refresh(self, store: SessionCookieStore) -> str:
        """Refresh the session held in ``store`` and return the new access token.

        Raises:
            NoRefreshTokenError: no refresh token cookie is present
            RefreshRejectedError: the provider answered with a non-2xx status
            OAuthError: the provider could not be reached or answered garbage
        """
        if not (refresh_token := store.get_refresh_token()):
            msg = "No refresh token found"
            raise NoRefreshTokenError(msg)

        try:
            tokens = await self.provider.refresh_access_token(refresh_token)
        except ProviderRejectedError as e:
            msg = "Token refresh failed"
            raise RefreshRejectedError(msg) from e

        store.update_access_token(tokens)
        logger.debug("access token refreshed (rotated=%s)", tokens.refresh_token is not None)
        return tokens.access_token
