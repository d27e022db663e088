import logging
from typing import Any

import httpx

from viberx.core.exceptions import (
    NoActiveSessionError,
    OAuthError,
    ProviderRejectedError,
    RefreshFailedError,
    VibeRXError,
)
from viberx.session.cookies import SessionCookieStore
from viberx.session.refresh import TokenRefresher

logger = logging.getLogger(__name__)

SPOTIFY_API_BASE = "https://api.spotify.com/v1"


class SpotifyClient:
    """Authenticated Spotify Web API client bound to one request's cookies.

    Refreshes the access token proactively when it is about to expire and
    reactively, exactly once, when the API answers 401.

    Example:
        >>> client = viberx.spotify_client(jar)
        >>> response = await client.fetch("/me/playlists?limit=50")
    """

    def __init__(  # noqa: PLR0913
        self,
        store: SessionCookieStore,
        refresher: TokenRefresher,
        http_client: httpx.AsyncClient,
        *,
        api_base_url: str = SPOTIFY_API_BASE,
        refresh_margin_seconds: int = 300,
    ) -> None:
        self.store = store
        self.refresher = refresher
        self.http_client = http_client
        self.api_base_url = api_base_url.rstrip("/")
        self.refresh_margin_seconds = refresh_margin_seconds

    async def _try_refresh(self) -> str | None:
        try:
            return await self.refresher.refresh(self.store)
        except (VibeRXError, httpx.HTTPError) as e:
            logger.warning("token refresh failed: %s", e)
            return None

    def _url(self, endpoint: str) -> str:
        return endpoint if endpoint.startswith("http") else f"{self.api_base_url}{endpoint}"

    async def _send(
        self,
        method: str,
        url: str,
        access_token: str,
        headers: dict[str, str] | None,
        **kwargs: Any,  # noqa: ANN401
    ) -> httpx.Response:
        merged = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
            **(headers or {}),
        }
        return await self.http_client.request(method, url, headers=merged, **kwargs)

    async def fetch(
        self,
        endpoint: str,
        method: str = "GET",
        headers: dict[str, str] | None = None,
        **kwargs: Any,  # noqa: ANN401
    ) -> httpx.Response:
        """Send an authenticated request and return the raw response.

        Args:
            endpoint: Path below the API base (e.g. ``/me``) or an absolute URL
                such as a pagination ``next`` link
            method: HTTP method
            headers: Extra headers, applied over the defaults
            **kwargs: Passed through to ``httpx.AsyncClient.request``

        Raises:
            NoActiveSessionError: no session and no usable refresh token
            RefreshFailedError: the API answered 401 and the refresh failed
        """
        session = self.store.get_session()

        if session is None:
            if await self._try_refresh() is None:
                msg = "No active session"
                raise NoActiveSessionError(msg)
            if (session := self.store.get_session()) is None:
                msg = "No active session after refresh"
                raise NoActiveSessionError(msg)

        access_token = session.access_token
        if self.store.is_token_expired(self.refresh_margin_seconds):
            access_token = await self._try_refresh() or access_token

        url = self._url(endpoint)
        response = await self._send(method, url, access_token, headers, **kwargs)

        if response.status_code == httpx.codes.UNAUTHORIZED:
            if (new_token := await self._try_refresh()) is None:
                msg = "Token refresh failed"
                raise RefreshFailedError(msg)
            response = await self._send(method, url, new_token, headers, **kwargs)

        return response

    async def _get_json(self, endpoint: str, what: str) -> dict[str, Any]:
        response = await self.fetch(endpoint)
        if response.is_error:
            msg = f"Failed to fetch {what}: {response.status_code}"
            raise ProviderRejectedError(msg, status_code=response.status_code, body=response.text)
        try:
            return response.json()
        except ValueError as e:
            msg = f"malformed {what} response"
            raise OAuthError(msg) from e

    async def get_current_user_profile(self) -> dict[str, Any]:
        return await self._get_json("/me", "profile")

    async def get_user_playlists(self, limit: int = 50, offset: int = 0) -> dict[str, Any]:
        """Fetch one page of the current user's playlists (at most 50 per page)."""
        return await self._get_json(f"/me/playlists?limit={limit}&offset={offset}", "playlists")
