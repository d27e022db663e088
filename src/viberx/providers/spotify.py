import logging
from urllib.parse import urlencode, urlparse, urlunparse

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError

from viberx.core.exceptions import OAuthError, ProviderRejectedError
from viberx.core.settings import SpotifySettings
from viberx.session.models import TokenSet

logger = logging.getLogger(__name__)


class SpotifyTokenResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    access_token: str
    token_type: str = "Bearer"
    scope: str = ""
    expires_in: int
    refresh_token: str | None = None

    def to_token_set(self) -> TokenSet:
        return TokenSet.from_expires_in(
            access_token=self.access_token,
            expires_in=self.expires_in,
            refresh_token=self.refresh_token,
        )


class SpotifyImage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    url: str
    height: int | None = None
    width: int | None = None


class SpotifyUserProfile(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    display_name: str | None = None
    images: list[SpotifyImage] | None = None

    @property
    def profile_image(self) -> str | None:
        return self.images[0].url if self.images else None


class SpotifyOAuthProvider:
    """Spotify Authorization Code with PKCE client."""

    AUTHORIZATION_URL = "https://accounts.spotify.com/authorize"
    TOKEN_URL = "https://accounts.spotify.com/api/token"  # noqa: S105
    USER_INFO_URL = "https://api.spotify.com/v1/me"

    def __init__(self, settings: SpotifySettings, http_client: httpx.AsyncClient | None = None) -> None:
        self.settings = settings
        self._http_client = http_client

    @property
    def provider_id(self) -> str:
        return "spotify"

    @property
    def http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient()
        return self._http_client

    def generate_authorization_url(self, state: str, code_challenge: str) -> str:
        params = {
            "client_id": self.settings.client_id,
            "response_type": "code",
            "redirect_uri": self.settings.redirect_uri,
            "scope": " ".join(self.settings.scopes),
            "code_challenge_method": "S256",
            "code_challenge": code_challenge,
            "state": state,
        }
        parsed = urlparse(self.AUTHORIZATION_URL)
        return urlunparse(
            (
                parsed.scheme,
                parsed.netloc,
                parsed.path,
                "",
                urlencode(params),
                "",
            ),
        )

    async def _request_tokens(self, data: dict[str, str], action: str) -> SpotifyTokenResponse:
        form = {
            **data,
            "client_id": self.settings.client_id,
            "client_secret": self.settings.client_secret.get_secret_value(),
        }
        try:
            response = await self.http_client.post(
                self.TOKEN_URL,
                data=form,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
        except httpx.RequestError as e:
            logger.error("%s request failed: %s", action, e)  # noqa: TRY400
            msg = f"{action} request failed"
            raise OAuthError(msg) from e

        if response.is_error:
            logger.error("%s failed: %s %s", action, response.status_code, response.text)
            msg = f"{action} failed: {response.status_code}"
            raise ProviderRejectedError(msg, status_code=response.status_code, body=response.text)

        try:
            return SpotifyTokenResponse.model_validate_json(response.content)
        except ValidationError as e:
            logger.error("%s returned a malformed token response", action)  # noqa: TRY400
            msg = f"{action} returned a malformed token response"
            raise OAuthError(msg) from e

    async def exchange_code_for_tokens(self, code: str, code_verifier: str) -> TokenSet:
        """Exchange an authorization code and its PKCE verifier for tokens."""
        tokens = await self._request_tokens(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.settings.redirect_uri,
                "code_verifier": code_verifier,
            },
            action="token exchange",
        )
        return tokens.to_token_set()

    async def refresh_access_token(self, refresh_token: str) -> TokenSet:
        """Exchange a refresh token for a new access token.

        The returned ``refresh_token`` is only set when the provider rotated it.
        """
        tokens = await self._request_tokens(
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
            },
            action="token refresh",
        )
        return tokens.to_token_set()

    async def get_user_profile(self, access_token: str) -> SpotifyUserProfile:
        try:
            response = await self.http_client.get(
                self.USER_INFO_URL,
                headers={"Authorization": f"Bearer {access_token}"},
            )
            response.raise_for_status()
            return SpotifyUserProfile.model_validate_json(response.content)
        except httpx.HTTPStatusError as e:
            logger.error("profile fetch failed: %s %s", e.response.status_code, e.response.text)  # noqa: TRY400
            msg = f"failed to fetch user profile: {e.response.status_code}"
            raise ProviderRejectedError(msg, status_code=e.response.status_code, body=e.response.text) from e
        except httpx.RequestError as e:
            logger.error("profile fetch request failed: %s", e)  # noqa: TRY400
            msg = "user profile request failed"
            raise OAuthError(msg) from e
        except ValidationError as e:
            msg = "malformed user profile response"
            raise OAuthError(msg) from e

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
