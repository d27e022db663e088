from typing import Literal
from urllib.parse import urlparse

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

SPOTIFY_SCOPES = [
    "playlist-read-private",
    "playlist-read-collaborative",
    "playlist-modify-public",
    "playlist-modify-private",
]


class SpotifySettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="VIBERX_SPOTIFY_",
        env_file=".env",
        extra="ignore",
    )

    client_id: str
    client_secret: SecretStr
    redirect_uri: str
    scopes: list[str] = Field(default=SPOTIFY_SCOPES)

    @field_validator("client_id", "redirect_uri")
    @classmethod
    def validate_non_empty(cls, value: str, info) -> str:  # noqa: ANN001
        """Ensure required OAuth fields are non-empty."""
        if not value or not value.strip():
            msg = f"{info.field_name} must be a non-empty string"
            raise ValueError(msg)
        return value.strip()

    @field_validator("redirect_uri")
    @classmethod
    def validate_redirect_uri(cls, value: str) -> str:
        parsed = urlparse(value)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            msg = "redirect_uri must be a valid URL"
            raise ValueError(msg)
        return value


class CookieSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="VIBERX_COOKIE_",
        env_file=".env",
        extra="ignore",
    )

    prefix: str = Field(default="viberx_")
    secure: bool | None = Field(default=None)
    http_only: bool = Field(default=True)
    same_site: Literal["lax", "strict", "none"] = Field(default="lax")
    domain: str | None = Field(default=None)
    path: str = Field(default="/")
    refresh_token_max_age: int = Field(default=30 * 24 * 60 * 60)
    oauth_max_age: int = Field(default=600)


class URLSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="VIBERX_URLS_",
        env_file=".env",
        extra="ignore",
    )

    signin_redirect: str = Field(default="/dashboard")
    login_page: str = Field(default="/login")
    signout_redirect: str = Field(default="/")


class GuardSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="VIBERX_GUARD_",
        env_file=".env",
        extra="ignore",
    )

    protected_prefixes: list[str] = Field(default=["/dashboard"])
    auth_prefixes: list[str] = Field(default=["/login"])
    bypass_prefixes: list[str] = Field(default=["/static", "/api/auth", "/api/rpc", "/admin"])


class VibeRXSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="VIBERX_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    environment: Literal["development", "test", "production"] = Field(default="development")
    refresh_margin_seconds: int = Field(default=300)
    api_base_url: str = Field(default="https://api.spotify.com/v1")

    spotify: SpotifySettings = Field(default_factory=SpotifySettings)  # type: ignore[arg-type]
    cookie: CookieSettings = Field(default_factory=CookieSettings)
    urls: URLSettings = Field(default_factory=URLSettings)
    guard: GuardSettings = Field(default_factory=GuardSettings)

    @property
    def cookie_secure(self) -> bool:
        if self.cookie.secure is not None:
            return self.cookie.secure
        return self.environment == "production"
