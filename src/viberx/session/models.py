import time

from pydantic import BaseModel, ConfigDict, Field


def now_ms() -> int:
    return int(time.time() * 1000)


class SessionUser(BaseModel):
    """Minimal projection of the user record kept in the ``user`` cookie."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str
    display_name: str | None = Field(default=None, alias="displayName")
    profile_image: str | None = Field(default=None, alias="profileImage")


class Session(BaseModel):
    """Session assembled from independent cookies on every read.

    ``expires_at`` is the absolute expiry of ``access_token`` in Unix milliseconds.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    user: SessionUser
    access_token: str = Field(alias="accessToken")
    expires_at: int = Field(alias="expiresAt")


class OAuthAttempt(BaseModel):
    model_config = ConfigDict(frozen=True)

    state: str
    code_verifier: str


class TokenSet(BaseModel):
    model_config = ConfigDict(frozen=True)

    access_token: str
    refresh_token: str | None = None
    expires_in: int
    expires_at: int

    @classmethod
    def from_expires_in(
        cls,
        access_token: str,
        expires_in: int,
        refresh_token: str | None = None,
        received_at: int | None = None,
    ) -> "TokenSet":
        received_at = now_ms() if received_at is None else received_at
        return cls(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=expires_in,
            expires_at=received_at + expires_in * 1000,
        )
