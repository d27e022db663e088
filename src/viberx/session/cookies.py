from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

from pydantic import ValidationError

from viberx.session.models import OAuthAttempt, Session, SessionUser, TokenSet, now_ms

if TYPE_CHECKING:
    from collections.abc import Mapping

    from fastapi import Request, Response

    from viberx.core.settings import CookieSettings

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _PendingCookie:
    value: str | None
    max_age: int | None = None


@dataclass(slots=True, kw_only=True)
class CookieJar:
    """Per-request view over the browser's cookies.

    Reads see writes made earlier in the same request. Writes are buffered
    until ``apply`` copies them onto the outgoing response.
    """

    cookies: dict[str, str] = field(default_factory=dict)
    secure: bool = False
    http_only: bool = True
    same_site: Literal["lax", "strict", "none"] = "lax"
    path: str = "/"
    domain: str | None = None
    _pending: dict[str, _PendingCookie] = field(default_factory=dict, init=False, repr=False)

    @classmethod
    def from_request(cls, request: Request, settings: CookieSettings, *, secure: bool) -> CookieJar:
        return cls(
            cookies=dict(request.cookies),
            secure=secure,
            http_only=settings.http_only,
            same_site=settings.same_site,
            path=settings.path,
            domain=settings.domain,
        )

    def get(self, name: str) -> str | None:
        if name in self._pending:
            return self._pending[name].value
        return self.cookies.get(name)

    def set(self, name: str, value: str, *, max_age: int) -> None:
        self._pending[name] = _PendingCookie(value=value, max_age=max_age)

    def delete(self, name: str) -> None:
        self._pending[name] = _PendingCookie(value=None)

    @property
    def pending(self) -> Mapping[str, str | None]:
        return {name: cookie.value for name, cookie in self._pending.items()}

    def apply(self, response: Response) -> Response:
        for name, cookie in self._pending.items():
            if cookie.value is None:
                response.delete_cookie(
                    key=name,
                    path=self.path,
                    domain=self.domain,
                    secure=self.secure,
                    httponly=self.http_only,
                    samesite=self.same_site,
                )
            else:
                response.set_cookie(
                    key=name,
                    value=cookie.value,
                    max_age=cookie.max_age,
                    path=self.path,
                    domain=self.domain,
                    secure=self.secure,
                    httponly=self.http_only,
                    samesite=self.same_site,
                )
        return response


@dataclass(frozen=True, slots=True)
class CookieNames:
    access_token: str
    refresh_token: str
    token_expires_at: str
    user: str
    oauth_state: str
    code_verifier: str

    @classmethod
    def with_prefix(cls, prefix: str) -> CookieNames:
        return cls(
            access_token=f"{prefix}access_token",
            refresh_token=f"{prefix}refresh_token",
            token_expires_at=f"{prefix}token_expires_at",
            user=f"{prefix}user",
            oauth_state=f"{prefix}oauth_state",
            code_verifier=f"{prefix}code_verifier",
        )

    @property
    def session(self) -> tuple[str, str, str, str]:
        return (self.access_token, self.refresh_token, self.token_expires_at, self.user)


class SessionCookieStore:
    """Reads and writes the cookies that together encode a session."""

    def __init__(self, jar: CookieJar, settings: CookieSettings) -> None:
        self.jar = jar
        self.settings = settings
        self.names = CookieNames.with_prefix(settings.prefix)

    def set_oauth_cookies(self, state: str, code_verifier: str) -> None:
        self.jar.set(self.names.oauth_state, state, max_age=self.settings.oauth_max_age)
        self.jar.set(self.names.code_verifier, code_verifier, max_age=self.settings.oauth_max_age)

    def consume_oauth_cookies(self) -> OAuthAttempt | None:
        """Read and delete the OAuth attempt cookies. One-time use."""
        state = self.jar.get(self.names.oauth_state)
        code_verifier = self.jar.get(self.names.code_verifier)

        self.jar.delete(self.names.oauth_state)
        self.jar.delete(self.names.code_verifier)

        if not state or not code_verifier:
            return None

        return OAuthAttempt(state=state, code_verifier=code_verifier)

    def set_session(self, tokens: TokenSet, user: SessionUser) -> None:
        self.jar.set(self.names.access_token, tokens.access_token, max_age=tokens.expires_in)
        # Initial authorization always carries a refresh token
        self.jar.set(
            self.names.refresh_token,
            tokens.refresh_token or "",
            max_age=self.settings.refresh_token_max_age,
        )
        self.jar.set(self.names.token_expires_at, str(tokens.expires_at), max_age=tokens.expires_in)
        self.jar.set(
            self.names.user,
            user.model_dump_json(by_alias=True),
            max_age=self.settings.refresh_token_max_age,
        )

    def update_access_token(self, tokens: TokenSet) -> None:
        self.jar.set(self.names.access_token, tokens.access_token, max_age=tokens.expires_in)
        self.jar.set(self.names.token_expires_at, str(tokens.expires_at), max_age=tokens.expires_in)

        if tokens.refresh_token:
            self.jar.set(
                self.names.refresh_token,
                tokens.refresh_token,
                max_age=self.settings.refresh_token_max_age,
            )

    def clear_session(self) -> None:
        for name in self.names.session:
            self.jar.delete(name)

    def get_session(self) -> Session | None:
        """Assemble the session from cookies.

        Returns None when the access token or user cookie is missing, even if a
        refresh token is still present. Refreshing is left to the caller.
        """
        access_token = self.jar.get(self.names.access_token)
        user_json = self.jar.get(self.names.user)

        if not access_token or not user_json:
            return None

        try:
            user = SessionUser.model_validate_json(user_json)
        except ValidationError:
            logger.warning("discarding corrupted session user cookie")
            return None

        return Session(user=user, access_token=access_token, expires_at=self._expires_at() or now_ms())

    def _expires_at(self) -> int | None:
        if not (raw := self.jar.get(self.names.token_expires_at)):
            return None
        try:
            return int(raw)
        except ValueError:
            return None

    def is_token_expired(self, margin_seconds: int = 300) -> bool:
        """Whether the access token expires within ``margin_seconds``."""
        expires_at = self._expires_at()
        if expires_at is None:
            return True
        return now_ms() > expires_at - margin_seconds * 1000

    def get_refresh_token(self) -> str | None:
        return self.jar.get(self.names.refresh_token) or None

    def has_auth_cookies(self) -> bool:
        return bool(self.jar.get(self.names.access_token) or self.jar.get(self.names.refresh_token))
