from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from urllib.parse import urlencode

from fastapi import Request, Response, status
from fastapi.responses import RedirectResponse

from viberx.core.settings import GuardSettings, URLSettings
from viberx.session.cookies import CookieNames


class GuardAction(StrEnum):
    PASS = "pass"
    REDIRECT = "redirect"


@dataclass(frozen=True, slots=True)
class GuardDecision:
    action: GuardAction
    location: str | None = None


PASS_THROUGH = GuardDecision(GuardAction.PASS)


@dataclass(frozen=True, slots=True, kw_only=True)
class RouteGuard:
    """Cookie-presence route protection.

    Runs before every handler. Tokens are never validated here: either an
    access token or a refresh token cookie counts as authenticated, the
    handlers refresh as needed.
    """

    names: CookieNames
    protected_prefixes: tuple[str, ...]
    auth_prefixes: tuple[str, ...]
    bypass_prefixes: tuple[str, ...]
    login_page: str
    signin_redirect: str

    @classmethod
    def from_settings(cls, guard: GuardSettings, urls: URLSettings, names: CookieNames) -> RouteGuard:
        return cls(
            names=names,
            protected_prefixes=tuple(guard.protected_prefixes),
            auth_prefixes=tuple(guard.auth_prefixes),
            bypass_prefixes=tuple(guard.bypass_prefixes),
            login_page=urls.login_page,
            signin_redirect=urls.signin_redirect,
        )

    def is_authenticated(self, cookies: Mapping[str, str]) -> bool:
        return bool(cookies.get(self.names.access_token) or cookies.get(self.names.refresh_token))

    def classify(self, path: str, cookies: Mapping[str, str]) -> GuardDecision:
        if path == "/" or path.startswith(self.bypass_prefixes):
            return PASS_THROUGH

        authenticated = self.is_authenticated(cookies)

        if path.startswith(self.protected_prefixes) and not authenticated:
            location = f"{self.login_page}?{urlencode({'callbackUrl': path})}"
            return GuardDecision(GuardAction.REDIRECT, location)

        if path.startswith(self.auth_prefixes) and authenticated:
            return GuardDecision(GuardAction.REDIRECT, self.signin_redirect)

        return PASS_THROUGH

    async def __call__(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        decision = self.classify(request.url.path, request.cookies)
        if decision.action is GuardAction.REDIRECT and decision.location:
            return RedirectResponse(url=decision.location, status_code=status.HTTP_307_TEMPORARY_REDIRECT)
        return await call_next(request)
