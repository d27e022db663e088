from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, Callable, Coroutine  # noqa: TC003
from functools import cached_property
from typing import Any, TypeAlias

import httpx
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse, RedirectResponse

from viberx.alchemy.adapter import AlchemyUserAdapter
from viberx.client.spotify import SpotifyClient
from viberx.core.callback import CallbackHandler
from viberx.core.exceptions import NoRefreshTokenError, OAuthError, RefreshRejectedError
from viberx.core.settings import VibeRXSettings  # noqa: TC001
from viberx.middleware.guard import RouteGuard
from viberx.protocols.user import UserStoreProtocol  # noqa: TC001
from viberx.providers.spotify import SpotifyOAuthProvider
from viberx.session.cookies import CookieJar, CookieNames, SessionCookieStore
from viberx.session.models import Session  # noqa: TC001
from viberx.session.refresh import TokenRefresher
from viberx.utils.crypto import generate_pkce, generate_state_token

logger = logging.getLogger(__name__)

DBDependency: TypeAlias = Callable[..., AsyncGenerator[Any, None] | Coroutine[Any, Any, Any] | Any]


class VibeRX:
    """Spotify sign-in and cookie session orchestrator.

    Owns the process-wide HTTP client and wires the provider, refresh engine,
    callback pipeline and route guard together for FastAPI.

    Attributes:
        settings: Application settings
        provider: Spotify OAuth client
        refresher: Token refresh engine shared by the refresh endpoint and SpotifyClient
        callback_handler: Authorization callback pipeline
        guard: Route guard, installed with ``install_guard``
        router: ``/api/auth`` router

    Example:
        >>> database = DatabaseSettings(url="sqlite+aiosqlite:///viberx.db")
        >>> viberx = VibeRX(settings=VibeRXSettings(), db_dependency=database.dependency)
        >>> app.include_router(viberx.router)
        >>> viberx.install_guard(app)
    """

    def __init__(
        self,
        settings: VibeRXSettings,
        db_dependency: DBDependency,
        user_store: UserStoreProtocol[Any] | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings
        self.db_dependency = db_dependency
        self.user_store = user_store or AlchemyUserAdapter()
        self.http_client = http_client or httpx.AsyncClient()

        self.provider = SpotifyOAuthProvider(settings.spotify, http_client=self.http_client)
        self.refresher = TokenRefresher(self.provider)
        self.callback_handler = CallbackHandler(self.provider, self.user_store, settings.urls)
        self.cookie_names = CookieNames.with_prefix(settings.cookie.prefix)
        self.guard = RouteGuard.from_settings(settings.guard, settings.urls, self.cookie_names)

    def cookie_jar(self, request: Request) -> CookieJar:
        """FastAPI dependency: one cookie jar per request."""
        return CookieJar.from_request(request, self.settings.cookie, secure=self.settings.cookie_secure)

    def cookie_store(self, jar: CookieJar) -> SessionCookieStore:
        return SessionCookieStore(jar, self.settings.cookie)

    def spotify_client(self, jar: CookieJar) -> SpotifyClient:
        return SpotifyClient(
            self.cookie_store(jar),
            self.refresher,
            self.http_client,
            api_base_url=self.settings.api_base_url,
            refresh_margin_seconds=self.settings.refresh_margin_seconds,
        )

    @property
    def session(self) -> Callable[[CookieJar], Session | None]:
        """FastAPI dependency for the current session, or None when signed out.

        Example:
            >>> @app.get("/whoami")
            >>> async def whoami(session: Session | None = Depends(viberx.session)):
            ...     return session.user if session else None
        """

        def _session(jar: CookieJar = Depends(self.cookie_jar)) -> Session | None:  # noqa: B008
            return self.cookie_store(jar).get_session()

        return _session

    @property
    def require_session(self) -> Callable[[Session | None], Session]:
        """FastAPI dependency for the current session.

        Raises:
            HTTPException: 401 if no session can be assembled from the cookies
        """

        def _require_session(session: Session | None = Depends(self.session)) -> Session:  # noqa: B008
            if session is None:
                raise HTTPException(
                    status_code=status.HTTP_401_UNAUTHORIZED,
                    detail="not authenticated",
                )
            return session

        return _require_session

    def install_guard(self, app: FastAPI) -> None:
        app.middleware("http")(self.guard)

    @cached_property
    def router(self) -> APIRouter:
        """FastAPI router with the authentication endpoints.

        - GET /api/auth/login - start the authorization code flow
        - GET /api/auth/callback - finish the flow and establish the session
        - POST /api/auth/logout - clear the session cookies
        - POST /api/auth/refresh - refresh the access token
        - GET /api/auth/session - current session user, or null
        - GET /api/auth/me - stored user record for the session user
        """
        router = APIRouter(prefix="/api/auth", tags=["auth"])

        async def login(jar: CookieJar = Depends(self.cookie_jar)) -> RedirectResponse:  # noqa: B008
            pkce = generate_pkce()
            state = generate_state_token()
            self.cookie_store(jar).set_oauth_cookies(state, pkce.code_verifier)

            url = self.provider.generate_authorization_url(state, pkce.code_challenge)
            return jar.apply(RedirectResponse(url=url, status_code=status.HTTP_302_FOUND))

        async def callback(
            request: Request,
            jar: CookieJar = Depends(self.cookie_jar),  # noqa: B008
            db: Any = Depends(self.db_dependency),  # noqa: ANN401, B008
        ) -> RedirectResponse:
            location = await self.callback_handler.handle(request.query_params, self.cookie_store(jar), db)
            return jar.apply(RedirectResponse(url=location, status_code=status.HTTP_302_FOUND))

        async def logout(jar: CookieJar = Depends(self.cookie_jar)) -> JSONResponse:  # noqa: B008
            self.cookie_store(jar).clear_session()
            return jar.apply(JSONResponse({"success": True}))

        async def refresh(jar: CookieJar = Depends(self.cookie_jar)) -> JSONResponse:  # noqa: B008
            try:
                await self.refresher.refresh(self.cookie_store(jar))
            except (NoRefreshTokenError, RefreshRejectedError) as e:
                return jar.apply(JSONResponse({"error": str(e)}, status_code=status.HTTP_401_UNAUTHORIZED))
            except OAuthError:
                return jar.apply(
                    JSONResponse({"error": "Token refresh failed"}, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR),
                )
            return jar.apply(JSONResponse({"success": True}))

        async def current_session(session: Session | None = Depends(self.session)) -> dict[str, Any] | None:  # noqa: B008
            if session is None:
                return None
            return {
                "user": session.user.model_dump(by_alias=True),
                "expiresAt": session.expires_at,
            }

        async def me(
            session: Session = Depends(self.require_session),  # noqa: B008
            db: Any = Depends(self.db_dependency),  # noqa: ANN401, B008
        ) -> dict[str, Any]:
            if not (user := await self.user_store.get_user_by_id(db, session.user.id)):
                raise HTTPException(
                    status_code=status.HTTP_401_UNAUTHORIZED,
                    detail="user not found",
                )
            return {
                "id": user.id,
                "spotifyId": user.spotify_id,
                "displayName": user.display_name,
                "profileImage": user.profile_image,
                "lastLoginAt": user.last_login_at.isoformat() if user.last_login_at else None,
                "createdAt": user.created_at.isoformat(),
            }

        router.add_api_route("/login", login, methods=["GET"])
        router.add_api_route("/callback", callback, methods=["GET"])
        router.add_api_route("/logout", logout, methods=["POST"])
        router.add_api_route("/refresh", refresh, methods=["POST"])
        router.add_api_route("/session", current_session, methods=["GET"])
        router.add_api_route("/me", me, methods=["GET"])

        return router

    async def aclose(self) -> None:
        await self.http_client.aclose()
