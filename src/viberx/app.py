from __future__ import annotations

import html
import logging
from collections.abc import AsyncIterator  # noqa: TC003
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any
from urllib.parse import urlencode

from fastapi import Depends, FastAPI, status
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response
from pydantic import ValidationError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: TC002

from viberx.alchemy.base import Base
from viberx.alchemy.settings import DatabaseSettings
from viberx.core.exceptions import AuthenticationError, ConfigurationError, OAuthError, ProviderRejectedError
from viberx.core.messages import get_error_message
from viberx.core.settings import VibeRXSettings
from viberx.core.viberx import VibeRX
from viberx.session.cookies import CookieJar  # noqa: TC001

logger = logging.getLogger(__name__)


def _build_login_page(*, message: str | None, login_url: str) -> str:
    error_block = f'<p class="error">{html.escape(message)}</p>' if message else ""
    return f"""
<!DOCTYPE html>
<html>
<head>
    <title>VibeRX - Sign in</title>
    <style>
        body {{ font-family: Arial, sans-serif; max-width: 500px; margin: 0 auto; padding: 20px; }}
        .error {{ background-color: #fdecea; color: #b71c1c; padding: 10px; }}
        a.button {{ background-color: #1DB954; color: white; padding: 10px 15px; text-decoration: none; }}
    </style>
</head>
<body>
    <h2>Sign in to VibeRX</h2>
    {error_block}
    <p><a class="button" href="{html.escape(login_url)}">Continue with Spotify</a></p>
    <p>We'll request access to read your playlists and create optimized copies.
    We never modify your existing playlists.</p>
</body>
</html>
"""


def _build_dashboard_page(*, display_name: str) -> str:
    return f"""
<!DOCTYPE html>
<html>
<head><title>VibeRX - Dashboard</title></head>
<body>
    <h2>Welcome, {html.escape(display_name)}</h2>
    <form action="/api/auth/logout" method="post"><button type="submit">Sign out</button></form>
</body>
</html>
"""


def _register_pages(app: FastAPI, viberx: VibeRX) -> None:
    urls = viberx.settings.urls

    @app.get(urls.login_page, response_class=HTMLResponse)
    async def login_page(error: str | None = None) -> HTMLResponse:
        return HTMLResponse(_build_login_page(message=get_error_message(error), login_url="/api/auth/login"))

    @app.get(urls.signin_redirect, response_class=HTMLResponse)
    async def dashboard(jar: CookieJar = Depends(viberx.cookie_jar)) -> Response:  # noqa: B008
        store = viberx.cookie_store(jar)
        if (session := store.get_session()) is None:
            try:
                await viberx.refresher.refresh(store)
            except (AuthenticationError, OAuthError) as e:
                logger.info("dashboard session could not be restored: %s", e)
            session = store.get_session()

        if session is None:
            location = f"{urls.login_page}?{urlencode({'callbackUrl': urls.signin_redirect})}"
            return jar.apply(RedirectResponse(url=location, status_code=status.HTTP_307_TEMPORARY_REDIRECT))

        display_name = session.user.display_name or session.user.id
        return jar.apply(HTMLResponse(_build_dashboard_page(display_name=display_name)))


def _error_response(jar: CookieJar, status_code: int, detail: str) -> Response:
    # keeps cookie writes made before the failure, such as a rotated refresh token
    return jar.apply(JSONResponse({"detail": detail}, status_code=status_code))


def _register_api(app: FastAPI, viberx: VibeRX, database: DatabaseSettings) -> None:
    @app.get("/api/health")
    async def health() -> dict[str, str]:
        return {
            "status": "ok",
            "timestamp": datetime.now(UTC).isoformat(),
            "environment": viberx.settings.environment,
        }

    @app.get("/api/health/database")
    async def health_database(db: AsyncSession = Depends(database.dependency)) -> dict[str, str]:  # noqa: B008
        try:
            await db.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            logger.warning("database health check failed: %s", e)
            return {
                "status": "disconnected",
                "timestamp": datetime.now(UTC).isoformat(),
                "error": str(e),
            }
        return {"status": "connected", "timestamp": datetime.now(UTC).isoformat()}

    @app.get("/api/spotify/playlists")
    async def playlists(
        limit: int = 50,
        offset: int = 0,
        jar: CookieJar = Depends(viberx.cookie_jar),  # noqa: B008
    ) -> Response:
        client = viberx.spotify_client(jar)
        try:
            data: dict[str, Any] = await client.get_user_playlists(limit=min(limit, 50), offset=offset)
        except AuthenticationError as e:
            return _error_response(jar, status.HTTP_401_UNAUTHORIZED, str(e))
        except ProviderRejectedError as e:
            return _error_response(jar, status.HTTP_502_BAD_GATEWAY, str(e))
        except OAuthError:
            return _error_response(jar, status.HTTP_502_BAD_GATEWAY, "spotify request failed")

        return jar.apply(JSONResponse(data))


def create_app(
    settings: VibeRXSettings | None = None,
    database: DatabaseSettings | None = None,
    *,
    create_tables: bool = True,
) -> FastAPI:
    """Assemble the VibeRX FastAPI application.

    Args:
        settings: Application settings, loaded from the environment when omitted
        database: Database settings, loaded from the environment when omitted
        create_tables: Create missing tables on startup

    Returns:
        FastAPI application with the auth router, route guard, pages and API

    Raises:
        ConfigurationError: settings were omitted and the environment does not provide them
    """
    try:
        settings = settings or VibeRXSettings()
        database = database or DatabaseSettings()
    except ValidationError as e:
        msg = f"invalid VibeRX configuration: {e.error_count()} error(s)"
        raise ConfigurationError(msg) from e

    viberx = VibeRX(settings=settings, db_dependency=database.dependency)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        if create_tables:
            async with database.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        yield
        await viberx.aclose()
        await database.engine.dispose()

    app = FastAPI(title="VibeRX", lifespan=lifespan)
    app.state.viberx = viberx

    app.include_router(viberx.router)
    _register_pages(app, viberx)
    _register_api(app, viberx, database)
    viberx.install_guard(app)

    return app
