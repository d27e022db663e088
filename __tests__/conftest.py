from __future__ import annotations

from collections.abc import AsyncGenerator, Iterator

import httpx
import pytest
import pytest_asyncio
import respx
from fastapi import FastAPI
from pydantic import SecretStr
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from viberx.alchemy import AlchemyUserAdapter, Base
from viberx.core.settings import CookieSettings, SpotifySettings, URLSettings, VibeRXSettings
from viberx.core.viberx import VibeRX
from viberx.providers.spotify import SpotifyOAuthProvider
from viberx.session.cookies import CookieJar, CookieNames, SessionCookieStore


@pytest.fixture
def spotify_settings() -> SpotifySettings:
    return SpotifySettings(
        client_id="test-client-id",
        client_secret=SecretStr("test-client-secret"),
        redirect_uri="http://testserver/api/auth/callback",
    )


@pytest.fixture
def settings(spotify_settings: SpotifySettings) -> VibeRXSettings:
    return VibeRXSettings(
        environment="test",
        spotify=spotify_settings,
        cookie=CookieSettings(prefix="viberx_"),
        urls=URLSettings(signin_redirect="/dashboard", login_page="/login"),
    )


@pytest.fixture
def names() -> CookieNames:
    return CookieNames.with_prefix("viberx_")


@pytest.fixture
def jar() -> CookieJar:
    return CookieJar()


@pytest.fixture
def store(jar: CookieJar, settings: VibeRXSettings) -> SessionCookieStore:
    return SessionCookieStore(jar, settings.cookie)


@pytest.fixture
def spotify_api() -> Iterator[respx.MockRouter]:
    with respx.mock(assert_all_called=False) as mock:
        yield mock


@pytest_asyncio.fixture
async def http_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient() as client:
        yield client


@pytest.fixture
def provider(spotify_settings: SpotifySettings, http_client: httpx.AsyncClient) -> SpotifyOAuthProvider:
    return SpotifyOAuthProvider(spotify_settings, http_client=http_client)


@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_fk(dbapi_conn, _connection_record) -> None:  # noqa: ANN001
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(db_session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    async with db_session_factory() as session:
        yield session


@pytest.fixture
def user_store() -> AlchemyUserAdapter:
    return AlchemyUserAdapter()


@pytest_asyncio.fixture
async def viberx(
    settings: VibeRXSettings,
    db_session_factory: async_sessionmaker[AsyncSession],
    user_store: AlchemyUserAdapter,
) -> AsyncGenerator[VibeRX, None]:
    async def get_db() -> AsyncGenerator[AsyncSession, None]:
        async with db_session_factory() as session:
            yield session

    instance = VibeRX(settings=settings, db_dependency=get_db, user_store=user_store)
    yield instance
    await instance.aclose()


@pytest.fixture
def app(viberx: VibeRX) -> FastAPI:
    app = FastAPI()
    app.include_router(viberx.router)
    viberx.install_guard(app)
    return app


@pytest_asyncio.fixture
async def async_client(app: FastAPI) -> AsyncGenerator[httpx.AsyncClient, None]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
