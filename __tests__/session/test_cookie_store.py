import pytest
from fastapi import Response

from viberx.core.settings import CookieSettings
from viberx.session.cookies import CookieJar, CookieNames, SessionCookieStore
from viberx.session.models import SessionUser, TokenSet, now_ms


@pytest.fixture
def user() -> SessionUser:
    return SessionUser(id="spotify-user", display_name="Ada", profile_image=None)


@pytest.fixture
def tokens() -> TokenSet:
    return TokenSet.from_expires_in(access_token="access-1", expires_in=3600, refresh_token="refresh-1")


def test_cookie_names_with_prefix() -> None:
    names = CookieNames.with_prefix("viberx_")

    assert names.access_token == "viberx_access_token"
    assert names.refresh_token == "viberx_refresh_token"
    assert names.token_expires_at == "viberx_token_expires_at"
    assert names.user == "viberx_user"
    assert names.oauth_state == "viberx_oauth_state"
    assert names.code_verifier == "viberx_code_verifier"


def test_cookie_jar_reads_see_pending_writes() -> None:
    jar = CookieJar(cookies={"a": "old"})

    jar.set("a", "new", max_age=10)
    assert jar.get("a") == "new"

    jar.delete("a")
    assert jar.get("a") is None
    assert jar.pending == {"a": None}


def test_cookie_jar_apply_sets_flags() -> None:
    jar = CookieJar(secure=True, same_site="lax")
    jar.set("viberx_access_token", "token", max_age=3600)
    jar.delete("viberx_oauth_state")

    response = jar.apply(Response())
    headers = response.headers.getlist("set-cookie")

    set_header = next(h for h in headers if h.startswith("viberx_access_token="))
    assert "Max-Age=3600" in set_header
    assert "HttpOnly" in set_header
    assert "Secure" in set_header
    assert "SameSite=lax" in set_header
    assert "Path=/" in set_header

    delete_header = next(h for h in headers if h.startswith("viberx_oauth_state="))
    assert "Max-Age=0" in delete_header


def test_set_and_consume_oauth_cookies(store: SessionCookieStore, jar: CookieJar, names: CookieNames) -> None:
    store.set_oauth_cookies("state-123", "verifier-456")

    attempt = store.consume_oauth_cookies()

    assert attempt is not None
    assert attempt.state == "state-123"
    assert attempt.code_verifier == "verifier-456"
    assert jar.pending[names.oauth_state] is None
    assert jar.pending[names.code_verifier] is None


def test_consume_oauth_cookies_is_one_time(store: SessionCookieStore) -> None:
    store.set_oauth_cookies("state-123", "verifier-456")

    assert store.consume_oauth_cookies() is not None
    assert store.consume_oauth_cookies() is None


def test_consume_oauth_cookies_deletes_when_incomplete(settings, names: CookieNames) -> None:
    jar = CookieJar(cookies={names.oauth_state: "state-123"})
    store = SessionCookieStore(jar, settings.cookie)

    assert store.consume_oauth_cookies() is None
    assert jar.pending == {names.oauth_state: None, names.code_verifier: None}


def test_set_session_writes_four_cookies(
    store: SessionCookieStore,
    jar: CookieJar,
    names: CookieNames,
    tokens: TokenSet,
    user: SessionUser,
) -> None:
    store.set_session(tokens, user)

    assert jar.get(names.access_token) == "access-1"
    assert jar.get(names.refresh_token) == "refresh-1"
    assert jar.get(names.token_expires_at) == str(tokens.expires_at)
    assert jar.get(names.user) == user.model_dump_json(by_alias=True)


def test_set_session_max_ages(settings, tokens: TokenSet, user: SessionUser, names: CookieNames) -> None:
    jar = CookieJar()
    SessionCookieStore(jar, settings.cookie).set_session(tokens, user)

    headers = {h.split("=", 1)[0]: h for h in jar.apply(Response()).headers.getlist("set-cookie")}

    assert "Max-Age=3600" in headers[names.access_token]
    assert "Max-Age=3600" in headers[names.token_expires_at]
    assert "Max-Age=2592000" in headers[names.refresh_token]
    assert "Max-Age=2592000" in headers[names.user]


def test_get_session_round_trip(store: SessionCookieStore, tokens: TokenSet, user: SessionUser) -> None:
    store.set_session(tokens, user)

    session = store.get_session()

    assert session is not None
    assert session.user == user
    assert session.access_token == "access-1"
    assert session.expires_at == tokens.expires_at


def test_get_session_without_access_token(settings, names: CookieNames, user: SessionUser) -> None:
    jar = CookieJar(
        cookies={
            names.refresh_token: "refresh-1",
            names.user: user.model_dump_json(by_alias=True),
        },
    )

    assert SessionCookieStore(jar, settings.cookie).get_session() is None


def test_get_session_without_user(settings, names: CookieNames) -> None:
    jar = CookieJar(cookies={names.access_token: "access-1"})

    assert SessionCookieStore(jar, settings.cookie).get_session() is None


@pytest.mark.parametrize("raw", ["not json", "{}", '{"displayName": "no id"}'])
def test_get_session_with_corrupted_user_cookie(settings, names: CookieNames, raw: str) -> None:
    jar = CookieJar(cookies={names.access_token: "access-1", names.user: raw})

    assert SessionCookieStore(jar, settings.cookie).get_session() is None


def test_get_session_without_expiry_uses_now(settings, names: CookieNames, user: SessionUser) -> None:
    jar = CookieJar(
        cookies={
            names.access_token: "access-1",
            names.user: user.model_dump_json(by_alias=True),
        },
    )
    before = now_ms()

    session = SessionCookieStore(jar, settings.cookie).get_session()

    assert session is not None
    assert session.expires_at >= before


def test_update_access_token_keeps_refresh_token_when_not_rotated(
    store: SessionCookieStore,
    jar: CookieJar,
    names: CookieNames,
    tokens: TokenSet,
    user: SessionUser,
) -> None:
    store.set_session(tokens, user)

    store.update_access_token(TokenSet.from_expires_in(access_token="access-2", expires_in=3600))

    assert jar.get(names.access_token) == "access-2"
    assert jar.get(names.refresh_token) == "refresh-1"


def test_update_access_token_rotates_refresh_token(
    store: SessionCookieStore,
    jar: CookieJar,
    names: CookieNames,
    tokens: TokenSet,
    user: SessionUser,
) -> None:
    store.set_session(tokens, user)

    store.update_access_token(
        TokenSet.from_expires_in(access_token="access-2", expires_in=3600, refresh_token="refresh-2"),
    )

    assert jar.get(names.refresh_token) == "refresh-2"


def test_update_access_token_leaves_user_cookie(settings, names: CookieNames) -> None:
    jar = CookieJar(cookies={names.refresh_token: "refresh-1"})
    store = SessionCookieStore(jar, settings.cookie)

    store.update_access_token(TokenSet.from_expires_in(access_token="access-2", expires_in=3600))

    assert names.user not in jar.pending
    assert store.get_session() is None


def test_clear_session(store: SessionCookieStore, jar: CookieJar, names: CookieNames, tokens, user) -> None:
    store.set_session(tokens, user)

    store.clear_session()

    assert store.get_session() is None
    assert store.get_refresh_token() is None
    for name in names.session:
        assert jar.pending[name] is None


def test_clear_session_without_cookies_is_noop(store: SessionCookieStore) -> None:
    store.clear_session()

    assert store.get_session() is None


@pytest.mark.parametrize(
    ("offset_ms", "expected"),
    [
        (3_600_000, False),
        (301_000, False),
        (240_000, True),
        (-1_000, True),
    ],
)
def test_is_token_expired(settings, names: CookieNames, offset_ms: int, expected: bool) -> None:
    jar = CookieJar(cookies={names.token_expires_at: str(now_ms() + offset_ms)})

    assert SessionCookieStore(jar, settings.cookie).is_token_expired() is expected


def test_is_token_expired_custom_margin(settings, names: CookieNames) -> None:
    jar = CookieJar(cookies={names.token_expires_at: str(now_ms() + 240_000)})

    assert SessionCookieStore(jar, settings.cookie).is_token_expired(margin_seconds=60) is False


@pytest.mark.parametrize("raw", [None, "", "garbage"])
def test_is_token_expired_without_usable_expiry(settings, names: CookieNames, raw: str | None) -> None:
    cookies = {} if raw is None else {names.token_expires_at: raw}
    jar = CookieJar(cookies=cookies)

    assert SessionCookieStore(jar, settings.cookie).is_token_expired() is True


def test_get_refresh_token_treats_empty_as_missing(settings, names: CookieNames) -> None:
    jar = CookieJar(cookies={names.refresh_token: ""})

    assert SessionCookieStore(jar, settings.cookie).get_refresh_token() is None


@pytest.mark.parametrize(
    ("cookies", "expected"),
    [
        ({}, False),
        ({"viberx_access_token": "a"}, True),
        ({"viberx_refresh_token": "r"}, True),
        ({"viberx_user": "{}"}, False),
    ],
)
def test_has_auth_cookies(settings, cookies: dict[str, str], expected: bool) -> None:
    store = SessionCookieStore(CookieJar(cookies=cookies), settings.cookie)

    assert store.has_auth_cookies() is expected


def test_custom_prefix() -> None:
    jar = CookieJar()
    store = SessionCookieStore(jar, CookieSettings(prefix="app_"))

    store.set_oauth_cookies("s", "v")

    assert set(jar.pending) == {"app_oauth_state", "app_code_verifier"}
