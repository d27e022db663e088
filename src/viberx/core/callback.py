from __future__ import annotations

import logging
from enum import StrEnum
from typing import TYPE_CHECKING, Generic, TypeVar
from urllib.parse import urlencode

from viberx.core.exceptions import OAuthError
from viberx.session.models import SessionUser

if TYPE_CHECKING:
    from collections.abc import Mapping

    from viberx.core.settings import URLSettings
    from viberx.protocols.user import UserStoreProtocol
    from viberx.providers.spotify import SpotifyOAuthProvider, SpotifyUserProfile
    from viberx.session.cookies import SessionCookieStore
    from viberx.session.models import TokenSet

logger = logging.getLogger(__name__)


class CallbackErrorCode(StrEnum):
    MISSING_PARAMS = "missing_params"
    SESSION_EXPIRED = "session_expired"
    STATE_MISMATCH = "state_mismatch"
    TOKEN_EXCHANGE_FAILED = "token_exchange_failed"
    PROFILE_FETCH_FAILED = "profile_fetch_failed"
    DATABASE_ERROR = "database_error"


class _CallbackAbortedError(Exception):
    def __init__(self, code: str) -> None:
        super().__init__(code)
        self.code = code


DB = TypeVar("DB")


class CallbackHandler(Generic[DB]):
    """Finishes the authorization code flow.

    Each step gates the next; the first failure aborts the pipeline and the
    browser is redirected to the login page with an ``error`` code. Nothing
    raised here reaches the HTTP layer.
    """

    def __init__(
        self,
        provider: SpotifyOAuthProvider,
        user_store: UserStoreProtocol[DB],
        urls: URLSettings,
    ) -> None:
        self.provider = provider
        self.user_store = user_store
        self.urls = urls

    def error_redirect(self, code: str) -> str:
        return f"{self.urls.login_page}?{urlencode({'error': code})}"

    async def handle(self, params: Mapping[str, str], store: SessionCookieStore, db: DB) -> str:
        """Run the callback pipeline and return the URL to redirect to."""
        try:
            await self._run(params, store, db)
        except _CallbackAbortedError as e:
            return self.error_redirect(e.code)
        return self.urls.signin_redirect

    async def _run(self, params: Mapping[str, str], store: SessionCookieStore, db: DB) -> None:
        if error := params.get("error"):
            logger.info("authorization declined by provider: %s", error)
            raise _CallbackAbortedError(error)

        code = params.get("code")
        state = params.get("state")
        if not code or not state:
            logger.warning("callback missing code or state")
            raise _CallbackAbortedError(CallbackErrorCode.MISSING_PARAMS)

        if (attempt := store.consume_oauth_cookies()) is None:
            logger.warning("callback without a pending oauth attempt")
            raise _CallbackAbortedError(CallbackErrorCode.SESSION_EXPIRED)

        if state != attempt.state:
            logger.warning("callback state does not match the stored state")
            raise _CallbackAbortedError(CallbackErrorCode.STATE_MISMATCH)

        tokens = await self._exchange(code, attempt.code_verifier)
        profile = await self._fetch_profile(tokens)
        await self._upsert_user(db, profile)

        user = SessionUser(
            id=profile.id,
            display_name=profile.display_name,
            profile_image=profile.profile_image,
        )
        store.set_session(tokens, user)
        logger.info("user %s signed in", profile.id)

    async def _exchange(self, code: str, code_verifier: str) -> TokenSet:
        try:
            return await self.provider.exchange_code_for_tokens(code, code_verifier)
        except OAuthError as e:
            raise _CallbackAbortedError(CallbackErrorCode.TOKEN_EXCHANGE_FAILED) from e

    async def _fetch_profile(self, tokens: TokenSet) -> SpotifyUserProfile:
        try:
            return await self.provider.get_user_profile(tokens.access_token)
        except OAuthError as e:
            raise _CallbackAbortedError(CallbackErrorCode.PROFILE_FETCH_FAILED) from e

    async def _upsert_user(self, db: DB, profile: SpotifyUserProfile) -> None:
        try:
            await self.user_store.upsert_user(
                db,
                user_id=profile.id,
                display_name=profile.display_name,
                profile_image=profile.profile_image,
            )
        except Exception as e:
            logger.exception("user upsert failed for %s", profile.id)
            raise _CallbackAbortedError(CallbackErrorCode.DATABASE_ERROR) from e
