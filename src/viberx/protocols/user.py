from datetime import datetime
from typing import Protocol, TypeVar, runtime_checkable


@runtime_checkable
class UserProtocol(Protocol):
    id: str
    spotify_id: str
    display_name: str | None
    profile_image: str | None
    last_login_at: datetime | None
    created_at: datetime
    updated_at: datetime


DB = TypeVar("DB")


class UserStoreProtocol(Protocol[DB]):
    """Persistence for user records keyed by the provider's user id."""

    async def upsert_user(
        self,
        db: DB,
        *,
        user_id: str,
        display_name: str | None,
        profile_image: str | None,
    ) -> UserProtocol:
        """Create the user on first login, refresh the profile fields afterwards."""
        ...

    async def get_user_by_id(self, db: DB, user_id: str) -> UserProtocol | None: ...
