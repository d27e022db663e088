import logging
from datetime import UTC, datetime
from typing import Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from viberx.alchemy.models import User

logger = logging.getLogger(__name__)


UserT = TypeVar("UserT", bound=User)


class AlchemyUserAdapter(Generic[UserT]):
    def __init__(self, *, user: type[UserT] = User) -> None:  # type: ignore[assignment]
        self.user_model = user

    async def get_user_by_id(self, db: AsyncSession, user_id: str) -> UserT | None:
        stmt = select(self.user_model).where(self.user_model.id == user_id)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def _update_profile(
        self,
        db: AsyncSession,
        user: UserT,
        display_name: str | None,
        profile_image: str | None,
    ) -> UserT:
        user.display_name = display_name
        user.profile_image = profile_image
        user.last_login_at = datetime.now(UTC)
        await db.commit()
        await db.refresh(user)
        return user

    async def upsert_user(
        self,
        db: AsyncSession,
        *,
        user_id: str,
        display_name: str | None,
        profile_image: str | None,
    ) -> UserT:
        """Create the user on first login, refresh the profile fields afterwards.

        Raises:
            SQLAlchemyError: the write failed; the session is rolled back
        """
        try:
            if user := await self.get_user_by_id(db, user_id):
                return await self._update_profile(db, user, display_name, profile_image)

            user = self.user_model(
                id=user_id,
                spotify_id=user_id,
                display_name=display_name,
                profile_image=profile_image,
                last_login_at=datetime.now(UTC),
            )
            db.add(user)
            try:
                await db.commit()
            except IntegrityError:
                # a concurrent first login inserted the row first
                await db.rollback()
                if not (existing := await self.get_user_by_id(db, user_id)):
                    raise
                logger.debug("user %s created concurrently, updating instead", user_id)
                return await self._update_profile(db, existing, display_name, profile_image)
            await db.refresh(user)
            return user
        except SQLAlchemyError:
            await db.rollback()
            raise
