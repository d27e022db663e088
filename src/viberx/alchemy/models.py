from datetime import datetime

from sqlalchemy import Text
from sqlalchemy.orm import Mapped, mapped_column

from viberx.alchemy.base import Base
from viberx.alchemy.mixins import TimestampMixin
from viberx.alchemy.types import DateTimeUTC


class User(Base, TimestampMixin):
    """User record keyed by the Spotify user id. Never deleted by the auth flow."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    spotify_id: Mapped[str] = mapped_column(Text, unique=True, index=True)
    display_name: Mapped[str | None] = mapped_column(default=None)
    profile_image: Mapped[str | None] = mapped_column(default=None)
    last_login_at: Mapped[datetime | None] = mapped_column(DateTimeUTC, default=None)
