from viberx.alchemy.adapter import AlchemyUserAdapter
from viberx.alchemy.base import Base
from viberx.alchemy.mixins import TimestampMixin
from viberx.alchemy.models import User
from viberx.alchemy.settings import DatabaseSettings
from viberx.alchemy.types import DateTimeUTC

__all__ = [
    "AlchemyUserAdapter",
    "Base",
    "DatabaseSettings",
    "DateTimeUTC",
    "TimestampMixin",
    "User",
]
