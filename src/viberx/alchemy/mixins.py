from datetime import UTC, datetime

from sqlalchemy.orm import Mapped, MappedAsDataclass, declarative_mixin, mapped_column

from viberx.alchemy.types import DateTimeUTC


def _utcnow() -> datetime:
    return datetime.now(UTC)


@declarative_mixin
class TimestampMixin(MappedAsDataclass):
    """Mixin that adds automatic timestamp tracking columns.

    Both fields are excluded from __init__ (init=False) and are filled in on
    insert and update.
    """

    created_at: Mapped[datetime] = mapped_column(DateTimeUTC, default_factory=_utcnow, init=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTimeUTC,
        default_factory=_utcnow,
        onupdate=_utcnow,
        init=False,
    )
