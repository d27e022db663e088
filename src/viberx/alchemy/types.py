from datetime import UTC, datetime
from typing import Any

from sqlalchemy import DateTime
from sqlalchemy.types import TypeDecorator


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive values, convert aware ones to UTC."""
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value.astimezone(UTC)


class DateTimeUTC(TypeDecorator[datetime]):
    """Timestamp column that always round-trips as an aware UTC datetime.

    SQLite keeps no offset, so values read back from it are naive.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, _dialect: Any) -> datetime | None:  # type: ignore[override]  # noqa: ANN401
        if value is None:
            return None
        if not isinstance(value, datetime):
            msg = f"expected a datetime for a UTC timestamp column, got {type(value).__name__}"
            raise TypeError(msg)
        return as_utc(value)

    def process_result_value(self, value: datetime | None, _dialect: Any) -> datetime | None:  # type: ignore[override]  # noqa: ANN401
        return None if value is None else as_utc(value)
