from datetime import datetime
from sqlalchemy.types import TypeDecorator, DateTime as SA_DateTime

from app.utils.datetime_utils import ensure_utc


class UTCDateTime(TypeDecorator[datetime]):
    """Timezone-aware column that always binds and loads UTC values.

    SQLite drops tzinfo on the way back, so loaded values are re-tagged.
    """

    impl = SA_DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect):
        if value is None:
            return None
        return ensure_utc(value)

    def process_result_value(self, value: datetime | None, dialect):
        if value is None:
            return None
        return ensure_utc(value)
