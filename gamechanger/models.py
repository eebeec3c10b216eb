from __future__ import annotations

import datetime as dt

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow_naive() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    pass


class KeyValue(Base):
    """
    Local key-value store. One row per storage key (daily_goals, workouts, ...),
    value is the JSON-serialized document.
    """

    __tablename__ = "kv_store"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    value_json: Mapped[str] = mapped_column(Text)

    updated_at: Mapped[dt.datetime] = mapped_column(DateTime, default=_utcnow_naive, onupdate=_utcnow_naive)
