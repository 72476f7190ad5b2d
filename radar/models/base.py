"""Базовые примеси для SQLModel моделей."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """SQLite отдаёт naive datetime, в базе всё хранится в UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class TimeStampedModel(SQLModel, table=False):
    """Добавляет created_at / updated_at."""

    created_at: datetime = Field(
        default_factory=utcnow, nullable=False, index=True, sa_type=DateTime(timezone=True)
    )
    updated_at: datetime = Field(
        default_factory=utcnow, nullable=False, sa_type=DateTime(timezone=True)
    )

    def touch(self, now: datetime | None = None) -> None:
        self.updated_at = now or utcnow()

    def age_seconds(self, now: datetime | None = None) -> float:
        return ((now or utcnow()) - as_utc(self.created_at)).total_seconds()


__all__ = ["TimeStampedModel", "as_utc", "utcnow"]
