"""
config_store.db.models

Base tables of a tenant namespace.

Responsibilities:
- Define `ConfigEntryRow`, one configuration record per row.
- Name the tables provisioning creates and cache materialization must not reuse.
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import Boolean, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from config_store.db.base import Base


def utcnow() -> datetime:
    # Persist naive UTC timestamps; SQLite drops tzinfo anyway.
    return datetime.now(UTC).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


class ConfigEntryRow(Base):
    __tablename__ = "config_data"

    # Assigned by the store (uuid4 string), never by clients.
    id: Mapped[str] = mapped_column(String(36), primary_key=True)

    module: Mapped[str] = mapped_column(String(128), nullable=False)
    config_name: Mapped[str] = mapped_column(String(256), nullable=False)
    code: Mapped[str | None] = mapped_column(String(256), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    # Plain text or base64-encoded binary content.
    value: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_by_user_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    created_date: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_by_user_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    updated_date: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_config_data_module", "module"),
        Index("ix_config_data_module_name", "module", "config_name"),
    )


config_entries = ConfigEntryRow.__table__

BASE_TABLE_NAMES: frozenset[str] = frozenset(Base.metadata.tables)


# --- Module Notes -----------------------------------------------------------
# Repositories use `config_entries` (Core) rather than ORM sessions so every
# statement flows through the executor's error mapping and time bounds.
