"""
config_store.db.base

SQLAlchemy declarative base.

Responsibilities:
- Provide a shared DeclarativeBase for all tenant-namespace tables.
"""

from __future__ import annotations

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


# --- Module Notes -----------------------------------------------------------
# Models declare no schema; provisioning copies the tables into the tenant
# namespace with Table.to_metadata, so one declaration serves every tenant.
