"""
config_store.db.repositories.config_entries

Repository for the `config_data` base table of a tenant namespace.

Responsibilities:
- Map between `ConfigEntry` and table rows.
- Build Core statements for insert, lookup, filtered search, update and delete.
- Run them through whichever runner the caller holds (pooled or transactional).
"""

from __future__ import annotations

from typing import Any, Protocol, TypeVar

from sqlalchemy import ColumnElement, delete, func, insert, select, update
from sqlalchemy.sql import Executable

from config_store.db.executor import (
    ExecutionResult,
    InsertResult,
    Params,
    ResultSet,
    RowsAffected,
    Statement,
)
from config_store.db.models import config_entries, to_naive_utc
from config_store.domain.entries import ConfigEntry, EntryMetadata

R = TypeVar("R", ResultSet, InsertResult, RowsAffected)


class StatementRunner(Protocol):
    # Satisfied by TenantRunner (pooled, one statement per transaction) and
    # TransactionScope (inside an open transaction).
    async def execute(self, statement: Statement, params: Params = None) -> ExecutionResult: ...


def entry_to_row(entry: ConfigEntry) -> dict[str, Any]:
    metadata = entry.metadata or EntryMetadata()
    return {
        "id": entry.id,
        "module": entry.module,
        "config_name": entry.config_name,
        "code": entry.code,
        "description": entry.description,
        "default": entry.default,
        "enabled": entry.enabled,
        "value": entry.value,
        "created_by_user_id": metadata.created_by_user_id,
        "created_date": to_naive_utc(metadata.created_date) if metadata.created_date else None,
        "updated_by_user_id": metadata.updated_by_user_id,
        "updated_date": to_naive_utc(metadata.updated_date) if metadata.updated_date else None,
    }


def entry_from_row(row: dict[str, Any]) -> ConfigEntry:
    return ConfigEntry(
        id=row["id"],
        module=row["module"],
        config_name=row["config_name"],
        code=row["code"],
        description=row["description"],
        default=bool(row["default"]),
        enabled=bool(row["enabled"]),
        value=row["value"],
        metadata=EntryMetadata(
            created_by_user_id=row["created_by_user_id"],
            created_date=row["created_date"],
            updated_by_user_id=row["updated_by_user_id"],
            updated_date=row["updated_date"],
        ),
    )


class ConfigEntryRepo:
    def __init__(self, runner: StatementRunner) -> None:
        self._runner = runner

    async def _run(self, statement: Executable, expected: type[R]) -> R:
        result = await self._runner.execute(statement)
        if not isinstance(result, expected):
            raise TypeError(
                f"expected {expected.__name__} from runner, got {type(result).__name__}"
            )
        return result

    async def insert(self, entry: ConfigEntry) -> str:
        # Caller (service) has already assigned id and metadata.
        row = {k: v for k, v in entry_to_row(entry).items() if v is not None}
        result = await self._run(insert(config_entries).values(**row), InsertResult)
        return str(result.generated_id)

    async def get(self, entry_id: str) -> ConfigEntry | None:
        stmt = select(config_entries).where(config_entries.c.id == entry_id)
        result = await self._run(stmt, ResultSet)
        row = result.first()
        return entry_from_row(row) if row is not None else None

    async def search(
        self,
        *,
        module: str | None = None,
        config_name: str | None = None,
        code: str | None = None,
        enabled: bool | None = None,
        limit: int = 10,
        offset: int = 0,
    ) -> tuple[list[ConfigEntry], int]:
        criteria = self._criteria(
            module=module, config_name=config_name, code=code, enabled=enabled
        )
        stmt = (
            select(config_entries)
            .where(*criteria)
            .order_by(config_entries.c.module, config_entries.c.config_name, config_entries.c.id)
            .limit(limit)
            .offset(offset)
        )
        result = await self._run(stmt, ResultSet)
        total = await self._count(criteria)
        return [entry_from_row(row) for row in result], total

    async def count(
        self,
        *,
        module: str | None = None,
        config_name: str | None = None,
        code: str | None = None,
        enabled: bool | None = None,
    ) -> int:
        return await self._count(
            self._criteria(module=module, config_name=config_name, code=code, enabled=enabled)
        )

    async def update(self, entry_id: str, values: dict[str, Any]) -> int:
        # Returns affected rows; 0 means no entry with that id.
        stmt = update(config_entries).where(config_entries.c.id == entry_id).values(**values)
        result = await self._run(stmt, RowsAffected)
        return result.count

    async def delete(self, entry_id: str) -> int:
        stmt = delete(config_entries).where(config_entries.c.id == entry_id)
        result = await self._run(stmt, RowsAffected)
        return result.count

    async def _count(self, criteria: list[ColumnElement[bool]]) -> int:
        stmt = select(func.count().label("total")).select_from(config_entries).where(*criteria)
        result = await self._run(stmt, ResultSet)
        return int(result.scalar() or 0)

    @staticmethod
    def _criteria(
        *,
        module: str | None,
        config_name: str | None,
        code: str | None,
        enabled: bool | None,
    ) -> list[ColumnElement[bool]]:
        criteria: list[ColumnElement[bool]] = []
        if module is not None:
            criteria.append(config_entries.c.module == module)
        if config_name is not None:
            criteria.append(config_entries.c.config_name == config_name)
        if code is not None:
            criteria.append(config_entries.c.code == code)
        if enabled is not None:
            criteria.append(config_entries.c.enabled == enabled)
        return criteria


# --- Module Notes -----------------------------------------------------------
# Inserts return the id the service assigned; the repository never generates keys.
