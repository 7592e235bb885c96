"""
config_store.db.cache

Result Cache Materializer: snapshot a query's result set into a named table.

Responsibilities:
- Create `<namespace>.<cache_name>` holding exactly the rows of a query at call time.
- Drop a cache table on explicit eviction; a missing table is a reported error.
- Keep base tables out of reach of materialize/evict.
"""

from __future__ import annotations

import asyncio

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncConnection

from config_store.db.executor import translate_db_errors
from config_store.db.models import BASE_TABLE_NAMES
from config_store.db.namespaces import check_identifier, has_table, is_already_exists
from config_store.db.pools import TenantPool, TenantPoolRegistry
from config_store.errors import (
    CacheNameConflictError,
    CacheNotFoundError,
    InvalidIdentifierError,
    QueryError,
    StoreConnectionError,
    StoreError,
)
from config_store.observability.logging import get_logger

log = get_logger(__name__)


class ResultCacheMaterializer:
    """
    Snapshots are never refreshed: source changes after `materialize` are not
    reflected until the caller evicts and materializes again.
    """

    def __init__(self, registry: TenantPoolRegistry) -> None:
        self._registry = registry
        self._locks: dict[tuple[str, str], asyncio.Lock] = {}

    async def exists(self, tenant_id: str, cache_name: str) -> bool:
        name = self._check_name(cache_name)
        pool = await self._registry.get_pool(tenant_id)
        return await self._exists_on(pool, name)

    async def materialize(self, tenant_id: str, cache_name: str, query: str) -> None:
        name = self._check_name(cache_name)
        pool = await self._registry.get_pool(tenant_id)
        intent = f"MATERIALIZE {name}"
        try:
            async with self._lock_for(tenant_id, name):
                await self._create(pool, name, query, intent)
        except StoreError:
            # Failed attempts leave no lock entry behind.
            self._locks.pop((tenant_id, name), None)
            raise
        log.info("cache_materialized", tenant_id=tenant_id, cache_name=name)

    async def evict(self, tenant_id: str, cache_name: str) -> None:
        name = self._check_name(cache_name)
        pool = await self._registry.get_pool(tenant_id)
        try:
            async with self._lock_for(tenant_id, name):
                async with pool.connect() as conn:
                    with translate_db_errors(f"EVICT {name}"):
                        async with conn.begin():
                            if not await has_table(conn, pool.namespace, name):
                                raise CacheNotFoundError(
                                    f"cache table {name} does not exist in {pool.namespace}"
                                )
                            qualified = self._qualified(conn, pool, name)
                            await conn.execute(text(f"DROP TABLE {qualified}"))
        finally:
            self._locks.pop((tenant_id, name), None)
        log.info("cache_evicted", tenant_id=tenant_id, cache_name=name)

    async def _create(self, pool: TenantPool, name: str, query: str, intent: str) -> None:
        async with pool.connect() as conn:
            qualified = self._qualified(conn, pool, name)
            try:
                async with conn.begin():
                    if await has_table(conn, pool.namespace, name):
                        raise CacheNameConflictError(
                            f"cache table {name} already exists in {pool.namespace}"
                        )
                    await conn.execute(text(f"CREATE TABLE {qualified} AS {query}"))
            except DBAPIError as exc:
                if exc.connection_invalidated:
                    raise StoreConnectionError(f"connection lost during {intent}") from exc
                # Lost a race with another process creating the same name.
                if is_already_exists(exc) and await self._exists_on(pool, name):
                    raise CacheNameConflictError(
                        f"cache table {name} already exists in {pool.namespace}"
                    ) from exc
                raise QueryError(intent, type(exc.orig).__name__) from exc

    @staticmethod
    def _check_name(cache_name: str) -> str:
        name = check_identifier(cache_name, what="cache name")
        if name in BASE_TABLE_NAMES:
            raise InvalidIdentifierError(f"cache name {name} collides with a base table")
        return name

    @staticmethod
    def _qualified(conn: AsyncConnection, pool: TenantPool, name: str) -> str:
        preparer = conn.dialect.identifier_preparer
        return f"{preparer.quote_identifier(pool.namespace)}.{preparer.quote_identifier(name)}"

    async def _exists_on(self, pool: TenantPool, name: str) -> bool:
        async with pool.connect() as conn:
            with translate_db_errors(f"INSPECT {name}"):
                return await has_table(conn, pool.namespace, name)

    def _lock_for(self, tenant_id: str, name: str) -> asyncio.Lock:
        return self._locks.setdefault((tenant_id, name), asyncio.Lock())


# --- Module Notes -----------------------------------------------------------
# `query` is operator-supplied SQL from an administrative path, embedded as the
# body of CREATE TABLE ... AS; it is never built from end-user values here.
