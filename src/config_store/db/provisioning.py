"""
config_store.db.provisioning

Schema Provisioner: make sure a tenant namespace and its base tables exist.

Responsibilities:
- Create schema + base tables in one transactional step on first use.
- Stay idempotent and tolerate concurrent provisioning of the same tenant.
- Provide explicit namespace teardown (never invoked implicitly).
"""

from __future__ import annotations

import asyncio

from sqlalchemy import MetaData
from sqlalchemy.exc import DBAPIError

from config_store.db.base import Base
from config_store.db.models import config_entries
from config_store.db.namespaces import create_schema, drop_schema, has_table, is_already_exists
from config_store.db.pools import TenantPoolRegistry
from config_store.errors import QueryError, StoreConnectionError
from config_store.observability.logging import get_logger

log = get_logger(__name__)


def namespace_metadata(schema: str) -> MetaData:
    # Schema-qualified copy of the base tables; indexes follow their table.
    metadata = MetaData()
    for table in Base.metadata.sorted_tables:
        table.to_metadata(metadata, schema=schema)
    return metadata


class NamespaceProvisioner:
    def __init__(self, registry: TenantPoolRegistry) -> None:
        self._registry = registry
        self._provisioned: set[str] = set()
        self._locks: dict[str, asyncio.Lock] = {}

    def is_provisioned(self, tenant_id: str) -> bool:
        return tenant_id in self._provisioned

    async def ensure_namespace(self, tenant_id: str) -> bool:
        """
        Idempotent. Returns True only for the call that actually created the
        namespace; every other call (already present, lost a race) returns False.
        """

        if tenant_id in self._provisioned:
            return False
        lock = self._locks.setdefault(tenant_id, asyncio.Lock())
        async with lock:
            if tenant_id in self._provisioned:
                return False
            created = await self._provision(tenant_id)
            self._provisioned.add(tenant_id)
            return created

    async def _provision(self, tenant_id: str) -> bool:
        pool = await self._registry.get_pool(tenant_id)
        schema = pool.namespace
        try:
            async with pool.connect() as conn:
                # Use a transactional DDL block when supported by the backend.
                async with conn.begin():
                    if await has_table(conn, schema, config_entries.name):
                        log.debug("namespace_present", tenant_id=tenant_id, namespace=schema)
                        return False
                    await create_schema(conn, schema)
                    await conn.run_sync(namespace_metadata(schema).create_all)
        except DBAPIError as exc:
            if exc.connection_invalidated:
                raise StoreConnectionError(
                    f"connection lost while provisioning tenant {tenant_id}"
                ) from exc
            if is_already_exists(exc):
                # Another process provisioned the same namespace concurrently.
                log.info("namespace_provision_race", tenant_id=tenant_id, namespace=schema)
                return False
            raise QueryError(f"PROVISION {schema}", type(exc.orig).__name__) from exc
        log.info("namespace_provisioned", tenant_id=tenant_id, namespace=schema)
        return True

    async def drop_namespace(self, tenant_id: str) -> bool:
        """
        Destroy the namespace with every entry and cache table in it, then
        dispose the tenant pool. Returns whether anything existed.
        """

        pool = await self._registry.get_pool(tenant_id)
        lock = self._locks.setdefault(tenant_id, asyncio.Lock())
        async with lock:
            try:
                async with pool.connect() as conn:
                    async with conn.begin():
                        existed = await drop_schema(conn, pool.namespace)
            except DBAPIError as exc:
                raise QueryError(
                    f"DROP NAMESPACE {pool.namespace}", type(exc.orig).__name__
                ) from exc
            self._provisioned.discard(tenant_id)
            await self._registry.discard(tenant_id)
        self._locks.pop(tenant_id, None)
        log.info(
            "namespace_dropped", tenant_id=tenant_id, namespace=pool.namespace, existed=existed
        )
        return existed


# --- Module Notes -----------------------------------------------------------
# The in-process lock makes concurrent first calls collapse onto one DDL run;
# the "already exists" branch covers the same race across processes.
