"""
config_store.db.pools

Connection Pool Manager: one async engine (pool) per tenant.

Responsibilities:
- Create the tenant engine from settings, sized and time-bounded.
- Keep exactly one pool per tenant for the process lifetime.
- Surface unreachable engines and pool exhaustion as StoreConnectionError.
- Provide an explicit teardown hook for shutdown.
"""

from __future__ import annotations

import threading
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.pool import AsyncAdaptedQueuePool

from config_store.db.namespaces import install_namespace_hook, namespace_for
from config_store.errors import StoreConnectionError
from config_store.observability.logging import get_logger
from config_store.settings import Settings

log = get_logger(__name__)


def create_tenant_engine(settings: Settings, namespace: str) -> AsyncEngine:
    # Explicit queue pool so sizing/timeouts apply to every backend, SQLite included.
    engine = create_async_engine(
        settings.database_url,
        poolclass=AsyncAdaptedQueuePool,
        pool_size=settings.pool_size,
        max_overflow=settings.pool_max_overflow,
        pool_timeout=settings.pool_timeout_s,
        pool_pre_ping=True,
    )
    install_namespace_hook(engine, namespace, namespace_dir=settings.sqlite_namespace_dir)
    return engine


class TenantPool:
    """
    Pooled connections of one tenant; every connection resolves names in `namespace`.
    """

    def __init__(self, *, tenant_id: str, namespace: str, engine: AsyncEngine) -> None:
        self.tenant_id = tenant_id
        self.namespace = namespace
        self.engine = engine

    @asynccontextmanager
    async def connect(self) -> AsyncIterator[AsyncConnection]:
        """
        Check out a connection (waits at most `pool_timeout_s`), return it on exit.
        """

        try:
            conn = await self.engine.connect()
        except PoolTimeoutError as exc:
            raise StoreConnectionError(
                f"connection pool exhausted for tenant {self.tenant_id}"
            ) from exc
        except (DBAPIError, OSError) as exc:
            raise StoreConnectionError(
                f"database unreachable for tenant {self.tenant_id}"
            ) from exc
        try:
            yield conn
        finally:
            await conn.close()

    async def ping(self) -> None:
        async with self.connect() as conn:
            try:
                await conn.execute(text("SELECT 1"))
            except DBAPIError as exc:
                raise StoreConnectionError(
                    f"database unreachable for tenant {self.tenant_id}"
                ) from exc

    async def dispose(self) -> None:
        await self.engine.dispose()


class TenantPoolRegistry:
    """
    Process-wide tenant -> pool map with create-if-absent semantics.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._pools: dict[str, TenantPool] = {}
        # Engine construction is synchronous, so a thread lock covers both
        # event-loop tasks and worker threads racing on the first call.
        self._lock = threading.Lock()

    def __contains__(self, tenant_id: object) -> bool:
        return tenant_id in self._pools

    @property
    def tenants(self) -> list[str]:
        return sorted(self._pools)

    def namespace_for(self, tenant_id: str) -> str:
        return namespace_for(tenant_id, self._settings.namespace_suffix)

    async def get_pool(self, tenant_id: str) -> TenantPool:
        pool, created = self._get_or_create(tenant_id)
        if created:
            try:
                await pool.ping()
            except StoreConnectionError:
                # Forget the broken pool so a later caller-driven retry starts fresh.
                self._forget(tenant_id, pool)
                await pool.dispose()
                log.warning("tenant_pool_unreachable", tenant_id=tenant_id)
                raise
            log.info(
                "tenant_pool_created",
                tenant_id=tenant_id,
                namespace=pool.namespace,
                pool_size=self._settings.pool_size,
            )
        return pool

    def _get_or_create(self, tenant_id: str) -> tuple[TenantPool, bool]:
        existing = self._pools.get(tenant_id)
        if existing is not None:
            return existing, False
        namespace = self.namespace_for(tenant_id)
        with self._lock:
            existing = self._pools.get(tenant_id)
            if existing is not None:
                return existing, False
            pool = TenantPool(
                tenant_id=tenant_id,
                namespace=namespace,
                engine=create_tenant_engine(self._settings, namespace),
            )
            self._pools[tenant_id] = pool
            return pool, True

    def _forget(self, tenant_id: str, pool: TenantPool) -> None:
        with self._lock:
            if self._pools.get(tenant_id) is pool:
                del self._pools[tenant_id]

    async def discard(self, tenant_id: str) -> None:
        with self._lock:
            pool = self._pools.pop(tenant_id, None)
        if pool is not None:
            await pool.dispose()

    async def close_all(self) -> None:
        # Dispose engines to close pools/FDs gracefully.
        with self._lock:
            pools = list(self._pools.values())
            self._pools.clear()
        for pool in pools:
            await pool.dispose()
        log.info("tenant_pools_closed", count=len(pools))


# --- Module Notes -----------------------------------------------------------
# Pools are never retried or recreated behind the caller's back; a failed first
# ping is reported and the next get_pool call starts over.
