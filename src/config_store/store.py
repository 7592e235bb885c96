"""
config_store.store

Narrow interface the boundary layer calls into.

Responsibilities:
- Compose pool registry, provisioner, executor, coordinator and cache materializer.
- Provision a tenant namespace on first use (cached; later calls are no-ops).
- Offer tenant-bound runners for repositories.
- Own shutdown of every tenant pool.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager

from config_store.db.cache import ResultCacheMaterializer
from config_store.db.executor import ExecutionResult, Params, QueryExecutor, Statement
from config_store.db.pools import TenantPoolRegistry
from config_store.db.provisioning import NamespaceProvisioner
from config_store.db.transactions import Mutation, TransactionCoordinator, TransactionScope
from config_store.observability.logging import configure_logging, get_logger
from config_store.settings import Settings, get_settings

log = get_logger(__name__)


class TenantRunner:
    """
    Executor view bound to one tenant; each statement commits on its own.
    """

    def __init__(self, store: TenantStore, tenant_id: str, *, timeout: float | None = None) -> None:
        self._store = store
        self.tenant_id = tenant_id
        self._timeout = timeout

    async def execute(self, statement: Statement, params: Params = None) -> ExecutionResult:
        return await self._store.execute(self.tenant_id, statement, params, timeout=self._timeout)


class TenantStore:
    def __init__(
        self,
        *,
        settings: Settings,
        registry: TenantPoolRegistry,
        provisioner: NamespaceProvisioner,
        executor: QueryExecutor,
        coordinator: TransactionCoordinator,
        materializer: ResultCacheMaterializer,
    ) -> None:
        self.settings = settings
        self.registry = registry
        self.provisioner = provisioner
        self.executor = executor
        self.coordinator = coordinator
        self.materializer = materializer

    @classmethod
    def from_settings(cls, settings: Settings) -> TenantStore:
        registry = TenantPoolRegistry(settings)
        return cls(
            settings=settings,
            registry=registry,
            provisioner=NamespaceProvisioner(registry),
            executor=QueryExecutor(registry, default_timeout=settings.statement_timeout_s),
            coordinator=TransactionCoordinator(
                registry, statement_timeout=settings.transaction_statement_timeout_s
            ),
            materializer=ResultCacheMaterializer(registry),
        )

    async def __aenter__(self) -> TenantStore:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def ensure_namespace(self, tenant_id: str) -> bool:
        return await self.provisioner.ensure_namespace(tenant_id)

    async def drop_namespace(self, tenant_id: str) -> bool:
        return await self.provisioner.drop_namespace(tenant_id)

    async def execute(
        self,
        tenant_id: str,
        statement: Statement,
        params: Params = None,
        *,
        timeout: float | None = None,
    ) -> ExecutionResult:
        await self.provisioner.ensure_namespace(tenant_id)
        return await self.executor.execute(tenant_id, statement, params, timeout=timeout)

    @asynccontextmanager
    async def transaction(
        self, tenant_id: str, *, timeout: float | None = None
    ) -> AsyncIterator[TransactionScope]:
        await self.provisioner.ensure_namespace(tenant_id)
        async with self.coordinator.transaction(tenant_id, timeout=timeout) as scope:
            yield scope

    async def run_in_transaction(
        self, tenant_id: str, work: Sequence[Mutation], *, timeout: float | None = None
    ) -> list[ExecutionResult]:
        await self.provisioner.ensure_namespace(tenant_id)
        return await self.coordinator.run_in_transaction(tenant_id, work, timeout=timeout)

    async def materialize(self, tenant_id: str, cache_name: str, query: str) -> None:
        await self.provisioner.ensure_namespace(tenant_id)
        await self.materializer.materialize(tenant_id, cache_name, query)

    async def evict(self, tenant_id: str, cache_name: str) -> None:
        await self.provisioner.ensure_namespace(tenant_id)
        await self.materializer.evict(tenant_id, cache_name)

    async def cache_exists(self, tenant_id: str, cache_name: str) -> bool:
        return await self.materializer.exists(tenant_id, cache_name)

    def for_tenant(self, tenant_id: str, *, timeout: float | None = None) -> TenantRunner:
        return TenantRunner(self, tenant_id, timeout=timeout)

    async def close(self) -> None:
        await self.registry.close_all()
        log.info("store_closed", env=self.settings.env)


def create_store(*, settings: Settings | None = None) -> TenantStore:
    # Composition root: configure structured logging once, before any tenant is touched.
    settings = settings or get_settings()
    configure_logging(
        service_name=settings.service_name,
        level=settings.log_level,
        namespace_suffix=settings.namespace_suffix,
    )
    log.info("store_created", env=settings.env)
    return TenantStore.from_settings(settings)


# --- Module Notes -----------------------------------------------------------
# materialize/evict are administrative operations; end-user CRUD paths go through
# services.config_service, which layers validation on top of execute/transaction.
