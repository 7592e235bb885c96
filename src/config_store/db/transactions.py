"""
config_store.db.transactions

Batch/Transaction Coordinator: atomic units of work on one tenant connection.

Responsibilities:
- Run a sequence of mutations so that all commit or none do.
- Report the index/label of the failing step.
- Fail fast with TransactionMisuseError instead of deadlocking when a
  transactional connection is used out of order.
- Bound every wait inside a transaction with a timeout.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from contextvars import ContextVar
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncConnection

from config_store.db.executor import (
    ExecutionResult,
    Params,
    Statement,
    bounded,
    describe_statement,
    run_statement,
    translate_db_errors,
)
from config_store.db.pools import TenantPoolRegistry
from config_store.errors import StoreError, TransactionMisuseError
from config_store.observability.logging import get_logger

log = get_logger(__name__)

# Tenants with a transaction open in the current task context.
_open_transactions: ContextVar[frozenset[str]] = ContextVar(
    "config_store_open_transactions", default=frozenset()
)


@dataclass(frozen=True, slots=True)
class Mutation:
    statement: Statement
    params: Params = None
    # Optional identity reported back when this step fails.
    label: str | None = None


class TransactionScope:
    """
    Handle on an open transaction. Statements run strictly one at a time, in
    submission order; overlapping calls are rejected rather than queued.
    """

    def __init__(self, conn: AsyncConnection, *, tenant_id: str, timeout: float) -> None:
        self._conn = conn
        self.tenant_id = tenant_id
        self._timeout = timeout
        self._in_flight: str | None = None
        self._closed = False
        self._next_index = 0

    @property
    def statements_run(self) -> int:
        return self._next_index

    async def execute(
        self,
        statement: Statement,
        params: Params = None,
        *,
        label: str | None = None,
        timeout: float | None = None,
    ) -> ExecutionResult:
        """
        `timeout` overrides the scope bound for this statement. Expiry raises
        StatementTimeoutError; letting it leave the scope rolls everything back.
        """

        intent = describe_statement(statement)
        if self._closed:
            raise TransactionMisuseError(f"{intent} issued after the transaction finished")
        if self._in_flight is not None:
            raise TransactionMisuseError(
                f"{intent} issued while {self._in_flight} is still in flight on the "
                "same transactional connection"
            )
        index = self._next_index
        self._next_index += 1
        self._in_flight = intent
        try:
            statement_run = run_statement(self._conn, statement, params)
            bound = timeout if timeout is not None else self._timeout
            return await bounded(statement_run, bound, intent)
        except StoreError as exc:
            exc.operation_index = index
            exc.operation_label = label
            raise
        finally:
            self._in_flight = None

    def close(self) -> None:
        self._closed = True


class TransactionCoordinator:
    def __init__(self, registry: TenantPoolRegistry, *, statement_timeout: float) -> None:
        self._registry = registry
        self._statement_timeout = statement_timeout

    @asynccontextmanager
    async def transaction(
        self, tenant_id: str, *, timeout: float | None = None
    ) -> AsyncIterator[TransactionScope]:
        """
        Commit on normal exit, roll back on any exception (including cancellation).
        """

        open_here = _open_transactions.get()
        if tenant_id in open_here:
            # A second connection for the same tenant from inside a transaction is
            # the classic pool deadlock; refuse it up front.
            raise TransactionMisuseError(
                f"nested transaction for tenant {tenant_id} inside an open transaction"
            )
        pool = await self._registry.get_pool(tenant_id)
        token = _open_transactions.set(open_here | {tenant_id})
        try:
            async with pool.connect() as conn:
                with translate_db_errors(f"TRANSACTION {tenant_id}"):
                    async with conn.begin():
                        scope = TransactionScope(
                            conn,
                            tenant_id=tenant_id,
                            timeout=timeout if timeout is not None else self._statement_timeout,
                        )
                        try:
                            yield scope
                        finally:
                            scope.close()
        finally:
            _open_transactions.reset(token)

    async def run_in_transaction(
        self,
        tenant_id: str,
        work: Sequence[Mutation],
        *,
        timeout: float | None = None,
    ) -> list[ExecutionResult]:
        results: list[ExecutionResult] = []
        try:
            async with self.transaction(tenant_id, timeout=timeout) as tx:
                for mutation in work:
                    results.append(
                        await tx.execute(mutation.statement, mutation.params, label=mutation.label)
                    )
        except StoreError as exc:
            log.warning(
                "transaction_rolled_back",
                tenant_id=tenant_id,
                operations=len(work),
                failed_index=exc.operation_index,
                error=type(exc).__name__,
            )
            raise
        log.info("transaction_committed", tenant_id=tenant_id, operations=len(work))
        return results


# --- Module Notes -----------------------------------------------------------
# The ordering precondition (one statement at a time per transaction) is the
# caller's to honour; the scope only detects violations so they fail fast.
