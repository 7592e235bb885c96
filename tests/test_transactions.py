"""
tests.test_transactions

Batch/Transaction Coordinator behaviour.

Responsibilities:
- All-or-nothing commits with the failing step identified.
- Fail-fast detection of transactional connection misuse.
"""

from __future__ import annotations

import asyncio

import pytest

from config_store.db.executor import InsertResult
from config_store.errors import QueryError, StatementTimeoutError, TransactionMisuseError
from config_store.store import TenantStore
from helpers import INSERT_SQL, insert_params, insert_row


async def _count(store: TenantStore, tenant_id: str = "harvard") -> int:
    result = await store.execute(tenant_id, "SELECT COUNT(*) AS total FROM config_data")
    return result.scalar()


@pytest.mark.asyncio
async def test_all_mutations_commit_together(store: TenantStore) -> None:
    results = await store.run_in_transaction(
        "harvard", [insert_row("a"), insert_row("b"), insert_row("c")]
    )

    assert len(results) == 3
    assert all(isinstance(r, InsertResult) for r in results)
    assert await _count(store) == 3


@pytest.mark.asyncio
async def test_failure_in_second_step_rolls_back_everything(store: TenantStore) -> None:
    work = [insert_row("a"), insert_row("a"), insert_row("c")]

    with pytest.raises(QueryError) as info:
        await store.run_in_transaction("harvard", work)

    assert info.value.operation_index == 1
    assert info.value.operation_label == "a"
    assert "operation #1" in str(info.value)
    assert await _count(store) == 0


@pytest.mark.asyncio
async def test_exception_inside_scope_rolls_back(store: TenantStore) -> None:
    with pytest.raises(RuntimeError):
        async with store.transaction("harvard") as tx:
            await tx.execute(INSERT_SQL, insert_params("a"))
            raise RuntimeError("caller aborted")

    assert await _count(store) == 0


@pytest.mark.asyncio
async def test_expired_statement_rolls_back_earlier_writes(store: TenantStore) -> None:
    with pytest.raises(StatementTimeoutError) as info:
        async with store.transaction("harvard") as tx:
            await tx.execute(INSERT_SQL, insert_params("a"))
            await tx.execute(INSERT_SQL, insert_params("b"), label="b", timeout=0)

    assert info.value.operation_index == 1
    assert info.value.operation_label == "b"
    assert await _count(store) == 0

    # The pool hands out a working connection afterwards.
    await store.run_in_transaction("harvard", [insert_row("c")])
    assert await _count(store) == 1


@pytest.mark.asyncio
async def test_statements_in_scope_see_earlier_writes(store: TenantStore) -> None:
    async with store.transaction("harvard") as tx:
        await tx.execute(INSERT_SQL, insert_params("a"))
        await tx.execute(INSERT_SQL, insert_params("b"))
        result = await tx.execute("SELECT id FROM config_data ORDER BY id")
        assert [row["id"] for row in result] == ["a", "b"]
        assert tx.statements_run == 3


@pytest.mark.asyncio
async def test_overlapping_statements_fail_fast(store: TenantStore) -> None:
    async with store.transaction("harvard") as tx:
        outcomes = await asyncio.gather(
            tx.execute(INSERT_SQL, insert_params("a")),
            tx.execute(INSERT_SQL, insert_params("b")),
            return_exceptions=True,
        )

    assert isinstance(outcomes[0], InsertResult)
    assert isinstance(outcomes[1], TransactionMisuseError)
    assert await _count(store) == 1


@pytest.mark.asyncio
async def test_nested_transaction_on_same_tenant_is_refused(store: TenantStore) -> None:
    async with store.transaction("harvard") as tx:
        await tx.execute(INSERT_SQL, insert_params("a"))
        with pytest.raises(TransactionMisuseError):
            await store.run_in_transaction("harvard", [insert_row("b")])

        # Another tenant has its own pool, so nesting across tenants is fine.
        await store.run_in_transaction("yale", [insert_row("y")])

    assert await _count(store, "harvard") == 1
    assert await _count(store, "yale") == 1


@pytest.mark.asyncio
async def test_scope_is_unusable_after_exit(store: TenantStore) -> None:
    async with store.transaction("harvard") as tx:
        await tx.execute("SELECT 1")

    with pytest.raises(TransactionMisuseError):
        await tx.execute("SELECT 1")


# --- Module Notes -----------------------------------------------------------
# Misuse is detected, not prevented: the first statement of an overlapping pair
# still runs and commits.
