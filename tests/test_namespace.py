"""
tests.test_namespace

Schema Provisioner behaviour.

Responsibilities:
- Idempotent provisioning, within and across provisioner instances.
- Exactly one creation under concurrent first access.
- Explicit namespace drop.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from config_store.errors import InvalidIdentifierError
from config_store.settings import Settings
from config_store.store import TenantStore
from helpers import INSERT_SQL, insert_params


@pytest.mark.asyncio
async def test_ensure_namespace_is_idempotent(store: TenantStore, tmp_path: Path) -> None:
    assert await store.ensure_namespace("harvard") is True
    assert await store.ensure_namespace("harvard") is False

    # SQLite namespaces live in their own attached database file.
    assert (tmp_path / "harvard_mod_configuration.db").exists()

    result = await store.execute("harvard", "SELECT COUNT(*) AS total FROM config_data")
    assert result.scalar() == 0


@pytest.mark.asyncio
async def test_existing_namespace_is_not_recreated_by_a_new_process(settings: Settings) -> None:
    async with TenantStore.from_settings(settings) as first:
        assert await first.ensure_namespace("harvard") is True
        await first.execute("harvard", INSERT_SQL, insert_params("a1"))

    async with TenantStore.from_settings(settings) as second:
        assert await second.ensure_namespace("harvard") is False
        result = await second.execute("harvard", "SELECT id FROM config_data")
        assert [row["id"] for row in result] == ["a1"]


@pytest.mark.asyncio
async def test_concurrent_first_access_creates_exactly_one_namespace(store: TenantStore) -> None:
    outcomes = await asyncio.gather(*(store.ensure_namespace("harvard") for _ in range(8)))

    assert outcomes.count(True) == 1
    assert outcomes.count(False) == 7
    assert store.provisioner.is_provisioned("harvard")


@pytest.mark.asyncio
async def test_concurrent_queries_on_unprovisioned_tenant_all_succeed(store: TenantStore) -> None:
    results = await asyncio.gather(
        *(store.execute("harvard", "SELECT COUNT(*) AS total FROM config_data") for _ in range(6))
    )
    assert [r.scalar() for r in results] == [0] * 6


@pytest.mark.asyncio
async def test_drop_namespace_destroys_entries_and_caches(store: TenantStore) -> None:
    await store.execute("harvard", INSERT_SQL, insert_params("a1"))
    await store.materialize("harvard", "mytablecache", "SELECT * FROM config_data")

    assert await store.drop_namespace("harvard") is True
    assert "harvard" not in store.registry
    assert "harvard" not in store.provisioner._locks
    assert not store.provisioner.is_provisioned("harvard")

    # Next use provisions a fresh, empty namespace.
    result = await store.execute("harvard", "SELECT COUNT(*) AS total FROM config_data")
    assert result.scalar() == 0
    assert await store.cache_exists("harvard", "mytablecache") is False


@pytest.mark.asyncio
async def test_drop_of_never_provisioned_namespace_reports_nothing_existed(
    store: TenantStore,
) -> None:
    assert await store.drop_namespace("yale") is False


@pytest.mark.asyncio
async def test_invalid_tenant_is_rejected_before_any_ddl(store: TenantStore) -> None:
    with pytest.raises(InvalidIdentifierError):
        await store.ensure_namespace("9lives")


# --- Module Notes -----------------------------------------------------------
# Cross-process races are covered by the "already exists" branch in the
# provisioner; in-process races are what these tests exercise.
