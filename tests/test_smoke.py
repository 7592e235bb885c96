"""
tests.test_smoke

Minimal smoke tests to validate the store can boot and serve a tenant.

Responsibilities:
- Ensure the composition root configures logging and reaches a tenant namespace.
- Ensure operation context is bound for the duration of a call only.
"""

from __future__ import annotations

from pathlib import Path

import pytest
import structlog

from config_store.observability.context import operation_context
from config_store.observability.logging import _add_namespace, _redact_bound_values
from config_store.store import create_store
from helpers import make_settings


@pytest.mark.asyncio
async def test_store_boots_and_answers(tmp_path: Path) -> None:
    async with create_store(settings=make_settings(tmp_path)) as store:
        assert await store.ensure_namespace("harvard") is True

        result = await store.execute("harvard", "SELECT COUNT(*) AS total FROM config_data")
        assert result.scalar() == 0

        assert "harvard" in store.registry


def test_operation_context_binds_and_restores() -> None:
    with operation_context(tenant_id="harvard", request_id="req-1") as rid:
        bound = structlog.contextvars.get_contextvars()
        assert rid == "req-1"
        assert bound["tenant_id"] == "harvard"
        assert bound["request_id"] == "req-1"

    assert "tenant_id" not in structlog.contextvars.get_contextvars()


def test_operation_context_generates_request_id() -> None:
    with operation_context(tenant_id="harvard") as rid:
        assert rid
        assert structlog.contextvars.get_contextvars()["request_id"] == rid


def test_log_processors_stamp_namespace_and_hide_bound_values() -> None:
    event = {"event": "statement_failed", "tenant_id": "harvard", "params": {"v": "s3cr3t"}}

    event = _add_namespace("mod_configuration")(None, "warning", event)
    event = _redact_bound_values(None, "warning", event)

    assert event["namespace"] == "harvard_mod_configuration"
    assert event["params"] == "[redacted]"


def test_explicit_namespace_is_not_overwritten() -> None:
    event = {"event": "tenant_pool_created", "tenant_id": "harvard", "namespace": "custom"}

    assert _add_namespace("mod_configuration")(None, "info", event)["namespace"] == "custom"


# --- Module Notes -----------------------------------------------------------
# Postgres routing (search_path) needs a live server and is not exercised here;
# every test runs on SQLite attached namespaces.
