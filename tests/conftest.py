"""
tests.conftest

Shared fixtures: file-backed SQLite settings and a store per test.

Responsibilities:
- Isolate every test in its own tmp directory (main db + namespace files).
- Close all tenant pools after each test.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path

import pytest
import pytest_asyncio

from config_store.services.config_service import ConfigurationService
from config_store.settings import Settings
from config_store.store import TenantStore
from helpers import make_settings


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return make_settings(tmp_path)


@pytest_asyncio.fixture
async def store(settings: Settings) -> AsyncIterator[TenantStore]:
    s = TenantStore.from_settings(settings)
    try:
        yield s
    finally:
        await s.close()


@pytest.fixture
def service(store: TenantStore) -> ConfigurationService:
    return ConfigurationService(store=store)


@pytest.fixture
def sample_entry() -> dict[str, object]:
    # Shape of the kv_configuration sample posted by clients.
    return {
        "module": "CIRCULATION",
        "configName": "validation_rules",
        "code": "PATRON_RULE",
        "description": "for patrons",
        "default": True,
        "enabled": True,
        "value": "",
    }


# --- Module Notes -----------------------------------------------------------
# SQLite namespaces are attached database files, so tmp_path isolation covers
# every tenant a test touches.
