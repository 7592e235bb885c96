"""
tests.helpers

Statement builders and a settings factory shared by test modules.
"""

from __future__ import annotations

from pathlib import Path

from config_store.db.transactions import Mutation
from config_store.settings import Settings

INSERT_SQL = (
    'INSERT INTO config_data (id, module, config_name, code, "default", enabled, value, '
    "created_date, updated_date) VALUES (:id, :module, :config_name, :code, 0, 1, :value, "
    "CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)"
)


def insert_params(
    entry_id: str,
    *,
    module: str = "CIRCULATION",
    config_name: str = "validation_rules",
    code: str | None = None,
    value: str | None = None,
) -> dict[str, object]:
    return {
        "id": entry_id,
        "module": module,
        "config_name": config_name,
        "code": code,
        "value": value,
    }


def insert_row(entry_id: str, **fields: str | None) -> Mutation:
    return Mutation(statement=INSERT_SQL, params=insert_params(entry_id, **fields), label=entry_id)


def make_settings(tmp_path: Path, **overrides: object) -> Settings:
    values: dict[str, object] = {
        "env": "test",
        "database_url": f"sqlite+aiosqlite:///{tmp_path / 'main.db'}",
        "sqlite_namespace_dir": str(tmp_path),
        "pool_size": 2,
        "pool_max_overflow": 0,
        "pool_timeout_s": 2.0,
        "statement_timeout_s": 10.0,
        "transaction_statement_timeout_s": 10.0,
    }
    values.update(overrides)
    return Settings(**values)
