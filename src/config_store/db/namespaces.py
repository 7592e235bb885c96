"""
config_store.db.namespaces

Tenant namespace naming and the engine-specific namespace hooks.

Responsibilities:
- Derive a safe namespace (schema) name from a tenant id.
- Route a tenant engine's unqualified table names to its namespace
  (PostgreSQL: search_path; SQLite: ATTACH of a per-namespace file).
- Create and drop the namespace container itself.
"""

from __future__ import annotations

import re
from pathlib import Path

from sqlalchemy import event, inspect, text
from sqlalchemy.engine import URL
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from config_store.errors import InvalidIdentifierError

# PostgreSQL truncates identifiers beyond 63 bytes.
MAX_IDENTIFIER_LENGTH = 63

_IDENTIFIER_RE = re.compile(r"^[a-z][a-z0-9_]*$")

SUPPORTED_BACKENDS = ("postgresql", "sqlite")


def check_identifier(value: str, *, what: str) -> str:
    # Identifiers are interpolated (quoted) into DDL, so only a strict alphabet passes.
    if not isinstance(value, str) or not _IDENTIFIER_RE.match(value):
        raise InvalidIdentifierError(f"invalid {what}: must match [a-z][a-z0-9_]*")
    if len(value) > MAX_IDENTIFIER_LENGTH:
        raise InvalidIdentifierError(f"invalid {what}: longer than {MAX_IDENTIFIER_LENGTH}")
    return value


def namespace_for(tenant_id: str, suffix: str) -> str:
    check_identifier(tenant_id, what="tenant id")
    return check_identifier(f"{tenant_id}_{suffix}", what="namespace name")


def sqlite_namespace_path(url: URL, schema: str, namespace_dir: str | None) -> Path:
    if namespace_dir:
        base = Path(namespace_dir)
    elif url.database and url.database != ":memory:":
        base = Path(url.database).parent
    else:
        base = Path.cwd()
    return base / f"{schema}.db"


def install_namespace_hook(
    engine: AsyncEngine, schema: str, *, namespace_dir: str | None = None
) -> None:
    """
    Make every new connection of `engine` resolve unqualified names inside `schema`.
    """

    backend = engine.dialect.name
    if backend == "postgresql":

        @event.listens_for(engine.sync_engine, "connect", insert=True)
        def _set_search_path(dbapi_connection, connection_record) -> None:
            # SET must not be swallowed by the pool's reset-on-return rollback.
            existing_autocommit = dbapi_connection.autocommit
            dbapi_connection.autocommit = True
            cursor = dbapi_connection.cursor()
            cursor.execute(f'SET SESSION search_path TO "{schema}"')
            cursor.close()
            dbapi_connection.autocommit = existing_autocommit

    elif backend == "sqlite":
        path = str(sqlite_namespace_path(engine.url, schema, namespace_dir)).replace("'", "''")

        @event.listens_for(engine.sync_engine, "connect")
        def _attach_namespace(dbapi_connection, connection_record) -> None:
            # Unqualified names fall through main/temp to attached databases.
            cursor = dbapi_connection.cursor()
            cursor.execute(f"ATTACH DATABASE '{path}' AS \"{schema}\"")
            cursor.close()

    else:
        raise ValueError(f"unsupported database backend: {backend}")


async def create_schema(conn: AsyncConnection, schema: str) -> None:
    # SQLite namespaces come into existence with the ATTACH in the connect hook.
    if conn.dialect.name == "postgresql":
        quoted = conn.dialect.identifier_preparer.quote_identifier(schema)
        await conn.execute(text(f"CREATE SCHEMA IF NOT EXISTS {quoted}"))


async def drop_schema(conn: AsyncConnection, schema: str) -> bool:
    preparer = conn.dialect.identifier_preparer
    quoted = preparer.quote_identifier(schema)
    if conn.dialect.name == "postgresql":
        exists = await conn.run_sync(lambda sync_conn: inspect(sync_conn).has_schema(schema))
        if exists:
            await conn.execute(text(f"DROP SCHEMA {quoted} CASCADE"))
        return exists

    names = await conn.run_sync(
        lambda sync_conn: inspect(sync_conn).get_table_names(schema=schema)
    )
    for name in names:
        await conn.execute(text(f"DROP TABLE {quoted}.{preparer.quote_identifier(name)}"))
    return bool(names)


async def has_table(conn: AsyncConnection, schema: str, name: str) -> bool:
    return await conn.run_sync(
        lambda sync_conn: inspect(sync_conn).has_table(name, schema=schema)
    )


def is_already_exists(exc: BaseException) -> bool:
    """
    Recognize the benign "someone else created it first" failure of concurrent DDL.
    """

    message = str(getattr(exc, "orig", None) or exc).lower()
    return (
        "already exists" in message
        or "pg_namespace_nspname_index" in message
        or "pg_type_typname_nsp_index" in message
    )


# --- Module Notes -----------------------------------------------------------
# This is the only module with per-engine branches. Adding an engine means a new
# connect hook plus create/drop of its namespace container.
