"""
config_store.services.config_service

Configuration entry use cases (validation + persistence owner).

Responsibilities:
- Parse payloads, run the validation gate, assign ids and system metadata.
- Create/read/update/delete entries in a tenant namespace.
- Save batches atomically (validate everything first, then one transaction).
- Report "matched nothing" as False/None; the boundary maps that to 404.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from config_store.db.models import utcnow
from config_store.db.repositories.config_entries import ConfigEntryRepo, entry_to_row
from config_store.domain.entries import ConfigEntry, EntryMetadata, parse_entry
from config_store.domain.validation import ValidationGate
from config_store.errors import EntryValidationError, FieldViolation
from config_store.observability.context import operation_context
from config_store.observability.logging import get_logger
from config_store.store import TenantStore

log = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class EntryPage:
    entries: list[ConfigEntry]
    total_records: int


class ConfigurationService:
    def __init__(self, *, store: TenantStore, gate: ValidationGate | None = None) -> None:
        self._store = store
        self._gate = gate or ValidationGate()

    def _repo(self, tenant_id: str) -> ConfigEntryRepo:
        return ConfigEntryRepo(self._store.for_tenant(tenant_id))

    def _prepare_create(
        self,
        payload: Mapping[str, Any],
        *,
        user_id: str | None,
        trusted: bool,
    ) -> ConfigEntry:
        entry = parse_entry(payload)
        self._gate.validate_for_create(entry, trusted=trusted)

        now = utcnow()
        # Trusted callers may carry metadata over (e.g. data migration); gaps are filled in.
        # A client block has passed the gate but is replaced by system values.
        populated = entry.metadata is not None and entry.metadata.is_populated()
        supplied = entry.metadata if trusted and populated else None
        metadata = EntryMetadata(
            created_by_user_id=supplied.created_by_user_id if supplied else user_id,
            created_date=(supplied.created_date if supplied else None) or now,
            updated_by_user_id=(supplied.updated_by_user_id if supplied else None) or user_id,
            updated_date=(supplied.updated_date if supplied else None) or now,
        )
        return entry.model_copy(update={"id": str(uuid.uuid4()), "metadata": metadata})

    async def create_entry(
        self,
        tenant_id: str,
        payload: Mapping[str, Any],
        *,
        user_id: str | None = None,
        trusted: bool = False,
        request_id: str | None = None,
    ) -> ConfigEntry:
        with operation_context(tenant_id=tenant_id, request_id=request_id):
            try:
                entry = self._prepare_create(payload, user_id=user_id, trusted=trusted)
            except EntryValidationError as exc:
                log.info("entry_rejected", violations=_violation_fields(exc.violations))
                raise
            await self._repo(tenant_id).insert(entry)
            log.info("entry_created", entry_id=entry.id, module=entry.module)
            return entry

    async def get_entry(
        self, tenant_id: str, entry_id: str, *, request_id: str | None = None
    ) -> ConfigEntry | None:
        with operation_context(tenant_id=tenant_id, request_id=request_id):
            return await self._repo(tenant_id).get(entry_id)

    async def list_entries(
        self,
        tenant_id: str,
        *,
        module: str | None = None,
        config_name: str | None = None,
        code: str | None = None,
        enabled: bool | None = None,
        limit: int = 10,
        offset: int = 0,
        request_id: str | None = None,
    ) -> EntryPage:
        with operation_context(tenant_id=tenant_id, request_id=request_id):
            entries, total = await self._repo(tenant_id).search(
                module=module,
                config_name=config_name,
                code=code,
                enabled=enabled,
                limit=limit,
                offset=offset,
            )
            return EntryPage(entries=entries, total_records=total)

    async def update_entry(
        self,
        tenant_id: str,
        entry_id: str,
        payload: Mapping[str, Any],
        *,
        user_id: str | None = None,
        trusted: bool = False,
        request_id: str | None = None,
    ) -> bool:
        """
        Replace the mutable fields of an entry. Created metadata is kept,
        updated metadata is refreshed. Returns False when no entry matched.
        """

        with operation_context(tenant_id=tenant_id, request_id=request_id):
            entry = parse_entry(payload)
            self._gate.validate_for_update(entry, entry_id, trusted=trusted)

            row = entry_to_row(entry)
            values = {
                key: row[key]
                for key in (
                    "module",
                    "config_name",
                    "code",
                    "description",
                    "default",
                    "enabled",
                    "value",
                )
            }
            values["updated_by_user_id"] = user_id
            values["updated_date"] = utcnow()
            matched = await self._repo(tenant_id).update(entry_id, values)
            log.info("entry_updated", entry_id=entry_id, matched=matched)
            return matched > 0

    async def delete_entry(
        self, tenant_id: str, entry_id: str, *, request_id: str | None = None
    ) -> bool:
        with operation_context(tenant_id=tenant_id, request_id=request_id):
            deleted = await self._repo(tenant_id).delete(entry_id)
            log.info("entry_deleted", entry_id=entry_id, deleted=deleted)
            return deleted > 0

    async def save_batch(
        self,
        tenant_id: str,
        payloads: Sequence[Mapping[str, Any]],
        *,
        user_id: str | None = None,
        trusted: bool = False,
        request_id: str | None = None,
    ) -> list[str]:
        """
        All-or-nothing insert. Every payload is validated before any statement runs;
        violations are reported with the payload index as a field prefix.
        """

        with operation_context(tenant_id=tenant_id, request_id=request_id):
            entries: list[ConfigEntry] = []
            violations: list[FieldViolation] = []
            for index, payload in enumerate(payloads):
                try:
                    entries.append(self._prepare_create(payload, user_id=user_id, trusted=trusted))
                except EntryValidationError as exc:
                    violations.extend(
                        FieldViolation(f"[{index}].{v.field}", v.kind, v.message)
                        for v in exc.violations
                    )
            if violations:
                log.info("batch_rejected", violations=_violation_fields(violations))
                raise EntryValidationError(violations)

            async with self._store.transaction(tenant_id) as tx:
                repo = ConfigEntryRepo(tx)
                ids = [await repo.insert(entry) for entry in entries]
            log.info("batch_saved", count=len(ids))
            return ids


def _violation_fields(violations: Sequence[FieldViolation]) -> list[str]:
    return [f"{v.field}:{v.kind.value}" for v in violations]


# --- Module Notes -----------------------------------------------------------
# save_batch inserts sequentially on one transactional connection; gathering the
# inserts concurrently would raise TransactionMisuseError.
