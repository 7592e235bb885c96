"""
config_store.domain.validation

Validation Gate: field-level write policy checked before any statement runs.

Responsibilities:
- Require module and configName.
- Keep the store-assigned id out of client hands.
- Accept a metadata block only when it is internally consistent; trusted
  (system) callers may leave createdDate for the store to fill in.
"""

from __future__ import annotations

import uuid

from config_store.db.models import to_naive_utc
from config_store.domain.entries import ConfigEntry, EntryMetadata
from config_store.errors import EntryValidationError, FieldViolation, ViolationKind


def _is_uuid(value: str) -> bool:
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


class ValidationGate:
    def check_for_create(
        self, entry: ConfigEntry, *, trusted: bool = False
    ) -> list[FieldViolation]:
        violations = self._required(entry)
        if entry.id is not None:
            violations.append(
                FieldViolation("id", ViolationKind.read_only, "id is assigned by the store")
            )
        violations.extend(self._metadata(entry.metadata, trusted=trusted))
        return violations

    def check_for_update(
        self, entry: ConfigEntry, entry_id: str, *, trusted: bool = False
    ) -> list[FieldViolation]:
        violations = self._required(entry)
        if entry.id is not None and entry.id != entry_id:
            violations.append(
                FieldViolation("id", ViolationKind.mismatch, "id does not match the target entry")
            )
        violations.extend(self._metadata(entry.metadata, trusted=trusted))
        return violations

    def validate_for_create(self, entry: ConfigEntry, *, trusted: bool = False) -> None:
        violations = self.check_for_create(entry, trusted=trusted)
        if violations:
            raise EntryValidationError(violations)

    def validate_for_update(
        self, entry: ConfigEntry, entry_id: str, *, trusted: bool = False
    ) -> None:
        violations = self.check_for_update(entry, entry_id, trusted=trusted)
        if violations:
            raise EntryValidationError(violations)

    @staticmethod
    def _required(entry: ConfigEntry) -> list[FieldViolation]:
        violations = []
        if not (entry.module or "").strip():
            violations.append(
                FieldViolation("module", ViolationKind.required, "module is required")
            )
        if not (entry.config_name or "").strip():
            violations.append(
                FieldViolation("configName", ViolationKind.required, "configName is required")
            )
        return violations

    @staticmethod
    def _metadata(metadata: EntryMetadata | None, *, trusted: bool) -> list[FieldViolation]:
        if metadata is None or not metadata.is_populated():
            return []

        violations = []
        for name, alias in (
            ("created_by_user_id", "createdByUserId"),
            ("updated_by_user_id", "updatedByUserId"),
        ):
            value = getattr(metadata, name)
            if value is not None and not _is_uuid(value):
                violations.append(
                    FieldViolation(f"metadata.{alias}", ViolationKind.malformed, "not a UUID")
                )
        if (
            not trusted
            and metadata.created_by_user_id is not None
            and metadata.created_date is None
        ):
            violations.append(
                FieldViolation(
                    "metadata.createdDate",
                    ViolationKind.required,
                    "createdDate is required with createdByUserId",
                )
            )
        if (
            metadata.created_date is not None
            and metadata.updated_date is not None
            and to_naive_utc(metadata.updated_date) < to_naive_utc(metadata.created_date)
        ):
            violations.append(
                FieldViolation(
                    "metadata.updatedDate",
                    ViolationKind.malformed,
                    "updatedDate precedes createdDate",
                )
            )
        return violations


# --- Module Notes -----------------------------------------------------------
# "Trusted" is decided by the boundary layer (system/module-to-module calls);
# the gate does not authenticate anyone. Only trusted metadata is persisted as
# sent; the service overwrites a client's block with system values.
