"""
config_store.domain.entries

Explicit serialize/deserialize boundary for configuration entries.

Responsibilities:
- Define `ConfigEntry` / `EntryMetadata` with the camelCase wire names.
- Turn raw payloads into typed entries, reporting problems as field violations.
- Encode/decode binary values carried as base64 text.
"""

from __future__ import annotations

import base64
import binascii
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from config_store.errors import EntryValidationError, FieldViolation, ViolationKind


class EntryMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    created_by_user_id: str | None = Field(default=None, alias="createdByUserId")
    created_date: datetime | None = Field(default=None, alias="createdDate")
    updated_by_user_id: str | None = Field(default=None, alias="updatedByUserId")
    updated_date: datetime | None = Field(default=None, alias="updatedDate")

    def is_populated(self) -> bool:
        return any(value is not None for value in self.model_dump().values())


class ConfigEntry(BaseModel):
    """
    One configuration record as exchanged with the boundary layer.

    `module`/`configName` are optional at this level so that their absence is
    reported by the validation gate as a structured violation.
    """

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    id: str | None = None
    module: str | None = None
    config_name: str | None = Field(default=None, alias="configName")
    code: str | None = None
    description: str | None = None
    default: bool = False
    enabled: bool = True
    value: str | None = None
    metadata: EntryMetadata | None = None


_PYDANTIC_KIND = {
    "missing": ViolationKind.required,
}


def parse_entry(payload: Mapping[str, Any]) -> ConfigEntry:
    try:
        return ConfigEntry.model_validate(dict(payload))
    except PydanticValidationError as exc:
        violations = [
            FieldViolation(
                field=".".join(str(part) for part in err["loc"]) or "<root>",
                kind=_PYDANTIC_KIND.get(err["type"], ViolationKind.malformed),
                message=err["msg"],
            )
            for err in exc.errors()
        ]
        raise EntryValidationError(violations) from exc


def dump_entry(entry: ConfigEntry) -> dict[str, Any]:
    return entry.model_dump(by_alias=True, exclude_none=True, mode="json")


def encode_binary_value(content: bytes) -> str:
    return base64.b64encode(content).decode("ascii")


def decode_binary_value(value: str) -> bytes:
    try:
        return base64.b64decode(value, validate=True)
    except binascii.Error as exc:
        raise ValueError("value is not valid base64") from exc


# --- Module Notes -----------------------------------------------------------
# The store never interprets `value`; base64 helpers exist for callers that
# attach files (rule sets, templates) to an entry.
