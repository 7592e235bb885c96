"""
tests.test_validation

Validation Gate and payload parsing.

Responsibilities:
- Field violations for required, store-assigned and malformed fields.
- Trusted metadata consistency rules.
"""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from config_store.domain.entries import (
    ConfigEntry,
    decode_binary_value,
    dump_entry,
    encode_binary_value,
    parse_entry,
)
from config_store.domain.validation import ValidationGate
from config_store.errors import EntryValidationError, FieldViolation, ViolationKind

USER_ID = "c5d4f3e2-1b0a-4c9d-8e7f-6a5b4c3d2e1f"


def _kinds(violations: list[FieldViolation]) -> dict[str, ViolationKind]:
    return {v.field: v.kind for v in violations}


def test_parse_entry_reads_wire_names(sample_entry: dict[str, object]) -> None:
    entry = parse_entry(sample_entry)

    assert entry.config_name == "validation_rules"
    assert entry.default is True
    assert dump_entry(entry) == sample_entry


def test_parse_entry_reports_unknown_and_malformed_fields() -> None:
    with pytest.raises(EntryValidationError) as info:
        parse_entry({"module": "CIRCULATION", "configName": "x", "colour": "red", "enabled": []})

    kinds = _kinds(info.value.violations)
    assert kinds["colour"] is ViolationKind.malformed
    assert kinds["enabled"] is ViolationKind.malformed


def test_missing_module_and_config_name_are_required() -> None:
    violations = ValidationGate().check_for_create(ConfigEntry(code="X"))

    assert _kinds(violations) == {
        "module": ViolationKind.required,
        "configName": ViolationKind.required,
    }


def test_blank_module_counts_as_missing() -> None:
    violations = ValidationGate().check_for_create(ConfigEntry(module="  ", config_name="x"))

    assert _kinds(violations) == {"module": ViolationKind.required}


def test_client_supplied_id_is_read_only_on_create(sample_entry: dict[str, object]) -> None:
    entry = parse_entry({**sample_entry, "id": "abc"})

    with pytest.raises(EntryValidationError) as info:
        ValidationGate().validate_for_create(entry)

    assert _kinds(info.value.violations) == {"id": ViolationKind.read_only}


def test_update_id_must_match_target(sample_entry: dict[str, object]) -> None:
    gate = ValidationGate()
    entry = parse_entry({**sample_entry, "id": "abc"})

    assert gate.check_for_update(entry, "abc") == []
    assert _kinds(gate.check_for_update(entry, "xyz")) == {"id": ViolationKind.mismatch}


def test_inconsistent_client_metadata_is_rejected(sample_entry: dict[str, object]) -> None:
    entry = parse_entry({**sample_entry, "metadata": {"createdByUserId": "123456"}})

    with pytest.raises(EntryValidationError) as info:
        ValidationGate().validate_for_create(entry)

    assert _kinds(info.value.violations) == {
        "metadata.createdByUserId": ViolationKind.malformed,
        "metadata.createdDate": ViolationKind.required,
    }


def test_consistent_client_metadata_is_accepted(sample_entry: dict[str, object]) -> None:
    entry = parse_entry(
        {
            **sample_entry,
            "metadata": {
                "createdByUserId": USER_ID,
                "createdDate": "2024-01-01T00:00:00Z",
                "updatedDate": "2024-01-01T00:00:00Z",
            },
        }
    )

    assert ValidationGate().check_for_create(entry) == []


def test_empty_metadata_object_is_ignored(sample_entry: dict[str, object]) -> None:
    entry = parse_entry({**sample_entry, "metadata": {}})

    assert ValidationGate().check_for_create(entry) == []


def test_trusted_caller_may_omit_created_date(sample_entry: dict[str, object]) -> None:
    entry = parse_entry(
        {
            **sample_entry,
            "metadata": {
                "createdByUserId": "123456",
                "updatedDate": "2024-01-01T00:00:00Z",
            },
        }
    )

    kinds = _kinds(ValidationGate().check_for_create(entry, trusted=True))

    assert kinds == {"metadata.createdByUserId": ViolationKind.malformed}


def test_trusted_metadata_dates_must_be_ordered(sample_entry: dict[str, object]) -> None:
    entry = parse_entry(
        {
            **sample_entry,
            "metadata": {
                "createdByUserId": USER_ID,
                "createdDate": "2024-02-01T00:00:00Z",
                "updatedDate": datetime(2024, 1, 1),
            },
        }
    )

    kinds = _kinds(ValidationGate().check_for_create(entry, trusted=True))

    assert kinds == {"metadata.updatedDate": ViolationKind.malformed}


def test_valid_trusted_metadata_passes(sample_entry: dict[str, object]) -> None:
    entry = parse_entry(
        {
            **sample_entry,
            "metadata": {
                "createdByUserId": USER_ID,
                "createdDate": datetime(2024, 1, 1, tzinfo=UTC),
                "updatedByUserId": USER_ID,
                "updatedDate": datetime(2024, 3, 1, tzinfo=UTC),
            },
        }
    )

    ValidationGate().validate_for_create(entry, trusted=True)


def test_binary_values_round_trip_through_base64() -> None:
    content = b"\x00\x01rules\xff"

    assert decode_binary_value(encode_binary_value(content)) == content
    with pytest.raises(ValueError):
        decode_binary_value("not base64!")
