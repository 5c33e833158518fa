"""
Tests for sparse patch parsing and merge.

These are pure functions, so no database is involved.
"""
from datetime import date, datetime, timezone

import pytest

from core.exceptions import MalformedPatchError
from models.patient import Patient
from services.patient_patch import merge_patch, parse_patch, validate_patient_fields


@pytest.fixture
def current():
    return Patient(
        id=1,
        document_type="CC",
        document_number="123",
        first_name="Ana",
        last_name="Gomez",
        birth_date=date(1990, 1, 1),
        phone_number=None,
        email="ana@example.com",
        created_at=datetime(2025, 1, 1, 10, 0, tzinfo=timezone.utc),
    )


# =============================================================================
# parse_patch
# =============================================================================

def test_parse_merge_object_accepts_wire_and_snake_names():
    assert parse_patch({"firstName": "A", "last_name": "B", "PHONENUMBER": "1"}) == {
        "first_name": "A",
        "last_name": "B",
        "phone_number": "1",
    }


def test_parse_json_patch_operations():
    patch = parse_patch([
        {"op": "replace", "path": "/firstName", "value": "A"},
        {"op": "add", "path": "/phoneNumber", "value": "555"},
        {"op": "remove", "path": "/email"},
    ])
    assert patch == {"first_name": "A", "phone_number": "555", "email": None}


def test_parse_json_patch_later_operation_wins():
    patch = parse_patch([
        {"op": "replace", "path": "/firstName", "value": "A"},
        {"op": "replace", "path": "/firstName", "value": "B"},
    ])
    assert patch == {"first_name": "B"}


def test_parse_json_patch_explicit_null_value():
    assert parse_patch([{"op": "replace", "path": "/email", "value": None}]) == {"email": None}


def test_parse_empty_bodies():
    assert parse_patch([]) == {}
    assert parse_patch({}) == {}


@pytest.mark.parametrize("body", [
    None,
    "firstName",
    42,
    [{"op": "copy", "path": "/firstName", "from": "/lastName"}],
    [{"op": "test", "path": "/firstName", "value": "Ana"}],
    [{"op": "replace", "path": "/firstName"}],
    [{"op": "replace", "path": "firstName", "value": "A"}],
    [{"op": "replace", "path": "/name/first", "value": "A"}],
    [{"op": "replace", "path": "/", "value": "A"}],
    [{"path": "/firstName", "value": "A"}],
    ["replace"],
    {"unknown": 1},
    {"id": 2},
    [{"op": "replace", "path": "/createdAt", "value": "2020-01-01"}],
])
def test_parse_malformed(body):
    with pytest.raises(MalformedPatchError):
        parse_patch(body)


# =============================================================================
# validate_patient_fields
# =============================================================================

def test_validate_reports_every_field():
    fields, errors = validate_patient_fields({
        "document_type": "",
        "first_name": "x" * 81,
        "email": "nope",
    })
    assert fields is None
    assert {e["field"] for e in errors} == {
        "documentType", "documentNumber", "firstName", "lastName", "birthDate", "email",
    }


def test_validate_normalizes_birth_date():
    fields, errors = validate_patient_fields({
        "documentType": "CC",
        "documentNumber": "1",
        "firstName": "A",
        "lastName": "B",
        "birthDate": "1990-01-01",
    })
    assert errors == []
    assert fields["birth_date"] == date(1990, 1, 1)
    assert fields["phone_number"] is None
    assert fields["email"] is None


# =============================================================================
# merge_patch
# =============================================================================

def test_merge_keeps_absent_fields(current):
    fields, errors = merge_patch(current, {"phone_number": "555"})
    assert errors == []
    expected = current.mutable_fields()
    expected["phone_number"] = "555"
    assert fields == expected


def test_merge_is_idempotent(current):
    patch = parse_patch({"firstName": "Ana Maria", "birthDate": "1991-03-04"})
    once, _ = merge_patch(current, patch)
    twice, _ = merge_patch(current.with_fields(once), patch)
    assert once == twice


def test_merge_does_not_mutate_current(current):
    before = current.mutable_fields()
    merge_patch(current, {"first_name": "Changed"})
    assert current.mutable_fields() == before


def test_merge_removing_required_field_fails(current):
    fields, errors = merge_patch(current, {"last_name": None})
    assert fields is None
    assert [e["field"] for e in errors] == ["lastName"]


def test_merge_removing_optional_field(current):
    fields, errors = merge_patch(current, {"email": None})
    assert errors == []
    assert fields["email"] is None


@pytest.mark.parametrize("value", [0, 631152000, "631152000", "1990-01-01T00:00:00", None])
def test_merge_rejects_non_calendar_birth_date(current, value):
    fields, errors = merge_patch(current, {"birth_date": value})
    assert fields is None
    assert [e["field"] for e in errors] == ["birthDate"]
