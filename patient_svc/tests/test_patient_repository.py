"""
Tests for PatientRepository against a real SQLite file.
"""
from datetime import date, timedelta

import pytest

from core.exceptions import ConstraintViolationError
from repositories.base import Database


def fields(**overrides):
    data = {
        "document_type": "CC",
        "document_number": "123",
        "first_name": "Ana",
        "last_name": "Gomez",
        "birth_date": date(1990, 1, 1),
        "phone_number": None,
        "email": None,
    }
    data.update(overrides)
    return data


def test_insert_assigns_id_and_created_at(patient_repo):
    patient = patient_repo.insert(fields())
    assert patient.id > 0
    assert patient.created_at is not None
    assert patient.created_at.tzinfo is not None
    assert patient.birth_date == date(1990, 1, 1)
    assert patient_repo.find_by_id(patient.id) == patient


def test_find_by_id_missing(patient_repo):
    assert patient_repo.find_by_id(1) is None


def test_unique_index_rejects_duplicate_insert(patient_repo):
    """The index guards the document pair even without a service pre-check."""
    patient_repo.insert(fields())
    with pytest.raises(ConstraintViolationError):
        patient_repo.insert(fields(first_name="Other"))

    _, total = patient_repo.list()
    assert total == 1


def test_unique_index_rejects_duplicate_update(patient_repo):
    patient_repo.insert(fields(document_number="1"))
    second = patient_repo.insert(fields(document_number="2"))

    with pytest.raises(ConstraintViolationError):
        patient_repo.update(second.with_fields(fields(document_number="1")))

    assert patient_repo.find_by_id(second.id).document_number == "2"


def test_exists_by_document_with_exclusion(patient_repo):
    patient = patient_repo.insert(fields())

    assert patient_repo.exists_by_document("CC", "123") is True
    assert patient_repo.exists_by_document("CC", "123", exclude_id=patient.id) is False
    assert patient_repo.exists_by_document("TI", "123") is False


def test_update_overwrites_mutable_fields_only(patient_repo):
    patient = patient_repo.insert(fields(email="ana@example.com"))
    changed = patient.with_fields(fields(first_name="Ana Maria", email=None))

    assert patient_repo.update(changed) is True

    stored = patient_repo.find_by_id(patient.id)
    assert stored.first_name == "Ana Maria"
    assert stored.email is None
    assert stored.created_at == patient.created_at


def test_update_missing_returns_false(patient_repo):
    patient = patient_repo.insert(fields())
    patient_repo.delete(patient.id)
    assert patient_repo.update(patient) is False


def test_delete(patient_repo):
    patient = patient_repo.insert(fields())
    assert patient_repo.delete(patient.id) is True
    assert patient_repo.delete(patient.id) is False


def test_list_orders_newest_first_and_paginates(patient_repo):
    inserted = [patient_repo.insert(fields(document_number=str(n))) for n in range(5)]

    items, total = patient_repo.list(page=2, page_size=2)
    assert total == 5
    assert [p.id for p in items] == [inserted[2].id, inserted[1].id]

    items, _ = patient_repo.list(page=3, page_size=2)
    assert [p.id for p in items] == [inserted[0].id]

    items, _ = patient_repo.list(page=4, page_size=2)
    assert items == []


def test_list_tolerates_non_positive_paging(patient_repo):
    patient_repo.insert(fields())

    items, total = patient_repo.list(page=-3, page_size=5)
    assert total == 1 and len(items) == 1

    items, total = patient_repo.list(page=1, page_size=0)
    assert total == 1 and items == []


@pytest.mark.parametrize("page,page_size", [
    (10**19, 10),
    (1, 10**19),
    (2**62, 4),
])
def test_list_paging_beyond_sqlite_integer_range_is_empty(patient_repo, page, page_size):
    patient_repo.insert(fields())

    items, total = patient_repo.list(page=page, page_size=page_size)
    assert total == 1
    assert items == []


def test_list_huge_page_size_on_first_page(patient_repo):
    patient_repo.insert(fields())
    items, total = patient_repo.list(page=1, page_size=2**63 - 1)
    assert total == 1 and len(items) == 1


def test_list_name_filter_treats_wildcards_literally(patient_repo):
    patient_repo.insert(fields(document_number="1", first_name="100%", last_name="Real"))
    patient_repo.insert(fields(document_number="2", first_name="Ana", last_name="Gomez"))

    items, total = patient_repo.list(name_filter="%")
    assert total == 1
    assert items[0].first_name == "100%"

    _, total = patient_repo.list(name_filter="_")
    assert total == 0


def test_list_created_after(patient_repo):
    first = patient_repo.insert(fields(document_number="1"))
    second = patient_repo.insert(fields(document_number="2"))

    assert [p.id for p in patient_repo.list_created_after(first.created_at)] == [second.id]
    assert [p.id for p in patient_repo.list_created_after(first.created_at - timedelta(days=1))] == [
        second.id, first.id
    ]


def test_schema_init_is_idempotent(temp_db, patient_repo):
    patient_repo.insert(fields())
    Database(db_path=temp_db.db_path)
    _, total = patient_repo.list()
    assert total == 1
