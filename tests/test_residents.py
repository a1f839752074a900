from __future__ import annotations

from dataclasses import replace
from datetime import date

import pytest

from senior_registry.db import Query
from senior_registry.errors import NotFound, StatementError
from senior_registry.residents import (
    EmergencyContact,
    ResidentRecord,
    create_resident,
    delete_resident,
    get_resident,
    list_residents,
    update_resident,
)


def _record(**overrides) -> ResidentRecord:
    base = ResidentRecord(
        application_type="New",
        first_name="Ana",
        middle_name=None,
        last_name="Cruz",
        sex="Female",
        date_of_birth=date(1950, 6, 15),
        place_of_birth="Manila",
        civil_status="Widowed",
        education="College",
        occupation="Teacher",
        barangay="Barangay 1",
        emergency_contact=EmergencyContact("Maria Cruz", "Child", "09171234567"),
        health_notes=None,
    )
    return replace(base, **overrides)


def test_create_then_get(repo):
    rid = create_resident(repo, _record())
    got = get_resident(repo, rid)
    assert got == _record(id=rid)


def test_get_missing(repo):
    with pytest.raises(NotFound) as e:
        get_resident(repo, 999)
    assert e.value.message == "Resident not found"


def test_list_summaries(repo):
    create_resident(repo, _record(middle_name="Reyes"))
    create_resident(repo, _record(first_name="Jose", sex="Male", date_of_birth=date(1940, 1, 1)))

    rows = list_residents(repo, today=date(2025, 6, 14))

    assert [r["name"] for r in rows] == ["Ana Reyes Cruz", "Jose Cruz"]
    assert rows[0]["age"] == 74  # birthday not reached yet
    assert rows[1]["age"] == 85
    assert rows[0]["status"] == "Widowed"
    assert rows[0]["applicationtype"] == "New"
    assert set(rows[0]) == {"id", "name", "sex", "status", "occupation", "age", "applicationtype"}


def test_list_empty(repo):
    with pytest.raises(NotFound) as e:
        list_residents(repo)
    assert e.value.message == "Senior not found"


def test_update_replaces_fields_and_keeps_id(repo):
    rid = create_resident(repo, _record())
    changed = _record(
        first_name="Anita",
        barangay="Barangay 8",
        emergency_contact=EmergencyContact("Pedro Cruz", "Spouse", "0999"),
        health_notes="Diabetic",
    )
    assert update_resident(repo, rid, changed) is True
    assert get_resident(repo, rid) == replace(changed, id=rid)


def test_update_without_date_of_birth_keeps_stored_value(repo):
    rid = create_resident(repo, _record())
    update_resident(repo, rid, _record(date_of_birth=None, occupation="Other"))
    got = get_resident(repo, rid)
    assert got.date_of_birth == date(1950, 6, 15)
    assert got.occupation == "Other"


def test_update_missing(repo):
    assert update_resident(repo, 42, _record()) is False
    with pytest.raises(NotFound):
        get_resident(repo, 42)


def test_delete(repo):
    rid = create_resident(repo, _record())
    delete_resident(repo, rid)
    with pytest.raises(NotFound):
        get_resident(repo, rid)


def test_delete_missing_changes_nothing(repo):
    rid = create_resident(repo, _record())
    with pytest.raises(NotFound):
        delete_resident(repo, rid + 100)
    assert get_resident(repo, rid).id == rid


def test_store_rejects_partial_emergency_contact(repo):
    with pytest.raises(StatementError):
        repo.execute(
            Query(
                """
                INSERT INTO residents (
                    application_type, first_name, last_name, sex, date_of_birth, place_of_birth,
                    civil_status, education, occupation, barangay,
                    contact_name, contact_relationship, contact_phone, created_at, updated_at
                ) VALUES (?,?,?,?,?,?,?,?,?,?,?,?,?,?,?)
                """,
                ("New", "A", "B", "F", "1950-01-01", "X", "S", "E", "O", "B1", "C", None, "1", "t", "t"),
            )
        )
