from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional

from senior_registry.db import Query, Repository
from senior_registry.errors import NotFound
from senior_registry.util.time import age_in_years, parse_iso_date, utcnow_iso

from .models import ResidentRecord


_SELECT_COLUMNS = """
    id, application_type, first_name, middle_name, last_name, sex, date_of_birth,
    place_of_birth, civil_status, education, occupation, barangay,
    contact_name, contact_relationship, contact_phone, health_notes
"""


def _field_values(record: ResidentRecord) -> List[Any]:
    c = record.emergency_contact
    return [
        record.application_type,
        record.first_name,
        record.middle_name,
        record.last_name,
        record.sex,
        record.date_of_birth.isoformat() if record.date_of_birth else None,
        record.place_of_birth,
        record.civil_status,
        record.education,
        record.occupation,
        record.barangay,
        c.name,
        c.relationship,
        c.phone_number,
        record.health_notes,
    ]


def list_residents(repo: Repository, *, today: Optional[date] = None) -> List[Dict[str, Any]]:
    """Summaries for the roster table: id, name, sex, status, occupation, age, applicationtype."""
    rows = repo.execute(
        Query(
            """
            SELECT id, first_name, middle_name, last_name, sex, civil_status,
                   occupation, date_of_birth, application_type
            FROM residents
            ORDER BY id ASC
            """
        )
    )
    if not rows:
        raise NotFound("Senior not found")

    ref = today or date.today()
    out: List[Dict[str, Any]] = []
    for r in rows:
        names = [r.get("first_name"), r.get("middle_name"), r.get("last_name")]
        dob = r.get("date_of_birth")
        out.append(
            {
                "id": int(r["id"]),
                "name": " ".join(str(n).strip() for n in names if n and str(n).strip()),
                "sex": r["sex"],
                "status": r["civil_status"],
                "occupation": r["occupation"],
                "age": age_in_years(parse_iso_date(dob), ref) if dob else None,
                "applicationtype": r["application_type"],
            }
        )
    return out


def create_resident(repo: Repository, record: ResidentRecord) -> int:
    if record.date_of_birth is None:
        raise ValueError("date_of_birth_required")
    now = utcnow_iso()
    rows = repo.execute(
        Query(
            """
            INSERT INTO residents (
                application_type, first_name, middle_name, last_name, sex, date_of_birth,
                place_of_birth, civil_status, education, occupation, barangay,
                contact_name, contact_relationship, contact_phone, health_notes,
                created_at, updated_at
            ) VALUES (?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?)
            RETURNING id
            """,
            tuple(_field_values(record) + [now, now]),
        )
    )
    return int(rows[0]["id"])


def get_resident(repo: Repository, resident_id: int) -> ResidentRecord:
    rows = repo.execute(
        Query(f"SELECT {_SELECT_COLUMNS} FROM residents WHERE id=?", (int(resident_id),))
    )
    if not rows:
        raise NotFound("Resident not found")
    return ResidentRecord.from_row(rows[0])


def update_resident(repo: Repository, resident_id: int, record: ResidentRecord) -> bool:
    """Replace every field of a resident in one statement. The id never changes.

    A record without a date of birth keeps the stored one. Returns False when
    no resident has `resident_id`; that is not an error.
    """
    rows = repo.execute(
        Query(
            """
            UPDATE residents SET
                application_type=?,
                first_name=?,
                middle_name=?,
                last_name=?,
                sex=?,
                date_of_birth=COALESCE(?, date_of_birth),
                place_of_birth=?,
                civil_status=?,
                education=?,
                occupation=?,
                barangay=?,
                contact_name=?,
                contact_relationship=?,
                contact_phone=?,
                health_notes=?,
                updated_at=?
            WHERE id=?
            RETURNING id
            """,
            tuple(_field_values(record) + [utcnow_iso(), int(resident_id)]),
        )
    )
    return bool(rows)


def delete_resident(repo: Repository, resident_id: int) -> None:
    rid = int(resident_id)
    existing = repo.execute(Query("SELECT id FROM residents WHERE id=?", (rid,)))
    if not existing:
        raise NotFound("Resident not found")
    repo.execute(Query("DELETE FROM residents WHERE id=?", (rid,)))
