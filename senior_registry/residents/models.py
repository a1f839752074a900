from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Optional

from senior_registry.util.time import parse_iso_date


@dataclass(frozen=True)
class EmergencyContact:
    name: str
    relationship: str
    phone_number: str


@dataclass(frozen=True)
class ResidentRecord:
    """A registered senior.

    `date_of_birth` is None only for an update that keeps the stored value.
    """

    application_type: str
    first_name: str
    last_name: str
    sex: str
    date_of_birth: Optional[date]
    place_of_birth: str
    civil_status: str
    education: str
    occupation: str
    barangay: str
    emergency_contact: EmergencyContact
    middle_name: Optional[str] = None
    health_notes: Optional[str] = None
    id: Optional[int] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "ResidentRecord":
        dob = row.get("date_of_birth")
        return cls(
            id=int(row["id"]),
            application_type=str(row["application_type"]),
            first_name=str(row["first_name"]),
            middle_name=row.get("middle_name"),
            last_name=str(row["last_name"]),
            sex=str(row["sex"]),
            date_of_birth=parse_iso_date(dob) if dob else None,
            place_of_birth=str(row["place_of_birth"]),
            civil_status=str(row["civil_status"]),
            education=str(row["education"]),
            occupation=str(row["occupation"]),
            barangay=str(row["barangay"]),
            emergency_contact=EmergencyContact(
                name=str(row["contact_name"]),
                relationship=str(row["contact_relationship"]),
                phone_number=str(row["contact_phone"]),
            ),
            health_notes=row.get("health_notes"),
        )

    def to_wire(self) -> Dict[str, Any]:
        """Flat field names used by the registration and edit forms."""
        return {
            "id": self.id,
            "applicationtype": self.application_type,
            "firstname": self.first_name,
            "middlename": self.middle_name,
            "lastname": self.last_name,
            "sex": self.sex,
            "dateofbirth": self.date_of_birth.isoformat() if self.date_of_birth else None,
            "placeofbirth": self.place_of_birth,
            "civilstatus": self.civil_status,
            "education": self.education,
            "occupation": self.occupation,
            "barangay": self.barangay,
            "name": self.emergency_contact.name,
            "relationship": self.emergency_contact.relationship,
            "contact": self.emergency_contact.phone_number,
            "health": self.health_notes,
        }
