"""Request bodies accepted by the API.

Bodies are validated once at the boundary. Handlers get a typed model or a
`ValidationFailed` with the message the client should see.
"""

from __future__ import annotations

from datetime import date
from typing import Annotated, Any, Optional, Type, TypeVar

from pydantic import (
    AliasChoices,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    StringConstraints,
    ValidationError,
)

from senior_registry.errors import ValidationFailed
from senior_registry.residents.models import EmergencyContact, ResidentRecord


MISSING_FIELDS = "All required parameters are needed"
INVALID_ID = "Valid ID parameter is required"


def _blank_to_none(v: Any) -> Any:
    if isinstance(v, str):
        v = v.strip()
        return v or None
    return v


# Largest value a 64-bit INTEGER column can hold.
MAX_ID = 2**63 - 1


def _coerce_id(v: Any) -> int:
    # bool is an int subclass; True must not become resident 1.
    if isinstance(v, bool):
        raise ValueError("invalid_id")
    if isinstance(v, float) and v.is_integer():
        v = int(v)
    if isinstance(v, str) and v.strip().isdigit():
        v = int(v.strip())
    if not isinstance(v, int) or v < 1 or v > MAX_ID:
        raise ValueError("invalid_id")
    return v


NonBlank = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
OptionalText = Annotated[Optional[str], BeforeValidator(_blank_to_none)]
ResidentId = Annotated[int, BeforeValidator(_coerce_id)]


class _Body(BaseModel):
    model_config = ConfigDict(extra="ignore")


class LoginRequest(_Body):
    username: NonBlank
    password: str = Field(min_length=1)


class AccountUpdateRequest(_Body):
    # Presence/emptiness is checked by the account-update flow itself, which
    # reports a specific reason for each missing piece.
    oldpassword: Optional[str] = None
    newusername: Optional[str] = None
    newpassword: Optional[str] = None


class ResidentIdRequest(_Body):
    id: ResidentId


class RegistrationRequest(_Body):
    applicationtype: NonBlank = Field(validation_alias=AliasChoices("applicationtype", "applicationType"))
    firstname: NonBlank
    middlename: OptionalText = None
    lastname: NonBlank
    sex: NonBlank
    dateofbirth: date
    placeofbirth: NonBlank
    civilstatus: NonBlank
    education: NonBlank
    occupation: NonBlank
    barangay: NonBlank
    # Emergency contact: all three or the request is rejected.
    name: NonBlank
    relationship: NonBlank
    contact: NonBlank
    health: OptionalText = None

    def to_record(self, resident_id: Optional[int] = None) -> ResidentRecord:
        return ResidentRecord(
            id=resident_id,
            application_type=self.applicationtype,
            first_name=self.firstname,
            middle_name=self.middlename,
            last_name=self.lastname,
            sex=self.sex,
            date_of_birth=self.dateofbirth,
            place_of_birth=self.placeofbirth,
            civil_status=self.civilstatus,
            education=self.education,
            occupation=self.occupation,
            barangay=self.barangay,
            emergency_contact=EmergencyContact(
                name=self.name,
                relationship=self.relationship,
                phone_number=self.contact,
            ),
            health_notes=self.health,
        )


class ResidentUpdateRequest(RegistrationRequest):
    id: ResidentId
    # The edit form does not send the date of birth; omitted means unchanged.
    dateofbirth: Annotated[Optional[date], BeforeValidator(_blank_to_none)] = None


M = TypeVar("M", bound=BaseModel)


def parse_body(model: Type[M], payload: Any) -> M:
    if not isinstance(payload, dict):
        raise ValidationFailed(MISSING_FIELDS)
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        locs = [tuple(err.get("loc") or ()) for err in e.errors()]
        if locs and all(loc[:1] == ("id",) for loc in locs):
            raise ValidationFailed(INVALID_ID) from None
        raise ValidationFailed(MISSING_FIELDS) from None
