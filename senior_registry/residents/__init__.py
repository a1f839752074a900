from .crud import create_resident, delete_resident, get_resident, list_residents, update_resident
from .models import EmergencyContact, ResidentRecord

__all__ = [
    "EmergencyContact",
    "ResidentRecord",
    "create_resident",
    "delete_resident",
    "get_resident",
    "list_residents",
    "update_resident",
]
