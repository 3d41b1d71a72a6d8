"""Athlete service - Parents managing their children's profiles"""

import logging

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...cache_utils import invalidate_camp_registrations_cache
from ...models import Child, User
from ...utils.sanitization import sanitize_list, sanitize_string
from .repository import AthleteRepository
from .schemas import ChildCreate, ChildUpdate

logger = logging.getLogger(__name__)

TEXT_FIELDS = (
    "full_name",
    "emergency_contact",
    "emergency_phone",
    "emergency_relation",
    "special_needs",
    "jersey_size",
    "shoe_size",
    "current_grade",
    "school_name",
)
LIST_FIELDS = ("allergies", "medical_conditions", "medications")


def _clean(values: dict) -> dict:
    for name in TEXT_FIELDS:
        if name in values:
            values[name] = sanitize_string(values[name])
    for name in LIST_FIELDS:
        if name in values:
            values[name] = sanitize_list(values[name])
    if values.get("sports_interests") is not None:
        for interest in values["sports_interests"]:
            interest["sport"] = sanitize_string(interest["sport"])
            interest["current_team"] = sanitize_string(interest.get("current_team"))
            interest["preferred_positions"] = sanitize_list(interest.get("preferred_positions"))
    return values


class AthleteService:
    """Service layer for athlete business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AthleteRepository()

    def get_child(self, child_id: int, user: User) -> Child:
        # Another parent's child is reported as missing
        child = self.repo.get_child_for_parent(self.db, child_id, user.id)
        if not child:
            raise HTTPException(status_code=404, detail="Athlete not found")
        return child

    def list_children(self, user: User) -> list[Child]:
        return self.repo.list_children(self.db, user.id)

    def create_child(self, data: ChildCreate, user: User) -> Child:
        child = self.repo.create_child(self.db, user.id, **_clean(data.model_dump()))
        logger.info(f"👟 Athlete {child.id} added by parent {user.id}")
        return child

    def update_child(self, child_id: int, data: ChildUpdate, user: User) -> Child:
        child = self.get_child(child_id, user)
        updates = _clean(data.model_dump(exclude_unset=True))
        for name in ("full_name", "date_of_birth", "gender"):
            if name in updates and updates[name] is None:
                raise HTTPException(status_code=400, detail=f"{name} cannot be empty")

        child = self.repo.update_child(self.db, child, **updates)
        for camp_id in {registration.camp_id for registration in child.registrations}:
            invalidate_camp_registrations_cache(camp_id)
        return child

    def delete_child(self, child_id: int, user: User) -> None:
        child = self.get_child(child_id, user)
        if self.repo.count_active_registrations(self.db, child.id):
            raise HTTPException(
                status_code=400, detail="Cancel this athlete's active registrations first"
            )
        camp_ids = {registration.camp_id for registration in child.registrations}
        self.repo.delete_child(self.db, child)
        for camp_id in camp_ids:
            invalidate_camp_registrations_cache(camp_id)
        logger.info(f"🗑️ Athlete {child_id} deleted by parent {user.id}")
