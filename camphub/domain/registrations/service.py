"""Registration service - Enrollment rules, waitlist handling and agreement requests"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...auth import is_org_admin, is_org_staff
from ...cache_utils import get_cached_camp_registrations, invalidate_camp_registrations_cache
from ...email_service import (
    send_registration_confirmation_email,
    send_waitlist_notification_email,
)
from ...models import Camp, Child, Registration, User, utcnow
from ..documents.field_population import format_camp_dates, format_camp_location
from ..documents.service import SignatureRequestService
from .repository import RegistrationRepository
from .schemas import RegistrationCreate, RegistrationCreated, RegistrationResponse

logger = logging.getLogger(__name__)


def age_on(date_of_birth: datetime, on: datetime) -> int:
    """Whole years between a birth date and a given day"""
    before_birthday = (on.month, on.day) < (date_of_birth.month, date_of_birth.day)
    return on.year - date_of_birth.year - int(before_birthday)


class RegistrationService:
    """Service layer for registration business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = RegistrationRepository()

    def _check_camp_open(self, camp: Optional[Camp], now: datetime) -> Camp:
        if not camp or camp.is_deleted or camp.is_cancelled:
            raise HTTPException(status_code=400, detail="Camp is not available for registration")
        if now < camp.registration_start_date:
            raise HTTPException(status_code=400, detail="Registration has not opened yet")
        if now > camp.registration_end_date:
            raise HTTPException(status_code=400, detail="Registration has closed")
        return camp

    @staticmethod
    def _check_age(camp: Camp, child: Child) -> None:
        age = age_on(child.date_of_birth, camp.start_date)
        if camp.min_age is not None and age < camp.min_age:
            raise HTTPException(
                status_code=400, detail=f"Athlete must be at least {camp.min_age} years old"
            )
        if camp.max_age is not None and age > camp.max_age:
            raise HTTPException(
                status_code=400, detail=f"Athlete must be at most {camp.max_age} years old"
            )

    async def _notify_parent(
        self, registration: Registration, waitlist_status: Optional[str] = None
    ) -> None:
        """Registration confirmation, or a waitlist notice when waitlist_status is set"""
        child = registration.child
        parent = child.parent if child else None
        if not parent or not parent.email:
            return

        camp = registration.camp
        try:
            if waitlist_status:
                await send_waitlist_notification_email(
                    to=parent.email,
                    parent_name=parent.display_name,
                    child_name=child.full_name,
                    camp_name=camp.name,
                    status=waitlist_status,
                )
            else:
                await send_registration_confirmation_email(
                    to=parent.email,
                    parent_name=parent.display_name,
                    child_name=child.full_name,
                    camp_name=camp.name,
                    camp_dates=format_camp_dates(camp),
                    camp_location=format_camp_location(camp),
                )
        except Exception as e:
            logger.error(f"❌ Failed to email parent about registration {registration.id}: {e}")

    async def register(self, data: RegistrationCreate, user: User) -> RegistrationCreated:
        """
        Register a child for a camp.

        A full camp puts the registration on the waitlist when the camp allows
        it. Required agreement documents are sent to the parent for signature.
        """
        child = self.repo.get_child(self.db, data.child_id)
        if not child:
            raise HTTPException(status_code=404, detail="Athlete not found")

        camp = self.repo.get_camp(self.db, data.camp_id)
        is_parent = user.role == "parent" and child.parent_id == user.id
        if not is_parent and not (camp and is_org_admin(user, camp.organization_id)):
            raise HTTPException(
                status_code=403, detail="You can only register your own athletes"
            )

        now = utcnow()
        camp = self._check_camp_open(camp, now)

        if self.repo.get_active_registration(self.db, camp.id, child.id):
            raise HTTPException(
                status_code=400, detail="Athlete is already registered for this camp"
            )
        self._check_age(camp, child)

        waitlisted = False
        if self.repo.count_seated(self.db, camp.id) >= camp.capacity:
            if not camp.waitlist_enabled:
                raise HTTPException(status_code=400, detail="Camp is full")
            waitlisted = True

        registration = self.repo.create_registration(
            self.db,
            camp_id=camp.id,
            child_id=child.id,
            waitlisted=waitlisted,
            status="active",
            registered_at=now,
        )
        invalidate_camp_registrations_cache(camp.id)
        logger.info(
            f"📝 Registration {registration.id}: athlete {child.id} -> camp {camp.id}"
            f"{' (waitlisted)' if waitlisted else ''}"
        )

        await self._notify_parent(registration, "added" if waitlisted else None)

        signature_service = SignatureRequestService(self.db)
        requests = signature_service.create_registration_requests(registration)
        for signature_request in requests:
            await signature_service.notify_recipient(signature_request)

        response = RegistrationCreated.model_validate(registration)
        response.signature_request_ids = [signature_request.id for signature_request in requests]
        return response

    def list_camp_registrations(self, camp_id: int, user: User) -> dict:
        camp = self.repo.get_camp(self.db, camp_id)
        if not camp:
            raise HTTPException(status_code=404, detail="Camp not found")

        if is_org_staff(user, camp.organization_id):
            return {
                "registrations": get_cached_camp_registrations(self.db, camp.id),
                "permissions": {"can_manage": True},
            }

        if user.role == "parent":
            registrations = self.repo.list_for_parent(self.db, user.id, camp_id=camp.id)
            return {
                "registrations": [
                    RegistrationResponse.model_validate(registration).model_dump(mode="json")
                    for registration in registrations
                ],
                "permissions": {"can_manage": False},
            }

        raise HTTPException(status_code=403, detail="Access denied")

    def list_my_registrations(self, user: User) -> list[Registration]:
        return self.repo.list_for_parent(self.db, user.id)

    async def cancel(self, registration_id: int, user: User) -> Registration:
        registration = self.repo.get_registration(self.db, registration_id)
        if not registration:
            raise HTTPException(status_code=404, detail="Registration not found")

        camp = registration.camp
        is_parent = registration.child is not None and registration.child.parent_id == user.id
        if not is_parent and not is_org_admin(user, camp.organization_id):
            raise HTTPException(
                status_code=403, detail="You don't have permission to cancel this registration"
            )
        if registration.status == "cancelled":
            raise HTTPException(status_code=400, detail="Registration is already cancelled")

        freed_seat = not registration.waitlisted
        registration.status = "cancelled"
        registration.cancelled_at = utcnow()
        self.db.flush()

        promoted = None
        if freed_seat and self.repo.count_seated(self.db, camp.id) < camp.capacity:
            promoted = self.repo.get_next_waitlisted(self.db, camp.id)
            if promoted:
                promoted.waitlisted = False

        self.db.commit()
        self.db.refresh(registration)
        invalidate_camp_registrations_cache(camp.id)

        if promoted:
            logger.info(f"⬆️ Registration {promoted.id} promoted from the waitlist of camp {camp.id}")
            await self._notify_parent(promoted, "spot_available")
        logger.info(f"🚫 Registration {registration.id} cancelled by user {user.id}")
        return registration
