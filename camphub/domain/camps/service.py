"""Camp service - Business logic for camps, schedules, exceptions, staff and document agreements"""

import logging
import uuid
from datetime import datetime
from typing import Any, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...auth import is_org_admin, is_org_staff
from ...cache_utils import (
    get_cached_camp,
    get_cached_camps,
    invalidate_camp_caches,
)
from ...models import Camp, ScheduleException, User, utcnow
from ...shared.validators import slugify
from ...utils.sanitization import sanitize_string
from .repository import CampRepository
from .schemas import (
    CampCancelRequest,
    CampCreate,
    CampStaffCreate,
    CampStaffResponse,
    CampUpdate,
    DocumentAgreementResponse,
    DocumentAgreementsReplace,
    ScheduleExceptionCreate,
    ScheduleExceptionUpdate,
    ScheduleInput,
)

logger = logging.getLogger(__name__)

TEXT_FIELDS = (
    "name",
    "description",
    "sport",
    "skill_level",
    "street_address",
    "city",
    "state",
    "zip_code",
    "additional_location_details",
)
ADDRESS_FIELDS = ("street_address", "city", "state", "zip_code")
# NOT NULL columns that a partial update may not clear
REQUIRED_CAMP_FIELDS = (
    "name",
    "is_virtual",
    "start_date",
    "end_date",
    "registration_start_date",
    "registration_end_date",
    "price",
    "capacity",
    "waitlist_enabled",
    "type",
    "visibility",
    "scheduling_type",
    "repeat_type",
    "repeat_count",
)
REQUIRED_EXCEPTION_FIELDS = ("exception_date", "day_of_week", "start_time", "end_time", "status")


def validate_camp_rules(values: dict[str, Any], schedules: Optional[list[ScheduleInput]] = None) -> None:
    """
    Cross-field camp rules, applied to the merged state on create and update.

    Raises:
        HTTPException: 400 with the first rule that fails
    """

    def fail(message: str):
        raise HTTPException(status_code=400, detail=message)

    if values["end_date"] < values["start_date"]:
        fail("End date cannot be before start date")
    if values["registration_end_date"] < values["registration_start_date"]:
        fail("Registration end date cannot be before registration start date")
    if values["registration_end_date"] > values["start_date"]:
        fail("Registration must close on or before the camp start date")

    min_age, max_age = values.get("min_age"), values.get("max_age")
    if min_age is not None and max_age is not None and min_age > max_age:
        fail("Minimum age cannot be greater than maximum age")

    if values.get("is_virtual"):
        if not values.get("virtual_meeting_url"):
            fail("Virtual camps require a meeting URL")
    else:
        missing = [name for name in ADDRESS_FIELDS if not values.get(name)]
        if missing:
            fail(f"In-person camps require a full address (missing: {', '.join(missing)})")

    if schedules is not None and values.get("scheduling_type") == "fixed":
        if not schedules:
            fail("Fixed scheduling requires at least one schedule")
        for schedule in schedules:
            if schedule.start_time >= schedule.end_time:
                fail("Schedule start time must be before end time")


def permissions_for(user: Optional[User], camp_organization_id: int) -> dict:
    return {
        "can_manage": is_org_admin(user, camp_organization_id),
        "is_staff": is_org_staff(user, camp_organization_id),
    }


class CampService:
    """Service layer for camp business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = CampRepository()

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    def get_camp(self, camp_id: int) -> Camp:
        camp = self.repo.get_camp(self.db, camp_id)
        if not camp:
            raise HTTPException(status_code=404, detail="Camp not found")
        return camp

    def get_camp_for_admin(self, camp_id: int, user: User) -> Camp:
        camp = self.get_camp(camp_id)
        if not is_org_admin(user, camp.organization_id):
            raise HTTPException(
                status_code=403, detail="You don't have permission to manage this camp"
            )
        return camp

    def get_visible_camp(self, camp_id: int, user: Optional[User]) -> dict:
        """Cached camp payload; deleted and private camps are hidden from outsiders"""
        data = get_cached_camp(self.db, camp_id)
        if data is None:
            raise HTTPException(status_code=404, detail="Camp not found")

        member = is_org_staff(user, data["organization_id"])
        if not member and (data["is_deleted"] or data["visibility"] != "public"):
            raise HTTPException(status_code=404, detail="Camp not found")
        return {**data, "permissions": permissions_for(user, data["organization_id"])}

    def list_camps(
        self,
        user: Optional[User],
        status: Optional[str] = None,
        camp_type: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> list[dict]:
        filters: dict[str, Any] = {"status": status, "type": camp_type, "search": search or None}
        if is_org_staff(user):
            filters["organization_id"] = user.organization_id
        else:
            filters["visibility"] = "public"
        return get_cached_camps(self.db, filters, page, page_size)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _unique_slug(self, name: str) -> str:
        base = slugify(name)[:280]
        slug = base
        while self.repo.slug_exists(self.db, slug):
            slug = f"{base}-{uuid.uuid4().hex[:6]}"
        return slug

    def create_camp(self, data: CampCreate, user: User) -> Camp:
        if not user.organization_id:
            raise HTTPException(status_code=400, detail="User has no organization")

        values = data.model_dump(exclude={"schedules"})
        schedules = data.schedules if data.scheduling_type == "fixed" else []
        if data.type == "virtual":
            values["is_virtual"] = True
        validate_camp_rules(values, schedules)

        for name in TEXT_FIELDS:
            values[name] = sanitize_string(values.get(name))

        camp = self.repo.create_camp(
            self.db,
            schedules=[schedule.model_dump() for schedule in schedules],
            organization_id=user.organization_id,
            slug=self._unique_slug(data.name),
            **values,
        )
        invalidate_camp_caches(camp.id)
        logger.info(f"🏕️ Camp {camp.id} created by user {user.id}")
        return camp

    def update_camp(self, camp_id: int, data: CampUpdate, user: User) -> Camp:
        camp = self.get_camp_for_admin(camp_id, user)
        updates = data.model_dump(exclude_unset=True)
        for name in REQUIRED_CAMP_FIELDS:
            if name in updates and updates[name] is None:
                raise HTTPException(status_code=400, detail=f"{name} cannot be empty")
        if updates.get("type") == "virtual":
            updates["is_virtual"] = True
        elif "type" in updates and "is_virtual" not in updates:
            updates["is_virtual"] = False

        merged = {column: getattr(camp, column) for column in CampUpdate.model_fields}
        merged.update(updates)
        validate_camp_rules(merged)

        if "capacity" in updates:
            active = self.repo.count_active_registrations(self.db, camp.id)
            if updates["capacity"] < active:
                raise HTTPException(
                    status_code=400,
                    detail=f"Capacity cannot be lower than the {active} active registrations",
                )

        for name in TEXT_FIELDS:
            if name in updates:
                updates[name] = sanitize_string(updates[name])

        camp = self.repo.update_camp(self.db, camp, **updates)
        invalidate_camp_caches(camp.id)
        return camp

    def delete_camp(self, camp_id: int, user: User) -> None:
        camp = self.get_camp_for_admin(camp_id, user)
        self.repo.update_camp(self.db, camp, is_deleted=True, deleted_at=utcnow())
        invalidate_camp_caches(camp.id)
        logger.info(f"🗑️ Camp {camp.id} soft-deleted by user {user.id}")

    def cancel_camp(self, camp_id: int, data: CampCancelRequest, user: User) -> Camp:
        camp = self.get_camp_for_admin(camp_id, user)
        if camp.is_cancelled:
            raise HTTPException(status_code=400, detail="Camp is already cancelled")
        camp = self.repo.update_camp(
            self.db,
            camp,
            is_cancelled=True,
            cancelled_at=utcnow(),
            cancel_reason=sanitize_string(data.reason),
        )
        invalidate_camp_caches(camp.id)
        logger.info(f"🚫 Camp {camp.id} cancelled by user {user.id}")
        return camp

    # ------------------------------------------------------------------
    # Schedules
    # ------------------------------------------------------------------

    def replace_schedules(self, camp_id: int, schedules: list[ScheduleInput], user: User):
        camp = self.get_camp_for_admin(camp_id, user)
        if camp.scheduling_type == "availability":
            raise HTTPException(
                status_code=400, detail="Availability-based camps do not use fixed schedules"
            )
        validate_camp_rules(
            {**{column: getattr(camp, column) for column in CampUpdate.model_fields}},
            schedules,
        )
        result = self.repo.replace_schedules(
            self.db, camp, [schedule.model_dump() for schedule in schedules]
        )
        invalidate_camp_caches(camp.id)
        return result

    # ------------------------------------------------------------------
    # Schedule exceptions
    # ------------------------------------------------------------------

    def list_exceptions(self, camp_id: int) -> list[ScheduleException]:
        camp = self.get_camp(camp_id)
        return self.repo.list_exceptions(self.db, camp.id)

    def _check_exception(self, camp: Camp, values: dict) -> None:
        exception_date: datetime = values["exception_date"]
        if not (camp.start_date.date() <= exception_date.date() <= camp.end_date.date()):
            raise HTTPException(
                status_code=400, detail="Exception date must fall within the camp dates"
            )
        if values["start_time"] >= values["end_time"]:
            raise HTTPException(status_code=400, detail="Start time must be before end time")

    def create_exception(
        self, camp_id: int, data: ScheduleExceptionCreate, user: User
    ) -> ScheduleException:
        camp = self.get_camp_for_admin(camp_id, user)
        values = data.model_dump()
        self._check_exception(camp, values)
        if data.original_schedule_id is not None and data.original_schedule_id not in {
            schedule.id for schedule in camp.schedules
        }:
            raise HTTPException(status_code=400, detail="Original schedule not found for this camp")

        values["reason"] = sanitize_string(values["reason"])
        exception = self.repo.create_exception(self.db, camp.id, **values)
        invalidate_camp_caches(camp.id)
        return exception

    def update_exception(
        self, camp_id: int, exception_id: int, data: ScheduleExceptionUpdate, user: User
    ) -> ScheduleException:
        camp = self.get_camp_for_admin(camp_id, user)
        exception = self.repo.get_exception(self.db, camp.id, exception_id)
        if not exception:
            raise HTTPException(status_code=404, detail="Schedule exception not found")

        updates = data.model_dump(exclude_unset=True)
        for name in REQUIRED_EXCEPTION_FIELDS:
            if name in updates and updates[name] is None:
                raise HTTPException(status_code=400, detail=f"{name} cannot be empty")
        merged = {
            "exception_date": exception.exception_date,
            "start_time": exception.start_time,
            "end_time": exception.end_time,
            **updates,
        }
        self._check_exception(camp, merged)
        if "reason" in updates:
            updates["reason"] = sanitize_string(updates["reason"])

        exception = self.repo.update_exception(self.db, exception, **updates)
        invalidate_camp_caches(camp.id)
        return exception

    def delete_exception(self, camp_id: int, exception_id: int, user: User) -> None:
        camp = self.get_camp_for_admin(camp_id, user)
        exception = self.repo.get_exception(self.db, camp.id, exception_id)
        if not exception:
            raise HTTPException(status_code=404, detail="Schedule exception not found")
        self.repo.delete_exception(self.db, exception)
        invalidate_camp_caches(camp.id)

    # ------------------------------------------------------------------
    # Staff
    # ------------------------------------------------------------------

    def list_staff(self, camp_id: int, user: User) -> list[CampStaffResponse]:
        camp = self.get_camp(camp_id)
        if not is_org_staff(user, camp.organization_id):
            raise HTTPException(status_code=403, detail="Access denied")
        return [
            CampStaffResponse(
                id=assignment.id,
                camp_id=assignment.camp_id,
                user_id=assignment.user_id,
                role=assignment.role,
                username=assignment.user.username if assignment.user else None,
                display_name=assignment.user.display_name if assignment.user else None,
            )
            for assignment in self.repo.list_staff(self.db, camp.id)
        ]

    def add_staff(self, camp_id: int, data: CampStaffCreate, user: User) -> CampStaffResponse:
        camp = self.get_camp_for_admin(camp_id, user)
        member = self.repo.get_user(self.db, data.user_id)
        if not member or not is_org_staff(member, camp.organization_id):
            raise HTTPException(
                status_code=400, detail="User is not a staff member of this organization"
            )
        if self.repo.get_staff_assignment(self.db, camp.id, member.id):
            raise HTTPException(status_code=400, detail="User is already assigned to this camp")

        assignment = self.repo.add_staff(self.db, camp.id, member.id, data.role)
        return CampStaffResponse(
            id=assignment.id,
            camp_id=camp.id,
            user_id=member.id,
            role=assignment.role,
            username=member.username,
            display_name=member.display_name,
        )

    def remove_staff(self, camp_id: int, staff_user_id: int, user: User) -> None:
        camp = self.get_camp_for_admin(camp_id, user)
        assignment = self.repo.get_staff_assignment(self.db, camp.id, staff_user_id)
        if not assignment:
            raise HTTPException(status_code=404, detail="Staff assignment not found")
        self.repo.remove_staff(self.db, assignment)

    # ------------------------------------------------------------------
    # Document agreements
    # ------------------------------------------------------------------

    @staticmethod
    def _agreement_response(agreement) -> DocumentAgreementResponse:
        return DocumentAgreementResponse(
            id=agreement.id,
            camp_id=agreement.camp_id,
            document_id=agreement.document_id,
            required=agreement.required,
            document_title=agreement.document.title if agreement.document else None,
            document_status=agreement.document.status if agreement.document else None,
        )

    def list_agreements(self, camp_id: int, user: Optional[User]) -> list[DocumentAgreementResponse]:
        camp = self.get_camp(camp_id)
        if camp.visibility != "public" and not is_org_staff(user, camp.organization_id):
            raise HTTPException(status_code=404, detail="Camp not found")
        return [
            self._agreement_response(agreement)
            for agreement in self.repo.list_agreements(self.db, camp.id)
        ]

    def replace_agreements(
        self, camp_id: int, data: DocumentAgreementsReplace, user: User
    ) -> list[DocumentAgreementResponse]:
        camp = self.get_camp_for_admin(camp_id, user)

        requested = {item.document_id: item.required for item in data.agreements}
        documents = self.repo.get_documents(self.db, list(requested))
        if len(documents) != len(requested) or any(
            document.organization_id != camp.organization_id for document in documents
        ):
            raise HTTPException(
                status_code=400, detail="Documents must belong to the camp's organization"
            )

        agreements = self.repo.replace_agreements(
            self.db,
            camp,
            [{"document_id": doc_id, "required": required} for doc_id, required in requested.items()],
        )
        return [self._agreement_response(agreement) for agreement in agreements]
