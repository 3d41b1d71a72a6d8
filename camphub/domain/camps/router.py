"""Camp router - FastAPI endpoints for camps, schedules, exceptions, staff and agreements"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from ...auth import get_current_user, get_optional_user, require_org_admin
from ...database import get_db
from ...models import User
from ...schemas import SuccessResponse
from .schemas import (
    CampCancelRequest,
    CampCreate,
    CampResponse,
    CampStaffCreate,
    CampStaffResponse,
    CampStatusFilter,
    CampType,
    CampUpdate,
    DocumentAgreementResponse,
    DocumentAgreementsReplace,
    ScheduleExceptionCreate,
    ScheduleExceptionResponse,
    ScheduleExceptionUpdate,
    ScheduleResponse,
    SchedulesReplace,
)
from .service import CampService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/camps", tags=["Camps"])


def get_camp_service(db: Session = Depends(get_db)) -> CampService:
    """Dependency injection for CampService"""
    return CampService(db)


# ============================================================================
# CAMPS
# ============================================================================


@router.post("", response_model=CampResponse, status_code=201)
async def create_camp(
    data: CampCreate,
    current_user: User = Depends(require_org_admin),
    service: CampService = Depends(get_camp_service),
):
    return service.create_camp(data, current_user)


@router.get("")
async def list_camps(
    status: Optional[CampStatusFilter] = None,
    type: Optional[CampType] = None,
    search: Optional[str] = Query(default=None, max_length=100),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
    current_user: Optional[User] = Depends(get_optional_user),
    service: CampService = Depends(get_camp_service),
):
    """Staff see their organization's camps; everyone else sees public camps"""
    return service.list_camps(current_user, status, type, search, page, page_size)


@router.get("/{camp_id}")
async def get_camp(
    camp_id: int,
    current_user: Optional[User] = Depends(get_optional_user),
    service: CampService = Depends(get_camp_service),
):
    return service.get_visible_camp(camp_id, current_user)


@router.patch("/{camp_id}", response_model=CampResponse)
async def update_camp(
    camp_id: int,
    data: CampUpdate,
    current_user: User = Depends(get_current_user),
    service: CampService = Depends(get_camp_service),
):
    return service.update_camp(camp_id, data, current_user)


@router.delete("/{camp_id}", status_code=204)
async def delete_camp(
    camp_id: int,
    current_user: User = Depends(get_current_user),
    service: CampService = Depends(get_camp_service),
):
    service.delete_camp(camp_id, current_user)
    return Response(status_code=204)


@router.post("/{camp_id}/cancel", response_model=CampResponse)
async def cancel_camp(
    camp_id: int,
    data: CampCancelRequest,
    current_user: User = Depends(get_current_user),
    service: CampService = Depends(get_camp_service),
):
    return service.cancel_camp(camp_id, data, current_user)


# ============================================================================
# SCHEDULES
# ============================================================================


@router.get("/{camp_id}/schedules")
async def get_schedules(
    camp_id: int,
    current_user: Optional[User] = Depends(get_optional_user),
    service: CampService = Depends(get_camp_service),
):
    camp = service.get_visible_camp(camp_id, current_user)
    return {"schedules": camp["schedules"], "permissions": camp["permissions"]}


@router.put("/{camp_id}/schedules", response_model=list[ScheduleResponse])
async def replace_schedules(
    camp_id: int,
    data: SchedulesReplace,
    current_user: User = Depends(get_current_user),
    service: CampService = Depends(get_camp_service),
):
    return service.replace_schedules(camp_id, data.schedules, current_user)


# ============================================================================
# SCHEDULE EXCEPTIONS
# ============================================================================


@router.get("/{camp_id}/schedule-exceptions")
async def list_schedule_exceptions(
    camp_id: int,
    current_user: Optional[User] = Depends(get_optional_user),
    service: CampService = Depends(get_camp_service),
):
    camp = service.get_visible_camp(camp_id, current_user)
    exceptions = service.list_exceptions(camp_id)
    return {
        "exceptions": [
            ScheduleExceptionResponse.model_validate(exception).model_dump(mode="json")
            for exception in exceptions
        ],
        "permissions": camp["permissions"],
    }


@router.post(
    "/{camp_id}/schedule-exceptions", response_model=ScheduleExceptionResponse, status_code=201
)
async def create_schedule_exception(
    camp_id: int,
    data: ScheduleExceptionCreate,
    current_user: User = Depends(get_current_user),
    service: CampService = Depends(get_camp_service),
):
    return service.create_exception(camp_id, data, current_user)


@router.patch(
    "/{camp_id}/schedule-exceptions/{exception_id}", response_model=ScheduleExceptionResponse
)
async def update_schedule_exception(
    camp_id: int,
    exception_id: int,
    data: ScheduleExceptionUpdate,
    current_user: User = Depends(get_current_user),
    service: CampService = Depends(get_camp_service),
):
    return service.update_exception(camp_id, exception_id, data, current_user)


@router.delete("/{camp_id}/schedule-exceptions/{exception_id}", status_code=204)
async def delete_schedule_exception(
    camp_id: int,
    exception_id: int,
    current_user: User = Depends(get_current_user),
    service: CampService = Depends(get_camp_service),
):
    service.delete_exception(camp_id, exception_id, current_user)
    return Response(status_code=204)


# ============================================================================
# STAFF
# ============================================================================


@router.get("/{camp_id}/staff", response_model=list[CampStaffResponse])
async def list_camp_staff(
    camp_id: int,
    current_user: User = Depends(get_current_user),
    service: CampService = Depends(get_camp_service),
):
    return service.list_staff(camp_id, current_user)


@router.post("/{camp_id}/staff", response_model=CampStaffResponse, status_code=201)
async def add_camp_staff(
    camp_id: int,
    data: CampStaffCreate,
    current_user: User = Depends(get_current_user),
    service: CampService = Depends(get_camp_service),
):
    return service.add_staff(camp_id, data, current_user)


@router.delete("/{camp_id}/staff/{user_id}", response_model=SuccessResponse)
async def remove_camp_staff(
    camp_id: int,
    user_id: int,
    current_user: User = Depends(get_current_user),
    service: CampService = Depends(get_camp_service),
):
    service.remove_staff(camp_id, user_id, current_user)
    return SuccessResponse()


# ============================================================================
# DOCUMENT AGREEMENTS
# ============================================================================


@router.get("/{camp_id}/document-agreements", response_model=list[DocumentAgreementResponse])
async def list_document_agreements(
    camp_id: int,
    current_user: Optional[User] = Depends(get_optional_user),
    service: CampService = Depends(get_camp_service),
):
    return service.list_agreements(camp_id, current_user)


@router.put("/{camp_id}/document-agreements", response_model=list[DocumentAgreementResponse])
async def replace_document_agreements(
    camp_id: int,
    data: DocumentAgreementsReplace,
    current_user: User = Depends(get_current_user),
    service: CampService = Depends(get_camp_service),
):
    """Replace the set of documents registrants of this camp must sign"""
    return service.replace_agreements(camp_id, data, current_user)
