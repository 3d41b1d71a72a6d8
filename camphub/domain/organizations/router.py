"""Organization router - FastAPI endpoints for organizations"""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user, get_optional_user
from ...database import get_db
from ...models import User
from ...schemas import UserResponse
from .schemas import OrganizationResponse, OrganizationUpdate, StaffMemberCreate, StaffMemberResponse
from .service import OrganizationService

router = APIRouter(prefix="/api/organizations", tags=["Organizations"])


def get_organization_service(db: Session = Depends(get_db)) -> OrganizationService:
    """Dependency injection for OrganizationService"""
    return OrganizationService(db)


@router.get("/{organization_id}", response_model=OrganizationResponse)
async def get_organization(
    organization_id: int,
    service: OrganizationService = Depends(get_organization_service),
):
    return service.get_organization(organization_id)


@router.patch("/{organization_id}", response_model=OrganizationResponse)
async def update_organization(
    organization_id: int,
    data: OrganizationUpdate,
    current_user: User = Depends(get_current_user),
    service: OrganizationService = Depends(get_organization_service),
):
    return service.update_organization(organization_id, data, current_user)


@router.get("/{organization_id}/staff", response_model=list[StaffMemberResponse])
async def list_staff(
    organization_id: int,
    current_user: User = Depends(get_current_user),
    service: OrganizationService = Depends(get_organization_service),
):
    return service.list_staff(organization_id, current_user)


@router.post("/{organization_id}/staff", response_model=UserResponse, status_code=201)
async def create_staff_member(
    organization_id: int,
    data: StaffMemberCreate,
    current_user: User = Depends(get_current_user),
    service: OrganizationService = Depends(get_organization_service),
):
    """Create a manager, coach or volunteer account inside the organization"""
    return service.create_staff_member(organization_id, data, current_user)


@router.get("/{organization_id}/camps")
async def list_organization_camps(
    organization_id: int,
    include_deleted: bool = False,
    current_user: Optional[User] = Depends(get_optional_user),
    service: OrganizationService = Depends(get_organization_service),
):
    return service.list_camps(organization_id, current_user, include_deleted)
