"""Registration router - FastAPI endpoints for camp registrations"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_parent
from ...database import get_db
from ...models import User
from .schemas import RegistrationCreate, RegistrationCreated, RegistrationResponse
from .service import RegistrationService

router = APIRouter(prefix="/api", tags=["Registrations"])


def get_registration_service(db: Session = Depends(get_db)) -> RegistrationService:
    """Dependency injection for RegistrationService"""
    return RegistrationService(db)


@router.post("/registrations", response_model=RegistrationCreated, status_code=201)
async def create_registration(
    data: RegistrationCreate,
    current_user: User = Depends(get_current_user),
    service: RegistrationService = Depends(get_registration_service),
):
    return await service.register(data, current_user)


@router.get("/registrations/mine", response_model=list[RegistrationResponse])
async def list_my_registrations(
    current_user: User = Depends(require_parent),
    service: RegistrationService = Depends(get_registration_service),
):
    return service.list_my_registrations(current_user)


@router.post("/registrations/{registration_id}/cancel", response_model=RegistrationResponse)
async def cancel_registration(
    registration_id: int,
    current_user: User = Depends(get_current_user),
    service: RegistrationService = Depends(get_registration_service),
):
    return await service.cancel(registration_id, current_user)


@router.get("/camps/{camp_id}/registrations")
async def list_camp_registrations(
    camp_id: int,
    current_user: User = Depends(get_current_user),
    service: RegistrationService = Depends(get_registration_service),
):
    """Staff see every registration; parents see their own athletes' registrations"""
    return service.list_camp_registrations(camp_id, current_user)
