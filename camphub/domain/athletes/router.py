"""Athlete router - FastAPI endpoints for a parent's children"""

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from ...auth import require_parent
from ...database import get_db
from ...models import User
from .schemas import ChildCreate, ChildResponse, ChildUpdate
from .service import AthleteService

router = APIRouter(prefix="/api/children", tags=["Athletes"])


def get_athlete_service(db: Session = Depends(get_db)) -> AthleteService:
    """Dependency injection for AthleteService"""
    return AthleteService(db)


@router.post("", response_model=ChildResponse, status_code=201)
async def create_child(
    data: ChildCreate,
    current_user: User = Depends(require_parent),
    service: AthleteService = Depends(get_athlete_service),
):
    return service.create_child(data, current_user)


@router.get("", response_model=list[ChildResponse])
async def list_children(
    current_user: User = Depends(require_parent),
    service: AthleteService = Depends(get_athlete_service),
):
    return service.list_children(current_user)


@router.get("/{child_id}", response_model=ChildResponse)
async def get_child(
    child_id: int,
    current_user: User = Depends(require_parent),
    service: AthleteService = Depends(get_athlete_service),
):
    return service.get_child(child_id, current_user)


@router.patch("/{child_id}", response_model=ChildResponse)
async def update_child(
    child_id: int,
    data: ChildUpdate,
    current_user: User = Depends(require_parent),
    service: AthleteService = Depends(get_athlete_service),
):
    return service.update_child(child_id, data, current_user)


@router.delete("/{child_id}", status_code=204)
async def delete_child(
    child_id: int,
    current_user: User = Depends(require_parent),
    service: AthleteService = Depends(get_athlete_service),
):
    service.delete_child(child_id, current_user)
    return Response(status_code=204)
