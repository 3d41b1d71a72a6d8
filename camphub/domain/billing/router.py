"""Billing router - FastAPI endpoints for subscription plans"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from .schemas import SubscriptionPlanCreate, SubscriptionPlanResponse, SubscriptionPlanUpdate
from .subscription_service import SubscriptionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/subscription-plans", tags=["Billing"])


def get_subscription_service(db: Session = Depends(get_db)) -> SubscriptionService:
    """Dependency injection for SubscriptionService"""
    return SubscriptionService(db)


# ============================================================================
# SUBSCRIPTION PLANS
# ============================================================================


@router.get("", response_model=list[SubscriptionPlanResponse])
async def list_plans(service: SubscriptionService = Depends(get_subscription_service)):
    """Active plans ordered by monthly price"""
    return service.list_plans()


@router.post("", response_model=SubscriptionPlanResponse, status_code=201)
async def create_plan(
    body: SubscriptionPlanCreate,
    user: User = Depends(get_current_user),
    service: SubscriptionService = Depends(get_subscription_service),
):
    return service.create_plan(body, user)


@router.patch("/{plan_id}", response_model=SubscriptionPlanResponse)
async def update_plan(
    plan_id: int,
    body: SubscriptionPlanUpdate,
    user: User = Depends(get_current_user),
    service: SubscriptionService = Depends(get_subscription_service),
):
    return service.update_plan(plan_id, body, user)
