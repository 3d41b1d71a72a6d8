"""Subscription service - Business logic for subscription plan management"""

import logging

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import SubscriptionPlan, User
from ...utils.sanitization import sanitize_list, sanitize_string
from .repository import BillingRepository
from .schemas import SubscriptionPlanCreate, SubscriptionPlanUpdate

logger = logging.getLogger(__name__)


class SubscriptionService:
    """Service layer for subscription plans"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BillingRepository()

    @staticmethod
    def _require_camp_creator(user: User) -> None:
        if user.role != "camp_creator":
            raise HTTPException(
                status_code=403, detail="Only camp creators can manage subscription plans"
            )

    def list_plans(self) -> list[SubscriptionPlan]:
        return self.repo.list_active_plans(self.db)

    def create_plan(self, data: SubscriptionPlanCreate, user: User) -> SubscriptionPlan:
        self._require_camp_creator(user)
        if self.repo.get_plan_by_name(self.db, data.name):
            raise HTTPException(status_code=400, detail="A plan with this name already exists")

        values = data.model_dump()
        values["name"] = sanitize_string(values["name"])
        values["description"] = sanitize_string(values["description"])
        values["features"] = sanitize_list(values["features"])

        plan = self.repo.create_plan(self.db, **values)
        logger.info(f"💳 Subscription plan {plan.id} ({plan.name}) created by user {user.id}")
        return plan

    def update_plan(self, plan_id: int, data: SubscriptionPlanUpdate, user: User) -> SubscriptionPlan:
        self._require_camp_creator(user)
        plan = self.repo.get_plan(self.db, plan_id)
        if not plan:
            raise HTTPException(status_code=404, detail="Subscription plan not found")

        updates = data.model_dump(exclude_unset=True)
        for name in ("name", "price_monthly", "price_yearly", "features", "is_active"):
            if name in updates and updates[name] is None:
                raise HTTPException(status_code=400, detail=f"{name} cannot be empty")
        if "name" in updates:
            existing = self.repo.get_plan_by_name(self.db, updates["name"])
            if existing and existing.id != plan.id:
                raise HTTPException(status_code=400, detail="A plan with this name already exists")
            updates["name"] = sanitize_string(updates["name"])
        if "description" in updates:
            updates["description"] = sanitize_string(updates["description"])
        if "features" in updates:
            updates["features"] = sanitize_list(updates["features"])

        return self.repo.update_plan(self.db, plan, **updates)
