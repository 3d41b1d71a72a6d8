"""Billing repository - Database operations for subscription plans"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import SubscriptionPlan


class BillingRepository:
    """Repository for billing database operations"""

    @staticmethod
    def get_plan(db: Session, plan_id: int) -> Optional[SubscriptionPlan]:
        """Get plan by ID"""
        return db.query(SubscriptionPlan).filter(SubscriptionPlan.id == plan_id).first()

    @staticmethod
    def get_plan_by_name(db: Session, name: str) -> Optional[SubscriptionPlan]:
        return db.query(SubscriptionPlan).filter(SubscriptionPlan.name == name).first()

    @staticmethod
    def list_active_plans(db: Session) -> list[SubscriptionPlan]:
        """Active plans, cheapest first"""
        return (
            db.query(SubscriptionPlan)
            .filter(SubscriptionPlan.is_active.is_(True))
            .order_by(SubscriptionPlan.price_monthly.asc(), SubscriptionPlan.id.asc())
            .all()
        )

    @staticmethod
    def create_plan(db: Session, **data) -> SubscriptionPlan:
        plan = SubscriptionPlan(**data)
        db.add(plan)
        db.commit()
        db.refresh(plan)
        return plan

    @staticmethod
    def update_plan(db: Session, plan: SubscriptionPlan, **updates) -> SubscriptionPlan:
        for key, value in updates.items():
            setattr(plan, key, value)
        db.commit()
        db.refresh(plan)
        return plan
