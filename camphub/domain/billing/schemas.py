"""Billing domain schemas - Pydantic models for subscription plans"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


def _check_price(v: Optional[int]) -> Optional[int]:
    if v is not None and v < 0:
        raise ValueError("Prices cannot be negative")
    return v


class SubscriptionPlanCreate(BaseModel):
    """Schema for creating a subscription plan; prices are in cents"""

    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    price_monthly: int = 0
    price_yearly: int = 0
    max_camps: Optional[int] = Field(default=None, ge=0)  # None = unlimited
    max_athletes: Optional[int] = Field(default=None, ge=0)
    features: list[str] = []
    is_active: bool = True

    @field_validator("price_monthly", "price_yearly")
    @classmethod
    def validate_price(cls, v: int) -> int:
        return _check_price(v)


class SubscriptionPlanUpdate(BaseModel):
    """Schema for a partial plan update"""

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    price_monthly: Optional[int] = None
    price_yearly: Optional[int] = None
    max_camps: Optional[int] = Field(default=None, ge=0)
    max_athletes: Optional[int] = Field(default=None, ge=0)
    features: Optional[list[str]] = None
    is_active: Optional[bool] = None

    @field_validator("price_monthly", "price_yearly")
    @classmethod
    def validate_price(cls, v: Optional[int]) -> Optional[int]:
        return _check_price(v)


class SubscriptionPlanResponse(BaseModel):
    id: int
    name: str
    description: Optional[str]
    price_monthly: int
    price_yearly: int
    max_camps: Optional[int]
    max_athletes: Optional[int]
    features: list[str]
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
