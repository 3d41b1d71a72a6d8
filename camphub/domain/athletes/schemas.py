"""Athlete domain schemas - a parent's children and their sports profiles"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ...models import utcnow
from ...shared.validators import to_naive_utc

Gender = Literal["male", "female", "other", "prefer_not_to_say"]
SkillLevel = Literal["beginner", "intermediate", "advanced", "all_levels"]


class SportsInterest(BaseModel):
    sport: str = Field(min_length=1, max_length=100)
    skill_level: SkillLevel
    preferred_positions: list[str] = []
    current_team: Optional[str] = Field(default=None, max_length=255)


class ChildBase(BaseModel):
    profile_photo: Optional[str] = Field(default=None, max_length=500)
    emergency_contact: Optional[str] = Field(default=None, max_length=255)
    emergency_phone: Optional[str] = Field(default=None, max_length=50)
    emergency_relation: Optional[str] = Field(default=None, max_length=100)
    allergies: list[str] = []
    medical_conditions: list[str] = []
    medications: list[str] = []
    special_needs: Optional[str] = None
    jersey_size: Optional[str] = Field(default=None, max_length=20)
    shoe_size: Optional[str] = Field(default=None, max_length=20)
    current_grade: Optional[str] = Field(default=None, max_length=50)
    school_name: Optional[str] = Field(default=None, max_length=255)
    sports_interests: list[SportsInterest] = []


def _check_birth_date(value: Optional[datetime]) -> Optional[datetime]:
    value = to_naive_utc(value)
    if value is not None and value >= utcnow():
        raise ValueError("Date of birth must be in the past")
    return value


class ChildCreate(ChildBase):
    full_name: str = Field(min_length=1, max_length=255)
    date_of_birth: datetime
    gender: Gender

    @field_validator("date_of_birth")
    @classmethod
    def check_birth_date(cls, value: datetime) -> datetime:
        return _check_birth_date(value)


class ChildUpdate(BaseModel):
    """Partial update; unset fields are left untouched"""

    full_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    date_of_birth: Optional[datetime] = None
    gender: Optional[Gender] = None
    profile_photo: Optional[str] = Field(default=None, max_length=500)
    emergency_contact: Optional[str] = Field(default=None, max_length=255)
    emergency_phone: Optional[str] = Field(default=None, max_length=50)
    emergency_relation: Optional[str] = Field(default=None, max_length=100)
    allergies: Optional[list[str]] = None
    medical_conditions: Optional[list[str]] = None
    medications: Optional[list[str]] = None
    special_needs: Optional[str] = None
    jersey_size: Optional[str] = Field(default=None, max_length=20)
    shoe_size: Optional[str] = Field(default=None, max_length=20)
    current_grade: Optional[str] = Field(default=None, max_length=50)
    school_name: Optional[str] = Field(default=None, max_length=255)
    sports_interests: Optional[list[SportsInterest]] = None

    @field_validator("date_of_birth")
    @classmethod
    def check_birth_date(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _check_birth_date(value)


class ChildResponse(ChildBase):
    id: int
    parent_id: int
    full_name: str
    date_of_birth: datetime
    gender: str
    allergies: Optional[list[str]] = []
    medical_conditions: Optional[list[str]] = []
    medications: Optional[list[str]] = []
    sports_interests: Optional[list[SportsInterest]] = []
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
