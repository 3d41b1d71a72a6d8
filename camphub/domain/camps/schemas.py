"""Camp domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import to_naive_utc, validate_time_hhmm

CampType = Literal["one_on_one", "group", "team", "virtual"]
Visibility = Literal["public", "private"]
SchedulingType = Literal["fixed", "availability"]
RepeatType = Literal["none", "weekly", "monthly"]
CampStatusFilter = Literal["active", "upcoming", "past", "cancelled"]
ExceptionStatus = Literal["active", "cancelled", "rescheduled"]
StaffRole = Literal["manager", "coach", "volunteer"]


class ScheduleInput(BaseModel):
    day_of_week: int = Field(ge=0, le=6)
    start_time: str
    end_time: str

    @field_validator("start_time", "end_time")
    @classmethod
    def check_time(cls, value: str) -> str:
        return validate_time_hhmm(value)


class ScheduleResponse(BaseModel):
    id: int
    day_of_week: int
    start_time: str
    end_time: str

    class Config:
        from_attributes = True


class CampBase(BaseModel):
    description: Optional[str] = None
    sport: Optional[str] = None
    skill_level: Optional[str] = None
    street_address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    additional_location_details: Optional[str] = None
    virtual_meeting_url: Optional[str] = None
    min_age: Optional[int] = Field(default=None, ge=0)
    max_age: Optional[int] = Field(default=None, ge=0)


class CampCreate(CampBase):
    """Schema for creating a camp"""

    name: str = Field(min_length=1, max_length=255)
    is_virtual: bool = False
    start_date: datetime
    end_date: datetime
    registration_start_date: datetime
    registration_end_date: datetime
    price: int = Field(default=0, ge=0)
    capacity: int = Field(ge=1)
    waitlist_enabled: bool = True
    type: CampType = "group"
    visibility: Visibility = "public"
    scheduling_type: SchedulingType = "fixed"
    repeat_type: RepeatType = "none"
    repeat_count: int = Field(default=0, ge=0)
    schedules: list[ScheduleInput] = []

    @field_validator("start_date", "end_date", "registration_start_date", "registration_end_date")
    @classmethod
    def normalize_dates(cls, value: datetime) -> datetime:
        return to_naive_utc(value)


class CampUpdate(CampBase):
    """Partial camp update; unset fields are left untouched"""

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    is_virtual: Optional[bool] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    registration_start_date: Optional[datetime] = None
    registration_end_date: Optional[datetime] = None
    price: Optional[int] = Field(default=None, ge=0)
    capacity: Optional[int] = Field(default=None, ge=1)
    waitlist_enabled: Optional[bool] = None
    type: Optional[CampType] = None
    visibility: Optional[Visibility] = None
    scheduling_type: Optional[SchedulingType] = None
    repeat_type: Optional[RepeatType] = None
    repeat_count: Optional[int] = Field(default=None, ge=0)

    @field_validator("start_date", "end_date", "registration_start_date", "registration_end_date")
    @classmethod
    def normalize_dates(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(value)


class CampResponse(BaseModel):
    id: int
    organization_id: int
    name: str
    slug: Optional[str]
    description: Optional[str]
    sport: Optional[str]
    skill_level: Optional[str]
    street_address: Optional[str]
    city: Optional[str]
    state: Optional[str]
    zip_code: Optional[str]
    additional_location_details: Optional[str]
    is_virtual: bool
    virtual_meeting_url: Optional[str]
    start_date: datetime
    end_date: datetime
    registration_start_date: datetime
    registration_end_date: datetime
    price: int
    capacity: int
    min_age: Optional[int]
    max_age: Optional[int]
    waitlist_enabled: bool
    type: str
    visibility: str
    scheduling_type: str
    repeat_type: str
    repeat_count: int
    is_deleted: bool
    deleted_at: Optional[datetime]
    is_cancelled: bool
    cancelled_at: Optional[datetime]
    cancel_reason: Optional[str]
    created_at: Optional[datetime]
    schedules: list[ScheduleResponse] = []

    class Config:
        from_attributes = True


class CampCancelRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=1000)


class SchedulesReplace(BaseModel):
    schedules: list[ScheduleInput]


# ============================================================================
# SCHEDULE EXCEPTIONS
# ============================================================================


class ScheduleExceptionCreate(BaseModel):
    exception_date: datetime
    day_of_week: int = Field(ge=0, le=6)
    start_time: str
    end_time: str
    status: ExceptionStatus = "active"
    reason: Optional[str] = Field(default=None, max_length=1000)
    original_schedule_id: Optional[int] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def check_time(cls, value: str) -> str:
        return validate_time_hhmm(value)

    @field_validator("exception_date")
    @classmethod
    def normalize_date(cls, value: datetime) -> datetime:
        return to_naive_utc(value)


class ScheduleExceptionUpdate(BaseModel):
    exception_date: Optional[datetime] = None
    day_of_week: Optional[int] = Field(default=None, ge=0, le=6)
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    status: Optional[ExceptionStatus] = None
    reason: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("start_time", "end_time")
    @classmethod
    def check_time(cls, value: Optional[str]) -> Optional[str]:
        return validate_time_hhmm(value) if value is not None else None

    @field_validator("exception_date")
    @classmethod
    def normalize_date(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(value)


class ScheduleExceptionResponse(BaseModel):
    id: int
    camp_id: int
    original_schedule_id: Optional[int]
    exception_date: datetime
    day_of_week: int
    start_time: str
    end_time: str
    status: str
    reason: Optional[str]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


# ============================================================================
# STAFF
# ============================================================================


class CampStaffCreate(BaseModel):
    user_id: int
    role: StaffRole


class CampStaffResponse(BaseModel):
    id: int
    camp_id: int
    user_id: int
    role: str
    username: Optional[str] = None
    display_name: Optional[str] = None


# ============================================================================
# DOCUMENT AGREEMENTS
# ============================================================================


class DocumentAgreementInput(BaseModel):
    document_id: int
    required: bool = True


class DocumentAgreementsReplace(BaseModel):
    agreements: list[DocumentAgreementInput]


class DocumentAgreementResponse(BaseModel):
    id: int
    camp_id: int
    document_id: int
    required: bool
    document_title: Optional[str] = None
    document_status: Optional[str] = None
