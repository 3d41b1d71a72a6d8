"""Registration domain schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class RegistrationCreate(BaseModel):
    camp_id: int
    child_id: int


class RegistrationChild(BaseModel):
    id: int
    full_name: str
    date_of_birth: datetime
    parent_id: int

    class Config:
        from_attributes = True


class RegistrationResponse(BaseModel):
    id: int
    camp_id: int
    child_id: int
    paid: bool
    waitlisted: bool
    status: str
    registered_at: datetime
    cancelled_at: Optional[datetime] = None
    child: Optional[RegistrationChild] = None

    class Config:
        from_attributes = True


class RegistrationCreated(RegistrationResponse):
    signature_request_ids: list[int] = []
