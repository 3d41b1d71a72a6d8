"""Document domain schemas - Pydantic models for documents, fields and signature requests"""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import to_naive_utc, validate_email

DocumentType = Literal["waiver", "agreement", "consent", "policy", "custom"]
DocumentStatus = Literal["draft", "active", "inactive", "archived"]
FieldType = Literal["signature", "initial", "date", "text", "checkbox", "dynamic_field"]
DataSource = Literal[
    "athlete_name",
    "athlete_dob",
    "athlete_gender",
    "athlete_emergency_contact",
    "athlete_emergency_phone",
    "athlete_emergency_relation",
    "athlete_allergies",
    "athlete_medical_conditions",
    "athlete_medications",
    "athlete_special_needs",
    "athlete_jersey_size",
    "athlete_shoe_size",
    "parent_name",
    "parent_email",
    "parent_phone",
    "camp_name",
    "camp_dates",
    "camp_location",
]


# ============================================================================
# DOCUMENTS
# ============================================================================


class DocumentCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    content: Optional[str] = None
    type: DocumentType
    status: DocumentStatus = "draft"
    file_url: Optional[str] = Field(default=None, max_length=500)


class DocumentUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    content: Optional[str] = None
    status: Optional[DocumentStatus] = None
    file_url: Optional[str] = Field(default=None, max_length=500)


class DocumentResponse(BaseModel):
    id: int
    organization_id: int
    author_id: Optional[int]
    title: str
    description: Optional[str]
    content: Optional[str]
    type: str
    status: str
    version: int
    hash: Optional[str]
    file_url: Optional[str]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


# ============================================================================
# FIELDS
# ============================================================================


class DocumentFieldCreate(BaseModel):
    label: str = Field(min_length=1, max_length=255)
    field_type: FieldType
    data_source: Optional[DataSource] = None
    required: bool = True
    page_number: int = Field(default=1, ge=1)
    x_position: int = Field(default=0, ge=0)
    y_position: int = Field(default=0, ge=0)
    width: int = Field(default=200, gt=0)
    height: int = Field(default=50, gt=0)
    order_index: int = 0
    default_value: Optional[str] = None
    placeholder: Optional[str] = Field(default=None, max_length=255)


class DocumentFieldUpdate(BaseModel):
    label: Optional[str] = Field(default=None, min_length=1, max_length=255)
    field_type: Optional[FieldType] = None
    data_source: Optional[DataSource] = None
    required: Optional[bool] = None
    page_number: Optional[int] = Field(default=None, ge=1)
    x_position: Optional[int] = Field(default=None, ge=0)
    y_position: Optional[int] = Field(default=None, ge=0)
    width: Optional[int] = Field(default=None, gt=0)
    height: Optional[int] = Field(default=None, gt=0)
    order_index: Optional[int] = None
    default_value: Optional[str] = None
    placeholder: Optional[str] = Field(default=None, max_length=255)


class DocumentFieldResponse(BaseModel):
    id: int
    document_id: int
    label: str
    field_type: str
    data_source: Optional[str]
    required: bool
    page_number: int
    x_position: int
    y_position: int
    width: int
    height: int
    order_index: int
    default_value: Optional[str]
    placeholder: Optional[str]

    class Config:
        from_attributes = True


# ============================================================================
# SIGNATURE REQUESTS
# ============================================================================


class SignatureRequestCreate(BaseModel):
    requested_for_id: Optional[int] = None
    requested_for_email: Optional[str] = None
    camp_id: Optional[int] = None
    registration_id: Optional[int] = None
    message: Optional[str] = Field(default=None, max_length=2000)
    expires_at: Optional[datetime] = None

    @field_validator("requested_for_email")
    @classmethod
    def check_email(cls, value: Optional[str]) -> Optional[str]:
        return validate_email(value)

    @field_validator("expires_at")
    @classmethod
    def normalize_expiry(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(value)


class SignatureRequestResponse(BaseModel):
    id: int
    document_id: int
    requested_by: Optional[int]
    requested_for_id: Optional[int]
    requested_for_email: Optional[str]
    camp_id: Optional[int]
    registration_id: Optional[int]
    status: str
    token: str
    expires_at: Optional[datetime]
    message: Optional[str]
    viewed_at: Optional[datetime]
    signed_at: Optional[datetime]
    reminder_sent_at: Optional[datetime]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class UserSignatureRequestResponse(SignatureRequestResponse):
    document_title: str = "Unknown Document"


class TokenView(BaseModel):
    """Everything the signing page needs, resolved from the request token"""

    document: DocumentResponse
    fields: list[DocumentFieldResponse]
    signature_request: SignatureRequestResponse
    dynamic_field_data: dict[str, str]


class SignRequest(BaseModel):
    token: str
    signature: str = Field(min_length=1)
    field_values: dict[str, Any] = {}


class TokenActionRequest(BaseModel):
    token: Optional[str] = None


class SignatureResponse(BaseModel):
    id: int
    signature_request_id: int
    field_values: dict[str, Any]
    ip_address: Optional[str]
    user_agent: Optional[str]
    document_hash: Optional[str]
    signature_hash: str
    signed_at: datetime

    class Config:
        from_attributes = True


class SignatureVerification(BaseModel):
    signature_id: int
    signature_request_id: int
    valid: bool
    signature_hash: str


class AuditTrailEntry(BaseModel):
    id: int
    document_id: int
    signature_request_id: Optional[int]
    user_id: Optional[int]
    action: str
    ip_address: Optional[str]
    user_agent: Optional[str]
    details: Optional[dict[str, Any]]
    timestamp: datetime

    class Config:
        from_attributes = True
