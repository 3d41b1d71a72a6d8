import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_token():
    """Generate an unguessable token for link-based access"""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (all timestamps are stored as naive UTC)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


STAFF_ROLES = ("camp_creator", "manager", "coach", "volunteer")
ADMIN_ROLES = ("camp_creator", "manager")


class Organization(Base):
    __tablename__ = "organizations"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    logo_url = Column(String(500), nullable=True)
    mission = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    users = relationship("User", back_populates="organization")
    camps = relationship("Camp", back_populates="organization")
    documents = relationship("Document", back_populates="organization")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(100), unique=True, index=True, nullable=False)
    email = Column(String(255), index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(50), nullable=False)  # camp_creator, manager, coach, volunteer, parent, athlete
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=True, index=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    phone_number = Column(String(50), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    organization = relationship("Organization", back_populates="users")
    children = relationship("Child", back_populates="parent")

    @property
    def display_name(self) -> str:
        full_name = " ".join(part for part in (self.first_name, self.last_name) if part)
        return full_name or self.username


class Child(Base):
    __tablename__ = "children"

    id = Column(Integer, primary_key=True, index=True)
    parent_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    full_name = Column(String(255), nullable=False)
    date_of_birth = Column(DateTime, nullable=False)
    gender = Column(String(30), nullable=False)  # male, female, other, prefer_not_to_say
    profile_photo = Column(String(500), nullable=True)
    emergency_contact = Column(String(255), nullable=True)
    emergency_phone = Column(String(50), nullable=True)
    emergency_relation = Column(String(100), nullable=True)
    allergies = Column(JSON, default=list, nullable=True)
    medical_conditions = Column(JSON, default=list, nullable=True)
    medications = Column(JSON, default=list, nullable=True)
    special_needs = Column(Text, nullable=True)
    jersey_size = Column(String(20), nullable=True)
    shoe_size = Column(String(20), nullable=True)
    current_grade = Column(String(50), nullable=True)
    school_name = Column(String(255), nullable=True)
    # [{sport, skill_level, preferred_positions, current_team}]
    sports_interests = Column(JSON, default=list, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    parent = relationship("User", back_populates="children")
    registrations = relationship("Registration", back_populates="child")


class Camp(Base):
    __tablename__ = "camps"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(300), unique=True, index=True, nullable=True)
    description = Column(Text, nullable=True)
    sport = Column(String(100), nullable=True)
    skill_level = Column(String(50), nullable=True)
    # Location
    street_address = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)
    zip_code = Column(String(20), nullable=True)
    additional_location_details = Column(Text, nullable=True)
    is_virtual = Column(Boolean, default=False, nullable=False)
    virtual_meeting_url = Column(String(500), nullable=True)
    # Dates
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    registration_start_date = Column(DateTime, nullable=False)
    registration_end_date = Column(DateTime, nullable=False)
    # Enrollment
    price = Column(Integer, default=0, nullable=False)  # cents
    capacity = Column(Integer, nullable=False)
    min_age = Column(Integer, nullable=True)
    max_age = Column(Integer, nullable=True)
    waitlist_enabled = Column(Boolean, default=True, nullable=False)
    type = Column(String(30), default="group", nullable=False)  # one_on_one, group, team, virtual
    visibility = Column(String(20), default="public", nullable=False)  # public, private
    scheduling_type = Column(String(20), default="fixed", nullable=False)  # fixed, availability
    repeat_type = Column(String(20), default="none", nullable=False)  # none, weekly, monthly
    repeat_count = Column(Integer, default=0, nullable=False)
    # Lifecycle
    is_deleted = Column(Boolean, default=False, nullable=False)
    deleted_at = Column(DateTime, nullable=True)
    is_cancelled = Column(Boolean, default=False, nullable=False)
    cancelled_at = Column(DateTime, nullable=True)
    cancel_reason = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    organization = relationship("Organization", back_populates="camps")
    schedules = relationship(
        "CampSchedule",
        back_populates="camp",
        cascade="all, delete-orphan",
        order_by="CampSchedule.day_of_week, CampSchedule.start_time",
    )
    schedule_exceptions = relationship(
        "ScheduleException", back_populates="camp", cascade="all, delete-orphan"
    )
    staff = relationship("CampStaff", back_populates="camp", cascade="all, delete-orphan")
    registrations = relationship("Registration", back_populates="camp")
    document_agreements = relationship(
        "CampDocumentAgreement", back_populates="camp", cascade="all, delete-orphan"
    )


class CampSchedule(Base):
    __tablename__ = "camp_schedules"

    id = Column(Integer, primary_key=True, index=True)
    camp_id = Column(Integer, ForeignKey("camps.id"), nullable=False, index=True)
    day_of_week = Column(Integer, nullable=False)  # 0 = Sunday
    start_time = Column(String(5), nullable=False)  # HH:MM
    end_time = Column(String(5), nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    camp = relationship("Camp", back_populates="schedules")


class ScheduleException(Base):
    __tablename__ = "camp_schedule_exceptions"

    id = Column(Integer, primary_key=True, index=True)
    camp_id = Column(Integer, ForeignKey("camps.id"), nullable=False, index=True)
    original_schedule_id = Column(Integer, ForeignKey("camp_schedules.id"), nullable=True)
    exception_date = Column(DateTime, nullable=False)
    day_of_week = Column(Integer, nullable=False)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    status = Column(String(20), default="active", nullable=False)  # active, cancelled, rescheduled
    reason = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    camp = relationship("Camp", back_populates="schedule_exceptions")


class CampStaff(Base):
    __tablename__ = "camp_staff"
    __table_args__ = (UniqueConstraint("camp_id", "user_id", name="uq_camp_staff_camp_user"),)

    id = Column(Integer, primary_key=True, index=True)
    camp_id = Column(Integer, ForeignKey("camps.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    role = Column(String(30), nullable=False)  # manager, coach, volunteer
    created_at = Column(DateTime, server_default=func.now())

    camp = relationship("Camp", back_populates="staff")
    user = relationship("User")


class Registration(Base):
    __tablename__ = "registrations"

    id = Column(Integer, primary_key=True, index=True)
    camp_id = Column(Integer, ForeignKey("camps.id"), nullable=False, index=True)
    child_id = Column(Integer, ForeignKey("children.id"), nullable=False, index=True)
    paid = Column(Boolean, default=False, nullable=False)
    waitlisted = Column(Boolean, default=False, nullable=False)
    status = Column(String(20), default="active", nullable=False)  # active, cancelled
    registered_at = Column(DateTime, default=utcnow, nullable=False)
    cancelled_at = Column(DateTime, nullable=True)

    camp = relationship("Camp", back_populates="registrations")
    child = relationship("Child", back_populates="registrations")


class Document(Base):
    __tablename__ = "documents"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    content = Column(Text, nullable=True)
    type = Column(String(30), nullable=False)  # waiver, agreement, consent, policy, custom
    status = Column(String(20), default="draft", nullable=False)  # draft, active, inactive, archived
    version = Column(Integer, default=1, nullable=False)
    hash = Column(String(64), nullable=True)  # SHA-256 of content
    file_url = Column(String(500), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    organization = relationship("Organization", back_populates="documents")
    author = relationship("User")
    fields = relationship(
        "DocumentField",
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="DocumentField.page_number, DocumentField.order_index, DocumentField.id",
    )
    signature_requests = relationship(
        "SignatureRequest", back_populates="document", cascade="all, delete-orphan"
    )
    audit_logs = relationship(
        "DocumentAuditTrail", back_populates="document", cascade="all, delete-orphan"
    )
    camp_agreements = relationship(
        "CampDocumentAgreement", back_populates="document", cascade="all, delete-orphan"
    )


class DocumentField(Base):
    __tablename__ = "document_fields"

    id = Column(Integer, primary_key=True, index=True)
    document_id = Column(Integer, ForeignKey("documents.id"), nullable=False, index=True)
    label = Column(String(255), nullable=False)
    field_type = Column(String(30), nullable=False)  # signature, initial, date, text, checkbox, dynamic_field
    data_source = Column(String(50), nullable=True)  # only for dynamic_field
    required = Column(Boolean, default=True, nullable=False)
    page_number = Column(Integer, default=1, nullable=False)
    x_position = Column(Integer, default=0, nullable=False)
    y_position = Column(Integer, default=0, nullable=False)
    width = Column(Integer, default=200, nullable=False)
    height = Column(Integer, default=50, nullable=False)
    order_index = Column(Integer, default=0, nullable=False)
    default_value = Column(Text, nullable=True)
    placeholder = Column(String(255), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    document = relationship("Document", back_populates="fields")


class SignatureRequest(Base):
    __tablename__ = "signature_requests"

    id = Column(Integer, primary_key=True, index=True)
    document_id = Column(Integer, ForeignKey("documents.id"), nullable=False, index=True)
    requested_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    requested_for_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    requested_for_email = Column(String(255), nullable=True, index=True)
    camp_id = Column(Integer, ForeignKey("camps.id"), nullable=True)
    registration_id = Column(Integer, ForeignKey("registrations.id"), nullable=True)
    status = Column(String(20), default="pending", nullable=False)  # pending, signed, declined, expired, revoked
    token = Column(String(36), unique=True, index=True, nullable=False, default=generate_token)
    expires_at = Column(DateTime, nullable=True)
    message = Column(Text, nullable=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(Text, nullable=True)
    viewed_at = Column(DateTime, nullable=True)
    signed_at = Column(DateTime, nullable=True)
    reminder_sent_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    document = relationship("Document", back_populates="signature_requests")
    requester = relationship("User", foreign_keys=[requested_by])
    requested_for = relationship("User", foreign_keys=[requested_for_id])
    camp = relationship("Camp")
    registration = relationship("Registration")
    signature = relationship(
        "Signature", back_populates="signature_request", uselist=False, cascade="all, delete-orphan"
    )


class Signature(Base):
    __tablename__ = "signatures"

    id = Column(Integer, primary_key=True, index=True)
    signature_request_id = Column(
        Integer, ForeignKey("signature_requests.id"), unique=True, nullable=False
    )
    signature_data = Column(Text, nullable=False)  # Base64 image or typed name
    field_values = Column(JSON, default=dict, nullable=False)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(Text, nullable=True)
    document_hash = Column(String(64), nullable=True)  # document hash at signing time
    signature_hash = Column(String(64), nullable=False)
    signed_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    signature_request = relationship("SignatureRequest", back_populates="signature")


class DocumentAuditTrail(Base):
    __tablename__ = "document_audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    document_id = Column(Integer, ForeignKey("documents.id"), nullable=False, index=True)
    signature_request_id = Column(Integer, ForeignKey("signature_requests.id"), nullable=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    action = Column(String(30), nullable=False)  # created, viewed, signed, declined, revoked, expired, reminder_sent
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(Text, nullable=True)
    details = Column(JSON, nullable=True)
    timestamp = Column(DateTime, default=utcnow, nullable=False)

    document = relationship("Document", back_populates="audit_logs")
    signature_request = relationship("SignatureRequest")


class CampDocumentAgreement(Base):
    __tablename__ = "camp_document_agreements"
    __table_args__ = (
        UniqueConstraint("camp_id", "document_id", name="uq_camp_document_agreement"),
    )

    id = Column(Integer, primary_key=True, index=True)
    camp_id = Column(Integer, ForeignKey("camps.id"), nullable=False, index=True)
    document_id = Column(Integer, ForeignKey("documents.id"), nullable=False, index=True)
    required = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    camp = relationship("Camp", back_populates="document_agreements")
    document = relationship("Document", back_populates="camp_agreements")


class SubscriptionPlan(Base):
    __tablename__ = "subscription_plans"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    price_monthly = Column(Integer, default=0, nullable=False)  # cents
    price_yearly = Column(Integer, default=0, nullable=False)  # cents
    max_camps = Column(Integer, nullable=True)  # None = unlimited
    max_athletes = Column(Integer, nullable=True)
    features = Column(JSON, default=list, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
