"""
Dynamic field population.

A dynamic_field names a data source (athlete_name, camp_dates, ...) instead of
asking the signer to type a value. Values are resolved from the registration
the request belongs to: the registered child is the athlete, the child's
parent is the parent, and the registration's camp is the camp. Requests made
outside a registration fall back to the requested-for user and the request's
camp_id.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Iterable, Optional

from sqlalchemy.orm import Session

from ...models import Camp, Child, SignatureRequest, User
from .repository import DocumentRepository

logger = logging.getLogger(__name__)


def format_date(value: Optional[datetime]) -> Optional[str]:
    return value.strftime("%Y-%m-%d") if value else None


def format_list(values: Optional[Iterable[Any]]) -> Optional[str]:
    if not values:
        return None
    return ", ".join(str(value) for value in values if value not in (None, ""))


def format_gender(value: Optional[str]) -> Optional[str]:
    return value.replace("_", " ").title() if value else None


def format_camp_dates(camp: Camp) -> Optional[str]:
    if not camp.start_date or not camp.end_date:
        return None
    return f"{camp.start_date.strftime('%b %d, %Y')} - {camp.end_date.strftime('%b %d, %Y')}"


def format_camp_location(camp: Camp) -> Optional[str]:
    if camp.is_virtual:
        return "Virtual"
    state_zip = " ".join(part for part in (camp.state, camp.zip_code) if part)
    parts = [part for part in (camp.street_address, camp.city, state_zip) if part]
    return ", ".join(parts) or None


ATHLETE_SOURCES: dict[str, Callable[[Child], Optional[str]]] = {
    "athlete_name": lambda child: child.full_name,
    "athlete_dob": lambda child: format_date(child.date_of_birth),
    "athlete_gender": lambda child: format_gender(child.gender),
    "athlete_emergency_contact": lambda child: child.emergency_contact,
    "athlete_emergency_phone": lambda child: child.emergency_phone,
    "athlete_emergency_relation": lambda child: child.emergency_relation,
    "athlete_allergies": lambda child: format_list(child.allergies),
    "athlete_medical_conditions": lambda child: format_list(child.medical_conditions),
    "athlete_medications": lambda child: format_list(child.medications),
    "athlete_special_needs": lambda child: child.special_needs,
    "athlete_jersey_size": lambda child: child.jersey_size,
    "athlete_shoe_size": lambda child: child.shoe_size,
}

PARENT_SOURCES: dict[str, Callable[[User], Optional[str]]] = {
    "parent_name": lambda parent: parent.display_name,
    "parent_email": lambda parent: parent.email,
    "parent_phone": lambda parent: parent.phone_number,
}

CAMP_SOURCES: dict[str, Callable[[Camp], Optional[str]]] = {
    "camp_name": lambda camp: camp.name,
    "camp_dates": format_camp_dates,
    "camp_location": format_camp_location,
}


def resolve_context(
    db: Session, signature_request: SignatureRequest
) -> tuple[Optional[Child], Optional[User], Optional[Camp]]:
    """Find the (athlete, parent, camp) a request is about"""
    athlete = parent = camp = None

    registration = DocumentRepository.get_registration(db, signature_request.registration_id)
    if registration:
        athlete = registration.child
        camp = registration.camp
        if athlete:
            parent = DocumentRepository.get_user(db, athlete.parent_id)

    if parent is None:
        parent = DocumentRepository.get_user(db, signature_request.requested_for_id)
    if camp is None:
        camp = DocumentRepository.get_camp(db, signature_request.camp_id)

    return athlete, parent, camp


def populate_dynamic_fields(
    db: Session, signature_request: SignatureRequest, data_sources: Iterable[str]
) -> dict[str, str]:
    """
    Resolve each requested data source to display text.

    Sources that cannot be resolved, or resolve to an empty value, are left
    out of the result rather than mapped to a placeholder.
    """
    sources = {source for source in data_sources if source}
    if not sources:
        return {}

    athlete, parent, camp = resolve_context(db, signature_request)
    lookups = (
        (athlete, ATHLETE_SOURCES),
        (parent, PARENT_SOURCES),
        (camp, CAMP_SOURCES),
    )

    values: dict[str, str] = {}
    for source in sources:
        for subject, resolvers in lookups:
            if source in resolvers:
                if subject is not None:
                    value = resolvers[source](subject)
                    if value not in (None, ""):
                        values[source] = str(value)
                break
        else:
            logger.warning(f"⚠️ Unknown dynamic data source: {source}")

    return values
