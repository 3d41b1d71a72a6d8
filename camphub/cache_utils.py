"""
Cache-aside readers and invalidation helpers for camp and organization data.

Readers return plain JSON-compatible dicts whether the value came from Redis
or the database, so callers never see a difference between a hit and a miss.
Invalidation must run after the write it covers has been committed.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session, selectinload

from .cache import CacheTTL, cache, get_cache_key, get_list_cache_key
from .domain.camps.repository import CampRepository
from .domain.camps.schemas import CampResponse
from .domain.organizations.schemas import OrganizationResponse
from .domain.registrations.schemas import RegistrationResponse
from .models import Organization, Registration

logger = logging.getLogger(__name__)

CAMP_LIST_FILTERS = ("organization_id", "include_deleted", "visibility", "status", "type", "search")


def serialize_camp(camp) -> dict:
    return CampResponse.model_validate(camp).model_dump(mode="json")


# ============================================================================
# CACHE-ASIDE READERS
# ============================================================================


def get_cached_camp(db: Session, camp_id: int) -> Optional[dict]:
    """Camp with schedules; missing camps are not cached"""
    key = get_cache_key("camp", camp_id)
    cached = cache.get(key)
    if cached is not None:
        return cached

    camp = CampRepository.get_camp(db, camp_id)
    if not camp:
        return None

    data = serialize_camp(camp)
    cache.set(key, data, CacheTTL.MEDIUM)
    return data


def get_cached_camps(
    db: Session, filters: Optional[dict] = None, page: int = 1, page_size: int = 20
) -> list[dict]:
    """
    Filtered camp list.

    Supported filters: organization_id, include_deleted, visibility, status
    (active/upcoming/past/cancelled), type and search. Time-sensitive and
    free-text queries get the short TTL.
    """
    filters = {name: value for name, value in (filters or {}).items() if name in CAMP_LIST_FILTERS}
    filters.setdefault("include_deleted", False)

    key = get_list_cache_key("camps", filters, page, page_size)
    cached = cache.get(key)
    if cached is not None:
        return cached

    camps = CampRepository.list_camps(
        db,
        organization_id=filters.get("organization_id"),
        include_deleted=bool(filters.get("include_deleted")),
        visibility=filters.get("visibility"),
        status=filters.get("status"),
        camp_type=filters.get("type"),
        search=filters.get("search"),
        page=page,
        page_size=page_size,
    )
    data = [serialize_camp(camp) for camp in camps]

    ttl = CacheTTL.SHORT if filters.get("status") or filters.get("search") else CacheTTL.MEDIUM
    cache.set(key, data, ttl)
    return data


def get_cached_org_camps(
    db: Session, organization_id: int, include_deleted: bool = False, page: int = 1, page_size: int = 100
) -> list[dict]:
    """Every camp of one organization, regardless of visibility"""
    filters = {"organization_id": organization_id, "include_deleted": include_deleted}
    key = get_list_cache_key("organization:camps", filters, page, page_size)
    cached = cache.get(key)
    if cached is not None:
        return cached

    camps = CampRepository.list_camps(
        db,
        organization_id=organization_id,
        include_deleted=include_deleted,
        page=page,
        page_size=page_size,
    )
    data = [serialize_camp(camp) for camp in camps]
    cache.set(key, data, CacheTTL.MEDIUM)
    return data


def get_cached_organization(db: Session, organization_id: int) -> Optional[dict]:
    key = get_cache_key("organization", organization_id)
    cached = cache.get(key)
    if cached is not None:
        return cached

    organization = db.query(Organization).filter(Organization.id == organization_id).first()
    if not organization:
        return None

    data = OrganizationResponse.model_validate(organization).model_dump(mode="json")
    cache.set(key, data, CacheTTL.LONG)
    return data


def get_cached_camp_registrations(db: Session, camp_id: int) -> list[dict]:
    """All registrations of a camp with child summaries; an empty list is cached too"""
    key = get_cache_key("camp", camp_id, "registrations")
    cached = cache.get(key)
    if cached is not None:
        return cached

    registrations = (
        db.query(Registration)
        .options(selectinload(Registration.child))
        .filter(Registration.camp_id == camp_id)
        .order_by(Registration.registered_at.asc(), Registration.id.asc())
        .all()
    )
    data = [
        RegistrationResponse.model_validate(registration).model_dump(mode="json")
        for registration in registrations
    ]
    cache.set(key, data, CacheTTL.SHORT)
    return data


# ============================================================================
# INVALIDATION
# ============================================================================


def invalidate_camp_caches(camp_id: int) -> None:
    cache.delete(get_cache_key("camp", camp_id))
    cache.delete(get_cache_key("camp", camp_id, "registrations"))
    cache.delete_pattern("camps:list:*")
    cache.delete_pattern("organization:camps:list:*")
    logger.info(f"🧹 Invalidated caches for camp {camp_id}")


def invalidate_camp_registrations_cache(camp_id: int) -> None:
    cache.delete(get_cache_key("camp", camp_id, "registrations"))


def invalidate_organization_caches(organization_id: int) -> None:
    """Drop the organization record and every camp list filtered by it"""
    cache.delete(get_cache_key("organization", organization_id))
    # organization_id sorts in the middle or at the end of the filter string
    token = f"organization_id={organization_id}"
    cache.delete_pattern(f"camps:list:*{token}&*")
    cache.delete_pattern(f"camps:list:*{token}:*")
    cache.delete_pattern(f"organization:camps:list:*{token}&*")
    cache.delete_pattern(f"organization:camps:list:*{token}:*")
    logger.info(f"🧹 Invalidated caches for organization {organization_id}")
