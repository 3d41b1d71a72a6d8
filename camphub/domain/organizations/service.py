"""Organization service - Profile, staff accounts and cached camp listings"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...auth import is_org_admin, is_org_staff
from ...cache_utils import (
    get_cached_org_camps,
    get_cached_organization,
    invalidate_organization_caches,
)
from ...models import Organization, User
from ...security_utils import hash_password
from ...utils.sanitization import sanitize_string
from .repository import OrganizationRepository
from .schemas import OrganizationUpdate, StaffMemberCreate

logger = logging.getLogger(__name__)


class OrganizationService:
    """Service layer for organization business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = OrganizationRepository()

    def get_organization(self, organization_id: int) -> dict:
        data = get_cached_organization(self.db, organization_id)
        if data is None:
            raise HTTPException(status_code=404, detail="Organization not found")
        return data

    def _get_for_admin(self, organization_id: int, user: User) -> Organization:
        organization = self.repo.get_organization(self.db, organization_id)
        if not organization:
            raise HTTPException(status_code=404, detail="Organization not found")
        if not is_org_admin(user, organization.id):
            raise HTTPException(
                status_code=403, detail="You don't have permission to manage this organization"
            )
        return organization

    def update_organization(
        self, organization_id: int, data: OrganizationUpdate, user: User
    ) -> Organization:
        organization = self._get_for_admin(organization_id, user)
        updates = data.model_dump(exclude_unset=True)
        if "name" in updates and updates["name"] is None:
            raise HTTPException(status_code=400, detail="Organization name cannot be empty")
        for name in ("name", "description", "mission"):
            if name in updates:
                updates[name] = sanitize_string(updates[name])

        organization = self.repo.update_organization(self.db, organization, **updates)
        invalidate_organization_caches(organization.id)
        return organization

    def list_staff(self, organization_id: int, user: User) -> list[User]:
        if not is_org_staff(user, organization_id):
            raise HTTPException(status_code=403, detail="Access denied")
        return self.repo.list_staff(self.db, organization_id)

    def create_staff_member(
        self, organization_id: int, data: StaffMemberCreate, user: User
    ) -> User:
        organization = self._get_for_admin(organization_id, user)
        if self.repo.username_exists(self.db, data.username):
            raise HTTPException(status_code=400, detail="Username already exists")

        member = self.repo.create_user(
            self.db,
            username=data.username,
            email=data.email,
            password_hash=hash_password(data.password),
            role=data.role,
            organization_id=organization.id,
            first_name=sanitize_string(data.first_name),
            last_name=sanitize_string(data.last_name),
            phone_number=data.phone_number,
        )
        logger.info(f"👥 Staff user {member.id} ({member.role}) added to organization {organization.id}")
        return member

    def list_camps(
        self, organization_id: int, user: Optional[User], include_deleted: bool = False
    ) -> list[dict]:
        self.get_organization(organization_id)
        # Deleted camps are only visible to the organization's own staff
        include_deleted = include_deleted and is_org_staff(user, organization_id)
        camps = get_cached_org_camps(self.db, organization_id, include_deleted=include_deleted)
        if is_org_staff(user, organization_id):
            return camps
        return [camp for camp in camps if camp["visibility"] == "public"]
