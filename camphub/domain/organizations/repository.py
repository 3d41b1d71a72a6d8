"""Organization repository - Database operations for organizations and their staff"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import STAFF_ROLES, Organization, User


class OrganizationRepository:
    """Repository for organization database operations"""

    @staticmethod
    def get_organization(db: Session, organization_id: int) -> Optional[Organization]:
        return db.query(Organization).filter(Organization.id == organization_id).first()

    @staticmethod
    def update_organization(db: Session, organization: Organization, **updates) -> Organization:
        for key, value in updates.items():
            setattr(organization, key, value)
        db.commit()
        db.refresh(organization)
        return organization

    @staticmethod
    def list_staff(db: Session, organization_id: int) -> list[User]:
        return (
            db.query(User)
            .filter(User.organization_id == organization_id, User.role.in_(STAFF_ROLES))
            .order_by(User.id.asc())
            .all()
        )

    @staticmethod
    def username_exists(db: Session, username: str) -> bool:
        return db.query(User.id).filter(User.username == username).first() is not None

    @staticmethod
    def create_user(db: Session, **data) -> User:
        user = User(**data)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
