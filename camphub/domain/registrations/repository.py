"""Registration repository - Database operations for camp registrations"""

from typing import Optional

from sqlalchemy.orm import Session, selectinload

from ...models import Camp, Child, Registration


class RegistrationRepository:
    """Repository for registration database operations"""

    @staticmethod
    def get_registration(db: Session, registration_id: int) -> Optional[Registration]:
        return (
            db.query(Registration)
            .options(selectinload(Registration.child), selectinload(Registration.camp))
            .filter(Registration.id == registration_id)
            .first()
        )

    @staticmethod
    def get_camp(db: Session, camp_id: int) -> Optional[Camp]:
        return db.query(Camp).filter(Camp.id == camp_id).first()

    @staticmethod
    def get_child(db: Session, child_id: int) -> Optional[Child]:
        return db.query(Child).filter(Child.id == child_id).first()

    @staticmethod
    def get_active_registration(db: Session, camp_id: int, child_id: int) -> Optional[Registration]:
        return (
            db.query(Registration)
            .filter(
                Registration.camp_id == camp_id,
                Registration.child_id == child_id,
                Registration.status == "active",
            )
            .first()
        )

    @staticmethod
    def count_seated(db: Session, camp_id: int) -> int:
        """Active registrations holding a seat (waitlisted ones do not)"""
        return (
            db.query(Registration)
            .filter(
                Registration.camp_id == camp_id,
                Registration.status == "active",
                Registration.waitlisted.is_(False),
            )
            .count()
        )

    @staticmethod
    def get_next_waitlisted(db: Session, camp_id: int) -> Optional[Registration]:
        return (
            db.query(Registration)
            .filter(
                Registration.camp_id == camp_id,
                Registration.status == "active",
                Registration.waitlisted.is_(True),
            )
            .order_by(Registration.registered_at.asc(), Registration.id.asc())
            .first()
        )

    @staticmethod
    def create_registration(db: Session, **data) -> Registration:
        registration = Registration(**data)
        db.add(registration)
        db.commit()
        db.refresh(registration)
        return registration

    @staticmethod
    def list_for_parent(
        db: Session, parent_id: int, camp_id: Optional[int] = None
    ) -> list[Registration]:
        query = (
            db.query(Registration)
            .join(Child, Child.id == Registration.child_id)
            .options(selectinload(Registration.child))
            .filter(Child.parent_id == parent_id)
        )
        if camp_id is not None:
            query = query.filter(Registration.camp_id == camp_id)
        return query.order_by(Registration.registered_at.desc(), Registration.id.desc()).all()
