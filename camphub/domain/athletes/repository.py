"""Athlete repository - Database operations for children"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Child, Registration, SignatureRequest


class AthleteRepository:
    """Repository for child database operations"""

    @staticmethod
    def get_child_for_parent(db: Session, child_id: int, parent_id: int) -> Optional[Child]:
        return (
            db.query(Child).filter(Child.id == child_id, Child.parent_id == parent_id).first()
        )

    @staticmethod
    def list_children(db: Session, parent_id: int) -> list[Child]:
        return (
            db.query(Child)
            .filter(Child.parent_id == parent_id)
            .order_by(Child.full_name.asc(), Child.id.asc())
            .all()
        )

    @staticmethod
    def create_child(db: Session, parent_id: int, **data) -> Child:
        child = Child(parent_id=parent_id, **data)
        db.add(child)
        db.commit()
        db.refresh(child)
        return child

    @staticmethod
    def update_child(db: Session, child: Child, **updates) -> Child:
        for key, value in updates.items():
            setattr(child, key, value)
        db.commit()
        db.refresh(child)
        return child

    @staticmethod
    def delete_child(db: Session, child: Child) -> None:
        """Delete a child along with its (cancelled) registration history"""
        registration_ids = [
            row.id for row in db.query(Registration.id).filter(Registration.child_id == child.id)
        ]
        if registration_ids:
            # Signed agreements outlive the registration they were collected for
            db.query(SignatureRequest).filter(
                SignatureRequest.registration_id.in_(registration_ids)
            ).update({SignatureRequest.registration_id: None}, synchronize_session=False)
            db.query(Registration).filter(Registration.id.in_(registration_ids)).delete(
                synchronize_session=False
            )
        db.expire(child, ["registrations"])
        db.delete(child)
        db.commit()

    @staticmethod
    def count_active_registrations(db: Session, child_id: int) -> int:
        return (
            db.query(Registration)
            .filter(Registration.child_id == child_id, Registration.status == "active")
            .count()
        )
