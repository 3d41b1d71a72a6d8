"""Camp repository - Database operations for camps and their schedules"""

from datetime import datetime
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from ...models import (
    Camp,
    CampDocumentAgreement,
    CampSchedule,
    CampStaff,
    Document,
    Registration,
    ScheduleException,
    User,
    utcnow,
)


class CampRepository:
    """Repository for camp database operations"""

    @staticmethod
    def get_camp(db: Session, camp_id: int) -> Optional[Camp]:
        return (
            db.query(Camp)
            .options(selectinload(Camp.schedules))
            .filter(Camp.id == camp_id)
            .first()
        )

    @staticmethod
    def list_camps(
        db: Session,
        organization_id: Optional[int] = None,
        include_deleted: bool = False,
        visibility: Optional[str] = None,
        status: Optional[str] = None,
        camp_type: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
        now: Optional[datetime] = None,
    ) -> list[Camp]:
        """List camps with filters, ordered by start date"""
        now = now or utcnow()
        query = db.query(Camp).options(selectinload(Camp.schedules))

        if organization_id is not None:
            query = query.filter(Camp.organization_id == organization_id)
        if not include_deleted:
            query = query.filter(Camp.is_deleted.is_(False))
        if visibility:
            query = query.filter(Camp.visibility == visibility)
        if camp_type:
            query = query.filter(Camp.type == camp_type)

        if status == "active":
            query = query.filter(
                Camp.is_cancelled.is_(False), Camp.start_date <= now, Camp.end_date >= now
            )
        elif status == "upcoming":
            query = query.filter(Camp.is_cancelled.is_(False), Camp.start_date > now)
        elif status == "past":
            query = query.filter(Camp.is_cancelled.is_(False), Camp.end_date < now)
        elif status == "cancelled":
            query = query.filter(Camp.is_cancelled.is_(True))

        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(
                    Camp.name.ilike(pattern),
                    Camp.description.ilike(pattern),
                    Camp.city.ilike(pattern),
                    Camp.state.ilike(pattern),
                )
            )

        return (
            query.order_by(Camp.start_date.asc(), Camp.id.asc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )

    @staticmethod
    def slug_exists(db: Session, slug: str) -> bool:
        return db.query(Camp.id).filter(Camp.slug == slug).first() is not None

    @staticmethod
    def create_camp(db: Session, schedules: list[dict], **camp_data) -> Camp:
        camp = Camp(**camp_data)
        camp.schedules = [CampSchedule(**schedule) for schedule in schedules]
        db.add(camp)
        db.commit()
        db.refresh(camp)
        return camp

    @staticmethod
    def update_camp(db: Session, camp: Camp, **updates) -> Camp:
        for key, value in updates.items():
            setattr(camp, key, value)
        db.commit()
        db.refresh(camp)
        return camp

    @staticmethod
    def replace_schedules(db: Session, camp: Camp, schedules: list[dict]) -> list[CampSchedule]:
        # Exceptions pointing at a removed schedule keep their own times
        old_ids = [schedule.id for schedule in camp.schedules]
        if old_ids:
            db.query(ScheduleException).filter(
                ScheduleException.original_schedule_id.in_(old_ids)
            ).update({ScheduleException.original_schedule_id: None}, synchronize_session=False)
        camp.schedules = [CampSchedule(**schedule) for schedule in schedules]
        db.commit()
        db.refresh(camp)
        return camp.schedules

    @staticmethod
    def count_active_registrations(db: Session, camp_id: int) -> int:
        return (
            db.query(Registration)
            .filter(
                Registration.camp_id == camp_id,
                Registration.status == "active",
                Registration.waitlisted.is_(False),
            )
            .count()
        )

    # Schedule exceptions

    @staticmethod
    def list_exceptions(db: Session, camp_id: int) -> list[ScheduleException]:
        return (
            db.query(ScheduleException)
            .filter(ScheduleException.camp_id == camp_id)
            .order_by(ScheduleException.exception_date.asc(), ScheduleException.id.asc())
            .all()
        )

    @staticmethod
    def get_exception(db: Session, camp_id: int, exception_id: int) -> Optional[ScheduleException]:
        return (
            db.query(ScheduleException)
            .filter(ScheduleException.id == exception_id, ScheduleException.camp_id == camp_id)
            .first()
        )

    @staticmethod
    def create_exception(db: Session, camp_id: int, **data) -> ScheduleException:
        exception = ScheduleException(camp_id=camp_id, **data)
        db.add(exception)
        db.commit()
        db.refresh(exception)
        return exception

    @staticmethod
    def update_exception(db: Session, exception: ScheduleException, **updates) -> ScheduleException:
        for key, value in updates.items():
            setattr(exception, key, value)
        db.commit()
        db.refresh(exception)
        return exception

    @staticmethod
    def delete_exception(db: Session, exception: ScheduleException) -> None:
        db.delete(exception)
        db.commit()

    # Staff

    @staticmethod
    def list_staff(db: Session, camp_id: int) -> list[CampStaff]:
        return (
            db.query(CampStaff)
            .options(selectinload(CampStaff.user))
            .filter(CampStaff.camp_id == camp_id)
            .order_by(CampStaff.id.asc())
            .all()
        )

    @staticmethod
    def get_staff_assignment(db: Session, camp_id: int, user_id: int) -> Optional[CampStaff]:
        return (
            db.query(CampStaff)
            .filter(CampStaff.camp_id == camp_id, CampStaff.user_id == user_id)
            .first()
        )

    @staticmethod
    def add_staff(db: Session, camp_id: int, user_id: int, role: str) -> CampStaff:
        assignment = CampStaff(camp_id=camp_id, user_id=user_id, role=role)
        db.add(assignment)
        db.commit()
        db.refresh(assignment)
        return assignment

    @staticmethod
    def remove_staff(db: Session, assignment: CampStaff) -> None:
        db.delete(assignment)
        db.commit()

    @staticmethod
    def get_user(db: Session, user_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    # Document agreements

    @staticmethod
    def list_agreements(db: Session, camp_id: int) -> list[CampDocumentAgreement]:
        return (
            db.query(CampDocumentAgreement)
            .options(selectinload(CampDocumentAgreement.document))
            .filter(CampDocumentAgreement.camp_id == camp_id)
            .order_by(CampDocumentAgreement.id.asc())
            .all()
        )

    @staticmethod
    def get_documents(db: Session, document_ids: list[int]) -> list[Document]:
        if not document_ids:
            return []
        return db.query(Document).filter(Document.id.in_(document_ids)).all()

    @staticmethod
    def replace_agreements(
        db: Session, camp: Camp, agreements: list[dict]
    ) -> list[CampDocumentAgreement]:
        # Delete first so re-adding a document does not trip the unique constraint
        db.query(CampDocumentAgreement).filter(CampDocumentAgreement.camp_id == camp.id).delete(
            synchronize_session=False
        )
        db.add_all(
            CampDocumentAgreement(
                camp_id=camp.id, document_id=item["document_id"], required=item["required"]
            )
            for item in agreements
        )
        db.commit()
        db.expire(camp, ["document_agreements"])
        return CampRepository.list_agreements(db, camp.id)
