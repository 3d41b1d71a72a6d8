"""Document repository - Database operations for documents, fields, signature requests and audit rows"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, selectinload

from ...models import (
    Camp,
    CampDocumentAgreement,
    Document,
    DocumentAuditTrail,
    DocumentField,
    Registration,
    Signature,
    SignatureRequest,
    User,
)
from ...shared.validators import validate_uuid


class DocumentRepository:
    """Repository for document database operations"""

    # Documents

    @staticmethod
    def get_document(db: Session, document_id: int) -> Optional[Document]:
        return db.query(Document).filter(Document.id == document_id).first()

    @staticmethod
    def list_documents(db: Session, organization_id: int) -> list[Document]:
        return (
            db.query(Document)
            .filter(Document.organization_id == organization_id)
            .order_by(Document.created_at.desc(), Document.id.desc())
            .all()
        )

    @staticmethod
    def create_document(db: Session, **data) -> Document:
        document = Document(**data)
        db.add(document)
        db.commit()
        db.refresh(document)
        return document

    @staticmethod
    def update_document(db: Session, document: Document, **updates) -> Document:
        for key, value in updates.items():
            setattr(document, key, value)
        db.commit()
        db.refresh(document)
        return document

    @staticmethod
    def delete_document(db: Session, document: Document) -> None:
        db.delete(document)
        db.commit()

    # Fields

    @staticmethod
    def get_field(db: Session, field_id: int) -> Optional[DocumentField]:
        return db.query(DocumentField).filter(DocumentField.id == field_id).first()

    @staticmethod
    def list_fields(db: Session, document_id: int) -> list[DocumentField]:
        return (
            db.query(DocumentField)
            .filter(DocumentField.document_id == document_id)
            .order_by(
                DocumentField.page_number.asc(),
                DocumentField.order_index.asc(),
                DocumentField.id.asc(),
            )
            .all()
        )

    @staticmethod
    def create_field(db: Session, document_id: int, **data) -> DocumentField:
        field = DocumentField(document_id=document_id, **data)
        db.add(field)
        db.commit()
        db.refresh(field)
        return field

    @staticmethod
    def update_field(db: Session, field: DocumentField, **updates) -> DocumentField:
        for key, value in updates.items():
            setattr(field, key, value)
        db.commit()
        db.refresh(field)
        return field

    @staticmethod
    def delete_field(db: Session, field: DocumentField) -> None:
        db.delete(field)
        db.commit()

    # Signature requests

    @staticmethod
    def get_signature_request(db: Session, request_id: int) -> Optional[SignatureRequest]:
        return db.query(SignatureRequest).filter(SignatureRequest.id == request_id).first()

    @staticmethod
    def get_signature_request_by_token(db: Session, token: str) -> Optional[SignatureRequest]:
        # tokens are uuid4 strings
        if not validate_uuid(token):
            return None
        return db.query(SignatureRequest).filter(SignatureRequest.token == token).first()

    @staticmethod
    def list_signature_requests(
        db: Session,
        document_id: int,
        recipient_id: Optional[int] = None,
        recipient_email: Optional[str] = None,
    ) -> list[SignatureRequest]:
        query = db.query(SignatureRequest).filter(SignatureRequest.document_id == document_id)
        if recipient_id is not None or recipient_email is not None:
            query = query.filter(_addressed_to(recipient_id, recipient_email))
        return query.order_by(SignatureRequest.created_at.desc(), SignatureRequest.id.desc()).all()

    @staticmethod
    def list_requests_for_user(db: Session, user: User) -> list[SignatureRequest]:
        return (
            db.query(SignatureRequest)
            .options(selectinload(SignatureRequest.document))
            .filter(_addressed_to(user.id, user.email))
            .order_by(SignatureRequest.created_at.desc(), SignatureRequest.id.desc())
            .all()
        )

    @staticmethod
    def list_overdue_requests(db: Session, now: datetime) -> list[SignatureRequest]:
        return (
            db.query(SignatureRequest)
            .filter(
                SignatureRequest.status == "pending",
                SignatureRequest.expires_at.isnot(None),
                SignatureRequest.expires_at < now,
            )
            .all()
        )

    @staticmethod
    def add_signature_request(db: Session, **data) -> SignatureRequest:
        """Stage a request in the session; the caller commits"""
        signature_request = SignatureRequest(**data)
        db.add(signature_request)
        db.flush()
        return signature_request

    # Signatures

    @staticmethod
    def get_signature(db: Session, signature_id: int) -> Optional[Signature]:
        return db.query(Signature).filter(Signature.id == signature_id).first()

    @staticmethod
    def add_signature(db: Session, **data) -> Signature:
        signature = Signature(**data)
        db.add(signature)
        db.flush()
        return signature

    # Audit trail

    @staticmethod
    def add_audit_entry(
        db: Session,
        document_id: int,
        action: str,
        signature_request_id: Optional[int] = None,
        user_id: Optional[int] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        details: Optional[dict] = None,
    ) -> DocumentAuditTrail:
        """Stage an audit row in the session; it is committed with the change it records"""
        entry = DocumentAuditTrail(
            document_id=document_id,
            action=action,
            signature_request_id=signature_request_id,
            user_id=user_id,
            ip_address=ip_address,
            user_agent=user_agent,
            details=details,
        )
        db.add(entry)
        return entry

    @staticmethod
    def list_audit_trail(db: Session, document_id: int) -> list[DocumentAuditTrail]:
        return (
            db.query(DocumentAuditTrail)
            .filter(DocumentAuditTrail.document_id == document_id)
            .order_by(DocumentAuditTrail.timestamp.asc(), DocumentAuditTrail.id.asc())
            .all()
        )

    # Lookups used for dynamic field population and notifications

    @staticmethod
    def get_user(db: Session, user_id: Optional[int]) -> Optional[User]:
        if user_id is None:
            return None
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get_camp(db: Session, camp_id: Optional[int]) -> Optional[Camp]:
        if camp_id is None:
            return None
        return db.query(Camp).filter(Camp.id == camp_id).first()

    @staticmethod
    def list_required_agreement_documents(db: Session, camp_id: int) -> list[Document]:
        """Active documents a camp requires every registrant to sign"""
        return (
            db.query(Document)
            .join(CampDocumentAgreement, CampDocumentAgreement.document_id == Document.id)
            .filter(
                CampDocumentAgreement.camp_id == camp_id,
                CampDocumentAgreement.required.is_(True),
                Document.status == "active",
            )
            .order_by(CampDocumentAgreement.id.asc())
            .all()
        )

    @staticmethod
    def get_registration(db: Session, registration_id: Optional[int]) -> Optional[Registration]:
        if registration_id is None:
            return None
        return (
            db.query(Registration)
            .options(selectinload(Registration.child), selectinload(Registration.camp))
            .filter(Registration.id == registration_id)
            .first()
        )


def _addressed_to(recipient_id: Optional[int], recipient_email: Optional[str]):
    conditions = []
    if recipient_id is not None:
        conditions.append(SignatureRequest.requested_for_id == recipient_id)
    if recipient_email:
        conditions.append(
            func.lower(SignatureRequest.requested_for_email) == recipient_email.lower()
        )
    return or_(*conditions)
