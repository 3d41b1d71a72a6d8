"""Document service - Business logic for documents and the signature request lifecycle"""

import logging
from datetime import datetime, timedelta
from typing import Any, Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...auth import is_org_admin, is_org_staff
from ...config import SIGNATURE_REQUEST_EXPIRY_DAYS
from ...email_service import (
    send_document_declined_email,
    send_document_signed_email,
    send_signature_request_email,
)
from ...models import (
    Document,
    DocumentAuditTrail,
    DocumentField,
    Registration,
    Signature,
    SignatureRequest,
    User,
    utcnow,
)
from ...security_utils import sha256_hex
from ...utils.sanitization import sanitize_string
from .field_population import populate_dynamic_fields
from .repository import DocumentRepository
from .schemas import (
    DocumentCreate,
    DocumentFieldCreate,
    DocumentFieldUpdate,
    DocumentUpdate,
    SignatureRequestCreate,
    SignRequest,
    SignatureVerification,
    TokenView,
    UserSignatureRequestResponse,
)
from .signing import compute_signature_hash, verify_signature_hash

logger = logging.getLogger(__name__)

# Field types the signer fills in by hand; signature is the request body itself
# and dynamic fields are populated from registration data
INPUT_FIELD_TYPES = ("text", "date", "checkbox", "initial")
REQUIRED_FIELD_COLUMNS = (
    "label",
    "field_type",
    "required",
    "page_number",
    "x_position",
    "y_position",
    "width",
    "height",
    "order_index",
)


def field_key(field: DocumentField) -> str:
    return f"field_{field.id}"


def _is_blank(value: Any) -> bool:
    if value is None or value is False:
        return True
    return isinstance(value, str) and not value.strip()


class DocumentService:
    """Service layer for documents, their fields and the audit trail"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = DocumentRepository()

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    def _get_document(self, document_id: int) -> Document:
        document = self.repo.get_document(self.db, document_id)
        if not document:
            raise HTTPException(status_code=404, detail="Document not found")
        return document

    def get_document_for_staff(self, document_id: int, user: User) -> Document:
        document = self._get_document(document_id)
        if not is_org_staff(user, document.organization_id):
            raise HTTPException(status_code=403, detail="Access denied")
        return document

    def get_document_for_admin(self, document_id: int, user: User) -> Document:
        document = self._get_document(document_id)
        if not is_org_admin(user, document.organization_id):
            raise HTTPException(status_code=403, detail="Access denied")
        return document

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def list_documents(self, user: User) -> list[Document]:
        if not user.organization_id:
            raise HTTPException(status_code=400, detail="User has no organization")
        return self.repo.list_documents(self.db, user.organization_id)

    def create_document(self, data: DocumentCreate, user: User) -> Document:
        if not user.organization_id:
            raise HTTPException(status_code=400, detail="User has no organization")

        content = sanitize_string(data.content)
        document = self.repo.create_document(
            self.db,
            organization_id=user.organization_id,
            author_id=user.id,
            title=sanitize_string(data.title),
            description=sanitize_string(data.description),
            content=content,
            type=data.type,
            status=data.status,
            version=1,
            hash=sha256_hex(content),
            file_url=data.file_url,
        )
        logger.info(f"📝 Document {document.id} created by user {user.id}")
        return document

    def update_document(self, document_id: int, data: DocumentUpdate, user: User) -> Document:
        document = self.get_document_for_admin(document_id, user)

        updates: dict[str, Any] = {}
        if data.title is not None:
            updates["title"] = sanitize_string(data.title)
        if data.description is not None:
            updates["description"] = sanitize_string(data.description)
        if data.status is not None:
            updates["status"] = data.status
        if data.file_url is not None:
            updates["file_url"] = data.file_url
        if data.content is not None:
            content = sanitize_string(data.content)
            if content != document.content:
                updates["content"] = content
                updates["hash"] = sha256_hex(content)
                updates["version"] = document.version + 1

        return self.repo.update_document(self.db, document, **updates)

    def delete_document(self, document_id: int, user: User) -> None:
        document = self.get_document_for_admin(document_id, user)
        self.repo.delete_document(self.db, document)
        logger.info(f"🗑️ Document {document_id} deleted by user {user.id}")

    # ------------------------------------------------------------------
    # Fields
    # ------------------------------------------------------------------

    def list_fields(self, document_id: int, user: User) -> list[DocumentField]:
        document = self._get_document(document_id)
        if not is_org_staff(user, document.organization_id):
            # Signers may see the layout of documents they were asked to sign
            addressed = self.repo.list_signature_requests(
                self.db, document.id, recipient_id=user.id, recipient_email=user.email
            )
            if user.role != "parent" or not addressed:
                raise HTTPException(status_code=403, detail="Access denied")
        return self.repo.list_fields(self.db, document.id)

    @staticmethod
    def _check_data_source(field_type: str, data_source: Optional[str]) -> None:
        if field_type == "dynamic_field" and not data_source:
            raise HTTPException(status_code=400, detail="Dynamic fields require a data source")
        if field_type != "dynamic_field" and data_source:
            raise HTTPException(
                status_code=400, detail="Only dynamic fields can have a data source"
            )

    def create_field(
        self, document_id: int, data: DocumentFieldCreate, user: User
    ) -> DocumentField:
        document = self.get_document_for_admin(document_id, user)
        self._check_data_source(data.field_type, data.data_source)

        values = data.model_dump()
        values["label"] = sanitize_string(values["label"])
        values["placeholder"] = sanitize_string(values["placeholder"])
        values["default_value"] = sanitize_string(values["default_value"])
        return self.repo.create_field(self.db, document.id, **values)

    def _get_field_for_admin(self, field_id: int, user: User) -> DocumentField:
        field = self.repo.get_field(self.db, field_id)
        if not field:
            raise HTTPException(status_code=404, detail="Field not found")
        if not is_org_admin(user, field.document.organization_id):
            raise HTTPException(status_code=403, detail="Access denied")
        return field

    def update_field(self, field_id: int, data: DocumentFieldUpdate, user: User) -> DocumentField:
        field = self._get_field_for_admin(field_id, user)

        updates = data.model_dump(exclude_unset=True)
        for name in REQUIRED_FIELD_COLUMNS:
            if name in updates and updates[name] is None:
                raise HTTPException(status_code=400, detail=f"{name} cannot be empty")
        field_type = updates.get("field_type") or field.field_type
        if field_type != "dynamic_field" and "data_source" not in updates:
            # Switching away from a dynamic field drops its source
            updates["data_source"] = None
        self._check_data_source(field_type, updates.get("data_source", field.data_source))

        for name in ("label", "placeholder", "default_value"):
            if name in updates:
                updates[name] = sanitize_string(updates[name])
        return self.repo.update_field(self.db, field, **updates)

    def delete_field(self, field_id: int, user: User) -> None:
        field = self._get_field_for_admin(field_id, user)
        self.repo.delete_field(self.db, field)

    # ------------------------------------------------------------------
    # Audit & verification
    # ------------------------------------------------------------------

    def get_audit_trail(self, document_id: int, user: User) -> list[DocumentAuditTrail]:
        document = self.get_document_for_staff(document_id, user)
        return self.repo.list_audit_trail(self.db, document.id)

    def verify_signature(self, signature_id: int, user: User) -> SignatureVerification:
        signature = self.repo.get_signature(self.db, signature_id)
        if not signature:
            raise HTTPException(status_code=404, detail="Signature not found")

        signature_request = signature.signature_request
        if not is_org_staff(user, signature_request.document.organization_id):
            raise HTTPException(status_code=403, detail="Access denied")

        valid = verify_signature_hash(signature, signature_request)
        if not valid:
            logger.warning(f"⚠️ Signature {signature.id} failed integrity verification")
        return SignatureVerification(
            signature_id=signature.id,
            signature_request_id=signature.signature_request_id,
            valid=valid,
            signature_hash=signature.signature_hash,
        )


class SignatureRequestService:
    """
    Service layer for the signature request lifecycle.

    pending -> signed | declined | expired | revoked; every target state is
    terminal and every transition commits together with one audit row.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = DocumentRepository()
        self.documents = DocumentService(db)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def default_expiry(now: Optional[datetime] = None) -> Optional[datetime]:
        if SIGNATURE_REQUEST_EXPIRY_DAYS <= 0:
            return None
        return (now or utcnow()) + timedelta(days=SIGNATURE_REQUEST_EXPIRY_DAYS)

    def _audit(
        self,
        signature_request: SignatureRequest,
        action: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        user_id: Optional[int] = None,
        details: Optional[dict] = None,
    ) -> None:
        self.repo.add_audit_entry(
            self.db,
            document_id=signature_request.document_id,
            action=action,
            signature_request_id=signature_request.id,
            user_id=user_id,
            ip_address=ip_address,
            user_agent=user_agent,
            details=details,
        )

    def ensure_signable(
        self,
        signature_request: SignatureRequest,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> None:
        """
        Raise unless the request can still change state.

        A pending request found past its expiry is moved to expired (and
        committed) before the 410 is raised.
        """
        if (
            signature_request.status == "pending"
            and signature_request.expires_at is not None
            and signature_request.expires_at < utcnow()
        ):
            signature_request.status = "expired"
            signature_request.ip_address = ip_address
            signature_request.user_agent = user_agent
            self._audit(signature_request, "expired", ip_address, user_agent)
            self.db.commit()
            logger.info(f"⌛ Signature request {signature_request.id} expired on access")
            raise HTTPException(status_code=410, detail="This signature request has expired")

        if signature_request.status == "expired":
            raise HTTPException(status_code=410, detail="This signature request has expired")

        if signature_request.status != "pending":
            raise HTTPException(
                status_code=400,
                detail={
                    "error": f"This document has already been {signature_request.status}",
                    "status": signature_request.status,
                },
            )

    def _get_by_token_for_id(self, request_id: int, token: Optional[str]) -> SignatureRequest:
        signature_request = (
            self.repo.get_signature_request_by_token(self.db, token) if token else None
        )
        if not signature_request or signature_request.id != request_id:
            raise HTTPException(status_code=404, detail="Signature request not found")
        if not signature_request.document:
            raise HTTPException(status_code=404, detail="Document not found")
        return signature_request

    def _recipient(self, signature_request: SignatureRequest) -> tuple[Optional[str], str]:
        """(email, display name) of whoever is asked to sign"""
        user = signature_request.requested_for
        email = signature_request.requested_for_email or (user.email if user else None)
        name = user.display_name if user else (email or "there")
        return email, name

    async def notify_recipient(
        self, signature_request: SignatureRequest, is_reminder: bool = False
    ) -> bool:
        email, name = self._recipient(signature_request)
        if not email:
            logger.warning(f"⚠️ Signature request {signature_request.id} has no recipient email")
            return False

        document = signature_request.document
        try:
            await send_signature_request_email(
                to=email,
                recipient_name=name,
                organization_name=document.organization.name if document.organization else "CampHub",
                document_title=document.title,
                token=signature_request.token,
                message=signature_request.message,
                expires_at=signature_request.expires_at,
                is_reminder=is_reminder,
            )
            return True
        except Exception as e:
            logger.error(f"❌ Failed to send signature request {signature_request.id} email: {e}")
            return False

    async def _notify_requester(self, signature_request: SignatureRequest, outcome: str) -> None:
        requester = signature_request.requester
        if not requester or not requester.email:
            return

        _, signer_name = self._recipient(signature_request)
        sender = send_document_signed_email if outcome == "signed" else send_document_declined_email
        try:
            await sender(
                to=requester.email,
                requester_name=requester.display_name,
                signer_name=signer_name,
                document_title=signature_request.document.title,
            )
        except Exception as e:
            logger.error(
                f"❌ Failed to notify requester of {outcome} request {signature_request.id}: {e}"
            )

    # ------------------------------------------------------------------
    # Creation & listing
    # ------------------------------------------------------------------

    async def create_request(
        self,
        document_id: int,
        data: SignatureRequestCreate,
        user: User,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> SignatureRequest:
        document = self.documents.get_document_for_admin(document_id, user)

        if not data.requested_for_id and not data.requested_for_email:
            raise HTTPException(
                status_code=400, detail="Either requested_for_id or requested_for_email is required"
            )
        if document.status != "active":
            raise HTTPException(
                status_code=400, detail="Only active documents can be sent for signature"
            )

        recipient_email = data.requested_for_email
        if data.requested_for_id is not None:
            recipient = self.repo.get_user(self.db, data.requested_for_id)
            if not recipient:
                raise HTTPException(status_code=400, detail="Requested user not found")
            recipient_email = recipient_email or recipient.email

        camp_id = data.camp_id
        if data.registration_id is not None:
            registration = self.repo.get_registration(self.db, data.registration_id)
            if not registration or registration.camp.organization_id != document.organization_id:
                raise HTTPException(status_code=400, detail="Registration not found")
            if camp_id is not None and camp_id != registration.camp_id:
                raise HTTPException(
                    status_code=400, detail="Registration does not belong to this camp"
                )
            camp_id = registration.camp_id
        if camp_id is not None:
            camp = self.repo.get_camp(self.db, camp_id)
            if not camp or camp.organization_id != document.organization_id:
                raise HTTPException(status_code=400, detail="Camp not found")

        now = utcnow()
        if data.expires_at is not None and data.expires_at <= now:
            raise HTTPException(status_code=400, detail="Expiration date must be in the future")

        signature_request = self.repo.add_signature_request(
            self.db,
            document_id=document.id,
            requested_by=user.id,
            requested_for_id=data.requested_for_id,
            requested_for_email=recipient_email,
            camp_id=camp_id,
            registration_id=data.registration_id,
            status="pending",
            expires_at=data.expires_at or self.default_expiry(now),
            message=sanitize_string(data.message),
            ip_address=ip_address,
            user_agent=user_agent,
        )
        self._audit(
            signature_request,
            "created",
            ip_address,
            user_agent,
            user_id=user.id,
            details={
                "requested_for_id": data.requested_for_id,
                "requested_for_email": recipient_email,
            },
        )
        self.db.commit()
        self.db.refresh(signature_request)
        logger.info(
            f"✍️ Signature request {signature_request.id} created for document {document.id}"
        )

        await self.notify_recipient(signature_request)
        return signature_request

    def create_registration_requests(self, registration: Registration) -> list[SignatureRequest]:
        """Open a pending request for every active document the camp requires"""
        child = registration.child
        parent = self.repo.get_user(self.db, child.parent_id)
        documents = self.repo.list_required_agreement_documents(self.db, registration.camp_id)
        if not documents:
            return []

        now = utcnow()
        created = []
        for document in documents:
            signature_request = self.repo.add_signature_request(
                self.db,
                document_id=document.id,
                requested_by=document.author_id,
                requested_for_id=child.parent_id,
                requested_for_email=parent.email if parent else None,
                camp_id=registration.camp_id,
                registration_id=registration.id,
                status="pending",
                expires_at=self.default_expiry(now),
            )
            self._audit(
                signature_request,
                "created",
                details={"source": "registration", "registration_id": registration.id},
            )
            created.append(signature_request)

        self.db.commit()
        logger.info(
            f"✍️ Created {len(created)} signature request(s) for registration {registration.id}"
        )
        return created

    def list_requests(self, document_id: int, user: User) -> list[SignatureRequest]:
        document = self.documents._get_document(document_id)
        if is_org_staff(user, document.organization_id):
            return self.repo.list_signature_requests(self.db, document.id)
        if user.role == "parent":
            return self.repo.list_signature_requests(
                self.db, document.id, recipient_id=user.id, recipient_email=user.email
            )
        raise HTTPException(status_code=403, detail="Access denied")

    def list_user_requests(self, user: User) -> list[UserSignatureRequestResponse]:
        results = []
        for signature_request in self.repo.list_requests_for_user(self.db, user):
            entry = UserSignatureRequestResponse.model_validate(signature_request)
            if signature_request.document:
                entry.document_title = signature_request.document.title
            results.append(entry)
        return results

    # ------------------------------------------------------------------
    # Token-addressed operations
    # ------------------------------------------------------------------

    def get_token_view(
        self, token: str, ip_address: Optional[str] = None, user_agent: Optional[str] = None
    ) -> TokenView:
        signature_request = self.repo.get_signature_request_by_token(self.db, token)
        if not signature_request:
            raise HTTPException(status_code=404, detail="Signature request not found")
        document = signature_request.document
        if not document:
            raise HTTPException(status_code=404, detail="Document not found")

        self.ensure_signable(signature_request, ip_address, user_agent)

        if signature_request.viewed_at is None:
            signature_request.viewed_at = utcnow()
        self._audit(signature_request, "viewed", ip_address, user_agent)
        self.db.commit()
        self.db.refresh(signature_request)

        fields = self.repo.list_fields(self.db, document.id)
        dynamic_field_data = populate_dynamic_fields(
            self.db,
            signature_request,
            [field.data_source for field in fields if field.field_type == "dynamic_field"],
        )
        return TokenView.model_validate(
            {
                "document": document,
                "fields": fields,
                "signature_request": signature_request,
                "dynamic_field_data": dynamic_field_data,
            },
            from_attributes=True,
        )

    async def sign(
        self,
        request_id: int,
        data: SignRequest,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Signature:
        signature_request = self._get_by_token_for_id(request_id, data.token)
        self.ensure_signable(signature_request, ip_address, user_agent)
        document = signature_request.document

        fields = self.repo.list_fields(self.db, document.id)
        dynamic_values = populate_dynamic_fields(
            self.db,
            signature_request,
            [field.data_source for field in fields if field.field_type == "dynamic_field"],
        )

        field_values = dict(data.field_values)
        for field in fields:
            if field.field_type != "dynamic_field" or field.data_source not in dynamic_values:
                continue
            if _is_blank(field_values.get(field_key(field))):
                field_values[field_key(field)] = dynamic_values[field.data_source]

        missing = [
            field.label
            for field in fields
            if field.required
            and field.field_type in INPUT_FIELD_TYPES
            and _is_blank(field_values.get(field_key(field)))
        ]
        if missing:
            raise HTTPException(
                status_code=400, detail={"error": "Missing required fields", "fields": missing}
            )

        signed_at = utcnow()
        signature_hash = compute_signature_hash(
            signature=data.signature,
            field_values=field_values,
            document_id=document.id,
            document_hash=document.hash,
            signature_request_id=signature_request.id,
            signed_at=signed_at,
            ip_address=ip_address,
            user_agent=user_agent,
        )

        try:
            signature = self.repo.add_signature(
                self.db,
                signature_request_id=signature_request.id,
                signature_data=data.signature,
                field_values=field_values,
                ip_address=ip_address,
                user_agent=user_agent,
                document_hash=document.hash,
                signature_hash=signature_hash,
                signed_at=signed_at,
            )
            signature_request.status = "signed"
            signature_request.signed_at = signed_at
            signature_request.ip_address = ip_address
            signature_request.user_agent = user_agent
            self._audit(
                signature_request,
                "signed",
                ip_address,
                user_agent,
                details={"signature_id": signature.id, "signature_hash": signature_hash},
            )
            self.db.commit()
        except IntegrityError as e:
            # A concurrent submission already stored the signature
            self.db.rollback()
            logger.warning(f"⚠️ Duplicate signature for request {request_id}: {e}")
            raise HTTPException(
                status_code=400,
                detail={"error": "This document has already been signed", "status": "signed"},
            ) from e

        self.db.refresh(signature)
        logger.info(f"✅ Signature request {signature_request.id} signed")
        await self._notify_requester(signature_request, "signed")
        return signature

    async def decline(
        self,
        request_id: int,
        token: Optional[str],
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> None:
        signature_request = self._get_by_token_for_id(request_id, token)
        self.ensure_signable(signature_request, ip_address, user_agent)

        signature_request.status = "declined"
        signature_request.ip_address = ip_address
        signature_request.user_agent = user_agent
        self._audit(signature_request, "declined", ip_address, user_agent)
        self.db.commit()
        logger.info(f"🚫 Signature request {signature_request.id} declined")

        await self._notify_requester(signature_request, "declined")

    def revoke(
        self,
        request_id: int,
        token: Optional[str],
        user: User,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> None:
        signature_request = self.repo.get_signature_request(self.db, request_id)
        if not signature_request:
            raise HTTPException(status_code=404, detail="Signature request not found")
        if token is not None and token != signature_request.token:
            raise HTTPException(status_code=404, detail="Signature request not found")

        document = signature_request.document
        if not document:
            raise HTTPException(status_code=404, detail="Document not found")
        if not (
            is_org_staff(user, document.organization_id)
            or signature_request.requested_by == user.id
        ):
            raise HTTPException(
                status_code=403, detail="You don't have permission to revoke this request"
            )

        self.ensure_signable(signature_request, ip_address, user_agent)

        signature_request.status = "revoked"
        self._audit(signature_request, "revoked", ip_address, user_agent, user_id=user.id)
        self.db.commit()
        logger.info(f"🔒 Signature request {signature_request.id} revoked by user {user.id}")

    async def remind(
        self,
        request_id: int,
        user: User,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> SignatureRequest:
        signature_request = self.repo.get_signature_request(self.db, request_id)
        if not signature_request:
            raise HTTPException(status_code=404, detail="Signature request not found")
        self.documents.get_document_for_admin(signature_request.document_id, user)
        self.ensure_signable(signature_request, ip_address, user_agent)

        email, _ = self._recipient(signature_request)
        if not email:
            raise HTTPException(status_code=400, detail="Signature request has no recipient email")
        if not await self.notify_recipient(signature_request, is_reminder=True):
            raise HTTPException(status_code=500, detail="Failed to send reminder email")

        signature_request.reminder_sent_at = utcnow()
        self._audit(
            signature_request,
            "reminder_sent",
            ip_address,
            user_agent,
            user_id=user.id,
            details={"to": email},
        )
        self.db.commit()
        self.db.refresh(signature_request)
        return signature_request

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def expire_overdue(self, now: Optional[datetime] = None) -> int:
        """Expire every pending request past its deadline; returns how many changed"""
        now = now or utcnow()
        overdue = self.repo.list_overdue_requests(self.db, now)
        for signature_request in overdue:
            signature_request.status = "expired"
            self._audit(signature_request, "expired", details={"reason": "expiry_sweep"})
        self.db.commit()

        if overdue:
            logger.info(f"⌛ Expired {len(overdue)} overdue signature request(s)")
        return len(overdue)

