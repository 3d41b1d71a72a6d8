"""Document router - FastAPI endpoints for documents, fields and signature requests"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.orm import Session

from ...auth import get_current_user, get_optional_user, require_org_admin, require_org_staff
from ...config import SIGNATURE_RATE_LIMIT, SIGNATURE_RATE_WINDOW_SECONDS
from ...database import get_db
from ...models import User
from ...rate_limiter import create_rate_limiter
from ...schemas import SuccessResponse
from ...security_utils import get_client_ip, get_user_agent
from .schemas import (
    AuditTrailEntry,
    DocumentCreate,
    DocumentFieldCreate,
    DocumentFieldResponse,
    DocumentFieldUpdate,
    DocumentResponse,
    DocumentUpdate,
    SignatureRequestCreate,
    SignatureRequestResponse,
    SignatureResponse,
    SignatureVerification,
    SignRequest,
    TokenActionRequest,
    TokenView,
    UserSignatureRequestResponse,
)
from .service import DocumentService, SignatureRequestService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Documents"])

signing_rate_limit = create_rate_limiter(
    limit=SIGNATURE_RATE_LIMIT,
    window_seconds=SIGNATURE_RATE_WINDOW_SECONDS,
    key_prefix="signature_token",
)


def get_document_service(db: Session = Depends(get_db)) -> DocumentService:
    """Dependency injection for DocumentService"""
    return DocumentService(db)


def get_signature_request_service(db: Session = Depends(get_db)) -> SignatureRequestService:
    """Dependency injection for SignatureRequestService"""
    return SignatureRequestService(db)


# ============================================================================
# DOCUMENTS
# ============================================================================


@router.post("/documents", response_model=DocumentResponse, status_code=201)
async def create_document(
    data: DocumentCreate,
    current_user: User = Depends(require_org_admin),
    service: DocumentService = Depends(get_document_service),
):
    return service.create_document(data, current_user)


@router.get("/documents", response_model=list[DocumentResponse])
async def list_documents(
    current_user: User = Depends(require_org_staff),
    service: DocumentService = Depends(get_document_service),
):
    """Documents of the caller's organization, newest first"""
    return service.list_documents(current_user)


@router.get("/documents/{document_id}", response_model=DocumentResponse)
async def get_document(
    document_id: int,
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    return service.get_document_for_staff(document_id, current_user)


@router.put("/documents/{document_id}", response_model=DocumentResponse)
async def update_document(
    document_id: int,
    data: DocumentUpdate,
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    return service.update_document(document_id, data, current_user)


@router.delete("/documents/{document_id}", status_code=204)
async def delete_document(
    document_id: int,
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    service.delete_document(document_id, current_user)
    return Response(status_code=204)


@router.get("/documents/{document_id}/audit-trail", response_model=list[AuditTrailEntry])
async def get_audit_trail(
    document_id: int,
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    return service.get_audit_trail(document_id, current_user)


# ============================================================================
# FIELDS
# ============================================================================


@router.post(
    "/documents/{document_id}/fields", response_model=DocumentFieldResponse, status_code=201
)
async def create_field(
    document_id: int,
    data: DocumentFieldCreate,
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    return service.create_field(document_id, data, current_user)


@router.get("/documents/{document_id}/fields", response_model=list[DocumentFieldResponse])
async def list_fields(
    document_id: int,
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    return service.list_fields(document_id, current_user)


@router.put("/documents/fields/{field_id}", response_model=DocumentFieldResponse)
async def update_field(
    field_id: int,
    data: DocumentFieldUpdate,
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    return service.update_field(field_id, data, current_user)


@router.delete("/documents/fields/{field_id}", status_code=204)
async def delete_field(
    field_id: int,
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    service.delete_field(field_id, current_user)
    return Response(status_code=204)


# ============================================================================
# SIGNATURE REQUESTS
# ============================================================================


@router.post(
    "/documents/{document_id}/signature-requests",
    response_model=SignatureRequestResponse,
    status_code=201,
)
async def create_signature_request(
    document_id: int,
    data: SignatureRequestCreate,
    request: Request,
    current_user: User = Depends(get_current_user),
    service: SignatureRequestService = Depends(get_signature_request_service),
):
    return await service.create_request(
        document_id, data, current_user, get_client_ip(request), get_user_agent(request)
    )


@router.get(
    "/documents/{document_id}/signature-requests", response_model=list[SignatureRequestResponse]
)
async def list_signature_requests(
    document_id: int,
    current_user: User = Depends(get_current_user),
    service: SignatureRequestService = Depends(get_signature_request_service),
):
    return service.list_requests(document_id, current_user)


@router.get("/user/signature-requests", response_model=list[UserSignatureRequestResponse])
async def list_my_signature_requests(
    current_user: User = Depends(get_current_user),
    service: SignatureRequestService = Depends(get_signature_request_service),
):
    """Requests addressed to the caller, by user id or email"""
    return service.list_user_requests(current_user)


@router.get("/signature-requests/token/{token}", response_model=TokenView)
async def get_signature_request_by_token(
    token: str,
    request: Request,
    service: SignatureRequestService = Depends(get_signature_request_service),
    _: None = Depends(signing_rate_limit),
):
    """Public signing page payload; the token is the credential"""
    return service.get_token_view(token, get_client_ip(request), get_user_agent(request))


@router.post(
    "/signature-requests/{request_id}/sign", response_model=SignatureResponse, status_code=201
)
async def sign_document(
    request_id: int,
    data: SignRequest,
    request: Request,
    service: SignatureRequestService = Depends(get_signature_request_service),
    _: None = Depends(signing_rate_limit),
):
    return await service.sign(request_id, data, get_client_ip(request), get_user_agent(request))


@router.post(
    "/signature-requests/{request_id}/remind", response_model=SignatureRequestResponse
)
async def send_reminder(
    request_id: int,
    request: Request,
    current_user: User = Depends(get_current_user),
    service: SignatureRequestService = Depends(get_signature_request_service),
):
    return await service.remind(
        request_id, current_user, get_client_ip(request), get_user_agent(request)
    )


@router.put("/signature-requests/{request_id}/{action}", response_model=SuccessResponse)
async def update_signature_request_status(
    request_id: int,
    action: str,
    request: Request,
    data: Optional[TokenActionRequest] = None,
    current_user: Optional[User] = Depends(get_optional_user),
    service: SignatureRequestService = Depends(get_signature_request_service),
    _: None = Depends(signing_rate_limit),
):
    """Decline (token holder) or revoke (requesting organization) a pending request"""
    token = data.token if data else None
    ip_address, user_agent = get_client_ip(request), get_user_agent(request)

    if action == "decline":
        await service.decline(request_id, token, ip_address, user_agent)
    elif action == "revoke":
        if current_user is None:
            raise HTTPException(status_code=401, detail="Not authenticated")
        service.revoke(request_id, token, current_user, ip_address, user_agent)
    else:
        raise HTTPException(status_code=400, detail="Invalid action")

    return SuccessResponse()


@router.get("/signatures/{signature_id}/verify", response_model=SignatureVerification)
async def verify_signature(
    signature_id: int,
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    return service.verify_signature(signature_id, current_user)
