"""Signature integrity hashing"""

import hashlib
import hmac
import json
from datetime import datetime
from typing import Any, Optional

from ...models import Signature, SignatureRequest


def compute_signature_hash(
    signature: str,
    field_values: dict[str, Any],
    document_id: int,
    document_hash: Optional[str],
    signature_request_id: int,
    signed_at: datetime,
    ip_address: Optional[str],
    user_agent: Optional[str],
) -> str:
    """
    SHA-256 over the canonical JSON of everything that makes up the signature.

    Keys are sorted and separators compact so the digest can be recomputed
    from the stored row and compared.
    """
    payload = {
        "signature": signature,
        "field_values": field_values,
        "document_id": document_id,
        "document_hash": document_hash,
        "signature_request_id": signature_request_id,
        "timestamp": signed_at.isoformat(),
        "ip_address": ip_address or "unknown",
        "user_agent": user_agent or "unknown",
    }
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def verify_signature_hash(signature: Signature, signature_request: SignatureRequest) -> bool:
    expected = compute_signature_hash(
        signature=signature.signature_data,
        field_values=signature.field_values or {},
        document_id=signature_request.document_id,
        document_hash=signature.document_hash,
        signature_request_id=signature.signature_request_id,
        signed_at=signature.signed_at,
        ip_address=signature.ip_address,
        user_agent=signature.user_agent,
    )
    return hmac.compare_digest(expected, signature.signature_hash)
