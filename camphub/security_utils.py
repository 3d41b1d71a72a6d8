"""
Security helpers shared across domains: password hashing, content hashing
and request fingerprinting for the signature audit trail.
"""

import hashlib
import logging
import os
from typing import Optional

import bcrypt
from fastapi import Request

logger = logging.getLogger(__name__)

BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))
# bcrypt only looks at the first 72 bytes and newer releases reject longer input
_BCRYPT_MAX_BYTES = 72


# ============================================================================
# PASSWORD SECURITY
# ============================================================================


def hash_password(password: str) -> str:
    raw = password.encode("utf-8")[:_BCRYPT_MAX_BYTES]
    return bcrypt.hashpw(raw, bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        raw = password.encode("utf-8")[:_BCRYPT_MAX_BYTES]
        return bcrypt.checkpw(raw, password_hash.encode("utf-8"))
    except ValueError as e:
        logger.error(f"Password verification error: {e}")
        return False


# ============================================================================
# HASHING
# ============================================================================


def sha256_hex(value: Optional[str]) -> str:
    """SHA-256 hex digest of a string (None hashes like the empty string)"""
    return hashlib.sha256((value or "").encode("utf-8")).hexdigest()


# ============================================================================
# REQUEST FINGERPRINT
# ============================================================================


def get_client_ip(request: Request) -> Optional[str]:
    """First X-Forwarded-For hop, falling back to the socket peer"""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def get_user_agent(request: Request) -> Optional[str]:
    return request.headers.get("User-Agent")
