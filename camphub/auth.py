"""
Session authentication dependencies.

The signed session cookie (Starlette SessionMiddleware + itsdangerous) only
carries the user id; the user row is reloaded on every request so role and
organization changes apply immediately.
"""

import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from .database import get_db
from .models import ADMIN_ROLES, STAFF_ROLES, User

logger = logging.getLogger(__name__)

SESSION_USER_KEY = "user_id"


def login_user(request: Request, user: User) -> None:
    request.session.clear()
    request.session[SESSION_USER_KEY] = user.id


def logout_user(request: Request) -> None:
    request.session.clear()


def get_optional_user(request: Request, db: Session = Depends(get_db)) -> Optional[User]:
    user_id = request.session.get(SESSION_USER_KEY)
    if user_id is None:
        return None

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        # Account removed while the cookie was still valid
        logger.warning(f"⚠️ Session references unknown user {user_id}, clearing session")
        request.session.clear()
    return user


def get_current_user(user: Optional[User] = Depends(get_optional_user)) -> User:
    if user is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user


def is_org_staff(user: Optional[User], organization_id: Optional[int] = None) -> bool:
    """Staff role in an organization (any organization when organization_id is None)"""
    if user is None or user.role not in STAFF_ROLES or user.organization_id is None:
        return False
    return organization_id is None or user.organization_id == organization_id


def is_org_admin(user: Optional[User], organization_id: Optional[int] = None) -> bool:
    return is_org_staff(user, organization_id) and user.role in ADMIN_ROLES


def require_org_staff(user: User = Depends(get_current_user)) -> User:
    if not is_org_staff(user):
        raise HTTPException(status_code=403, detail="Organization staff access required")
    return user


def require_org_admin(user: User = Depends(get_current_user)) -> User:
    if not is_org_admin(user):
        raise HTTPException(
            status_code=403, detail="Only camp creators and managers can perform this action"
        )
    return user


def require_parent(user: User = Depends(get_current_user)) -> User:
    if user.role != "parent":
        raise HTTPException(status_code=403, detail="Only parents can perform this action")
    return user
