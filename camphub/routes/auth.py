import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ..auth import get_current_user, login_user, logout_user
from ..database import get_db
from ..models import STAFF_ROLES, Organization, User
from ..rate_limiter import create_rate_limiter
from ..schemas import SuccessResponse, UserLogin, UserRegister, UserResponse
from ..security_utils import hash_password, verify_password
from ..utils.sanitization import sanitize_string

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Authentication"])

login_rate_limit = create_rate_limiter(limit=20, window_seconds=300, key_prefix="login")
register_rate_limit = create_rate_limiter(limit=10, window_seconds=3600, key_prefix="register")


@router.post("/register", response_model=UserResponse, status_code=201)
def register(
    data: UserRegister,
    request: Request,
    db: Session = Depends(get_db),
    _: None = Depends(register_rate_limit),
):
    """Create an account and start a session.

    Camp creators found a new organization; other staff accounts are added
    by an organization administrator instead.
    """
    if db.query(User).filter(User.username == data.username).first():
        raise HTTPException(status_code=400, detail="Username already exists")

    if data.role in STAFF_ROLES and data.role != "camp_creator":
        raise HTTPException(
            status_code=400,
            detail="Staff accounts are created by an organization administrator",
        )

    organization = None
    if data.role == "camp_creator":
        if not data.organization_name or not data.organization_name.strip():
            raise HTTPException(
                status_code=400, detail="Organization name is required for camp creators"
            )
        organization = Organization(
            name=sanitize_string(data.organization_name.strip()),
            description=sanitize_string(data.organization_description),
        )
        db.add(organization)
        db.flush()

    user = User(
        username=data.username,
        email=data.email,
        password_hash=hash_password(data.password),
        role=data.role,
        organization_id=organization.id if organization else None,
        first_name=sanitize_string(data.first_name),
        last_name=sanitize_string(data.last_name),
        phone_number=data.phone_number,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    login_user(request, user)
    logger.info(f"🆕 Registered user {user.id} ({user.role})")
    return user


@router.post("/login", response_model=UserResponse)
def login(
    data: UserLogin,
    request: Request,
    db: Session = Depends(get_db),
    _: None = Depends(login_rate_limit),
):
    user = db.query(User).filter(User.username == data.username).first()
    if not user or not verify_password(data.password, user.password_hash):
        logger.warning(f"🚫 Failed login for username: {data.username}")
        raise HTTPException(status_code=401, detail="Invalid username or password")

    login_user(request, user)
    logger.info(f"✅ User {user.id} logged in")
    return user


@router.post("/logout", response_model=SuccessResponse)
def logout(request: Request):
    logout_user(request)
    return SuccessResponse()


@router.get("/user", response_model=UserResponse)
def get_me(current_user: User = Depends(get_current_user)):
    return current_user
