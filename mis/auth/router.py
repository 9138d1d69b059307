from datetime import datetime, timezone
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..config import settings
from ..db import get_db
from ..errors import AuthenticationFailed, Conflict, PermissionDenied, ValidationFailed
from ..models.models import User
from ..schemas.auth import LoginRequest, RegisterRequest, TokenResponse, UserSummary, MeResponse
from ..services.permissions import permissions_for
from .security import (
    get_password_hash,
    verify_password,
    create_access_token,
    get_current_user,
    get_optional_user,
)


router = APIRouter(prefix="/api", tags=["auth"])
log = structlog.get_logger()

INVALID_CREDENTIALS = "Invalid email or password"


def _normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def authenticate_credentials(db: Session, email: str, password: str) -> User:
    """Resolve a user from email/password, upgrading legacy plaintext credentials.

    Every failure mode raises the same error so callers cannot tell an
    unknown email from a wrong password.
    """
    user = db.query(User).filter(func.lower(User.email) == _normalize_email(email)).first()
    if user is None or not user.is_active:
        log.info("login_failed", reason="unknown_or_inactive")
        raise AuthenticationFailed(INVALID_CREDENTIALS)
    valid, needs_upgrade = verify_password(password, user.password)
    if not valid:
        log.info("login_failed", reason="bad_password", user_id=str(user.id))
        raise AuthenticationFailed(INVALID_CREDENTIALS)
    if needs_upgrade:
        user.password = get_password_hash(password)
        log.info("password_migrated", user_id=str(user.id))
    user.last_login_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(user)
    return user


@router.post("/login", response_model=TokenResponse)
def login(req: LoginRequest, db: Session = Depends(get_db)):
    if not req.email or not req.password:
        raise ValidationFailed("email", "Email and password are required")
    user = authenticate_credentials(db, req.email, req.password)
    log.info("login_succeeded", user_id=str(user.id), role=user.role)
    return TokenResponse(
        message="Login successful",
        token=create_access_token(user),
        user=UserSummary.model_validate(user),
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(
    req: RegisterRequest,
    db: Session = Depends(get_db),
    caller: Optional[User] = Depends(get_optional_user),
):
    # Self-service sign-up is limited to operators; other roles are granted by an admin
    if req.role != "operator" and (caller is None or caller.role != "admin"):
        raise PermissionDenied(["admin"], your_role=caller.role if caller else None)
    if len(req.password) < settings.min_password_length:
        raise ValidationFailed(
            "password", f"Password must be at least {settings.min_password_length} characters long"
        )
    email = _normalize_email(req.email)
    if db.query(User).filter(func.lower(User.email) == email).first():
        raise Conflict("Email already registered")
    user = User(
        email=email,
        full_name=req.full_name,
        password=get_password_hash(req.password),
        role=req.role,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    log.info("user_registered", user_id=str(user.id), role=user.role)
    return TokenResponse(
        message="User registered successfully",
        token=create_access_token(user),
        user=UserSummary.model_validate(user),
    )


@router.post("/token/refresh", response_model=TokenResponse)
def refresh(user: User = Depends(get_current_user)):
    return TokenResponse(
        message="Token refreshed",
        token=create_access_token(user),
        user=UserSummary.model_validate(user),
    )


@router.get("/me", response_model=MeResponse)
def me(user: User = Depends(get_current_user)):
    return MeResponse(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        role=user.role,
        permissions=sorted(permissions_for(user.role)),
    )
