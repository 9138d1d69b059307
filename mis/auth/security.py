import hmac
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

import bcrypt
import jwt
import structlog
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from ..config import settings
from ..db import get_db
from ..errors import AuthenticationFailed, PermissionDenied
from ..models.models import User
from ..services.permissions import has_permission, roles_with


http_bearer = HTTPBearer(auto_error=False)
log = structlog.get_logger()

BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


def _password_bytes(plain: str) -> bytes:
    # bcrypt only looks at the first 72 bytes; newer releases refuse longer input
    return plain.encode("utf-8")[:72]


def is_password_hashed(stored: Optional[str]) -> bool:
    return bool(stored) and stored.startswith(BCRYPT_PREFIXES)


def get_password_hash(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")


def verify_password(plain: str, stored: Optional[str]) -> Tuple[bool, bool]:
    """Check a password against a stored credential.

    Returns ``(valid, needs_upgrade)``. Stored values that are not bcrypt
    hashes are legacy plaintext; a match on one of those needs upgrading.
    """
    if not stored:
        return False, False
    if is_password_hashed(stored):
        try:
            return bcrypt.checkpw(_password_bytes(plain), stored.encode("utf-8")), False
        except ValueError:
            return False, False
    valid = hmac.compare_digest(plain.encode("utf-8"), stored.encode("utf-8"))
    return valid, valid


def create_access_token(user: User) -> str:
    now = datetime.now(tz=timezone.utc)
    payload = {
        "sub": str(user.id),
        "id": str(user.id),
        "email": user.email,
        "role": user.role,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=settings.jwt_ttl_seconds)).timestamp()),
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationFailed("Token expired")
    except jwt.InvalidTokenError:
        raise AuthenticationFailed("Invalid token")


def _user_from_token(token: str, db: Session) -> User:
    payload = decode_token(token)
    try:
        user_uuid = uuid.UUID(str(payload.get("sub")))
    except ValueError:
        raise AuthenticationFailed("Invalid token")
    user = db.query(User).filter(User.id == user_uuid).first()
    if user is None or not user.is_active:
        log.warning("auth_user_missing", user_id=str(user_uuid))
        raise AuthenticationFailed("User not found")
    # The database role is authoritative; the token only identifies the principal
    if payload.get("role") != user.role:
        log.warning("role_mismatch", user_id=str(user.id), token_role=payload.get("role"), db_role=user.role)
    return user


def get_current_user(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer),
    db: Session = Depends(get_db),
) -> User:
    if creds is None or not creds.credentials:
        raise AuthenticationFailed("No valid authorization token provided")
    return _user_from_token(creds.credentials, db)


def get_optional_user(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer),
    db: Session = Depends(get_db),
) -> Optional[User]:
    if creds is None or not creds.credentials:
        return None
    return _user_from_token(creds.credentials, db)


def is_role_allowed(role: Optional[str], allowed_roles) -> bool:
    return (role or "").lower() in {r.lower() for r in allowed_roles}


def require_roles(*allowed_roles: str):
    def _dep(user: User = Depends(get_current_user)):
        if not is_role_allowed(user.role, allowed_roles):
            log.warning("access_denied", user_id=str(user.id), role=user.role, required=list(allowed_roles))
            raise PermissionDenied(allowed_roles, your_role=user.role)
        return user

    return _dep


def require_permissions(*required_permissions: str):
    """
    Require at least one of the specified permissions (OR logic),
    resolved through the static role table.
    """
    def _dep(user: User = Depends(get_current_user)):
        if not any(has_permission(user.role, perm) for perm in required_permissions):
            log.warning("access_denied", user_id=str(user.id), role=user.role, required=list(required_permissions))
            raise PermissionDenied(roles_with(*required_permissions), your_role=user.role)
        return user

    return _dep
