from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import Dict, List, Optional
import uuid

import structlog

from ..db import get_db
from ..models.models import User
from ..auth.security import require_permissions, get_current_user
from ..errors import PermissionDenied, ResourceNotFound
from ..schemas.auth import UserResponse, UserUpdate
from ..services.permissions import ROLE_PERMISSIONS, has_permission, roles_with


router = APIRouter(prefix="/api", tags=["users"])


@router.get("/users", response_model=List[UserResponse])
def list_users(
    q: Optional[str] = None,
    role: Optional[str] = None,
    db: Session = Depends(get_db),
    _=Depends(require_permissions("manage_users")),
):
    query = db.query(User)
    if q:
        like = f"%{q}%"
        query = query.filter((User.email.ilike(like)) | (User.full_name.ilike(like)))
    if role:
        query = query.filter(User.role == role.lower())
    return query.order_by(User.created_at.desc()).all()


@router.patch("/users/{user_id}", response_model=UserResponse)
def update_user(
    user_id: uuid.UUID,
    payload: UserUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_permissions("manage_users")),
):
    u = db.query(User).filter(User.id == user_id).first()
    if not u:
        raise ResourceNotFound("User", user_id)
    data = payload.model_dump(exclude_unset=True)
    if data.get("role") is not None and data["role"] != u.role and not has_permission(admin.role, "manage_roles"):
        raise PermissionDenied(roles_with("manage_roles"), your_role=admin.role)
    for field, value in data.items():
        if value is not None:
            setattr(u, field, value)
    db.commit()
    db.refresh(u)
    structlog.get_logger().info("user_updated", user_id=str(u.id), by=str(admin.id), fields=sorted(data))
    return u


@router.get("/roles/permissions")
def role_permissions(_=Depends(get_current_user)) -> Dict[str, List[str]]:
    return {role: sorted(perms) for role, perms in ROLE_PERMISSIONS.items()}
