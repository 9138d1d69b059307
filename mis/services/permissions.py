"""
Static role -> permission table.

Permissions are not stored per user; a user's role alone decides what they
may do. The table is built once at import time.
"""
from typing import Dict, FrozenSet, List


ROLES = ("operator", "engineer", "manager", "admin")

ALL_PERMISSIONS = (
    "view_dashboard",
    "view_assets",
    "create_assets",
    "update_assets",
    "delete_assets",
    "view_pm",
    "create_pm",
    "update_pm",
    "delete_pm",
    "view_breakdowns",
    "create_breakdown",
    "update_breakdown",
    "view_spares",
    "create_spares",
    "update_spares",
    "delete_spares",
    "issue_spares",
    "view_utilities",
    "create_utilities",
    "view_kpi",
    "manage_users",
    "manage_roles",
)

_OPERATOR = {
    "view_dashboard",
    "view_assets",
    "view_pm",
    "view_breakdowns",
    "create_breakdown",
    "view_spares",
    "view_utilities",
    "create_utilities",
    "view_kpi",
}

_ENGINEER = _OPERATOR | {
    "update_assets",
    "create_pm",
    "update_pm",
    "update_breakdown",
    "issue_spares",
}

_MANAGER = _ENGINEER | {
    "create_assets",
    "create_spares",
    "update_spares",
}

ROLE_PERMISSIONS: Dict[str, FrozenSet[str]] = {
    "operator": frozenset(_OPERATOR),
    "engineer": frozenset(_ENGINEER),
    "manager": frozenset(_MANAGER),
    "admin": frozenset(ALL_PERMISSIONS),
}


def permissions_for(role: str) -> FrozenSet[str]:
    return ROLE_PERMISSIONS.get((role or "").lower(), frozenset())


def has_permission(role: str, permission: str) -> bool:
    return permission in permissions_for(role)


def roles_with(*permissions: str) -> List[str]:
    """Roles that hold at least one of the given permissions, in rank order."""
    return [r for r in ROLES if any(p in ROLE_PERMISSIONS[r] for p in permissions)]
