"""
Role table and user administration.
"""

from mis.services.permissions import (
    ALL_PERMISSIONS,
    ROLE_PERMISSIONS,
    ROLES,
    has_permission,
    permissions_for,
    roles_with,
)


def test_roles_are_layered():
    ranked = [ROLE_PERMISSIONS[r] for r in ROLES]
    for lower, higher in zip(ranked, ranked[1:]):
        assert lower < higher
    assert ROLE_PERMISSIONS["admin"] == frozenset(ALL_PERMISSIONS)


def test_lookup_helpers():
    assert has_permission("manager", "create_assets")
    assert not has_permission("manager", "delete_assets")
    assert has_permission("ADMIN", "manage_users")
    assert permissions_for("visitor") == frozenset()
    assert roles_with("delete_assets") == ["admin"]
    assert roles_with("issue_spares") == ["engineer", "manager", "admin"]


def test_role_table_endpoint(client, auth_headers):
    resp = client.get("/api/roles/permissions", headers=auth_headers("operator"))
    assert resp.status_code == 200
    assert set(resp.json()) == set(ROLES)
    assert "view_kpi" in resp.json()["operator"]


def test_user_admin_is_admin_only(client, auth_headers, make_user):
    target = make_user("operator", email="promote.me@plant.io")
    assert client.get("/api/users", headers=auth_headers("manager")).status_code == 403

    admin = auth_headers("admin")
    listed = client.get("/api/users", params={"q": "promote"}, headers=admin).json()
    assert [u["email"] for u in listed] == ["promote.me@plant.io"]

    resp = client.patch(f"/api/users/{target.id}", json={"role": "Engineer"}, headers=admin)
    assert resp.status_code == 200
    assert resp.json()["role"] == "engineer"

    bad = client.patch(f"/api/users/{target.id}", json={"role": "owner"}, headers=admin)
    assert bad.status_code == 400


def test_every_permission_guards_something():
    assert "view_analytics" not in ALL_PERMISSIONS
    for tag in ("delete_assets", "delete_pm", "delete_spares", "manage_users", "manage_roles"):
        assert roles_with(tag) == ["admin"]


def test_role_change_needs_manage_roles(client, auth_headers, make_user, monkeypatch):
    target = make_user("operator", email="shift.lead@plant.io")
    # A role that may administer users but not hand out roles
    monkeypatch.setitem(ROLE_PERMISSIONS, "manager", ROLE_PERMISSIONS["manager"] | {"manage_users"})
    headers = auth_headers("manager")

    renamed = client.patch(f"/api/users/{target.id}", json={"full_name": "Shift Lead"}, headers=headers)
    assert renamed.status_code == 200

    promoted = client.patch(f"/api/users/{target.id}", json={"role": "engineer"}, headers=headers)
    assert promoted.status_code == 403
    assert promoted.json()["details"]["required_roles"] == ["admin"]

    same_role = client.patch(f"/api/users/{target.id}", json={"role": "operator"}, headers=headers)
    assert same_role.status_code == 200
