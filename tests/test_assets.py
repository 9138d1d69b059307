"""
Asset register and QR lookup.
"""

import uuid

from mis.models.models import Asset


def test_status_round_trips_lowercased(client, auth_headers):
    headers = auth_headers("manager")
    resp = client.post(
        "/api/assets",
        json={"asset_code": "PRS-001", "asset_name": "Press", "asset_status": "Active", "asset_type": "MACHINE"},
        headers=headers,
    )
    assert resp.status_code == 201
    created = resp.json()
    fetched = client.get(f"/api/assets/{created['id']}", headers=headers).json()
    assert fetched["asset_status"] == "active"
    assert fetched["asset_type"] == "machine"


def test_defaults_on_create(create_asset):
    asset = create_asset(asset_code="cnv 01")
    assert asset["asset_status"] == "active"
    assert asset["qr_code"] == "QR-CNV-01"


def test_qr_lookup(client, auth_headers, create_asset):
    asset = create_asset(asset_code="CMP-7")
    headers = auth_headers("operator")
    found = client.get(f"/api/qr/{asset['qr_code']}", headers=headers)
    assert found.status_code == 200
    assert found.json()["id"] == asset["id"]
    assert client.get("/api/qr/QR-NOPE", headers=headers).status_code == 404


def test_invalid_enum_is_400(client, auth_headers):
    resp = client.post(
        "/api/assets",
        json={"asset_code": "X-1", "asset_name": "X", "asset_status": "broken"},
        headers=auth_headers("admin"),
    )
    assert resp.status_code == 400
    assert "Must be one of: active, under_amc, inactive, disposed" in resp.json()["message"]


def test_duplicate_code_is_409(client, auth_headers, create_asset):
    create_asset(asset_code="DUP-1")
    resp = client.post("/api/assets", json={"asset_code": "DUP-1", "asset_name": "Again"}, headers=auth_headers("admin"))
    assert resp.status_code == 409


def test_create_requires_permission(client, auth_headers):
    body = {"asset_code": "OP-1", "asset_name": "Op"}
    assert client.post("/api/assets", json=body, headers=auth_headers("operator")).status_code == 403
    assert client.post("/api/assets", json=body, headers=auth_headers("engineer")).status_code == 403
    assert client.post("/api/assets", json=body, headers=auth_headers("manager")).status_code == 201


def test_partial_update_keeps_unsent_fields(client, auth_headers, create_asset):
    asset = create_asset(asset_location="Bay 4", manufacturer="Schuler")
    resp = client.put(
        f"/api/assets/{asset['id']}",
        json={"asset_name": "Renamed", "manufacturer": None},
        headers=auth_headers("engineer"),
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["asset_name"] == "Renamed"
    assert body["asset_location"] == "Bay 4"
    assert body["manufacturer"] == "Schuler"


def test_non_admin_delete_is_403_and_keeps_row(client, auth_headers, create_asset, session_factory):
    asset = create_asset()
    resp = client.delete(f"/api/assets/{asset['id']}", headers=auth_headers("manager"))
    assert resp.status_code == 403
    assert "admin" in resp.json()["message"]
    with session_factory() as s:
        assert s.query(Asset).count() == 1


def test_admin_delete(client, auth_headers, create_asset):
    asset = create_asset()
    admin = auth_headers("admin")
    assert client.delete(f"/api/assets/{asset['id']}", headers=admin).status_code == 200
    assert client.get(f"/api/assets/{asset['id']}", headers=admin).status_code == 404


def test_list_filters(client, auth_headers, create_asset):
    create_asset(asset_code="M-1", asset_type="machine")
    create_asset(asset_code="U-1", asset_type="utility", asset_status="inactive")
    headers = auth_headers("operator")

    machines = client.get("/api/assets", params={"type": "machine"}, headers=headers).json()
    assert [a["asset_code"] for a in machines] == ["M-1"]

    inactive = client.get("/api/assets", params={"status": "INACTIVE"}, headers=headers).json()
    assert [a["asset_code"] for a in inactive] == ["U-1"]

    assert client.get("/api/assets", params={"status": "gone"}, headers=headers).status_code == 400
    assert len(client.get("/api/assets", params={"q": "U-"}, headers=headers).json()) == 1


def test_missing_rows_share_the_error_envelope(client, auth_headers):
    headers = auth_headers("admin")
    missing = str(uuid.uuid4())
    for path in (
        f"/api/assets/{missing}",
        "/api/qr/QR-NOPE",
        f"/api/pm/{missing}",
        f"/api/breakdowns/{missing}",
        f"/api/spares/{missing}",
    ):
        resp = client.get(path, headers=headers)
        assert resp.status_code == 404, path
        body = resp.json()
        assert body["error"] == "Not found"
        assert body["message"].endswith("not found")
        assert "detail" not in body

    resp = client.patch(f"/api/users/{missing}", json={"full_name": "Nobody"}, headers=headers)
    assert resp.status_code == 404
    assert resp.json()["details"] == {"resource_type": "User", "resource_id": missing}
