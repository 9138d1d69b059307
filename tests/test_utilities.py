"""
Utility meter readings.
"""

import uuid


def _log(client, headers, **fields):
    body = {"utility_type": "power", "meter_point": "MAIN-INCOMER", "reading_value": 1520.5, "reading_unit": "kWh"}
    body.update(fields)
    return client.post("/api/utilities", json=body, headers=headers)


def test_reading_type_is_case_insensitive(client, auth_headers):
    resp = _log(client, auth_headers("operator"), utility_type="Water", meter_point="WTR-1")
    assert resp.status_code == 201
    body = resp.json()
    assert body["utility_type"] == "water"
    assert body["timestamp"]


def test_reading_type_aliases(client, auth_headers):
    resp = _log(client, auth_headers("operator"), utility_type="electricity")
    assert resp.json()["utility_type"] == "power"


def test_unknown_type_is_400(client, auth_headers):
    resp = _log(client, auth_headers("operator"), utility_type="steam")
    assert resp.status_code == 400
    assert "Must be one of: power, water, air, gas" in resp.json()["message"]


def test_list_filters(client, auth_headers):
    headers = auth_headers("operator")
    _log(client, headers, timestamp="2024-05-01T08:00:00")
    _log(client, headers, timestamp="2024-05-02T08:00:00")
    _log(client, headers, utility_type="air", meter_point="CMP-HDR", timestamp="2024-05-02T09:00:00")

    power = client.get("/api/utilities", params={"utility_type": "POWER"}, headers=headers).json()
    assert len(power) == 2
    assert power[0]["timestamp"] > power[1]["timestamp"]

    since = client.get("/api/utilities", params={"since": "2024-05-02T00:00:00"}, headers=headers).json()
    assert len(since) == 2

    by_meter = client.get("/api/utilities", params={"meter_point": "CMP-HDR"}, headers=headers).json()
    assert [r["utility_type"] for r in by_meter] == ["air"]

    assert client.get("/api/utilities", params={"utility_type": "steam"}, headers=headers).status_code == 400


def test_readings_are_append_only(client, auth_headers):
    headers = auth_headers("admin")
    reading = _log(client, headers).json()
    assert client.put(f"/api/utilities/{reading['id']}", json={"reading_value": 1}, headers=headers).status_code in (404, 405)
    assert client.delete(f"/api/utilities/{reading['id']}", headers=headers).status_code in (404, 405)


def test_reading_for_unknown_asset_is_400(client, auth_headers, create_asset):
    headers = auth_headers("operator")
    resp = _log(client, headers, asset_id=str(uuid.uuid4()))
    assert resp.status_code == 400
    assert resp.json()["details"]["field"] == "asset_id"
    assert client.get("/api/utilities", headers=headers).json() == []

    asset = create_asset()
    assert _log(client, headers, asset_id=asset["id"]).status_code == 201
