"""
Spare-part inventory and stock transactions.
"""

import uuid

from sqlalchemy.dialects import postgresql

from mis.models.models import SparePart, SpareTransaction
from mis.services.inventory import locked_part_query, next_balance


def _txn(client, headers, part_id, quantity, direction="issue", **extra):
    body = {"part_id": part_id, "quantity": quantity, "direction": direction}
    body.update(extra)
    return client.post("/api/spares/transaction", json=body, headers=headers)


def test_issue_decrements_stock_and_records_balance(client, auth_headers, create_spare, create_asset):
    part = create_spare(current_stock=10)
    asset = create_asset()
    resp = _txn(client, auth_headers("engineer"), part["id"], 3, asset_id=asset["id"], pm_bd_type="BD", purpose="seal swap")
    assert resp.status_code == 201
    body = resp.json()
    assert body["transaction"]["balance_after"] == 7
    assert body["transaction"]["pm_bd_type"] == "bd"
    assert body["inventory"]["current_stock"] == 7

    history = client.get("/api/spares/transactions", params={"part_id": part["id"]}, headers=auth_headers("operator")).json()
    assert len(history) == 1
    assert history[0]["quantity"] == 3


def test_insufficient_stock_changes_nothing(client, auth_headers, create_spare, session_factory):
    part = create_spare(current_stock=10)
    resp = _txn(client, auth_headers("engineer"), part["id"], 11)
    assert resp.status_code == 409
    body = resp.json()
    assert body["message"] == "Insufficient stock for issuance"
    assert body["details"] == {"part_code": part["part_code"], "current_stock": 10, "requested": 11}

    with session_factory() as s:
        assert s.query(SparePart).filter(SparePart.id == uuid.UUID(part["id"])).one().current_stock == 10
        assert s.query(SpareTransaction).count() == 0


def test_issue_exact_stock_reaches_zero(client, auth_headers, create_spare):
    part = create_spare(current_stock=4)
    resp = _txn(client, auth_headers("engineer"), part["id"], 4)
    assert resp.json()["inventory"]["current_stock"] == 0


def test_return_increments_stock(client, auth_headers, create_spare):
    part = create_spare(current_stock=2)
    resp = _txn(client, auth_headers("engineer"), part["id"], 5, direction="Return")
    assert resp.status_code == 201
    assert resp.json()["transaction"]["direction"] == "return"
    assert resp.json()["inventory"]["current_stock"] == 7


def test_transaction_validation(client, auth_headers, create_spare):
    part = create_spare()
    headers = auth_headers("engineer")
    assert _txn(client, headers, part["id"], 0).status_code == 400
    assert _txn(client, headers, part["id"], -2).status_code == 400
    assert _txn(client, headers, part["id"], 1, direction="borrow").status_code == 400
    assert _txn(client, headers, part["id"], 1, pm_bd_type="job").status_code == 400


def test_transaction_for_unknown_part_is_404(client, auth_headers):
    resp = _txn(client, auth_headers("engineer"), str(uuid.uuid4()), 1)
    assert resp.status_code == 404
    assert resp.json()["details"]["resource_type"] == "Spare part"


def test_operator_cannot_issue(client, auth_headers, create_spare):
    part = create_spare()
    resp = _txn(client, auth_headers("operator"), part["id"], 1)
    assert resp.status_code == 403
    assert resp.json()["details"]["required_roles"] == ["admin", "engineer", "manager"]


def test_part_row_is_locked_for_update():
    sql = str(locked_part_query(uuid.uuid4()).compile(dialect=postgresql.dialect()))
    assert "FOR UPDATE" in sql


def test_next_balance():
    assert next_balance(10, "issue", 3) == 7
    assert next_balance(10, "return", 3) == 13


def test_stock_cannot_be_edited_directly(client, auth_headers, create_spare):
    part = create_spare(current_stock=10)
    resp = client.put(
        f"/api/spares/{part['id']}",
        json={"current_stock": 999, "supplier": "SKF"},
        headers=auth_headers("manager"),
    )
    assert resp.status_code == 200
    assert resp.json()["current_stock"] == 10
    assert resp.json()["supplier"] == "SKF"


def test_low_stock_list(client, auth_headers, create_spare):
    create_spare(part_code="LOW", current_stock=1, reorder_level=3)
    create_spare(part_code="OK", current_stock=30, reorder_level=3)
    low = client.get("/api/spares/low-stock", headers=auth_headers("operator")).json()
    assert [p["part_code"] for p in low] == ["LOW"]


def test_spare_crud_permissions(client, auth_headers, create_spare):
    body = {"part_code": "NEW-1", "part_name": "Filter"}
    assert client.post("/api/spares", json=body, headers=auth_headers("engineer")).status_code == 403
    assert client.post("/api/spares", json={**body, "current_stock": -1}, headers=auth_headers("manager")).status_code == 400

    part = create_spare()
    assert client.delete(f"/api/spares/{part['id']}", headers=auth_headers("manager")).status_code == 403
    assert client.delete(f"/api/spares/{part['id']}", headers=auth_headers("admin")).status_code == 200
    assert client.get(f"/api/spares/{part['id']}", headers=auth_headers("operator")).status_code == 404


def test_part_with_history_cannot_be_deleted(client, auth_headers, create_spare, session_factory):
    part = create_spare(current_stock=5)
    assert _txn(client, auth_headers("engineer"), part["id"], 2).status_code == 201

    admin = auth_headers("admin")
    resp = client.delete(f"/api/spares/{part['id']}", headers=admin)
    assert resp.status_code == 409
    assert resp.json()["error"] == "Conflict"

    with session_factory() as s:
        assert s.query(SpareTransaction).filter(SpareTransaction.part_id == uuid.UUID(part["id"])).count() == 1
    assert client.get(f"/api/spares/{part['id']}", headers=admin).json()["current_stock"] == 3


def test_transaction_for_unknown_asset_is_400(client, auth_headers, create_spare, session_factory):
    part = create_spare(current_stock=5)
    resp = _txn(client, auth_headers("engineer"), part["id"], 1, asset_id=str(uuid.uuid4()))
    assert resp.status_code == 400
    assert resp.json()["details"]["field"] == "asset_id"

    with session_factory() as s:
        assert s.query(SparePart).filter(SparePart.id == uuid.UUID(part["id"])).one().current_stock == 5
        assert s.query(SpareTransaction).count() == 0
