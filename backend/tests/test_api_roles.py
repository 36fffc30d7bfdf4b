# backend/tests/test_api_roles.py
from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

from rentfolio.db import get_db
from rentfolio.main import create_app

VALID = {"c1": "101", "c2": "John Doe", "c3": "1250", "c4": "2400", "c5": "2026-03-01", "c6": "Active"}


@pytest.fixture
def app(offline_store, session_factory):
    app = create_app(store=offline_store)

    def _db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _db
    return app


@pytest.fixture
def login(app):
    def _login(username: str, password: str | None = None) -> TestClient:
        client = TestClient(app)
        r = client.post("/api/auth/login", json={"username": username, "password": password or f"{username}123"})
        assert r.status_code == 200, r.text
        return client

    return _login


def test_login_and_me(login):
    client = login("manager")
    me = client.get("/api/auth/me").json()
    assert me["user_id"] == "u-manager"
    assert me["role"] == "MANAGER"


def test_bearer_token(app):
    client = TestClient(app)
    token = client.post("/api/auth/login", json={"username": "viewer", "password": "viewer123"}).json()["access_token"]

    fresh = TestClient(app)
    r = fresh.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200
    assert r.json()["username"] == "viewer"


def test_bad_login_and_missing_auth(app):
    client = TestClient(app)
    assert client.post("/api/auth/login", json={"username": "admin", "password": "nope"}).status_code == 401
    assert client.get("/api/properties").status_code == 401
    r = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401


def test_viewer_is_read_only(login):
    client = login("viewer")
    assert client.get("/api/properties").status_code == 200
    assert client.put("/api/records/r1", json={"values": VALID}).status_code == 403
    r = client.post("/api/payments/toggle", json={"recordId": "r1", "month": "2026-03", "amount": 1200})
    assert r.status_code == 403


def test_investment_is_admin_only(login):
    assert "totalInvestment" in login("admin").get("/api/properties").json()[0]
    assert "totalInvestment" not in login("manager").get("/api/properties").json()[0]
    assert login("manager").get("/api/reports/capital").status_code == 403
    assert login("admin").get("/api/reports/capital").status_code == 200


def test_hidden_property_is_invisible_to_manager(login):
    admin = login("admin")
    assert admin.post("/api/properties/p1/visibility").json()["isVisibleToManager"] is False

    manager = login("manager")
    assert manager.get("/api/properties").json() == []
    assert manager.get("/api/properties/p1").status_code == 404
    assert manager.get("/api/records/r1").status_code == 404
    assert manager.get("/api/reports/rent-roll").json() == []

    assert login("viewer").get("/api/properties/p1").status_code == 200


def test_manager_edits_unit(login):
    manager = login("manager")
    r = manager.put("/api/records/r1", json={"values": VALID})
    assert r.status_code == 200
    assert r.json()["values"]["c3"] == "1250"

    history = manager.get("/api/records/r1/history").json()
    assert sum(1 for h in history if h["effectiveTo"] is None) == 1


def test_invalid_unit_values_return_field_errors(login):
    r = login("manager").put("/api/records/r1", json={"values": dict(VALID, c3="lots")})
    assert r.status_code == 422
    body = r.json()
    assert body["detail"] == "Unit values are invalid."
    assert body["errors"] == {"c3": "Please enter a valid number"}


def test_non_finite_amounts_are_rejected(login):
    r = login("manager").post("/api/properties/p1/records", json={"values": dict(VALID, c1="105", c3="nan", c4="inf")})
    assert r.status_code == 422
    assert r.json()["errors"] == {"c3": "Please enter a valid number", "c4": "Please enter a valid number"}


def test_payment_toggle_round_trip(login):
    manager = login("manager")
    body = {"recordId": "r1", "month": "2026-03", "amount": 1200, "paidTo": "Petty Cash", "paymentMode": "Cash"}

    first = manager.post("/api/payments/toggle", json=body).json()
    assert first["paid"] is True
    assert first["payment"]["paidTo"] == "Petty Cash"
    assert len(manager.get("/api/payments", params={"month": "2026-03"}).json()) == 1

    second = manager.post("/api/payments/toggle", json=body).json()
    assert second == {"paid": False, "payment": None}


def test_refund_without_deposit_is_404(login):
    assert login("manager").post("/api/payments/refund/r1").status_code == 404


def test_admin_cannot_delete_self(login):
    admin = login("admin")
    r = admin.delete("/api/users/u-admin")
    assert r.status_code == 403
    assert r.json()["detail"] == "You cannot delete your own account"


def test_user_management_is_admin_only(login):
    assert login("manager").get("/api/users").status_code == 403

    admin = login("admin")
    r = admin.post("/api/users", json={"name": "New Person", "username": "newbie", "password": "pw", "role": "VIEWER"})
    assert r.status_code == 200
    dup = admin.post("/api/users", json={"name": "New Person", "username": "newbie", "password": "pw"})
    assert dup.status_code == 422
    assert login("newbie", "pw").get("/api/auth/me").json()["role"] == "VIEWER"


def test_bad_period_is_422(login):
    r = login("viewer").get("/api/reports/collection", params={"period": "weekly"})
    assert r.status_code == 422


def test_impossible_month_is_422(login):
    r = login("viewer").get("/api/reports/rent-roll", params={"month": "2026-13"})
    assert r.status_code == 422
    assert r.json()["errors"] == {"month": "2026-13"}


def test_mutations_are_audited(login):
    admin = login("admin")
    admin.patch("/api/properties/p1", json={"name": "Skyline Towers"})
    rows = admin.get("/api/audit", params={"entity_type": "property"}).json()
    assert rows[0]["action"] == "property.update"
    assert rows[0]["actor_user_id"] == "u-admin"


def test_sync_status_offline(login):
    status = login("viewer").get("/api/sync/status").json()
    assert status["status"] == "offline"
    assert status["configured"] is False
    assert status["hydrated"] is True


def test_health(app):
    body = TestClient(app).get("/api/health").json()
    assert body["ok"] is True
    assert body["sync"] == "offline"


def test_property_types_are_admin_managed(login):
    payload = {
        "name": "Parking",
        "columns": [{"name": "Bay"}, {"name": "Fee", "type": "currency", "isRentCalculatable": True}],
        "defaultDueDateDay": 1,
    }
    assert login("manager").post("/api/property-types", json=payload).status_code == 403

    admin = login("admin")
    created = admin.post("/api/property-types", json=payload).json()
    assert [c["order"] for c in created["columns"]] == [0, 1]
    assert created["columns"][1]["isRentCalculatable"] is True

    prop = admin.post("/api/properties", json={"name": "Lot B", "propertyTypeId": created["id"]}).json()
    assert prop["isVisibleToManager"] is True
    assert prop["unitCount"] == 0


def test_offline_push_writes_nothing(login):
    body = login("admin").post("/api/sync/push", params={"force": True}).json()
    assert body["wrote"] is False
    assert body["status"] == "offline"


def test_audit_update_rows_hold_only_changed_fields(login):
    admin = login("admin")
    admin.patch("/api/properties/p1", json={"name": "Skyline Towers"})
    row = admin.get("/api/audit", params={"entity_id": "p1"}).json()[0]

    assert json.loads(row["before_json"]) == {"name": "Skyline Heights"}
    assert json.loads(row["after_json"]) == {"name": "Skyline Towers"}
