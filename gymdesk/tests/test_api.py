"""
HTTP 层冒烟：会员 / 员工 / 支付 / 日志 / 设置
"""
from __future__ import annotations

from unittest.mock import patch

from gymdesk import __version__
from gymdesk.domain.query_builder import ParameterMismatchError


def _create_member(client, **kw):
    body = {"name": "Alice", "gender": "F", "phone": "010-1234", "join_date": "2024-05-01", **kw}
    r = client.post("/api/members/create", json=body)
    assert r.status_code == 201, r.text
    return r.json()


def _create_staff(client, name="Coach Han"):
    r = client.post("/api/staff/create", json={"name": name, "hire_date": "2023-02-01",
                                                "position": "trainer"})
    assert r.status_code == 201, r.text
    return r.json()


def test_health_and_version(client):
    assert client.get("/health").json() == {"status": "ok"}
    assert client.get("/version").json() == {"app": "gymdesk-api", "version": __version__}


def test_member_create_search_get_delete(client):
    created = _create_member(client)
    assert created["member_number"] == "20240501-001"
    _create_member(client, name="Bora", gender="M", phone=None)

    r = client.post("/api/members/search", json={"gender": "F", "page": 1, "limit": 10})
    assert r.status_code == 200
    data = r.json()
    assert [m["name"] for m in data["members"]] == ["Alice"]
    assert data["pagination"]["total"] == 1

    r = client.get(f"/api/members/{created['id']}")
    assert r.status_code == 200
    assert r.json()["phone"] == "010-1234"

    assert client.delete(f"/api/members/{created['id']}").status_code == 200
    assert client.get(f"/api/members/{created['id']}").status_code == 404
    assert client.delete(f"/api/members/{created['id']}").status_code == 404


def test_member_create_blank_name_is_400(client):
    r = client.post("/api/members/create", json={"name": "  "})
    assert r.status_code == 400
    assert r.json()["detail"] == "name_required"


def test_member_search_rejects_bad_page(client):
    r = client.post("/api/members/search", json={"page": 0})
    assert r.status_code == 422


def test_member_search_validation_failure_is_logged(client):
    err = ParameterMismatchError("SELECT ? ?", 2, 1)
    with patch("gymdesk.routes.members.list_members", side_effect=err):
        r = client.post("/api/members/search", json={"search": "kim"})
    assert r.status_code == 500
    assert r.json()["detail"] == "query_validation_failed"

    logs = client.get("/api/logs/search", params={"action": "MEMBER_SEARCH"}).json()
    assert logs["total"] == 1
    item = logs["items"][0]
    assert item["result"] == "ERROR"
    assert "parameter_mismatch" in item["err_msg"]
    assert '"kim"' in item["payload_json"]


def test_member_export_csv(client):
    _create_member(client)
    _create_member(client, name="Bora", gender="M")
    r = client.post("/api/members/export", json={"filter": {"gender": "M"}, "columns": ["name", "gender"]})
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/csv")
    assert r.text.splitlines() == ["name,gender", "Bora,M"]

    bad = client.post("/api/members/export", json={"columns": ["nope"]})
    assert bad.status_code == 400


def test_staff_search_defaults_to_active(client):
    _create_staff(client)
    r = client.post("/api/staff/search", json={"search": "han"})
    assert r.status_code == 200
    data = r.json()
    assert [s["name"] for s in data["staff"]] == ["Coach Han"]
    assert data["staff"][0]["is_active"] is True
    assert data["staff"][0]["staff_number"] == "STF-20230201-001"


def test_payment_create_and_search(client):
    staff = _create_staff(client)
    member = _create_member(client)
    body = {"member_id": member["id"], "staff_id": staff["id"], "payment_type": "pt",
            "amount": 150000, "payment_method": "card", "payment_date": "2024-05-02"}
    r = client.post("/api/payments/create", json=body)
    assert r.status_code == 201, r.text
    assert r.json()["payment_number"] == "PAY-20240502-001"

    r = client.post("/api/payments/search", json={"search": "Alice", "amount_min": 100000})
    assert r.status_code == 200
    rows = r.json()["payments"]
    assert len(rows) == 1
    assert rows[0]["member_name"] == "Alice"
    assert rows[0]["staff_name"] == "Coach Han"

    assert client.post("/api/payments/create", json={**body, "member_id": 9999}).status_code == 404
    assert client.post("/api/payments/create", json={**body, "amount": 0}).status_code == 400
    assert client.post("/api/payments/create", json={**body, "payment_type": "gift"}).status_code == 400


def test_logs_search_filters_and_pages(client):
    _create_member(client, name="A1")
    _create_member(client, name="A2")
    client.post("/api/members/create", json={"name": ""})

    r = client.get("/api/logs/search", params={"action": "CREATE_MEMBER", "size": 2})
    data = r.json()
    assert data["total"] == 3
    assert len(data["items"]) == 2

    r = client.get("/api/logs/search", params={"query": "name_required"})
    assert r.json()["total"] == 1


def test_settings_get_and_update(client):
    cfg = client.get("/api/settings/get").json()
    assert cfg["page_size"] == 20
    assert cfg["max_page_size"] == 100

    r = client.post("/api/settings/update", json={"updates": {"page_size": 5}})
    assert r.status_code == 200
    assert r.json()["updated"] == ["page_size"]
    assert client.get("/api/settings/get").json()["page_size"] == 5

    assert client.post("/api/settings/update", json={"updates": {"colour": "red"}}).status_code == 400
    assert client.post("/api/settings/update", json={"updates": {"page_size": "x"}}).status_code == 400


def _error_logs(client, action):
    items = client.get("/api/logs/search", params={"action": action}).json()["items"]
    return [i for i in items if i["result"] == "ERROR"]


def test_member_create_unknown_staff_is_404_and_logged(client):
    r = client.post("/api/members/create", json={"name": "Alice", "assigned_staff_id": 9999})
    assert r.status_code == 404
    assert r.json()["detail"] == "staff_not_found"
    errors = _error_logs(client, "CREATE_MEMBER")
    assert [e["err_msg"] for e in errors] == ["staff_not_found"]


def test_payment_create_unknown_staff_is_404_and_logged(client):
    member = _create_member(client)
    body = {"member_id": member["id"], "staff_id": 9999, "payment_type": "pt",
            "amount": 50000, "payment_method": "cash"}
    r = client.post("/api/payments/create", json=body)
    assert r.status_code == 404
    assert r.json()["detail"] == "staff_not_found"
    errors = _error_logs(client, "CREATE_PAYMENT")
    assert [e["err_msg"] for e in errors] == ["staff_not_found"]


def test_logs_search_validation_failure_is_logged(client):
    err = ParameterMismatchError("SELECT * FROM operation_log WHERE action = ?", 1, 0)
    with patch("gymdesk.routes.logs.search_logs", side_effect=err):
        r = client.get("/api/logs/search", params={"action": "CREATE_MEMBER"})
    assert r.status_code == 500
    assert r.json()["detail"] == "query_validation_failed"

    logs = client.get("/api/logs/search", params={"action": "LOG_SEARCH"}).json()
    assert logs["total"] == 1
    item = logs["items"][0]
    assert item["result"] == "ERROR"
    assert '"CREATE_MEMBER"' in item["payload_json"]
