import pytest


LEAVE = {
    "employee_id": "E1",
    "employee_name": "Ali",
    "request_type": "leave",
    "priority": "medium",
    "description": "vacation",
    "start_date": "2025-01-01",
    "end_date": "2025-01-05",
}


@pytest.fixture
def as_employee(auth_headers):
    return auth_headers("E1", "employee", "Ali")


@pytest.fixture
def as_manager(auth_headers):
    return auth_headers("M1", "manager", "Sara")


@pytest.fixture
def as_ceo(auth_headers):
    return auth_headers("C1", "ceo", "Reza")


@pytest.fixture
def as_admin(auth_headers):
    return auth_headers("A1", "admin", "Admin")


def _submit(client, headers, **overrides):
    res = client.post("/requests", json={**LEAVE, **overrides}, headers=headers)
    assert res.status_code == 201, res.text
    return res.json()


def test_health_endpoints(client):
    assert client.get("/healthz").json()["status"] == "ok"


def test_requests_need_a_token(client):
    assert client.get("/requests").status_code in (401, 403)


def test_bad_token_is_rejected(client):
    res = client.get("/requests", headers={"Authorization": "Bearer not-a-token"})
    assert res.status_code == 401


def test_unknown_role_is_forbidden(client, auth_headers):
    res = client.get("/requests", headers=auth_headers("X1", "contractor"))
    assert res.status_code == 403
    assert res.json()["detail"]["code"] == "UNKNOWN_ROLE"


def test_submit_and_fetch(client, as_employee):
    created = _submit(client, as_employee)

    assert created["status"] == "pending"
    assert created["id"].startswith("REQ-")
    assert [h["action"] for h in created["history"]] == ["request submitted"]
    assert created["comments"] == []

    fetched = client.get(f"/requests/{created['id']}", headers=as_employee)
    assert fetched.status_code == 200
    assert fetched.json() == created


def test_submit_validation_errors(client, as_employee):
    res = client.post("/requests", json={**LEAVE, "employee_name": "  "}, headers=as_employee)
    assert res.status_code == 422
    assert res.json()["detail"]["code"] == "VALIDATION_ERROR"
    assert "employee_name" in res.json()["detail"]["fields"]

    res = client.post("/requests", json={**LEAVE, "end_date": "2024-12-01"}, headers=as_employee)
    assert res.status_code == 422

    assert client.get("/requests", headers=as_employee).json() == []


def test_missing_request_is_404(client, as_employee):
    res = client.get("/requests/REQ-missing", headers=as_employee)
    assert res.status_code == 404
    assert res.json()["detail"]["code"] == "NOT_FOUND"


def test_status_flow_over_http(client, as_employee, as_manager, as_ceo):
    request_id = _submit(client, as_employee)["id"]

    res = client.patch(
        f"/requests/{request_id}/status",
        json={"status": "approved-manager", "comment": "ok"},
        headers=as_manager,
    )
    assert res.status_code == 200
    body = res.json()
    assert body["changed"] is True
    assert body["request"]["status"] == "approved-manager"
    assert [c["comment"] for c in body["request"]["comments"]] == ["ok"]
    assert body["request"]["history"][-1] == {
        "action": "status changed to approved-manager",
        "author": "Sara",
        "timestamp": body["request"]["history"][-1]["timestamp"],
    }

    res = client.patch(f"/requests/{request_id}/status", json={"status": "rejected-ceo"}, headers=as_ceo)
    assert res.status_code == 409
    assert res.json()["detail"]["code"] == "INVALID_TRANSITION"
    assert res.json()["detail"]["current_status"] == "approved-manager"

    res = client.patch(
        f"/requests/{request_id}/status",
        json={"status": "approved-manager", "comment": "ok"},
        headers=as_manager,
    )
    assert res.status_code == 200
    assert res.json()["changed"] is False
    assert len(res.json()["request"]["history"]) == 2
    assert [c["comment"] for c in res.json()["request"]["comments"]] == ["ok"]


def test_unknown_status_is_422(client, as_employee, as_manager):
    request_id = _submit(client, as_employee)["id"]
    res = client.patch(f"/requests/{request_id}/status", json={"status": "archived"}, headers=as_manager)
    assert res.status_code == 422


def test_list_filters(client, as_employee, as_manager):
    leave_id = _submit(client, as_employee)["id"]
    expense_id = _submit(client, as_employee, request_type="expense", amount=300)["id"]
    client.patch(f"/requests/{expense_id}/status", json={"status": "rejected-manager"}, headers=as_manager)

    def ids(**params):
        res = client.get("/requests", params=params, headers=as_employee)
        assert res.status_code == 200
        return {r["id"] for r in res.json()}

    assert ids() == {leave_id, expense_id}
    assert ids(request_type="expense") == {expense_id}
    assert ids(status="pending") == {leave_id}
    assert ids(search="ALI") == {leave_id, expense_id}
    assert ids(bucket="open") == {leave_id}
    assert ids(bucket="completed") == {expense_id}
    assert client.get("/requests", params={"bucket": "archived"}, headers=as_employee).status_code == 422


def test_comments_endpoint(client, as_employee, as_manager):
    request_id = _submit(client, as_employee)["id"]

    res = client.post(f"/requests/{request_id}/comments", json={"comment": "please add dates"}, headers=as_manager)
    assert res.status_code == 201
    assert [(c["author"], c["role"]) for c in res.json()["comments"]] == [("Sara", "manager")]
    assert res.json()["status"] == "pending"

    res = client.post(f"/requests/{request_id}/comments", json={"comment": " "}, headers=as_manager)
    assert res.status_code == 422


def test_summary_and_export_permissions(client, as_employee, as_manager, as_admin):
    request_id = _submit(client, as_employee)["id"]
    _submit(client, as_employee)
    client.patch(f"/requests/{request_id}/status", json={"status": "approved-ceo"}, headers=as_manager)

    assert client.get("/requests/summary", headers=as_employee).status_code == 403
    summary = client.get("/requests/summary", headers=as_manager).json()
    assert summary["total"] == 2
    assert summary["by_bucket"] == {"open": 1, "completed": 1}

    assert client.get("/requests/export", headers=as_manager).status_code == 403
    rows = client.get("/requests/export", headers=as_admin).json()
    assert [r["id"] for r in rows] == [request_id]


def test_delete_is_admin_only(client, as_employee, as_admin):
    request_id = _submit(client, as_employee)["id"]

    res = client.delete(f"/requests/{request_id}", headers=as_employee)
    assert res.status_code == 403
    assert res.json()["detail"]["code"] == "MISSING_PERMISSION"

    assert client.delete(f"/requests/{request_id}", headers=as_admin).json() == {"ok": True}
    assert client.get(f"/requests/{request_id}", headers=as_employee).status_code == 404
    assert client.delete(f"/requests/{request_id}", headers=as_admin).status_code == 404


def test_notification_feed(client, dispatcher, as_employee, as_manager, as_admin):
    request_id = _submit(client, as_employee)["id"]
    client.patch(f"/requests/{request_id}/status", json={"status": "under-review"}, headers=as_manager)
    dispatcher.drain()

    assert client.get("/notifications", params={"user_id": "system"}, headers=as_employee).status_code == 403
    system_feed = client.get("/notifications", params={"user_id": "system"}, headers=as_admin).json()
    assert [n["type"] for n in system_feed] == ["request.submitted"]

    feed = client.get("/notifications", headers=as_employee).json()
    assert [n["type"] for n in feed] == ["request.status_changed"]
    notification_id = feed[0]["id"]

    assert client.post(f"/notifications/{notification_id}/read", headers=as_manager).status_code == 404
    assert client.post(f"/notifications/{notification_id}/read", headers=as_employee).json() == {"ok": True}
    assert client.post(f"/notifications/{notification_id}/read", headers=as_employee).json() == {"ok": True}
    assert client.get("/notifications", params={"unread_only": True}, headers=as_employee).json() == []


def test_runtime_metrics_for_admins(client, dispatcher, as_employee, as_admin):
    _submit(client, as_employee)

    assert client.get("/metrics/runtime", headers=as_employee).status_code == 403
    metrics = client.get("/metrics/runtime", headers=as_admin).json()
    assert metrics["notifications_pending"] == dispatcher.pending_count == 1


def test_storage_outage_is_503_and_retryable(client, as_employee, as_manager, monkeypatch):
    from sqlalchemy.exc import OperationalError

    from hr_requests.services import request_store

    request_id = _submit(client, as_employee)["id"]

    def _unavailable(*args, **kwargs):
        raise OperationalError("SELECT requests", {}, Exception("server closed the connection"))

    monkeypatch.setattr(request_store, "get_request", _unavailable)

    res = client.patch(f"/requests/{request_id}/status", json={"status": "under-review"}, headers=as_manager)
    assert res.status_code == 503
    assert res.headers["Retry-After"] == "1"
    assert res.json()["detail"]["code"] == "STORAGE_ERROR"
    assert res.json()["detail"]["retryable"] is True
