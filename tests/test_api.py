from decimal import Decimal

from tutorledger.models import AccountState


def test_attendance_flow_over_http(client, make_student):
    make_student(1, sessions=1)

    resp = client.post("/api/v1/students/1/attendance", json={"period": {"week": 3}, "attended": True, "center": "Maadi"})
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["period_key"] == "week:3"
    assert body["attended"] is True
    assert body["paid"] is True

    resp = client.get("/api/v1/students/1/progress")
    assert resp.status_code == 200
    progress = resp.json()
    assert progress["sessions_remaining"] == 0
    assert progress["current_period"]["period_key"] == "week:3"

    resp = client.get("/api/v1/history")
    assert [entry["period_key"] for entry in resp.json()] == ["week:3"]

    resp = client.post("/api/v1/students/1/attendance", json={"period": {"week": 3}, "attended": False})
    assert resp.json()["paid"] is False
    assert client.get("/api/v1/students/1/credits").json()["sessions_remaining"] == 1
    assert client.get("/api/v1/history").json() == []


def test_ledger_errors_map_to_status_codes(client, make_student):
    make_student(1, sessions=0)
    make_student(2, sessions=3, state=AccountState.DEACTIVATED)
    period = {"lesson": "Optics"}

    resp = client.post("/api/v1/students/1/attendance", json={"period": period, "attended": True})
    assert resp.status_code == 402
    assert "session credits" in resp.json()["detail"]

    resp = client.post("/api/v1/students/1/homework", json={"period": period, "state": "DONE"})
    assert resp.status_code == 409

    resp = client.post("/api/v1/students/2/attendance", json={"period": period, "attended": True})
    assert resp.status_code == 403

    resp = client.get("/api/v1/students/99/progress")
    assert resp.status_code == 404


def test_period_payload_needs_exactly_one_key(client, make_student):
    make_student(1, sessions=1)

    for period in ({}, {"lesson": "Optics", "week": 2}, {"week": 0}):
        resp = client.post("/api/v1/students/1/comment", json={"period": period, "text": "hi"})
        assert resp.status_code == 422, period


def test_quiz_and_message_flags(client, make_student):
    make_student(1, sessions=1)
    period = {"week": 1}
    client.post("/api/v1/students/1/attendance", json={"period": period, "attended": True})

    resp = client.post("/api/v1/students/1/quiz", json={"period": period, "score": {"obtained": 14, "total": 20}})
    assert resp.status_code == 200
    assert resp.json()["quiz_state"] == "SCORED"
    assert Decimal(resp.json()["quiz_obtained"]) == 14

    resp = client.post("/api/v1/students/1/homework", json={"period": period, "state": "DONE", "score": {"obtained": "8.5", "total": 10}})
    assert resp.status_code == 200, resp.text
    assert Decimal(resp.json()["homework_obtained"]) == Decimal("8.5")

    resp = client.post("/api/v1/students/1/homework", json={"period": period, "state": "NOT_DONE"})
    assert resp.status_code == 400

    resp = client.post("/api/v1/students/1/quiz", json={"period": period, "outcome": "NO_QUIZ"})
    assert resp.json()["quiz_state"] == "NO_QUIZ"

    resp = client.post("/api/v1/students/1/message-flags", json={"period": period, "which": "parent", "sent": True})
    assert resp.json()["parent_message_sent"] is True


def test_credit_endpoints(client, make_student):
    make_student(1)

    resp = client.put("/api/v1/students/1/credits", json={"count": 8, "cost": "400.00", "comment": " pack "})
    assert resp.status_code == 200, resp.text
    assert resp.json()["sessions_remaining"] == 8
    assert resp.json()["payment_comment"] == "pack"

    resp = client.put("/api/v1/students/1/credits", json={"count": 0, "cost": "10"})
    assert resp.status_code == 422

    resp = client.delete("/api/v1/students/1/credits")
    assert resp.json()["sessions_remaining"] == 0


def test_reset_endpoints(client, make_student):
    make_student(1, sessions=2)
    client.post("/api/v1/students/1/attendance", json={"period": {"week": 1}, "attended": True})

    assert client.post("/api/v1/students/1/reset").status_code == 204
    assert client.get("/api/v1/students/1/periods").json() == []

    resp = client.post("/api/v1/students/reset-all")
    assert resp.json() == {"students_reset": 1, "periods_removed": 0, "history_removed": 0}


def test_activation_code_endpoints(client, make_student):
    make_student(1)

    resp = client.post("/api/v1/activation-codes", json={"owner_student_id": 1})
    assert resp.status_code == 201
    code = resp.json()["code"]["code"]
    assert resp.json()["regenerated"] is False

    resp = client.post("/api/v1/activation-codes/check", json={"owner_student_id": 1, "code": code})
    assert resp.json() == {"exists": True, "valid": True, "activated": False}

    assert client.post("/api/v1/activation-codes/activate", json={"code": code}).status_code == 200
    assert client.post("/api/v1/activation-codes/activate", json={"code": code}).status_code == 409

    resp = client.post("/api/v1/activation-codes/1/regenerate")
    assert resp.status_code == 200
    assert resp.json()["activated"] is False

    assert client.post("/api/v1/activation-codes/range", json={"first_id": 1, "last_id": 1}).status_code == 409
    assert client.delete("/api/v1/activation-codes/1").status_code == 204
    assert client.get("/api/v1/activation-codes").json() == []


def test_view_code_endpoints(client, make_student, make_content):
    make_student(1, sessions=1)
    make_student(2)
    content = make_content(period_key="week:2")

    resp = client.post("/api/v1/view-codes", json={"count": 2, "views": 1, "issued_by": "desk"})
    assert resp.status_code == 201
    code = resp.json()[0]

    claim = {"code": code["code"], "student_id": 1, "content_id": content.content_id}
    resp = client.post("/api/v1/view-codes/check", json=claim)
    assert resp.json() == {"vvc_id": code["vvc_id"], "remaining_views": 1}
    resp = client.post("/api/v1/view-codes/check", json={**claim, "student_id": 2})
    assert resp.status_code == 409

    resp = client.post(f"/api/v1/students/1/contents/{content.content_id}/events", json={"action": "finish"})
    assert resp.status_code == 200, resp.text
    assert resp.json()["remaining_views"] == 0
    assert resp.json()["attendance_marked"] is True

    resp = client.put(f"/api/v1/view-codes/{code['vvc_id']}", json={"enabled": False})
    assert resp.json()["enabled"] is False
    resp = client.post("/api/v1/view-codes/check", json=claim)
    assert resp.status_code == 403

    page = client.get("/api/v1/view-codes", params={"claimed": True}).json()
    assert page["total"] == 1
    assert client.delete(f"/api/v1/view-codes/{code['vvc_id']}").status_code == 204
    assert client.get("/api/v1/view-codes").json()["total"] == 1
