"""HTTP contract tests for the camelCase, enveloped API variant."""

from __future__ import annotations

from jsonschema import Draft202012Validator

from conftest import PREFIX

SUBMIT = f"{PREFIX}/appointment/test-result"

ENVELOPE_SCHEMA = {
    "type": "object",
    "required": ["success", "message", "data"],
    "properties": {
        "success": {"type": "boolean"},
        "message": {"type": "string"},
    },
}


def _payload(**overrides):
    payload = {
        "userId": "USR-001",
        "appointmentId": "APT-2024-001",
        "testType": "TEORICO",
        "startPcMac": "A1B2C3D4E5F6",
        "endPcMac": "A1B2C3D4E5F6",
        "result": {
            "modules": [{"moduleName": "Señalización", "scorePercentage": 100, "passed": True}],
            "overall_passed": True,
        },
    }
    payload.update(overrides)
    return payload


def _valid(body: dict) -> bool:
    return not list(Draft202012Validator(ENVELOPE_SCHEMA).iter_errors(body))


def test_login_returns_stub_token(envelope_client):
    res = envelope_client.post(f"{PREFIX}/auth/login", json={"username": "test", "password": "password"})

    assert res.status_code == 200
    body = res.json()
    assert _valid(body)
    assert body["success"] is True
    assert body["data"] == {"accessToken": "mock-access-token", "tokenType": "Bearer", "expiresIn": 3600}


def test_routes_require_a_bearer_credential(envelope_client):
    res = envelope_client.get(f"{PREFIX}/cales")
    blank = envelope_client.get(f"{PREFIX}/cales", headers={"Authorization": "Bearer "})

    assert res.status_code == 401
    assert res.json()["success"] is False
    assert res.json()["data"]["errorCode"] == "UNAUTHORIZED"
    assert blank.status_code == 401


def test_any_bearer_credential_is_accepted(envelope_client):
    res = envelope_client.get(f"{PREFIX}/cales", headers={"Authorization": "Bearer anything"})

    assert res.status_code == 200


def test_list_centers(envelope_client, auth_headers):
    body = envelope_client.get(f"{PREFIX}/cales", headers=auth_headers).json()

    assert _valid(body)
    assert [c["caleId"] for c in body["data"]] == ["CALE-BOG-001", "CALE-MED-001"]
    assert body["data"][0]["devices"] == ["A1B2C3D4E5F6", "A1B2C3D4E5F7"]


def test_appointments_by_center(envelope_client, auth_headers):
    res = envelope_client.get(f"{PREFIX}/appointment/CALE-BOG-001", headers=auth_headers)

    assert res.status_code == 200
    data = res.json()["data"]
    assert data["caleId"] == "CALE-BOG-001"
    assert data["caleName"] == "CALE Bogotá Norte"
    assert data["totalAppointments"] == 2
    assert [a["appointmentId"] for a in data["appointments"]] == ["APT-2024-001", "APT-2024-002"]
    assert data["appointments"][0]["userId"] == "USR-001"


def test_unknown_center_is_not_found(envelope_client, auth_headers):
    res = envelope_client.get(f"{PREFIX}/appointment/CALE-XXX-000", headers=auth_headers)

    assert res.status_code == 404
    assert res.json()["data"]["errorCode"] == "CENTER_NOT_FOUND"


def test_sync_status_passthrough(envelope_client, auth_headers):
    body = envelope_client.get(f"{PREFIX}/sync-status", headers=auth_headers).json()

    assert body["success"] is True
    assert body["data"][0]["status"] == "SYNCED"
    assert body["data"][0]["lastSyncAt"] == "2024-11-20T06:00:00.000Z"


def test_submission_then_conflict(envelope_client, auth_headers):
    first = envelope_client.post(SUBMIT, json=_payload(), headers=auth_headers)
    second = envelope_client.post(SUBMIT, json=_payload(result={}), headers=auth_headers)

    assert first.status_code == 200
    body = first.json()
    assert _valid(body) and body["success"] is True
    data = body["data"]
    assert data["testResultId"].startswith("TST-")
    assert data["status"] == "completed"
    assert data["startPcMac"] == "A1B2C3D4E5F6"
    # The opaque result payload keeps the client's own keys
    assert data["result"]["overall_passed"] is True

    assert second.status_code == 409
    conflict = second.json()
    assert conflict["success"] is False
    assert conflict["data"]["errorCode"] == "DUPLICATE_TEST_RESULT"
    assert conflict["data"]["details"]["existingTestId"] == data["testResultId"]


def test_mismatch_is_a_bad_request(envelope_client, auth_headers):
    res = envelope_client.post(SUBMIT, json=_payload(userId="USR-003"), headers=auth_headers)

    assert res.status_code == 400
    details = res.json()["data"]["details"]
    assert res.json()["data"]["errorCode"] == "APPOINTMENT_USER_MISMATCH"
    assert details == {
        "userId": "USR-003",
        "appointmentId": "APT-2024-001",
        "userAppointmentId": "APT-2024-003",
        "appointmentOwner": "USR-001",
    }


def test_missing_fields_use_wire_names(envelope_client, auth_headers):
    res = envelope_client.post(SUBMIT, json={"userId": "USR-001", "result": {}}, headers=auth_headers)

    assert res.status_code == 400
    assert res.json()["data"]["details"] == {
        "missingFields": ["testType", "appointmentId"],
        "requiredFields": ["userId", "testType", "result", "appointmentId"],
    }


def test_snake_payload_is_not_coerced(envelope_client, auth_headers):
    snake = {"user_id": "USR-001", "appointment_id": "APT-2024-001", "test_type": "TEORICO", "result": {}}

    res = envelope_client.post(SUBMIT, json=snake, headers=auth_headers)

    assert res.status_code == 400
    assert res.json()["data"]["details"]["missingFields"] == ["userId", "testType", "appointmentId"]


def test_filters_use_camel_query_names(envelope_client, auth_headers):
    envelope_client.post(SUBMIT, json=_payload(), headers=auth_headers)
    envelope_client.post(
        SUBMIT,
        json=_payload(userId="USR-003", appointmentId="APT-2024-003", testType="VIA_PUBLICA"),
        headers=auth_headers,
    )

    body = envelope_client.get(f"{PREFIX}/test-results", params={"testType": "VIA_PUBLICA"}, headers=auth_headers).json()

    assert [r["userId"] for r in body["data"]] == ["USR-003"]


def test_health_is_public(envelope_client):
    assert envelope_client.get("/health").json()["variant"] == "envelope"
