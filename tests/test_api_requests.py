"""
API tests for /api/requests (service request CRUD).

Every endpoint requires a bearer token. Responses use the standard
envelopes: {success, message, data} and {success: false, error, code}.
"""

import pytest

BASE = "/api/requests"

PAYLOAD = {
    "service_type": "Repair",
    "description": "Device broken, needs urgent fix",
    "priority": "High",
    "location": "Building A, room 12",
}


def _post(client, headers, **overrides):
    body = {**PAYLOAD, **overrides}
    return client.post(BASE, json=body, headers=headers)


@pytest.fixture()
def created(client, owner_headers):
    res = _post(client, owner_headers)
    assert res.status_code == 201
    return res.get_json()["data"]


# ═══════════════════════════════════════════════════════════════
# Authentication
# ═══════════════════════════════════════════════════════════════


class TestRequiresToken:
    @pytest.mark.parametrize("method,path", [
        ("get", BASE),
        ("post", BASE),
        ("get", f"{BASE}/1"),
        ("put", f"{BASE}/1"),
        ("delete", f"{BASE}/1"),
    ])
    def test_missing_token_is_401(self, client, method, path):
        res = getattr(client, method)(path, json={})
        assert res.status_code == 401
        body = res.get_json()
        assert body["success"] is False
        assert body["code"] == "ERR_UNAUTHORIZED"

    def test_garbage_token_is_401(self, client):
        res = client.get(BASE, headers={"Authorization": "Bearer not-a-jwt"})
        assert res.status_code == 401


# ═══════════════════════════════════════════════════════════════
# Create / read
# ═══════════════════════════════════════════════════════════════


class TestCreateAndRead:
    def test_create_returns_pending_request(self, client, owner_headers):
        res = _post(client, owner_headers)
        assert res.status_code == 201
        body = res.get_json()
        assert body["success"] is True
        data = body["data"]
        assert data["status"] == "Pending"
        assert data["user_id"] == 42
        assert data["priority"] == "High"
        assert data["completed_at"] is None

    def test_priority_defaults_to_medium(self, client, owner_headers):
        body = {k: v for k, v in PAYLOAD.items() if k != "priority"}
        res = client.post(BASE, json=body, headers=owner_headers)
        assert res.get_json()["data"]["priority"] == "Medium"

    def test_missing_fields_reported(self, client, owner_headers):
        res = client.post(BASE, json={"priority": "Low"}, headers=owner_headers)
        assert res.status_code == 400
        body = res.get_json()
        assert body["code"] == "ERR_VALIDATION_REQUIRED"
        assert set(body["details"]) == {"service_type", "description"}

    def test_short_description_rejected(self, client, owner_headers):
        res = _post(client, owner_headers, description="too short")
        assert res.status_code == 400
        body = res.get_json()
        assert body["code"] == "ERR_VALIDATION_INVALID"
        assert "description" in body["details"]

    @pytest.mark.parametrize("field,value", [
        ("service_type", 3),
        ("description", 12345678901),
        ("priority", ["High"]),
        ("location", {"building": "A"}),
    ])
    def test_non_string_fields_are_400(self, client, owner_headers, field, value):
        res = _post(client, owner_headers, **{field: value})
        assert res.status_code == 400
        body = res.get_json()
        assert body["code"] == "ERR_VALIDATION_INVALID"
        assert field in body["details"]

    def test_status_in_create_body_is_ignored(self, client, owner_headers):
        res = _post(client, owner_headers, status="Completed")
        assert res.get_json()["data"]["status"] == "Pending"

    def test_non_json_body_rejected(self, client, owner_headers):
        res = client.post(BASE, data="service_type=Repair",
                          content_type="text/plain", headers=owner_headers)
        assert res.status_code == 415

    def test_list_only_own_requests(self, client, owner_headers, other_headers):
        _post(client, owner_headers)
        _post(client, owner_headers, service_type="Support")
        _post(client, other_headers)

        res = client.get(BASE, headers=owner_headers)
        assert res.status_code == 200
        data = res.get_json()["data"]
        assert len(data) == 2
        assert data[0]["service_type"] == "Support"
        assert all(item["user_id"] == 42 for item in data)

    def test_get_detail(self, client, owner_headers, created):
        res = client.get(f"{BASE}/{created['id']}", headers=owner_headers)
        assert res.status_code == 200
        assert res.get_json()["data"]["id"] == created["id"]


# ═══════════════════════════════════════════════════════════════
# Ownership
# ═══════════════════════════════════════════════════════════════


class TestForeignRequestsLookMissing:
    @pytest.mark.parametrize("method,body", [
        ("get", None),
        ("put", {"priority": "Low"}),
        ("patch", {"priority": "Low"}),
        ("delete", None),
    ])
    def test_same_response_for_foreign_and_missing(
        self, client, created, other_headers, method, body,
    ):
        call = getattr(client, method)
        foreign = call(f"{BASE}/{created['id']}", json=body, headers=other_headers)
        missing = call(f"{BASE}/999999", json=body, headers=other_headers)

        assert foreign.status_code == missing.status_code == 404
        assert foreign.get_json() == missing.get_json()
        assert str(created["id"]) not in foreign.get_json()["error"]

    def test_foreign_update_does_not_change_request(
        self, client, created, owner_headers, other_headers,
    ):
        client.put(f"{BASE}/{created['id']}", json={"priority": "Low"}, headers=other_headers)
        res = client.get(f"{BASE}/{created['id']}", headers=owner_headers)
        assert res.get_json()["data"]["priority"] == "High"


# ═══════════════════════════════════════════════════════════════
# Update / delete
# ═══════════════════════════════════════════════════════════════


class TestUpdateAndDelete:
    def test_put_updates_fields(self, client, owner_headers, created):
        res = client.put(
            f"{BASE}/{created['id']}",
            json={"priority": "Urgent", "location": "Lobby"},
            headers=owner_headers,
        )
        assert res.status_code == 200
        data = res.get_json()["data"]
        assert data["priority"] == "Urgent"
        assert data["location"] == "Lobby"
        assert data["status"] == "Pending"

    def test_status_cannot_be_updated_here(self, client, owner_headers, created):
        res = client.patch(
            f"{BASE}/{created['id']}",
            json={"status": "Completed"},
            headers=owner_headers,
        )
        assert res.status_code == 400
        assert res.get_json()["code"] == "ERR_VALIDATION_INVALID"

        detail = client.get(f"{BASE}/{created['id']}", headers=owner_headers)
        assert detail.get_json()["data"]["status"] == "Pending"

    def test_invalid_priority_rejected(self, client, owner_headers, created):
        res = client.put(f"{BASE}/{created['id']}", json={"priority": "Whenever"},
                         headers=owner_headers)
        assert res.status_code == 400

    def test_delete_then_get_is_404(self, client, owner_headers, created):
        res = client.delete(f"{BASE}/{created['id']}", headers=owner_headers)
        assert res.status_code == 200
        assert res.get_json()["data"] == {"deleted_id": created["id"]}

        res = client.get(f"{BASE}/{created['id']}", headers=owner_headers)
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_NOT_FOUND"
