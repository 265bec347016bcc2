#!/usr/bin/env python3
"""
Integration Tests for Permission Endpoints
Tests for /api/v1/permissions routes
"""

import uuid

import pytest
from httpx import AsyncClient

from gad_procurement.core.security import create_access_token

BASE = "/api/v1/permissions"


async def create_grant(client, headers, user_id, department_id, level="CONTRIBUTOR") -> dict:
    response = await client.post(
        f"{BASE}/access",
        json={"user_id": str(user_id), "department_id": str(department_id), "access_level": level},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.integration
class TestAuthentication:
    """Test bearer token handling"""

    @pytest.mark.asyncio
    async def test_missing_token(self, client: AsyncClient):
        response = await client.get(f"{BASE}/users/{uuid.uuid4()}/access")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "authentication_error"

    @pytest.mark.asyncio
    async def test_malformed_header(self, client: AsyncClient):
        response = await client.get(
            f"{BASE}/users/{uuid.uuid4()}/access",
            headers={"Authorization": "Token abc"},
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_subject_must_be_uuid(self, client: AsyncClient):
        token = create_access_token({"sub": "admin@example.com"})
        response = await client.get(
            f"{BASE}/users/{uuid.uuid4()}/access",
            headers={"Authorization": f"Bearer {token}"},
        )
        assert response.status_code == 401


@pytest.mark.integration
class TestAccessEndpoints:
    """Test grant lifecycle over HTTP"""

    @pytest.mark.asyncio
    async def test_create_and_fetch(self, client: AsyncClient, auth_headers, admin_id):
        user_id, department_id = uuid.uuid4(), uuid.uuid4()
        created = await create_grant(client, auth_headers, user_id, department_id)

        assert created["access_level"] == "CONTRIBUTOR"
        assert created["permissions"]["documents"]["can_upload"] is True
        assert created["assignment"]["assigned_by"] == str(admin_id)

        response = await client.get(f"{BASE}/access/{created['id']}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["id"] == created["id"]

    @pytest.mark.asyncio
    async def test_duplicate_grant_conflict(self, client: AsyncClient, auth_headers):
        user_id, department_id = uuid.uuid4(), uuid.uuid4()
        await create_grant(client, auth_headers, user_id, department_id)

        response = await client.post(
            f"{BASE}/access",
            json={"user_id": str(user_id), "department_id": str(department_id), "access_level": "OWNER"},
            headers=auth_headers,
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "already_exists"

    @pytest.mark.asyncio
    async def test_invalid_level_rejected(self, client: AsyncClient, auth_headers):
        response = await client.post(
            f"{BASE}/access",
            json={"user_id": str(uuid.uuid4()), "department_id": str(uuid.uuid4()), "access_level": "ADMIN"},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "validation_error"

    @pytest.mark.asyncio
    async def test_missing_access(self, client: AsyncClient, auth_headers):
        response = await client.get(f"{BASE}/access/{uuid.uuid4()}", headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["error"]["message"] == "Access not found"

    @pytest.mark.asyncio
    async def test_update_level(self, client: AsyncClient, auth_headers):
        created = await create_grant(client, auth_headers, uuid.uuid4(), uuid.uuid4())

        response = await client.patch(
            f"{BASE}/access/{created['id']}",
            json={"access_level": "REPOSITORY"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["permissions"]["contracts"]["can_view_all"] is True
        assert body["cross_department_access"]["has_global_access"] is True

    @pytest.mark.asyncio
    async def test_deactivate_twice(self, client: AsyncClient, auth_headers):
        created = await create_grant(client, auth_headers, uuid.uuid4(), uuid.uuid4())
        url = f"{BASE}/access/{created['id']}/deactivate"

        first = await client.post(url, json={"reason": "Left"}, headers=auth_headers)
        second = await client.post(url, json={"reason": "Left"}, headers=auth_headers)

        assert first.status_code == 200
        assert first.json()["status"] == "REVOKED"
        assert second.status_code == 409
        assert second.json()["error"]["code"] == "invalid_state"

    @pytest.mark.asyncio
    async def test_suspend_and_reactivate(self, client: AsyncClient, auth_headers):
        created = await create_grant(client, auth_headers, uuid.uuid4(), uuid.uuid4())

        suspended = await client.post(
            f"{BASE}/access/{created['id']}/suspend", json={}, headers=auth_headers
        )
        restored = await client.post(
            f"{BASE}/access/{created['id']}/reactivate", json={}, headers=auth_headers
        )

        assert suspended.json()["status"] == "SUSPENDED"
        assert restored.json()["status"] == "ACTIVE"

    @pytest.mark.asyncio
    async def test_history_carries_request_metadata(self, client: AsyncClient, auth_headers, admin_id):
        created = await create_grant(client, auth_headers, uuid.uuid4(), uuid.uuid4())

        response = await client.get(f"{BASE}/access/{created['id']}/history", headers=auth_headers)

        assert response.status_code == 200
        entries = response.json()
        assert len(entries) == 1
        assert entries[0]["action_type"] == "CREATED"
        assert entries[0]["changed_by"] == str(admin_id)
        assert entries[0]["audit_info"]["request_id"] == "req-api-test"

    @pytest.mark.asyncio
    async def test_patch_end_date_keeps_start_date(self, client: AsyncClient, auth_headers):
        created = await create_grant(client, auth_headers, uuid.uuid4(), uuid.uuid4(), "OBSERVER")

        response = await client.patch(
            f"{BASE}/access/{created['id']}",
            json={"validity": {"end_date": "2099-01-01T00:00:00Z"}},
            headers=auth_headers,
        )

        assert response.status_code == 200, response.text
        validity = response.json()["validity"]
        assert validity["start_date"] == created["validity"]["start_date"]
        assert validity["end_date"].startswith("2099-01-01T00:00:00")

    @pytest.mark.asyncio
    async def test_reactivate_expired_grant(self, client: AsyncClient, auth_headers):
        response = await client.post(
            f"{BASE}/access",
            json={
                "user_id": str(uuid.uuid4()),
                "department_id": str(uuid.uuid4()),
                "access_level": "CONTRIBUTOR",
                "validity": {
                    "start_date": "2020-01-01T00:00:00Z",
                    "end_date": "2020-06-01T00:00:00Z",
                },
            },
            headers=auth_headers,
        )
        access_id = response.json()["id"]
        await client.post(f"{BASE}/access/expire", headers=auth_headers)

        refused = await client.post(
            f"{BASE}/access/{access_id}/reactivate", json={}, headers=auth_headers
        )
        restored = await client.post(
            f"{BASE}/access/{access_id}/reactivate",
            json={"reason": "Extended", "validity": {"end_date": "2099-01-01T00:00:00Z"}},
            headers=auth_headers,
        )

        assert refused.status_code == 409
        assert refused.json()["error"]["code"] == "invalid_state"
        assert restored.status_code == 200
        assert restored.json()["status"] == "ACTIVE"

    @pytest.mark.asyncio
    async def test_search_by_status(self, client: AsyncClient, auth_headers):
        department_id = uuid.uuid4()
        revoked = await create_grant(client, auth_headers, uuid.uuid4(), department_id)
        await create_grant(client, auth_headers, uuid.uuid4(), department_id)
        await client.post(
            f"{BASE}/access/{revoked['id']}/deactivate", json={"reason": "Left"}, headers=auth_headers
        )

        response = await client.get(
            f"{BASE}/access",
            params={"department_id": str(department_id), "status": "REVOKED", "is_active": "false"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 1
        assert body["results"][0]["id"] == revoked["id"]

    @pytest.mark.asyncio
    async def test_search_rejects_unknown_status(self, client: AsyncClient, auth_headers):
        response = await client.get(
            f"{BASE}/access", params={"status": "ARCHIVED"}, headers=auth_headers
        )

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Invalid status"

    @pytest.mark.asyncio
    async def test_transfer_ownership(self, client: AsyncClient, auth_headers):
        owner, successor, department_id = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
        await create_grant(client, auth_headers, owner, department_id, "OWNER")

        response = await client.post(
            f"{BASE}/transfer-ownership",
            json={
                "department_id": str(department_id),
                "from_user_id": str(owner),
                "to_user_id": str(successor),
            },
            headers=auth_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["new_owner"]["access_level"] == "OWNER"
        assert body["new_owner"]["assignment"]["is_primary"] is True
        assert body["previous_owner"]["access_level"] == "CONTRIBUTOR"

    @pytest.mark.asyncio
    async def test_department_listing(self, client: AsyncClient, auth_headers):
        department_id = uuid.uuid4()
        await create_grant(client, auth_headers, uuid.uuid4(), department_id, "OWNER")
        await create_grant(client, auth_headers, uuid.uuid4(), department_id, "OBSERVER")

        response = await client.get(
            f"{BASE}/departments/{department_id}/access",
            params={"access_level": "OWNER"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert [r["access_level"] for r in response.json()] == ["OWNER"]


@pytest.mark.integration
class TestCheckEndpoints:
    """Test evaluation over HTTP"""

    @pytest.mark.asyncio
    async def test_denial_is_not_an_error(self, client: AsyncClient, auth_headers):
        user_id, department_id = uuid.uuid4(), uuid.uuid4()
        await create_grant(client, auth_headers, user_id, department_id)

        response = await client.post(
            f"{BASE}/check",
            json={
                "user_id": str(user_id),
                "department_id": str(department_id),
                "category": "contracts",
                "permission": "can_create",
            },
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json() == {
            "allowed": False,
            "reason": "Permission denied",
            "access_level": "CONTRIBUTOR",
        }

    @pytest.mark.asyncio
    async def test_ip_restriction_enforced_with_context(self, client: AsyncClient, auth_headers):
        user_id, department_id = uuid.uuid4(), uuid.uuid4()
        response = await client.post(
            f"{BASE}/access",
            json={
                "user_id": str(user_id),
                "department_id": str(department_id),
                "access_level": "CONTRIBUTOR",
                "restrictions": {"ip_allow_list": ["192.168.1.0/24"]},
            },
            headers=auth_headers,
        )
        assert response.status_code == 201
        check = {
            "user_id": str(user_id),
            "department_id": str(department_id),
            "category": "documents",
            "permission": "can_upload",
        }

        without_context = await client.post(f"{BASE}/check", json=check, headers=auth_headers)
        # Test client address is 127.0.0.1, outside the allow list
        caller_address = await client.post(
            f"{BASE}/check", json={**check, "context": {}}, headers=auth_headers
        )
        office_address = await client.post(
            f"{BASE}/check",
            json={**check, "context": {"ip_address": "192.168.1.20"}},
            headers=auth_headers,
        )

        assert without_context.json()["allowed"] is True
        assert caller_address.json() == {
            "allowed": False,
            "reason": "Client address not allowed",
            "access_level": "CONTRIBUTOR",
        }
        assert office_address.json()["allowed"] is True

    @pytest.mark.asyncio
    async def test_system_action(self, client: AsyncClient, auth_headers):
        user_id, department_id = uuid.uuid4(), uuid.uuid4()
        await create_grant(client, auth_headers, user_id, department_id, "OWNER")

        response = await client.post(
            f"{BASE}/check-action",
            json={"user_id": str(user_id), "department_id": str(department_id), "action": "EDIT_CONTRACT"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["allowed"] is True

    @pytest.mark.asyncio
    async def test_batch(self, client: AsyncClient, auth_headers):
        user_id, department_id = uuid.uuid4(), uuid.uuid4()
        await create_grant(client, auth_headers, user_id, department_id)
        check = {"user_id": str(user_id), "department_id": str(department_id), "category": "documents"}

        response = await client.post(
            f"{BASE}/check-batch",
            json={"checks": [{**check, "permission": "can_upload"}, {**check, "permission": "can_delete"}]},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert [r["result"]["allowed"] for r in response.json()] == [True, False]

    @pytest.mark.asyncio
    async def test_empty_batch_rejected(self, client: AsyncClient, auth_headers):
        response = await client.post(f"{BASE}/check-batch", json={"checks": []}, headers=auth_headers)
        assert response.status_code == 400


@pytest.mark.integration
class TestTemplateEndpoints:

    @pytest.mark.asyncio
    async def test_create_list_and_apply(self, client: AsyncClient, auth_headers):
        matrix = (await create_grant(client, auth_headers, uuid.uuid4(), uuid.uuid4(), "OBSERVER"))[
            "permissions"
        ]
        created = await client.post(
            f"{BASE}/templates",
            json={
                "name": "Oversight committee",
                "default_access_level": "OBSERVER",
                "permission_template": matrix,
                "applicable_roles": ["oversight"],
            },
            headers=auth_headers,
        )
        assert created.status_code == 201
        template_id = created.json()["id"]

        listed = await client.get(f"{BASE}/templates", params={"role": "oversight"}, headers=auth_headers)
        assert [t["id"] for t in listed.json()] == [template_id]

        department_id = uuid.uuid4()
        applied = await client.post(
            f"{BASE}/templates/{template_id}/apply",
            json={"user_ids": [str(uuid.uuid4()), "bogus"], "department_id": str(department_id)},
            headers=auth_headers,
        )

        assert applied.status_code == 200
        assert [r["status"] for r in applied.json()] == ["created", "error"]

    @pytest.mark.asyncio
    async def test_short_template_name(self, client: AsyncClient, auth_headers):
        matrix = (await create_grant(client, auth_headers, uuid.uuid4(), uuid.uuid4()))["permissions"]
        response = await client.post(
            f"{BASE}/templates",
            json={"name": "x", "default_access_level": "OBSERVER", "permission_template": matrix},
            headers=auth_headers,
        )
        assert response.status_code == 400
