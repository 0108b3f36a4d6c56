import asyncio

import pytest
from sqlalchemy import select

from db_models.audit_log import AuditLog
from db_models.user import UserRole

URL = "/api/v1/auth/permission-requests"


async def file_request(client, headers, permission="manage_loans", reason="Covering for a colleague", **extra):
    return await client.post(
        URL,
        json={"requested_permission": permission, "reason": reason, **extra},
        headers=headers,
    )


@pytest.mark.anyio
async def test_create_request_defaults_target_to_requester(async_client, data_entry_headers, seeded_users):
    resp = await file_request(async_client, data_entry_headers)
    assert resp.status_code == 201, resp.text
    data = resp.json()["data"]
    clerk = seeded_users[UserRole.DATA_ENTRY]
    assert data["status"] == "Pending"
    assert data["requester_id"] == clerk.id
    assert data["target_user_id"] == clerk.id
    assert data["requester_username"] == clerk.username
    assert data["requested_permission"] == "manage_loans"


@pytest.mark.anyio
async def test_create_request_on_behalf_of_another_user(async_client, admin_headers, seeded_users):
    clerk = seeded_users[UserRole.DATA_ENTRY]
    resp = await file_request(async_client, admin_headers, target_user_id=clerk.id)
    assert resp.status_code == 201
    assert resp.json()["data"]["target_username"] == clerk.username


@pytest.mark.anyio
async def test_create_request_for_missing_target(async_client, admin_headers):
    resp = await file_request(async_client, admin_headers, target_user_id=9999)
    assert resp.status_code == 404


@pytest.mark.anyio
async def test_create_request_unknown_permission(async_client, data_entry_headers):
    resp = await file_request(async_client, data_entry_headers, permission="launch_rockets")
    assert resp.status_code == 400


@pytest.mark.anyio
async def test_create_request_requires_authentication(async_client):
    resp = await file_request(async_client, {})
    assert resp.status_code == 401


@pytest.mark.anyio
async def test_list_own_requests(async_client, data_entry_headers, auditor_headers):
    await file_request(async_client, data_entry_headers, permission="manage_loans")
    await file_request(async_client, data_entry_headers, permission="view_reports")
    await file_request(async_client, auditor_headers, permission="manage_users")

    resp = await async_client.get(f"{URL}/mine", headers=data_entry_headers)
    assert resp.status_code == 200
    permissions = {r["requested_permission"] for r in resp.json()}
    assert permissions == {"manage_loans", "view_reports"}


@pytest.mark.anyio
async def test_listing_all_requests_is_superadmin_only(async_client, admin_headers, superadmin_headers):
    await file_request(async_client, admin_headers)

    resp = await async_client.get(URL, headers=admin_headers)
    assert resp.status_code == 403
    assert resp.json()["required_roles"] == ["SuperAdmin"]

    resp = await async_client.get(URL, headers=superadmin_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["pagination"]["total"] == 1
    assert len(body["data"]) == 1


@pytest.mark.anyio
async def test_list_requests_filtered_by_status(async_client, data_entry_headers, superadmin_headers):
    first = (await file_request(async_client, data_entry_headers, permission="manage_loans")).json()["data"]
    await file_request(async_client, data_entry_headers, permission="view_reports")
    await async_client.put(f"{URL}/{first['id']}", json={"action": "deny"}, headers=superadmin_headers)

    resp = await async_client.get(URL, params={"status": "Pending"}, headers=superadmin_headers)
    assert [r["requested_permission"] for r in resp.json()["data"]] == ["view_reports"]

    resp = await async_client.get(URL, params={"status": "Denied"}, headers=superadmin_headers)
    assert [r["requested_permission"] for r in resp.json()["data"]] == ["manage_loans"]


@pytest.mark.anyio
async def test_superadmin_approves_request(async_client, data_entry_headers, superadmin_headers, seeded_users, db_session):
    request_id = (await file_request(async_client, data_entry_headers)).json()["data"]["id"]

    resp = await async_client.put(
        f"{URL}/{request_id}",
        json={"action": "approve", "comments": "Temporary cover"},
        headers=superadmin_headers,
    )
    assert resp.status_code == 200, resp.text
    data = resp.json()["data"]
    assert data["status"] == "Approved"
    assert data["reviewed_by"] == seeded_users[UserRole.SUPER_ADMIN].id
    assert data["review_comments"] == "Temporary cover"
    assert data["reviewed_at"] is not None

    entry = (
        await db_session.execute(select(AuditLog).where(AuditLog.action == "Permission Request Reviewed"))
    ).scalar_one()
    assert entry.old_values == {"status": "Pending"}
    assert entry.new_values["status"] == "Approved"


@pytest.mark.anyio
async def test_review_requires_superadmin(async_client, data_entry_headers, admin_headers):
    request_id = (await file_request(async_client, data_entry_headers)).json()["data"]["id"]
    resp = await async_client.put(f"{URL}/{request_id}", json={"action": "approve"}, headers=admin_headers)
    assert resp.status_code == 403
    assert resp.json()["user_role"] == "Admin"


@pytest.mark.anyio
async def test_request_can_only_be_reviewed_once(async_client, data_entry_headers, superadmin_headers):
    request_id = (await file_request(async_client, data_entry_headers)).json()["data"]["id"]

    first = await async_client.put(f"{URL}/{request_id}", json={"action": "approve"}, headers=superadmin_headers)
    second = await async_client.put(f"{URL}/{request_id}", json={"action": "deny"}, headers=superadmin_headers)
    assert first.status_code == 200
    assert second.status_code == 409

    resp = await async_client.get(f"{URL}/{request_id}", headers=superadmin_headers)
    assert resp.json()["data"]["status"] == "Approved"


@pytest.mark.anyio
async def test_concurrent_reviews_only_one_wins(async_client, data_entry_headers, superadmin_headers):
    request_id = (await file_request(async_client, data_entry_headers)).json()["data"]["id"]

    results = await asyncio.gather(
        async_client.put(f"{URL}/{request_id}", json={"action": "approve"}, headers=superadmin_headers),
        async_client.put(f"{URL}/{request_id}", json={"action": "deny"}, headers=superadmin_headers),
    )
    assert sorted(r.status_code for r in results) == [200, 409]


@pytest.mark.anyio
async def test_review_missing_request(async_client, superadmin_headers):
    resp = await async_client.put(f"{URL}/424242", json={"action": "approve"}, headers=superadmin_headers)
    assert resp.status_code == 404


@pytest.mark.anyio
async def test_review_rejects_unknown_action(async_client, data_entry_headers, superadmin_headers):
    request_id = (await file_request(async_client, data_entry_headers)).json()["data"]["id"]
    resp = await async_client.put(f"{URL}/{request_id}", json={"action": "maybe"}, headers=superadmin_headers)
    assert resp.status_code == 400
