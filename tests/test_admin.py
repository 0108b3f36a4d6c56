import pytest
from sqlalchemy import select

from db_models.audit_log import AuditLog
from db_models.user import User, UserRole

URL = "/api/v1/admin/users"


async def login(client, username, password):
    return await client.post("/api/v1/auth/login", json={"username": username, "password": password})


@pytest.mark.anyio
async def test_user_admin_is_superadmin_only(async_client, admin_headers, auditor_headers):
    for headers in (admin_headers, auditor_headers):
        resp = await async_client.get(URL, headers=headers)
        assert resp.status_code == 403


@pytest.mark.anyio
async def test_list_users_with_filters(async_client, superadmin_headers, seeded_users, db_session):
    clerk = seeded_users[UserRole.DATA_ENTRY]
    resp = await async_client.get(URL, headers=superadmin_headers)
    assert resp.status_code == 200
    assert resp.json()["pagination"]["total"] == 4

    resp = await async_client.get(URL, params={"role": "Auditor"}, headers=superadmin_headers)
    assert [u["username"] for u in resp.json()["data"]] == ["inspector"]

    resp = await async_client.get(URL, params={"search": "cler"}, headers=superadmin_headers)
    assert [u["id"] for u in resp.json()["data"]] == [clerk.id]

    user = await db_session.get(User, clerk.id)
    user.is_active = False
    await db_session.commit()

    resp = await async_client.get(URL, params={"status": "Inactive"}, headers=superadmin_headers)
    assert [u["id"] for u in resp.json()["data"]] == [clerk.id]
    resp = await async_client.get(URL, params={"status": "Active", "role": "All"}, headers=superadmin_headers)
    assert resp.json()["pagination"]["total"] == 3


@pytest.mark.anyio
async def test_user_search_treats_wildcards_literally(async_client, superadmin_headers):
    for term in ("%", "_"):
        resp = await async_client.get(URL, params={"search": term}, headers=superadmin_headers)
        assert resp.status_code == 200
        assert resp.json()["pagination"]["total"] == 0


@pytest.mark.anyio
async def test_create_user_with_temporary_password(async_client, superadmin_headers, db_session):
    resp = await async_client.post(
        URL,
        json={"username": "newbie", "email": "newbie@example.com", "role": "Auditor", "department": "Finance"},
        headers=superadmin_headers,
    )
    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["data"]["email_verified"] is True
    temp_password = body["temp_password"]
    assert len(temp_password) >= 8

    resp = await login(async_client, "newbie", temp_password)
    assert resp.status_code == 200
    assert resp.json()["user"]["role"] == "Auditor"

    entry = (await db_session.execute(select(AuditLog).where(AuditLog.action == "User Created"))).scalar_one()
    assert entry.details == "Created user: newbie (Auditor)"


@pytest.mark.anyio
async def test_create_superadmin_is_refused(async_client, superadmin_headers):
    resp = await async_client.post(
        URL,
        json={"username": "boss2", "email": "boss2@example.com", "role": "SuperAdmin"},
        headers=superadmin_headers,
    )
    assert resp.status_code == 400
    assert resp.json()["error"].startswith("Invalid role")


@pytest.mark.anyio
async def test_create_duplicate_user_conflicts(async_client, superadmin_headers, seeded_users):
    resp = await async_client.post(
        URL,
        json={"username": seeded_users[UserRole.ADMIN].username, "email": "x@example.com", "role": "Admin"},
        headers=superadmin_headers,
    )
    assert resp.status_code == 409


@pytest.mark.anyio
async def test_update_user(async_client, superadmin_headers, seeded_users, db_session):
    clerk = seeded_users[UserRole.DATA_ENTRY]
    resp = await async_client.put(
        f"{URL}/{clerk.id}",
        json={"role": "Admin", "department": "Loans"},
        headers=superadmin_headers,
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["data"]["role"] == "Admin"
    assert resp.json()["data"]["department"] == "Loans"

    entry = (await db_session.execute(select(AuditLog).where(AuditLog.action == "User Updated"))).scalar_one()
    assert entry.old_values == {"role": "DataEntry", "department": None}
    assert entry.new_values == {"role": "Admin", "department": "Loans"}


@pytest.mark.anyio
async def test_update_null_clears_optional_fields_only(async_client, superadmin_headers, seeded_users):
    clerk = seeded_users[UserRole.DATA_ENTRY]
    resp = await async_client.put(
        f"{URL}/{clerk.id}",
        json={"phone_number": "555-0100", "department": "Loans"},
        headers=superadmin_headers,
    )
    assert resp.json()["data"]["department"] == "Loans"

    resp = await async_client.put(
        f"{URL}/{clerk.id}",
        json={"phone_number": None, "department": None, "username": None, "email": None},
        headers=superadmin_headers,
    )
    assert resp.status_code == 200, resp.text
    data = resp.json()["data"]
    assert data["phone_number"] is None
    assert data["department"] is None
    assert data["username"] == clerk.username
    assert data["email"] == clerk.email


@pytest.mark.anyio
async def test_update_cannot_assign_superadmin(async_client, superadmin_headers, seeded_users):
    resp = await async_client.put(
        f"{URL}/{seeded_users[UserRole.ADMIN].id}",
        json={"role": "SuperAdmin"},
        headers=superadmin_headers,
    )
    assert resp.status_code == 400


@pytest.mark.anyio
async def test_last_superadmin_cannot_be_demoted(async_client, superadmin_headers, seeded_users):
    root = seeded_users[UserRole.SUPER_ADMIN]
    resp = await async_client.put(f"{URL}/{root.id}", json={"role": "Admin"}, headers=superadmin_headers)
    assert resp.status_code == 400
    assert resp.json()["error"] == "Cannot demote the last active SuperAdmin"


@pytest.mark.anyio
async def test_superadmin_can_be_demoted_when_another_remains(async_client, superadmin_headers, seeded_users, db_session):
    db_session.add(
        User(username="root2", email="root2@example.com", password_hash="x",
             role=UserRole.SUPER_ADMIN.value, is_active=True, email_verified=True)
    )
    await db_session.commit()

    root = seeded_users[UserRole.SUPER_ADMIN]
    resp = await async_client.put(f"{URL}/{root.id}", json={"role": "Admin"}, headers=superadmin_headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["role"] == "Admin"


@pytest.mark.anyio
async def test_update_to_taken_email_conflicts(async_client, superadmin_headers, seeded_users):
    resp = await async_client.put(
        f"{URL}/{seeded_users[UserRole.DATA_ENTRY].id}",
        json={"email": seeded_users[UserRole.ADMIN].email},
        headers=superadmin_headers,
    )
    assert resp.status_code == 409


@pytest.mark.anyio
async def test_delete_user(async_client, superadmin_headers, seeded_users):
    clerk = seeded_users[UserRole.DATA_ENTRY]
    resp = await async_client.delete(f"{URL}/{clerk.id}", headers=superadmin_headers)
    assert resp.status_code == 200

    resp = await async_client.get(f"{URL}/{clerk.id}", headers=superadmin_headers)
    assert resp.status_code == 404


@pytest.mark.anyio
async def test_cannot_delete_superadmin(async_client, superadmin_headers, seeded_users):
    root = seeded_users[UserRole.SUPER_ADMIN]
    resp = await async_client.delete(f"{URL}/{root.id}", headers=superadmin_headers)
    assert resp.status_code == 400
    assert resp.json()["error"] == "Cannot delete SuperAdmin users"


@pytest.mark.anyio
async def test_delete_missing_user(async_client, superadmin_headers):
    resp = await async_client.delete(f"{URL}/9999", headers=superadmin_headers)
    assert resp.status_code == 404


@pytest.mark.anyio
async def test_toggle_status(async_client, superadmin_headers, seeded_users):
    clerk = seeded_users[UserRole.DATA_ENTRY]

    resp = await async_client.put(f"{URL}/{clerk.id}/toggle-status", headers=superadmin_headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["is_active"] is False
    assert (await login(async_client, clerk.username, clerk.password)).status_code == 403

    resp = await async_client.put(
        f"{URL}/{clerk.id}/toggle-status", json={"is_active": True}, headers=superadmin_headers
    )
    assert resp.json()["data"]["is_active"] is True
    assert (await login(async_client, clerk.username, clerk.password)).status_code == 200


@pytest.mark.anyio
async def test_cannot_deactivate_superadmin(async_client, superadmin_headers, seeded_users):
    root = seeded_users[UserRole.SUPER_ADMIN]
    resp = await async_client.put(
        f"{URL}/{root.id}/toggle-status", json={"is_active": False}, headers=superadmin_headers
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "Cannot deactivate SuperAdmin users"


@pytest.mark.anyio
async def test_reset_password_generates_temporary_one(async_client, superadmin_headers, seeded_users):
    clerk = seeded_users[UserRole.DATA_ENTRY]
    resp = await async_client.post(f"{URL}/{clerk.id}/reset-password", headers=superadmin_headers)
    assert resp.status_code == 200
    temp_password = resp.json()["temp_password"]

    assert (await login(async_client, clerk.username, clerk.password)).status_code == 401
    assert (await login(async_client, clerk.username, temp_password)).status_code == 200


@pytest.mark.anyio
async def test_statistics(async_client, superadmin_headers, data_entry_headers):
    await async_client.post(
        "/api/v1/auth/permission-requests",
        json={"requested_permission": "view_reports", "reason": "Monthly returns"},
        headers=data_entry_headers,
    )

    resp = await async_client.get("/api/v1/admin/statistics", headers=superadmin_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["users"]["total_users"] == 4
    assert body["users"]["super_admins"] == 1
    assert body["users"]["auditors"] == 1
    assert body["users"]["active_users"] == 4
    assert body["activity"]["today_activities"] == 1
    assert body["pending_permission_requests"] == 1


@pytest.mark.anyio
async def test_report_summary_for_elevated_roles(async_client, admin_headers, superadmin_headers, auditor_headers):
    for headers in (admin_headers, superadmin_headers):
        resp = await async_client.get("/api/v1/admin/reports/summary", headers=headers)
        assert resp.status_code == 200
        body = resp.json()
        assert body["active_users"] == 4
        assert body["users_by_role"] == {"SuperAdmin": 1, "Admin": 1, "DataEntry": 1, "Auditor": 1}

    resp = await async_client.get("/api/v1/admin/reports/summary", headers=auditor_headers)
    assert resp.status_code == 403


@pytest.mark.anyio
async def test_role_claim_is_trusted_until_expiry(async_client, seeded_users, admin_headers, db_session):
    manager = seeded_users[UserRole.ADMIN]
    user = await db_session.get(User, manager.id)
    user.role = UserRole.DATA_ENTRY.value
    await db_session.commit()

    # the token issued while the user was Admin still passes the Admin gate
    resp = await async_client.get("/api/v1/admin/reports/summary", headers=admin_headers)
    assert resp.status_code == 200
