import pytest
from email_validator import EmailNotValidError
from sqlalchemy import delete, select

from db_models.user import User, UserRole
from seed_database import DEFAULT_SUPERADMIN_EMAIL, DEFAULT_SUPERADMIN_USERNAME, DEMO_USERS, seed_database

SEED_PASSWORD = "seed-password-1"


@pytest.fixture
async def without_superadmin(db_session):
    await db_session.execute(delete(User).where(User.role == UserRole.SUPER_ADMIN.value))
    await db_session.commit()


@pytest.mark.anyio
async def test_seeded_accounts_can_request_password_reset(async_client, notifier, without_superadmin):
    seed_database(DEFAULT_SUPERADMIN_USERNAME, DEFAULT_SUPERADMIN_EMAIL, SEED_PASSWORD, demo_users=True)

    for email in [DEFAULT_SUPERADMIN_EMAIL] + [demo["email"] for demo in DEMO_USERS]:
        resp = await async_client.post("/api/v1/auth/request-password-reset", json={"email": email})
        assert resp.status_code == 200, resp.text
        assert email in notifier.reset_tokens


@pytest.mark.anyio
async def test_seeded_superadmin_can_log_in(async_client, without_superadmin):
    seed_database(DEFAULT_SUPERADMIN_USERNAME, DEFAULT_SUPERADMIN_EMAIL, SEED_PASSWORD)

    resp = await async_client.post(
        "/api/v1/auth/login",
        json={"username": DEFAULT_SUPERADMIN_USERNAME, "password": SEED_PASSWORD},
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["user"]["role"] == "SuperAdmin"


@pytest.mark.anyio
async def test_seed_rejects_address_the_api_would_refuse(db_session, without_superadmin):
    with pytest.raises(EmailNotValidError):
        seed_database("boss", "boss@council.local", SEED_PASSWORD)

    result = await db_session.execute(select(User).where(User.username == "boss"))
    assert result.scalar_one_or_none() is None
