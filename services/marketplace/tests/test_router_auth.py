import pytest
from httpx import AsyncClient

from shared.constants import Role

from factories import auth_headers, make_user

API = "/api/v1"


@pytest.mark.asyncio
async def test_health(async_client: AsyncClient) -> None:
    response = await async_client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "marketplace"}


@pytest.mark.asyncio
async def test_request_id_is_echoed(async_client: AsyncClient) -> None:
    response = await async_client.get("/health", headers={"X-Request-ID": "req-123"})

    assert response.headers["X-Request-ID"] == "req-123"


@pytest.mark.asyncio
async def test_signup_returns_token_envelope(async_client: AsyncClient) -> None:
    response = await async_client.post(
        f"{API}/auth/signup",
        json={"name": "Asha", "email": "Asha@Example.com", "password": "secret123"},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Account created."
    assert body["data"]["access_token"]
    assert body["data"]["user"]["email"] == "asha@example.com"
    assert body["data"]["user"]["role"] == "aspirant"


@pytest.mark.asyncio
async def test_institution_signup_needs_name_and_type(async_client: AsyncClient) -> None:
    response = await async_client.post(
        f"{API}/auth/signup",
        json={"name": "Owner", "email": "owner@example.com", "password": "secret123",
              "role": "institution"},
    )

    assert response.status_code == 400
    assert response.json()["error"]["kind"] == "ValidationError"


@pytest.mark.asyncio
async def test_admin_signup_disabled_without_code(async_client: AsyncClient) -> None:
    response = await async_client.post(
        f"{API}/auth/signup",
        json={"name": "Root", "email": "root@example.com", "password": "secret123",
              "role": "admin", "admin_code": "guess"},
    )

    assert response.status_code == 403
    assert response.json()["error"]["kind"] == "Forbidden"


@pytest.mark.asyncio
async def test_duplicate_email_is_conflict(async_client: AsyncClient) -> None:
    payload = {"name": "Asha", "email": "asha@example.com", "password": "secret123"}
    await async_client.post(f"{API}/auth/signup", json=payload)

    response = await async_client.post(
        f"{API}/auth/signup", json={**payload, "email": "ASHA@example.com"}
    )

    assert response.status_code == 409
    body = response.json()
    assert body["success"] is False
    assert body["error"]["kind"] == "Conflict"
    assert "request_id" in body


@pytest.mark.asyncio
async def test_login_and_me(async_client: AsyncClient, session_factory) -> None:
    async with session_factory() as session:
        await make_user(session, email="ravi@example.com", password="secret123")
        await session.commit()

    bad = await async_client.post(
        f"{API}/auth/login", json={"email": "ravi@example.com", "password": "wrong"}
    )
    assert bad.status_code == 401
    assert bad.json()["error"]["kind"] == "Unauthenticated"

    wrong_role = await async_client.post(
        f"{API}/auth/login",
        json={"email": "ravi@example.com", "password": "secret123", "role": "institution"},
    )
    assert wrong_role.status_code == 401

    ok = await async_client.post(
        f"{API}/auth/login", json={"email": "ravi@example.com", "password": "secret123"}
    )
    assert ok.status_code == 200
    token = ok.json()["data"]["access_token"]

    me = await async_client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["data"]["email"] == "ravi@example.com"


@pytest.mark.asyncio
async def test_deactivated_account_cannot_log_in(async_client: AsyncClient, session_factory) -> None:
    async with session_factory() as session:
        await make_user(session, email="gone@example.com", is_active=False)
        await session.commit()

    response = await async_client.post(
        f"{API}/auth/login", json={"email": "gone@example.com", "password": "secret123"}
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_missing_and_garbage_tokens_are_unauthenticated(async_client: AsyncClient) -> None:
    missing = await async_client.get(f"{API}/auth/me")
    garbage = await async_client.get(f"{API}/auth/me", headers={"Authorization": "Bearer nope"})

    assert missing.status_code == 401
    assert garbage.status_code == 401
    assert missing.json()["error"]["kind"] == "Unauthenticated"


@pytest.mark.asyncio
async def test_role_guard_is_forbidden(async_client: AsyncClient, session_factory) -> None:
    async with session_factory() as session:
        aspirant = await make_user(session)
        await session.commit()

    response = await async_client.get(f"{API}/admin/stats", headers=auth_headers(aspirant))

    assert response.status_code == 403
    assert response.json()["error"]["kind"] == "Forbidden"


@pytest.mark.asyncio
async def test_change_password(async_client: AsyncClient, session_factory) -> None:
    async with session_factory() as session:
        user = await make_user(session, email="pw@example.com")
        await session.commit()
    headers = auth_headers(user)

    wrong = await async_client.post(
        f"{API}/auth/password",
        json={"current_password": "nope", "new_password": "another123"},
        headers=headers,
    )
    assert wrong.status_code == 401

    ok = await async_client.post(
        f"{API}/auth/password",
        json={"current_password": "secret123", "new_password": "another123"},
        headers=headers,
    )
    assert ok.status_code == 200

    login = await async_client.post(
        f"{API}/auth/login", json={"email": "pw@example.com", "password": "another123"}
    )
    assert login.status_code == 200


@pytest.mark.asyncio
async def test_email_otp_round_trip(async_client: AsyncClient, otp_store) -> None:
    sent = await async_client.post(f"{API}/auth/send-otp", json={"email": "otp@example.com"})
    assert sent.status_code == 200
    code = otp_store.last_code
    assert code is not None and len(code) == 6

    wrong_code = "111111" if code == "000000" else "000000"
    wrong = await async_client.post(
        f"{API}/auth/verify-otp", json={"email": "otp@example.com", "otp": wrong_code}
    )
    assert wrong.status_code == 400

    ok = await async_client.post(
        f"{API}/auth/verify-otp", json={"email": "otp@example.com", "otp": code}
    )
    assert ok.status_code == 200
    assert ok.json()["message"] == "Email verified."

    reused = await async_client.post(
        f"{API}/auth/verify-otp", json={"email": "otp@example.com", "otp": code}
    )
    assert reused.status_code == 400


@pytest.mark.asyncio
async def test_admin_routes_accept_admin(async_client: AsyncClient, session_factory) -> None:
    async with session_factory() as session:
        admin = await make_user(session, role=Role.ADMIN)
        await session.commit()

    response = await async_client.get(f"{API}/admin/stats", headers=auth_headers(admin))

    assert response.status_code == 200
    assert response.json()["data"]["course_count"] == 0
