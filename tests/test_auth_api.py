"""Sign-up, login, profile and password reset."""

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from studyhub.api.deps import create_access_token, create_reset_token
from studyhub.db.models import User
from tests.conftest import TEST_PASSWORD, fake, institutional_email

DOMAIN_ERROR = "Only APU students with @mail.apu.edu.my emails can sign up."


async def user_count(db_session) -> int:
    return (await db_session.execute(select(func.count()).select_from(User))).scalar_one()


@pytest.fixture
def signup_data() -> dict:
    return {"email": institutional_email(), "password": TEST_PASSWORD, "name": fake.first_name()}


async def test_signup_issues_token_and_cookie(client: AsyncClient, signup_data, db_session):
    response = await client.post("/auth/signup", json=signup_data)

    assert response.status_code == 201
    data = response.json()
    assert data["token_type"] == "bearer"
    assert data["access_token"]
    assert "access_token" in response.cookies
    assert await user_count(db_session) == 1


async def test_signup_normalizes_email(client: AsyncClient, signup_data):
    signup_data["email"] = signup_data["email"].upper()
    response = await client.post("/auth/signup", json=signup_data)
    assert response.status_code == 201

    token = response.json()["access_token"]
    me = await client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.json()["email"] == signup_data["email"].lower()


@pytest.mark.parametrize("email", ["student@gmail.com", "student@apu.edu.my", "student@mail.apu.edu.my.evil.com"])
async def test_signup_rejects_other_domains(client: AsyncClient, signup_data, db_session, email):
    signup_data["email"] = email
    response = await client.post("/auth/signup", json=signup_data)

    assert response.status_code == 400
    assert response.json()["error"] == DOMAIN_ERROR
    assert "access_token" not in response.cookies
    assert await user_count(db_session) == 0


async def test_signup_duplicate_email(client: AsyncClient, signup_data):
    await client.post("/auth/signup", json=signup_data)
    response = await client.post("/auth/signup", json=signup_data)

    assert response.status_code == 400
    assert "already exists" in response.json()["error"]


async def test_signup_validation_errors(client: AsyncClient, signup_data):
    signup_data["password"] = "123"
    response = await client.post("/auth/signup", json=signup_data)

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Invalid request format"
    assert "password is invalid" in body["errors"]
    assert "timestamp" in body


async def test_signup_domain_error_wins_over_field_errors(client: AsyncClient, db_session):
    response = await client.post(
        "/auth/signup", json={"email": "eve@gmail.com", "password": "123", "name": ""}
    )

    assert response.status_code == 400
    assert response.json()["error"] == DOMAIN_ERROR
    assert await user_count(db_session) == 0


async def test_signup_sanitizes_name(client: AsyncClient, signup_data):
    signup_data["name"] = "<b>Aisha</b> "
    response = await client.post("/auth/signup", json=signup_data)
    assert response.status_code == 201

    token = response.json()["access_token"]
    me = await client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.json()["name"] == "Aisha"


async def test_signup_rejects_name_that_sanitizes_to_nothing(client: AsyncClient, signup_data, db_session):
    signup_data["name"] = "<script>x</script>"
    response = await client.post("/auth/signup", json=signup_data)

    assert response.status_code == 400
    assert response.json()["errors"] == ["name is invalid"]
    assert await user_count(db_session) == 0


async def test_login_success(client: AsyncClient, test_user):
    response = await client.post("/auth/login", json={"email": test_user.email, "password": TEST_PASSWORD})

    assert response.status_code == 200
    assert response.json()["access_token"]


async def test_login_wrong_password(client: AsyncClient, test_user):
    response = await client.post("/auth/login", json={"email": test_user.email, "password": "wrong-password"})

    assert response.status_code == 401
    assert response.json()["error"] == "Invalid email or password"


async def test_login_unknown_email(client: AsyncClient, db_session):
    response = await client.post(
        "/auth/login", json={"email": institutional_email(), "password": TEST_PASSWORD}
    )
    assert response.status_code == 401
    assert response.json()["error"] == "Invalid email or password"


async def test_login_rejects_other_domains(client: AsyncClient, db_session):
    response = await client.post("/auth/login", json={"email": "student@gmail.com", "password": TEST_PASSWORD})

    assert response.status_code == 400
    assert response.json()["error"] == DOMAIN_ERROR
    assert "access_token" not in response.cookies


async def test_auth_rate_limit(client: AsyncClient, test_user):
    payload = {"email": test_user.email, "password": "wrong-password"}
    statuses = [(await client.post("/auth/login", json=payload)).status_code for _ in range(6)]

    assert statuses[:5] == [401] * 5
    assert statuses[5] == 429

    response = await client.post("/auth/login", json=payload)
    body = response.json()
    assert body["remaining"] == 0
    assert body["error"] == "Too many requests. Please try again later."
    assert response.headers["X-RateLimit-Remaining"] == "0"
    assert int(response.headers["Retry-After"]) > 0


async def test_me_requires_auth(client: AsyncClient, db_session):
    response = await client.get("/auth/me")
    assert response.status_code == 401


async def test_me_rejects_reset_token(client: AsyncClient, test_user):
    token = create_reset_token(test_user.id)
    response = await client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


async def test_me_accepts_cookie(client: AsyncClient, test_user):
    token = create_access_token(test_user.id)
    response = await client.get("/auth/me", headers={"Cookie": f"access_token={token}"})

    assert response.status_code == 200
    assert response.json()["id"] == str(test_user.id)


async def test_update_profile(client: AsyncClient, auth_headers):
    response = await client.patch(
        "/auth/me",
        json={"name": "<b>Aisha</b>", "student_id": "TP012345", "program": "Computer Science", "year": 2},
        headers=auth_headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Aisha"
    assert data["student_id"] == "TP012345"
    assert data["year"] == 2

    cleared = await client.patch("/auth/me", json={"program": None, "name": None}, headers=auth_headers)
    assert cleared.json()["program"] is None
    assert cleared.json()["name"] == "Aisha"


async def test_change_password(client: AsyncClient, test_user, auth_headers):
    response = await client.post(
        "/auth/change-password", json={"new_password": "brand-new-pass"}, headers=auth_headers
    )
    assert response.status_code == 204

    login = await client.post("/auth/login", json={"email": test_user.email, "password": "brand-new-pass"})
    assert login.status_code == 200


async def test_logout_clears_cookie(client: AsyncClient):
    response = await client.post("/auth/logout")
    assert response.status_code == 204
    assert "access_token" in response.headers.get("set-cookie", "")


# =============================================================================
# PASSWORD RESET
# =============================================================================


async def test_reset_request_rejects_other_domains(client: AsyncClient, db_session):
    response = await client.post("/auth/reset-password", json={"email": "someone@gmail.com"})

    assert response.status_code == 400
    assert response.json()["error"] == DOMAIN_ERROR


async def test_reset_request_same_answer_for_unknown_email(client: AsyncClient, test_user, monkeypatch):
    sent = []

    async def fake_send(to_email, user_name, reset_token):
        sent.append(to_email)
        return True

    monkeypatch.setattr("studyhub.api.routes.auth.email_service.send_password_reset_email", fake_send)

    known = await client.post("/auth/reset-password", json={"email": test_user.email})
    unknown = await client.post("/auth/reset-password", json={"email": institutional_email()})

    assert known.status_code == unknown.status_code == 202
    assert known.json() == unknown.json()
    assert sent == [test_user.email]


async def test_reset_confirm_sets_new_password(client: AsyncClient, test_user):
    token = create_reset_token(test_user.id)
    response = await client.post(
        "/auth/reset-password/confirm", json={"token": token, "new_password": "reset-pass-99"}
    )
    assert response.status_code == 204

    login = await client.post("/auth/login", json={"email": test_user.email, "password": "reset-pass-99"})
    assert login.status_code == 200


async def test_reset_confirm_rejects_access_token(client: AsyncClient, test_user):
    response = await client.post(
        "/auth/reset-password/confirm",
        json={"token": create_access_token(test_user.id), "new_password": "reset-pass-99"},
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Reset link is invalid or has expired"
