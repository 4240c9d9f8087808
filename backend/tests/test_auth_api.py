"""API tests for registration, email verification, login, refresh, logout and password reset."""
import main
from hospitofind.auth.tokens import create_refresh_token
from hospitofind.data.users_repo import get_user_by_email, update_user
from hospitofind.middleware.rate_limit import LOGIN_LIMIT_MESSAGE, limiter

PASSWORD = "secret123"  # conftest make_user default


def _login(client, email="ada@example.com", password=PASSWORD):
    return client.post("/auth", json={"email": email, "password": password})


def _refresh(client, token):
    return client.get("/auth/refresh", headers={"Cookie": f"jwt={token}"})


def test_register_verify_login_refresh_logout(client, db, mailer):
    r = client.post(
        "/auth/register",
        json={"name": "Grace", "username": "grace", "email": "Grace@Example.com", "password": "hopper99"},
    )
    assert r.status_code == 201
    assert len(mailer.verifications) == 1
    to, name, token = mailer.verifications[0]
    assert (to, name) == ("grace@example.com", "Grace")

    r = _login(client, "grace@example.com", "hopper99")
    assert r.status_code == 403
    assert r.json()["message"] == "Please verify your email before logging in"

    r = client.get("/auth/verify-email", params={"token": token})
    assert r.status_code == 200
    assert get_user_by_email(db, "grace@example.com").is_verified is True

    r = _login(client, "grace@example.com", "hopper99")
    assert r.status_code == 200
    body = r.json()
    assert body["username"] == "grace"
    assert body["role"] == "user"
    assert body["access_token"]
    cookie = r.headers["set-cookie"]
    assert cookie.startswith("jwt=")
    assert "httponly" in cookie.lower()
    refresh_token = cookie.split(";")[0].split("=", 1)[1]

    me = client.get("/users/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.json()["email"] == "grace@example.com"

    r = _refresh(client, refresh_token)
    assert r.status_code == 200
    assert r.json()["access_token"]

    r = client.post("/auth/logout")
    assert r.json() == {"message": "Cookie cleared"}
    assert r.headers["set-cookie"].startswith("jwt=")


def test_register_duplicate_is_409(client, user):
    r = client.post(
        "/auth/register",
        json={"username": "ada", "email": "someone@example.com", "password": "secret123"},
    )
    assert r.status_code == 409


def test_register_short_password_is_400(client):
    r = client.post("/auth/register", json={"username": "bob", "email": "bob@example.com", "password": "abc"})
    assert r.status_code == 400
    assert r.json()["message"] == "Password must be at least 6 characters."


def test_verify_with_bad_token_is_400(client):
    r = client.get("/auth/verify-email", params={"token": "nope"})
    assert r.status_code == 400


def test_resend_verification(client, make_user, mailer):
    make_user("newbie", is_verified=False)
    r = client.post("/auth/resend-verification", json={"email": "newbie@example.com"})
    assert r.status_code == 200
    assert mailer.verifications[0][0] == "newbie@example.com"


def test_login_errors(client, user):
    assert _login(client, "nobody@example.com").status_code == 404
    r = _login(client, password="wrong-password")
    assert r.status_code == 401
    assert r.json()["message"] == "Invalid credentials"


def test_login_requires_fields(client):
    r = client.post("/auth", json={"password": "x"})
    assert r.status_code == 400
    assert r.json()["message"] == "Please fill in email"


def test_suspended_user_cannot_login(client, db, user):
    update_user(db, user.user_id, is_active=False)
    r = _login(client)
    assert r.status_code == 403
    assert r.json()["message"] == "Your account has been suspended"


def test_refresh_without_cookie_is_401(client):
    r = client.get("/auth/refresh")
    assert r.status_code == 401
    assert r.json()["message"] == "No refresh token"


def test_refresh_with_bad_token_is_403(client):
    assert _refresh(client, "garbage").status_code == 403


def test_refresh_for_deleted_user_is_401(client):
    token = create_refresh_token(main.app.state.settings, username="ghost")
    assert _refresh(client, token).status_code == 401


def test_forgot_and_reset_password(client, db, user, mailer):
    r = client.post("/auth/forgot-password", json={"email": "ada@example.com"})
    assert r.status_code == 200
    to, token = mailer.resets[0]
    assert to == "ada@example.com"
    # Only a hash of the token is stored
    assert get_user_by_email(db, "ada@example.com").reset_password_token != token

    r = client.post(f"/auth/reset-password/{token}", json={"password": "brand-new"})
    assert r.status_code == 200
    assert _login(client, password="brand-new").status_code == 200
    assert client.post(f"/auth/reset-password/{token}", json={"password": "again123"}).status_code == 400


def test_forgot_password_unknown_email_same_response(client, mailer):
    r = client.post("/auth/forgot-password", json={"email": "nobody@example.com"})
    assert r.status_code == 200
    assert mailer.resets == []


def test_auth0_disabled_is_503(client):
    r = client.post("/auth/auth0", json={"id_token": "x", "email": "ada@example.com"})
    assert r.status_code == 503


def test_login_rate_limited(client):
    limiter.reset()
    limiter.enabled = True
    try:
        responses = [_login(client, "nobody@example.com") for _ in range(11)]
    finally:
        limiter.enabled = False
        limiter.reset()
    assert [r.status_code for r in responses[:10]] == [404] * 10
    assert responses[10].status_code == 429
    assert responses[10].json()["message"] == LOGIN_LIMIT_MESSAGE
