from datetime import timedelta

from sqlalchemy import delete, select

from taskboard.models import Account, VerificationCode


def _wrong(code: str) -> str:
    return "000000" if code != "000000" else "111111"


def test_signup_sends_code(client, app):
    response = client.post("/auth/signup", json={"email": "New@Example.com ", "password": "password1"})
    assert response.status_code == 201

    message = app.extensions["email_outbox"][-1]
    assert message["to"] == "new@example.com"
    assert message["subject"] == "Your verification code"


def test_signup_validation_reports_fields(client):
    response = client.post("/auth/signup", json={"email": "nope", "password": "short"})
    assert response.status_code == 400
    body = response.get_json()
    assert set(body["fields"]) == {"email", "password"}


def test_signup_existing_email_conflicts(client):
    client.post("/auth/signup", json={"email": "a@x.com", "password": "password1"})
    response = client.post("/auth/signup", json={"email": "a@x.com", "password": "something-else"})
    assert response.status_code == 409


def test_verify_unknown_email(client):
    response = client.post("/auth/verify", json={"email": "ghost@x.com", "code": "123456"})
    assert response.status_code == 404


def test_verify_without_code_record(client, db_session):
    client.post("/auth/signup", json={"email": "a@x.com", "password": "password1"})
    account = db_session.execute(select(Account).where(Account.email == "a@x.com")).scalar_one()
    db_session.execute(delete(VerificationCode).where(VerificationCode.account_id == account.id))
    db_session.commit()

    response = client.post("/auth/verify", json={"email": "a@x.com", "code": "123456"})
    assert response.status_code == 400
    assert response.get_json()["error"] == "No verification code. Signup again."


def test_verify_expired_code(client, clock, last_code):
    client.post("/auth/signup", json={"email": "a@x.com", "password": "password1"})
    clock.advance(minutes=16)
    response = client.post("/auth/verify", json={"email": "a@x.com", "code": last_code("a@x.com")})
    assert response.status_code == 400
    assert response.get_json()["error"] == "Code expired"


def test_resend_code_after_cooldown(client, clock, last_code):
    client.post("/auth/signup", json={"email": "a@x.com", "password": "password1"})
    first = last_code("a@x.com")

    assert client.post("/auth/verify/resend", json={"email": "a@x.com"}).status_code == 429

    clock.advance(seconds=61)
    response = client.post("/auth/verify/resend", json={"email": "a@x.com"})
    assert response.status_code == 200
    second = last_code("a@x.com")

    if first != second:
        assert client.post("/auth/verify", json={"email": "a@x.com", "code": first}).status_code == 400
    assert client.post("/auth/verify", json={"email": "a@x.com", "code": second}).status_code == 200


def test_end_to_end_signup_verify_login_me(client, clock, last_code):
    response = client.post("/auth/signup", json={"email": "a@x.com", "password": "password1"})
    assert response.status_code == 201
    code = last_code("a@x.com")

    for _ in range(5):
        response = client.post("/auth/verify", json={"email": "a@x.com", "code": _wrong(code)})
        assert response.status_code == 400
        clock.advance(seconds=1)

    response = client.post("/auth/verify", json={"email": "a@x.com", "code": code})
    assert response.status_code == 429

    clock.advance(seconds=61)
    response = client.post("/auth/verify", json={"email": "a@x.com", "code": code})
    assert response.status_code == 200

    response = client.post("/auth/login", json={"email": "a@x.com", "password": "password1"})
    assert response.status_code == 200
    csrf_token = response.get_json()["csrfToken"]
    assert client.get_cookie("accessToken") is not None
    assert client.get_cookie("csrfToken").value == csrf_token

    response = client.get("/auth/me")
    body = response.get_json()
    assert body["authenticated"] is True
    assert body["user"]["email"] == "a@x.com"
    assert isinstance(body["user"]["id"], int)


def test_login_cookie_attributes(client, verified_account):
    verified_account("a@x.com", "password1")
    response = client.post("/auth/login", json={"email": "a@x.com", "password": "password1"})

    cookies = response.headers.getlist("Set-Cookie")
    session_cookie = next(c for c in cookies if c.startswith("accessToken="))
    csrf_cookie = next(c for c in cookies if c.startswith("csrfToken="))
    assert "HttpOnly" in session_cookie
    assert "HttpOnly" not in csrf_cookie
    for cookie in (session_cookie, csrf_cookie):
        assert "Path=/" in cookie
        assert "Max-Age=7200" in cookie


def test_login_unknown_email_is_unauthorized(client):
    response = client.post("/auth/login", json={"email": "ghost@x.com", "password": "password1"})
    assert response.status_code == 401


def test_login_unverified_is_forbidden(client):
    client.post("/auth/signup", json={"email": "a@x.com", "password": "password1"})
    response = client.post("/auth/login", json={"email": "a@x.com", "password": "password1"})
    assert response.status_code == 403


def test_lockout_after_three_failures(client, clock, verified_account, db_session):
    verified_account("a@x.com", "password1")

    assert client.post("/auth/login", json={"email": "a@x.com", "password": "wrong-1"}).status_code == 401
    assert client.post("/auth/login", json={"email": "a@x.com", "password": "wrong-2"}).status_code == 401
    third_failure_at = clock()
    response = client.post("/auth/login", json={"email": "a@x.com", "password": "wrong-3"})
    assert response.status_code == 429

    account = db_session.execute(select(Account).where(Account.email == "a@x.com")).scalar_one()
    assert account.lockout_until == third_failure_at + timedelta(minutes=2)
    assert account.failed_login_count == 0

    clock.advance(minutes=1)
    response = client.post("/auth/login", json={"email": "a@x.com", "password": "password1"})
    assert response.status_code == 429
    assert "lockedUntil" in response.get_json()

    clock.advance(minutes=1, seconds=1)
    assert client.post("/auth/login", json={"email": "a@x.com", "password": "wrong-4"}).status_code == 401
    response = client.post("/auth/login", json={"email": "a@x.com", "password": "password1"})
    assert response.status_code == 200

    db_session.expire_all()
    account = db_session.execute(select(Account).where(Account.email == "a@x.com")).scalar_one()
    assert account.failed_login_count == 0
    assert account.lockout_until is None


def test_me_without_cookie(client):
    response = client.get("/auth/me")
    assert response.status_code == 200
    assert response.get_json() == {"authenticated": False}


def test_me_with_expired_token(client, clock, logged_in):
    logged_in()
    clock.advance(hours=2, seconds=1)
    response = client.get("/auth/me")
    assert response.status_code == 200
    assert response.get_json() == {"authenticated": False}


def test_me_after_account_deleted(client, logged_in, db_session):
    logged_in("gone@x.com")
    account = db_session.execute(select(Account).where(Account.email == "gone@x.com")).scalar_one()
    db_session.execute(delete(VerificationCode).where(VerificationCode.account_id == account.id))
    db_session.delete(account)
    db_session.commit()

    response = client.get("/auth/me")
    assert response.status_code == 200
    assert response.get_json() == {"authenticated": False}


def test_me_with_garbage_token(client):
    client.set_cookie("accessToken", "garbage")
    assert client.get("/auth/me").get_json() == {"authenticated": False}


def test_logout_requires_csrf(client, logged_in):
    logged_in()
    response = client.post("/auth/logout")
    assert response.status_code == 403
    assert response.get_json()["error"] == "Invalid CSRF token"

    response = client.post("/auth/logout", headers={"x-csrf-token": "mismatch"})
    assert response.status_code == 403


def test_logout_clears_cookies(client, logged_in):
    headers = logged_in()
    response = client.post("/auth/logout", headers=headers)
    assert response.status_code == 204
    assert client.get_cookie("accessToken") is None
    assert client.get_cookie("csrfToken") is None
    assert client.get("/auth/me").get_json() == {"authenticated": False}


def test_csrf_endpoint_sets_cookie(client):
    response = client.get("/auth/csrf")
    assert response.status_code == 200
    token = response.get_json()["csrfToken"]
    assert client.get_cookie("csrfToken").value == token

    response = client.post("/auth/logout", headers={"x-csrf-token": token})
    assert response.status_code == 204
