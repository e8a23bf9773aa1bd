from __future__ import annotations

from flask import Blueprint, current_app, jsonify, make_response, request

from .. import clock
from ..config import AuthSettings
from ..db import session_scope
from ..email_service import get_email_sender, verification_message
from ..errors import TooManyAttempts
from ..security import rate_limit
from ..security.cookies import SESSION_COOKIE, clear_session_cookies, set_csrf_cookie, set_session_cookies
from ..security.csrf import generate_csrf_token
from .guards import csrf_protected
from .services import login, resend_code, resolve_session, signup, verify_email
from .validators import parse_email_only, parse_login, parse_signup, parse_verify


auth_bp = Blueprint("auth", __name__)


def _get_payload() -> dict:
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def _settings() -> AuthSettings:
    return current_app.extensions["auth_settings"]


def _send_code(email: str, code: str, settings: AuthSettings) -> None:
    subject, body = verification_message(code, settings.code_ttl_seconds)
    get_email_sender().deliver(email, subject, body)


@auth_bp.post("/signup")
def signup_route():
    settings = _settings()
    email, password = parse_signup(_get_payload(), min_password_length=settings.min_password_length)

    with session_scope() as db:
        _, code = signup(db, email=email, password=password, settings=settings, now=clock.now())

    _send_code(email, code, settings)
    return {"ok": True, "message": "Signup successful. Check your email for the code."}, 201


@auth_bp.post("/verify")
def verify_route():
    email, code = parse_verify(_get_payload())

    with session_scope() as db:
        verify_email(db, email=email, code=code, settings=_settings(), now=clock.now())

    return {"ok": True, "message": "Email verified. You can log in now."}


@auth_bp.post("/verify/resend")
def resend_route():
    settings = _settings()
    email = parse_email_only(_get_payload())

    with session_scope() as db:
        _, code = resend_code(db, email=email, settings=settings, now=clock.now())

    _send_code(email, code, settings)
    return {"ok": True, "cooldownSeconds": settings.code_resend_cooldown_seconds}


@auth_bp.post("/login")
def login_route():
    settings = _settings()
    now = clock.now()

    with session_scope() as db:
        allowed, retry_after = rate_limit.check_and_increment(
            db,
            ip=rate_limit.client_ip(),
            now=now,
            window_seconds=settings.login_rate_window_seconds,
            max_requests=settings.login_rate_max_requests,
        )
    if not allowed:
        raise TooManyAttempts("Too many requests", retryAfterSeconds=retry_after)

    email, password = parse_login(_get_payload())
    with session_scope() as db:
        account = login(db, email=email, password=password, settings=settings, now=now)
        account_id, account_email = account.id, account.email

    access_token = current_app.extensions["token_codec"].sign(account_id, account_email, now=now)
    csrf_token = generate_csrf_token()
    resp = jsonify(ok=True, message="Logged in", csrfToken=csrf_token)
    return set_session_cookies(resp, access_token, csrf_token, settings)


@auth_bp.post("/logout")
@csrf_protected
def logout_route():
    resp = make_response("", 204)
    return clear_session_cookies(resp)


@auth_bp.get("/me")
def me_route():
    with session_scope() as db:
        user = resolve_session(
            db,
            token=request.cookies.get(SESSION_COOKIE),
            codec=current_app.extensions["token_codec"],
            now=clock.now(),
        )
    if user is None:
        return {"authenticated": False}
    return {"authenticated": True, "user": user}


@auth_bp.get("/csrf")
def csrf_route():
    csrf_token = generate_csrf_token()
    resp = jsonify(ok=True, csrfToken=csrf_token)
    return set_csrf_cookie(resp, csrf_token, _settings())
