from __future__ import annotations

from flask import Response

from ..config import AuthSettings
from .csrf import CSRF_COOKIE

SESSION_COOKIE = "accessToken"


def set_csrf_cookie(resp: Response, csrf_token: str, settings: AuthSettings) -> Response:
    resp.set_cookie(
        CSRF_COOKIE,
        csrf_token,
        max_age=settings.session_ttl_seconds,
        httponly=False,
        secure=settings.cookie_secure,
        samesite=settings.cookie_samesite,
        path="/",
    )
    return resp


def set_session_cookies(resp: Response, access_token: str, csrf_token: str, settings: AuthSettings) -> Response:
    resp.set_cookie(
        SESSION_COOKIE,
        access_token,
        max_age=settings.session_ttl_seconds,
        httponly=True,
        secure=settings.cookie_secure,
        samesite=settings.cookie_samesite,
        path="/",
    )
    return set_csrf_cookie(resp, csrf_token, settings)


def clear_session_cookies(resp: Response) -> Response:
    resp.delete_cookie(SESSION_COOKIE, path="/")
    resp.delete_cookie(CSRF_COOKIE, path="/")
    return resp
