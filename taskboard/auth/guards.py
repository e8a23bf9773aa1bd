from __future__ import annotations

import logging
from functools import wraps

from flask import current_app, g, request

from .. import clock
from ..errors import Forbidden, Unauthorized
from ..security.cookies import SESSION_COOKIE
from ..security.csrf import CSRF_COOKIE, CSRF_HEADER, SAFE_METHODS, tokens_match
from ..security.tokens import InvalidToken

logger = logging.getLogger(__name__)


def require_session() -> dict:
    """Verify the session cookie and expose the identity as ``g.auth``."""
    token = request.cookies.get(SESSION_COOKIE)
    if not token:
        raise Unauthorized()
    codec = current_app.extensions["token_codec"]
    try:
        claims = codec.verify(token, now=clock.now())
    except InvalidToken:
        raise Unauthorized() from None
    g.auth = claims.identity()
    return g.auth


def require_csrf() -> None:
    if request.method in SAFE_METHODS:
        return
    cookie_token = request.cookies.get(CSRF_COOKIE)
    header_token = request.headers.get(CSRF_HEADER)
    if not tokens_match(cookie_token, header_token):
        logger.warning("csrf check failed for %s %s", request.method, request.path)
        raise Forbidden("Invalid CSRF token")


def csrf_protected(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        require_csrf()
        return fn(*args, **kwargs)

    return wrapper
