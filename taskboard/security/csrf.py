from __future__ import annotations

import hmac
import secrets

CSRF_COOKIE = "csrfToken"
CSRF_HEADER = "x-csrf-token"
SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


def generate_csrf_token() -> str:
    return secrets.token_urlsafe(32)


def tokens_match(cookie_token: str | None, header_token: str | None) -> bool:
    # Double-submit: the cookie and header must carry the same non-empty value.
    if not cookie_token or not header_token:
        return False
    return hmac.compare_digest(cookie_token.encode("utf-8"), header_token.encode("utf-8"))
