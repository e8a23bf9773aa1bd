"""Signed session credentials.

Tokens are HS256 JWTs carrying ``sub`` (account id), ``email``, ``iat`` and
``exp``. Expiry is checked against the ``now`` handed in by the caller so the
application clock stays the single source of time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

import jwt

from ..clock import to_timestamp

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


class InvalidToken(Exception):
    pass


class ExpiredToken(InvalidToken):
    pass


@dataclass(frozen=True)
class SessionClaims:
    account_id: int
    email: str
    expires_at: int

    def identity(self) -> dict:
        return {"id": self.account_id, "email": self.email}


class TokenCodec:
    def __init__(self, secret: str, ttl_seconds: int = 7200) -> None:
        if not secret:
            raise ValueError("token secret must not be empty")
        self._secret = secret
        self._ttl = ttl_seconds

    def sign(self, account_id: int, email: str, *, now: datetime) -> str:
        payload = {
            "sub": str(account_id),
            "email": email,
            "iat": to_timestamp(now),
            "exp": to_timestamp(now + timedelta(seconds=self._ttl)),
        }
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def verify(self, token: str, *, now: datetime) -> SessionClaims:
        if not token:
            raise InvalidToken("missing token")
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                options={
                    "require": ["sub", "exp"],
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
        except jwt.InvalidSignatureError as exc:
            logger.warning("session token signature verification failed")
            raise InvalidToken("bad signature") from exc
        except jwt.InvalidTokenError as exc:
            raise InvalidToken(str(exc)) from exc

        expires_at = payload["exp"]
        if not isinstance(expires_at, int) or expires_at <= to_timestamp(now):
            raise ExpiredToken("token expired")

        try:
            account_id = int(payload["sub"])
        except (TypeError, ValueError) as exc:
            raise InvalidToken("bad subject") from exc

        return SessionClaims(
            account_id=account_id,
            email=str(payload.get("email") or ""),
            expires_at=expires_at,
        )
