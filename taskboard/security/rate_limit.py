from __future__ import annotations

from datetime import datetime, timedelta

from flask import request
from sqlalchemy import select

from ..models import LoginRateWindow


def client_ip() -> str:
    """Peer address; X-Forwarded-For only counts when ProxyFix is enabled."""
    return request.remote_addr or "unknown"


def check_and_increment(
    session,
    *,
    ip: str,
    now: datetime,
    window_seconds: int,
    max_requests: int,
) -> tuple[bool, int]:
    """
    Fixed window per IP. Returns (allowed, retry_after_seconds).
    A non-positive ``max_requests`` disables the limit.
    """
    if max_requests <= 0:
        return True, 0

    row = session.execute(select(LoginRateWindow).where(LoginRateWindow.ip == ip)).scalar_one_or_none()
    if row is None:
        row = LoginRateWindow(ip=ip, window_start=now, count=0)
        session.add(row)

    window_end = row.window_start + timedelta(seconds=window_seconds)
    if now >= window_end:
        row.window_start = now
        row.count = 0
        window_end = now + timedelta(seconds=window_seconds)

    row.count += 1
    session.flush()

    if row.count > max_requests:
        retry_after = int((window_end - now).total_seconds())
        return False, max(retry_after, 1)
    return True, 0
