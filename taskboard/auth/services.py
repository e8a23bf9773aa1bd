from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from ..config import AuthSettings
from ..errors import BadRequest, Conflict, Forbidden, NotFound, TooManyAttempts, Unauthorized
from ..models import Account, VerificationCode
from ..security.hashing import generate_code, hash_code, hash_password, verify_code_hash, verify_password
from ..security.tokens import InvalidToken, TokenCodec

logger = logging.getLogger(__name__)


def get_account_by_email(session, email: str) -> Account | None:
    return session.execute(select(Account).where(Account.email == email)).scalar_one_or_none()


def get_latest_code(session, account_id: int) -> VerificationCode | None:
    stmt = (
        select(VerificationCode)
        .where(VerificationCode.account_id == account_id)
        .order_by(VerificationCode.created_at.desc(), VerificationCode.id.desc())
    )
    return session.execute(stmt).scalars().first()


def issue_code(session, *, account: Account, settings: AuthSettings, now: datetime) -> str:
    code = generate_code()
    record = VerificationCode(
        account_id=account.id,
        code_hash=hash_code(code, settings.code_secret),
        expires_at=now + timedelta(seconds=settings.code_ttl_seconds),
        failed_attempts=0,
        last_attempt_at=None,
        created_at=now,
    )
    session.add(record)
    session.flush()
    return code


def signup(session, *, email: str, password: str, settings: AuthSettings, now: datetime) -> tuple[Account, str]:
    if get_account_by_email(session, email) is not None:
        raise Conflict("Email already exists")

    account = Account(
        email=email,
        password_hash=hash_password(password),
        email_verified_at=None,
        failed_login_count=0,
        lockout_until=None,
        created_at=now,
    )
    session.add(account)
    try:
        session.flush()
    except IntegrityError as exc:
        raise Conflict("Email already exists") from exc

    code = issue_code(session, account=account, settings=settings, now=now)
    return account, code


def resend_code(session, *, email: str, settings: AuthSettings, now: datetime) -> tuple[Account, str]:
    account = get_account_by_email(session, email)
    if account is None:
        raise NotFound("User not found")
    if account.is_verified:
        raise Conflict("Email already verified")

    latest = get_latest_code(session, account.id)
    if latest is not None:
        elapsed = (now - latest.created_at).total_seconds()
        if elapsed < settings.code_resend_cooldown_seconds:
            remaining = int(settings.code_resend_cooldown_seconds - elapsed)
            raise TooManyAttempts("resend cooldown active", retryAfterSeconds=max(remaining, 1))

    code = issue_code(session, account=account, settings=settings, now=now)
    return account, code


def verify_email(session, *, email: str, code: str, settings: AuthSettings, now: datetime) -> Account:
    account = get_account_by_email(session, email)
    if account is None:
        raise NotFound("User not found")

    record = get_latest_code(session, account.id)
    if record is None:
        raise BadRequest("No verification code. Signup again.")
    if now > record.expires_at:
        raise BadRequest("Code expired")

    window = timedelta(seconds=settings.code_attempt_window_seconds)
    recent = record.last_attempt_at is not None and now - record.last_attempt_at < window
    if recent and record.failed_attempts >= settings.code_max_attempts:
        logger.warning("verification throttled for account %s", account.id)
        raise TooManyAttempts("Too many attempts. Try again later.")

    ok = verify_code_hash(code, record.code_hash, settings.code_secret)
    record.failed_attempts = 0 if ok else record.failed_attempts + 1
    record.last_attempt_at = now
    session.commit()
    if not ok:
        raise BadRequest("Invalid code")

    account.email_verified_at = now
    return account


def login(session, *, email: str, password: str, settings: AuthSettings, now: datetime) -> Account:
    account = get_account_by_email(session, email)
    if account is None:
        raise Unauthorized("Invalid credentials")

    if account.lockout_until is not None and now < account.lockout_until:
        locked_until = account.lockout_until.isoformat() + "Z"
        raise TooManyAttempts(f"Account locked. Try after {locked_until}", lockedUntil=locked_until)

    if not account.is_verified:
        raise Forbidden("Email not verified.")

    if not verify_password(password, account.password_hash):
        failed = account.failed_login_count + 1
        if failed >= settings.login_max_failures:
            account.lockout_until = now + timedelta(seconds=settings.login_lockout_seconds)
            account.failed_login_count = 0
        else:
            account.failed_login_count = failed
        session.commit()

        if failed >= settings.login_max_failures:
            locked_until = account.lockout_until.isoformat() + "Z"
            logger.warning("account %s locked until %s", account.id, locked_until)
            raise TooManyAttempts(f"Too many attempts. Locked until {locked_until}", lockedUntil=locked_until)
        raise Unauthorized("Invalid credentials")

    account.failed_login_count = 0
    account.lockout_until = None
    return account


def resolve_session(session, *, token: str | None, codec: TokenCodec, now: datetime) -> dict | None:
    if not token:
        return None
    try:
        claims = codec.verify(token, now=now)
    except InvalidToken:
        return None

    account = session.get(Account, claims.account_id)
    if account is None:
        return None
    return {"id": account.id, "email": account.email}
