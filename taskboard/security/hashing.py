from __future__ import annotations

import hashlib
import hmac
import secrets

from werkzeug.security import check_password_hash, generate_password_hash


def hash_password(plain: str) -> str:
    if not plain:
        raise ValueError("password must be a non-empty string")
    return generate_password_hash(plain)


def verify_password(plain: str, password_hash: str) -> bool:
    if not plain or not password_hash:
        return False
    return check_password_hash(password_hash, plain)


def generate_code() -> str:
    return f"{secrets.randbelow(1_000_000):06d}"


def hash_code(code: str, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), code.encode("utf-8"), hashlib.sha256).hexdigest()


def verify_code_hash(code: str, code_hash: str, secret: str) -> bool:
    return hmac.compare_digest(hash_code(code, secret), code_hash)
