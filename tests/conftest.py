import os
import re
from datetime import datetime, timedelta

import pytest

from taskboard import create_app
from taskboard.db import Base, get_session

CODE_RE = re.compile(r"\b(\d{6})\b")


class FakeClock:
    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


def _clear_tables(app) -> None:
    engine = app.extensions["db_engine"]
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 1, 1, 12, 0, 0))


@pytest.fixture
def app(tmp_path, clock):
    test_db_url = os.getenv("TEST_DATABASE_URL") or f"sqlite:///{tmp_path / 'test.db'}"
    config = {
        "TESTING": True,
        "DATABASE_URL": test_db_url,
        "AUTO_CREATE_DB": True,
        "EMAIL_BACKEND": "memory",
        "SECRET_KEY": "test-secret",
        "JWT_SECRET": "test-jwt-secret-at-least-32-bytes-long",
        "CORS_ORIGIN": "http://localhost:5173",
    }
    app = create_app(config)
    app.extensions["clock"] = clock
    _clear_tables(app)
    yield app
    app.extensions["db_engine"].dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db_session(app):
    with app.app_context():
        session = get_session()
        try:
            yield session
        finally:
            session.close()


@pytest.fixture
def last_code(app):
    def _last_code(email: str) -> str:
        for message in reversed(app.extensions["email_outbox"]):
            if message["to"] == email:
                return CODE_RE.search(message["body"]).group(1)
        raise AssertionError(f"no email sent to {email}")

    return _last_code


@pytest.fixture
def verified_account(client, last_code):
    def _create(email: str = "user@example.com", password: str = "password123") -> str:
        response = client.post("/auth/signup", json={"email": email, "password": password})
        assert response.status_code == 201
        response = client.post("/auth/verify", json={"email": email, "code": last_code(email)})
        assert response.status_code == 200
        return email

    return _create


@pytest.fixture
def logged_in(client, verified_account):
    """Log a fresh verified account in; returns headers carrying the CSRF token."""

    def _login(email: str = "user@example.com", password: str = "password123") -> dict:
        verified_account(email, password)
        response = client.post("/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200
        return {"x-csrf-token": response.get_json()["csrfToken"]}

    return _login
