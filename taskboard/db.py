from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from flask import current_app
from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker


class Base(DeclarativeBase):
    pass


def init_db(app) -> None:
    database_url = app.config["DATABASE_URL"]
    url = make_url(database_url)

    engine_kwargs = {"future": True}
    if url.drivername.startswith("sqlite"):
        engine_kwargs["connect_args"] = {"check_same_thread": False}
    else:
        engine_kwargs["pool_pre_ping"] = True

    engine = create_engine(database_url, **engine_kwargs)
    SessionLocal = sessionmaker(bind=engine, expire_on_commit=False, future=True)

    app.extensions["db_engine"] = engine
    app.extensions["db_sessionmaker"] = SessionLocal

    if app.config.get("AUTO_CREATE_DB", False):
        from . import models  # noqa: F401  registers tables on Base.metadata

        Base.metadata.create_all(engine)


def get_session() -> Session:
    sessionmaker_factory = current_app.extensions["db_sessionmaker"]
    return sessionmaker_factory()


@contextmanager
def session_scope() -> Iterator[Session]:
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
