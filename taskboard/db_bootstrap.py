from __future__ import annotations

import logging
import re

from sqlalchemy import create_engine, text
from sqlalchemy.engine import make_url

logger = logging.getLogger(__name__)

_DB_NAME_RE = re.compile(r"^[A-Za-z0-9_]+$")


def ensure_database_exists(
    database_url: str,
    *,
    charset: str = "utf8mb4",
    collation: str = "utf8mb4_unicode_ci",
) -> bool:
    """Create the MySQL schema named in ``database_url`` if it is missing.

    Other backends create their storage on first connect, so they are left
    alone. Returns True when a CREATE DATABASE statement was issued.
    """
    url = make_url(database_url)
    if not url.drivername.startswith("mysql"):
        return False

    db_name = url.database
    if not db_name:
        return False
    if not _DB_NAME_RE.match(db_name):
        raise ValueError("Database name contains unsupported characters")

    server_url = url.set(database="mysql")
    engine = create_engine(server_url, future=True, isolation_level="AUTOCOMMIT")
    try:
        with engine.connect() as conn:
            conn.execute(
                text(
                    "CREATE DATABASE IF NOT EXISTS "
                    f"`{db_name}` CHARACTER SET {charset} COLLATE {collation}"
                )
            )
    finally:
        engine.dispose()
    logger.info("ensured database %s exists", db_name)
    return True
