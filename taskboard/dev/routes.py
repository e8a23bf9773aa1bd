from __future__ import annotations

from flask import Blueprint
from sqlalchemy import select

from ..db import session_scope
from ..models import OutboxEmail
from ..security.rate_limit import client_ip


dev_bp = Blueprint("dev", __name__)

MAILBOX_LIMIT = 50


@dev_bp.get("/ip")
def ip():
    return {"ok": True, "ip": client_ip()}


@dev_bp.get("/mailbox")
def mailbox():
    with session_scope() as db:
        rows = (
            db.execute(
                select(OutboxEmail)
                .order_by(OutboxEmail.created_at.desc(), OutboxEmail.id.desc())
                .limit(MAILBOX_LIMIT)
            )
            .scalars()
            .all()
        )
        items = [
            {
                "to": row.to,
                "subject": row.subject,
                "body": row.body,
                "createdAt": row.created_at.isoformat(),
            }
            for row in rows
        ]
    return {"ok": True, "items": items}
