from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage

from flask import current_app

from .db import session_scope
from .models import OutboxEmail

logger = logging.getLogger(__name__)


class EmailSender:
    def deliver(self, to_email: str, subject: str, body: str) -> None:
        raise NotImplementedError


class ConsoleEmailSender(EmailSender):
    def deliver(self, to_email: str, subject: str, body: str) -> None:
        logger.info("[Email] To=%s Subject=%s\n%s", to_email, subject, body)


class InMemoryEmailSender(EmailSender):
    def __init__(self, outbox: list[dict]) -> None:
        self._outbox = outbox

    def deliver(self, to_email: str, subject: str, body: str) -> None:
        self._outbox.append(
            {
                "to": to_email,
                "subject": subject,
                "body": body,
            }
        )


class OutboxEmailSender(EmailSender):
    """Stores messages in the database so the dev mailbox can show them."""

    def deliver(self, to_email: str, subject: str, body: str) -> None:
        with session_scope() as db:
            db.add(OutboxEmail(to=to_email, subject=subject, body=body))


class SmtpEmailSender(EmailSender):
    def __init__(self, host: str, port: int, username: str, password: str, from_addr: str) -> None:
        self._host = host
        self._port = port
        self._username = username
        self._password = password
        self._from = from_addr

    def deliver(self, to_email: str, subject: str, body: str) -> None:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self._from
        msg["To"] = to_email
        msg.set_content(body)

        with smtplib.SMTP(self._host, self._port) as server:
            server.starttls()
            if self._username:
                server.login(self._username, self._password)
            server.send_message(msg)


def verification_message(code: str, ttl_seconds: int) -> tuple[str, str]:
    minutes = max(ttl_seconds // 60, 1)
    subject = "Your verification code"
    body = f"Your code is: {code}\nIt expires in {minutes} minutes. Do not share it."
    return subject, body


def get_email_sender() -> EmailSender:
    backend = current_app.config.get("EMAIL_BACKEND", "console")
    if backend == "memory":
        outbox = current_app.extensions.setdefault("email_outbox", [])
        return InMemoryEmailSender(outbox)
    if backend == "outbox":
        return OutboxEmailSender()
    if backend == "smtp":
        host = current_app.config.get("SMTP_HOST", "")
        port = int(current_app.config.get("SMTP_PORT", 587))
        username = current_app.config.get("SMTP_USERNAME", "")
        password = current_app.config.get("SMTP_PASSWORD", "")
        from_addr = current_app.config.get("SMTP_FROM") or username

        if not host or not username or not password:
            raise RuntimeError("SMTP configuration missing. Set SMTP_HOST/SMTP_USERNAME/SMTP_PASSWORD.")

        return SmtpEmailSender(host, port, username, password, from_addr)
    return ConsoleEmailSender()
