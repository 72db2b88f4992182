"""SMTP delivery: one connection per batch."""
from __future__ import annotations

import smtplib
from contextlib import contextmanager
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Iterator

from quillpress.backend.config import get_settings


@dataclass(frozen=True)
class SmtpConfig:
    host: str
    port: int
    username: str = ""
    password: str = ""
    secure: str = "tls"  # tls|ssl|none
    timeout: int = 10


def smtp_config_from_settings() -> SmtpConfig:
    s = get_settings()
    return SmtpConfig(
        host=s.smtp_host,
        port=s.smtp_port,
        username=s.smtp_user,
        password=s.smtp_password,
        secure=s.smtp_secure,
    )


@contextmanager
def smtp_connection(cfg: SmtpConfig) -> Iterator[smtplib.SMTP]:
    if not cfg.host or not cfg.port:
        raise ValueError("missing_smtp")
    if cfg.secure == "ssl":
        server = smtplib.SMTP_SSL(cfg.host, cfg.port, timeout=cfg.timeout)
    else:
        server = smtplib.SMTP(cfg.host, cfg.port, timeout=cfg.timeout)
    try:
        if cfg.secure == "tls":
            server.starttls()
        if cfg.username:
            server.login(cfg.username, cfg.password or "")
        yield server
    finally:
        server.quit()


def build_message(
    *,
    from_address: str,
    reply_to: str | None,
    to_email: str,
    subject: str,
    html: str,
    text: str,
    headers: dict[str, str] | None = None,
) -> EmailMessage:
    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = from_address
    msg["To"] = to_email
    if reply_to:
        msg["Reply-To"] = reply_to
    for key, value in (headers or {}).items():
        msg[key] = value
    if text:
        msg.set_content(text)
    if html:
        msg.add_alternative(html, subtype="html")
    return msg
