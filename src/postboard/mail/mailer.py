"""Mail transports.

Learn: Two backends behind one async send() method:
- LogMailer: development default, logs the message instead of sending
- SmtpMailer: real delivery through an SMTP relay

smtplib is blocking, so SmtpMailer runs it in a worker thread via
asyncio.to_thread — the event loop keeps serving requests meanwhile.
"""

import asyncio
import smtplib
from email.message import EmailMessage
from typing import Protocol

import structlog

from postboard.config import Settings, settings

logger = structlog.get_logger()


class Mailer(Protocol):
    async def send(self, to: str, subject: str, html: str) -> None: ...


class LogMailer:
    """Logs outgoing mail. Nothing leaves the process."""

    async def send(self, to: str, subject: str, html: str) -> None:
        logger.info("mail.logged", to=to, subject=subject, size=len(html))


class SmtpMailer:
    """Sends mail through an SMTP server."""

    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        username: str = "",
        password: str = "",
        starttls: bool = True,
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        self.starttls = starttls
        self.timeout = timeout

    def build_message(self, to: str, subject: str, html: str) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content("This message requires an HTML-capable mail client.")
        msg.add_alternative(html, subtype="html")
        return msg

    def _send_sync(self, msg: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            if self.starttls:
                smtp.starttls()
            if self.username:
                smtp.login(self.username, self.password)
            smtp.send_message(msg)

    async def send(self, to: str, subject: str, html: str) -> None:
        msg = self.build_message(to, subject, html)
        await asyncio.to_thread(self._send_sync, msg)
        logger.info("mail.sent", to=to, subject=subject)


def build_mailer(config: Settings = settings) -> Mailer:
    """Pick the transport named by POSTBOARD_MAIL_BACKEND."""
    if config.mail_backend == "smtp":
        return SmtpMailer(
            host=config.smtp_host,
            port=config.smtp_port,
            sender=config.mail_from,
            username=config.smtp_username,
            password=config.smtp_password,
            starttls=config.smtp_starttls,
        )
    if config.mail_backend == "log":
        return LogMailer()
    raise ValueError(f"Unknown mail backend: {config.mail_backend}")
