# Overview: Outbound e-mail port used by the low-stock alert job.

from __future__ import annotations

import smtplib
import ssl
from dataclasses import dataclass, field
from email.message import EmailMessage

from flask import current_app


class MailDeliveryError(Exception):
    """Raised when a message could not be handed to the SMTP server."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


@dataclass
class OutgoingMail:
    to: str
    subject: str
    html: str
    text: str = ""


@dataclass
class Mailer:
    """
    SMTP sender configured from the app's MAIL_* settings.

    With suppress_send=True nothing leaves the process: messages are appended
    to `outbox`, which is how tests and dry runs observe deliveries.
    """
    server: str = "localhost"
    port: int = 25
    use_tls: bool = False
    use_ssl: bool = False
    username: str | None = None
    password: str | None = None
    sender: str = "stockroom@localhost"
    timeout: float = 10.0
    suppress_send: bool = False
    outbox: list[OutgoingMail] = field(default_factory=list)

    @classmethod
    def from_config(cls, config) -> "Mailer":
        return cls(
            server=config.get("MAIL_SERVER", "localhost"),
            port=int(config.get("MAIL_PORT", 25)),
            use_tls=bool(config.get("MAIL_USE_TLS", False)),
            use_ssl=bool(config.get("MAIL_USE_SSL", False)),
            username=config.get("MAIL_USERNAME"),
            password=config.get("MAIL_PASSWORD"),
            sender=config.get("MAIL_DEFAULT_SENDER", "stockroom@localhost"),
            timeout=float(config.get("MAIL_TIMEOUT_SECONDS", 10)),
            suppress_send=bool(config.get("MAIL_SUPPRESS_SEND", False)),
        )

    def _build(self, mail: OutgoingMail) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = mail.to
        message["Subject"] = mail.subject
        message.set_content(mail.text or mail.subject)
        message.add_alternative(mail.html, subtype="html")
        return message

    def send(self, to: str, subject: str, html: str, text: str = "") -> None:
        mail = OutgoingMail(to=to, subject=subject, html=html, text=text)
        if self.suppress_send:
            self.outbox.append(mail)
            return

        message = self._build(mail)
        try:
            if self.use_ssl:
                client = smtplib.SMTP_SSL(
                    self.server, self.port, timeout=self.timeout, context=ssl.create_default_context()
                )
            else:
                client = smtplib.SMTP(self.server, self.port, timeout=self.timeout)
            with client:
                if self.use_tls and not self.use_ssl:
                    client.starttls(context=ssl.create_default_context())
                if self.username:
                    client.login(self.username, self.password or "")
                client.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            raise MailDeliveryError(
                f"Failed to send mail to {to}",
                {"recipient": to, "reason": str(exc)},
            ) from exc


def get_mailer() -> Mailer:
    """
    App-scoped mailer. Tests may install their own as
    app.extensions["mailer"].
    """
    mailer = current_app.extensions.get("mailer")
    if mailer is None:
        mailer = Mailer.from_config(current_app.config)
        current_app.extensions["mailer"] = mailer
    return mailer
