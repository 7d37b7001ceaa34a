"""
Outgoing email. Route handlers receive a mailer through ``get_mailer`` and
only ever call ``send_email``.
"""
import logging
import os
import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from typing import Optional

logger = logging.getLogger(__name__)

EMAIL_HOST = os.getenv("EMAIL_HOST")
EMAIL_PORT = int(os.getenv("EMAIL_PORT", "587"))
EMAIL_USER = os.getenv("EMAIL_USER")
EMAIL_PASSWORD = os.getenv("EMAIL_PASSWORD")
FROM_NAME = os.getenv("FROM_NAME", "PizzaHub")
FROM_EMAIL = os.getenv("FROM_EMAIL") or EMAIL_USER or "noreply@pizzahub.local"
EMAIL_TIMEOUT_SECONDS = 30


class MailerError(Exception):
    """Raised when a message could not be handed to the mail server."""


def build_message(sender: str, to: str, subject: str,
                  text: Optional[str] = None, html: Optional[str] = None) -> EmailMessage:
    if not text and not html:
        raise ValueError("Email needs a text or html body")
    msg = EmailMessage()
    msg["From"] = sender
    msg["To"] = to
    msg["Subject"] = subject
    if text:
        msg.set_content(text)
        if html:
            msg.add_alternative(html, subtype="html")
    else:
        msg.set_content(html, subtype="html")
    return msg


class SMTPMailer:
    def __init__(self, host: str, port: int = 587, user: Optional[str] = None,
                 password: Optional[str] = None, from_name: str = FROM_NAME,
                 from_email: str = FROM_EMAIL):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.sender = formataddr((from_name, from_email))

    def _connect(self) -> smtplib.SMTP:
        # port 465 speaks TLS from the first byte, everything else upgrades
        if self.port == 465:
            return smtplib.SMTP_SSL(self.host, self.port, timeout=EMAIL_TIMEOUT_SECONDS)
        conn = smtplib.SMTP(self.host, self.port, timeout=EMAIL_TIMEOUT_SECONDS)
        try:
            conn.starttls()
        except (smtplib.SMTPException, OSError):
            conn.close()
            raise
        return conn

    def send_email(self, to: str, subject: str, text: Optional[str] = None, html: Optional[str] = None):
        msg = build_message(self.sender, to, subject, text=text, html=html)
        logger.info("Sending email %r to %s", subject, to)
        try:
            with self._connect() as conn:
                if self.user:
                    conn.login(self.user, self.password or "")
                conn.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Email sending error: %s", e)
            raise MailerError("Email could not be sent") from e
        logger.info("Email sent to %s", to)


class LogMailer:
    """Development mailer: writes the message to the log instead of sending it."""

    def __init__(self, from_name: str = FROM_NAME, from_email: str = FROM_EMAIL):
        self.sender = formataddr((from_name, from_email))

    def send_email(self, to: str, subject: str, text: Optional[str] = None, html: Optional[str] = None):
        msg = build_message(self.sender, to, subject, text=text, html=html)
        logger.info("[EMAIL] %s -> %s: %s\n%s", msg["From"], to, subject, text or html)


_mailer = None


def get_mailer():
    global _mailer
    if _mailer is None:
        if EMAIL_HOST:
            _mailer = SMTPMailer(EMAIL_HOST, EMAIL_PORT, EMAIL_USER, EMAIL_PASSWORD)
        else:
            logger.warning("EMAIL_HOST not set, emails will only be logged")
            _mailer = LogMailer()
    return _mailer
