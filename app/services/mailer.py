"""Outbound email delivery."""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr

from app.config import get_settings

logger = logging.getLogger("shelfdrive")


class MailDeliveryError(Exception):
    """The mail backend did not accept a message."""


class Mailer:
    """Sends a message with a plain and an HTML body to each recipient."""

    def send_email(self, recipients: list[str], subject: str, plain_body: str, html_body: str) -> None:
        """Send to every recipient in turn. Raises MailDeliveryError on the first failure."""
        for recipient in recipients:
            self.deliver(recipient, subject, plain_body, html_body)

    def deliver(self, recipient: str, subject: str, plain_body: str, html_body: str) -> None:
        raise NotImplementedError


class SmtpMailer(Mailer):
    """Delivers mail through an SMTP relay."""

    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        sender_name: str = "",
        username: str = "",
        password: str = "",
        use_tls: bool = True,
        timeout: float = 15,
    ) -> None:
        self.host = host
        self.port = port
        self.sender = sender
        self.sender_name = sender_name
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    def build_message(self, recipient: str, subject: str, plain_body: str, html_body: str) -> MIMEMultipart:
        """Build a multipart/alternative message."""
        msg = MIMEMultipart("alternative")
        msg["From"] = formataddr((self.sender_name, self.sender))
        msg["To"] = recipient
        msg["Subject"] = subject
        msg.attach(MIMEText(plain_body, "plain", "utf-8"))
        if html_body:
            msg.attach(MIMEText(html_body, "html", "utf-8"))
        return msg

    def deliver(self, recipient: str, subject: str, plain_body: str, html_body: str) -> None:
        msg = self.build_message(recipient, subject, plain_body, html_body)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                if self.use_tls:
                    server.starttls()
                if self.username and self.password:
                    server.login(self.username, self.password)
                server.sendmail(self.sender, [recipient], msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Error sending email to %s with subject %r: %s", recipient, subject, e)
            raise MailDeliveryError(f"could not send email to {recipient}") from e
        logger.info("Sent email to %s with subject %r", recipient, subject)


class ConsoleMailer(Mailer):
    """Writes messages to the log instead of sending them. Used when no SMTP host is configured."""

    def deliver(self, recipient: str, subject: str, plain_body: str, html_body: str) -> None:
        logger.info("EMAIL to %s | %s | %s", recipient, subject, plain_body)


_mailer: Mailer | None = None


def get_mailer() -> Mailer:
    """Get singleton mailer: SMTP when SMTP_HOST is set, console otherwise."""
    global _mailer
    if _mailer is None:
        settings = get_settings()
        if settings.SMTP_HOST:
            _mailer = SmtpMailer(
                host=settings.SMTP_HOST,
                port=settings.SMTP_PORT,
                sender=settings.MAIL_FROM,
                sender_name=settings.MAIL_FROM_NAME,
                username=settings.SMTP_USERNAME,
                password=settings.SMTP_PASSWORD,
                use_tls=settings.SMTP_USE_TLS,
            )
        else:
            _mailer = ConsoleMailer()
    return _mailer
