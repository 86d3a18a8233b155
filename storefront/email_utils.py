import logging
import smtplib
import socket
import ssl
from dataclasses import dataclass, field
from email.message import EmailMessage
from email.utils import formataddr
from typing import List, Optional

from .config import Settings
from .exceptions import ConfigUnavailableError, MailDeliveryError

logger = logging.getLogger(__name__)


@dataclass
class MailAttachment:
    filename: str
    content: bytes
    content_type: str = "application/pdf"


@dataclass
class OutgoingMail:
    to: str
    subject: str
    text: str
    html: Optional[str] = None
    reply_to: Optional[str] = None
    sender: Optional[str] = None
    attachments: List[MailAttachment] = field(default_factory=list)


def classify_error(error: BaseException) -> str:
    """Map an SMTP/socket failure onto a client-facing reason."""
    if isinstance(error, smtplib.SMTPAuthenticationError):
        return "auth"
    if isinstance(error, (TimeoutError, socket.timeout, smtplib.SMTPServerDisconnected)):
        return "timeout"
    if isinstance(error, smtplib.SMTPResponseException) and error.smtp_code == 550:
        return "ratelimit"
    if isinstance(error, smtplib.SMTPRecipientsRefused):
        if any(code == 550 for code, _ in error.recipients.values()):
            return "ratelimit"
    return "network"


class SmtpTransport:
    """
    SMTP delivery with one fallback.

    The primary attempt uses the configured port (implicit TLS when
    SMTP_SECURE is set, STARTTLS otherwise). If it fails, a single retry
    goes out over STARTTLS on SMTP_FALLBACK_PORT. ``send`` returns True when
    the fallback delivered the message.
    """

    def __init__(
        self,
        host: str,
        port: int,
        user: str,
        password: str,
        sender: str,
        sender_name: str = "",
        secure: bool = True,
        fallback_port: int = 587,
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.sender = sender
        self.sender_name = sender_name
        self.secure = secure
        self.fallback_port = fallback_port
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "SmtpTransport":
        if not settings.smtp_configured:
            raise ConfigUnavailableError("E-Mail-System vorübergehend nicht verfügbar.")
        return cls(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            user=settings.SMTP_USER,
            password=settings.SMTP_PASS,
            sender=settings.LICENSE_EMAIL_SENDER,
            sender_name=settings.EMAIL_SENDER_NAME,
            secure=settings.SMTP_SECURE,
            fallback_port=settings.SMTP_FALLBACK_PORT,
            timeout=settings.SMTP_TIMEOUT,
        )

    def build_message(self, mail: OutgoingMail) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = formataddr((self.sender_name, mail.sender or self.sender))
        msg["To"] = mail.to
        msg["Subject"] = mail.subject
        if mail.reply_to:
            msg["Reply-To"] = mail.reply_to
        msg.set_content(mail.text)
        if mail.html:
            msg.add_alternative(mail.html, subtype="html")
        for attachment in mail.attachments:
            maintype, _, subtype = attachment.content_type.partition("/")
            msg.add_attachment(
                attachment.content,
                maintype=maintype,
                subtype=subtype or "octet-stream",
                filename=attachment.filename,
            )
        return msg

    def _deliver(self, msg: EmailMessage, port: int, implicit_tls: bool) -> None:
        context = ssl.create_default_context()
        if implicit_tls:
            with smtplib.SMTP_SSL(self.host, port, timeout=self.timeout, context=context) as server:
                server.login(self.user, self.password)
                server.send_message(msg)
            return
        with smtplib.SMTP(self.host, port, timeout=self.timeout) as server:
            server.starttls(context=context)
            server.login(self.user, self.password)
            server.send_message(msg)

    def send(self, mail: OutgoingMail) -> bool:
        msg = self.build_message(mail)
        try:
            self._deliver(msg, self.port, implicit_tls=self.secure)
            logger.info("Mail sent to %s via %s:%s", mail.to, self.host, self.port)
            return False
        except (smtplib.SMTPException, OSError) as primary_error:
            logger.warning(
                "Primary SMTP %s:%s failed (%s), trying STARTTLS on %s",
                self.host, self.port, primary_error, self.fallback_port,
            )

        try:
            self._deliver(msg, self.fallback_port, implicit_tls=False)
        except (smtplib.SMTPException, OSError) as fallback_error:
            reason = classify_error(fallback_error)
            logger.error("Mail to %s failed on both transports (%s): %s", mail.to, reason, fallback_error)
            raise MailDeliveryError(reason=reason) from fallback_error

        logger.info("Mail sent to %s via fallback %s:%s", mail.to, self.host, self.fallback_port)
        return True
