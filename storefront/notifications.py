import logging
from typing import Optional, Protocol

from .exceptions import ConfigUnavailableError
from .email_utils import MailAttachment, OutgoingMail
from .mail_templates import MailTemplates
from .models import InvoiceData, License

logger = logging.getLogger(__name__)


class MailTransport(Protocol):
    def send(self, mail: OutgoingMail) -> bool:
        """Deliver ``mail``; True if a fallback route was used. Raises MailDeliveryError."""


class NotificationService:
    """
    Customer and operator emails.

    Whether a failed send is fatal is the caller's decision: the purchase
    flow treats the license email as must-succeed and the receipt as
    best-effort.
    """

    def __init__(self, transport: Optional[MailTransport], templates: MailTemplates):
        self.transport = transport
        self.templates = templates

    @property
    def configured(self) -> bool:
        return self.transport is not None

    def send(self, mail: OutgoingMail) -> bool:
        if self.transport is None:
            raise ConfigUnavailableError("E-Mail-System vorübergehend nicht verfügbar.")
        return self.transport.send(mail)

    def send_license_email(self, license: License, lang: Optional[str] = None) -> None:
        content = self.templates.render_license_email(license, lang)
        self.send(OutgoingMail(
            to=license.email,
            subject=content.subject,
            text=content.text,
            html=content.html,
        ))
        logger.info("License email sent for %s", license.key)

    def send_receipt_email(self, invoice: InvoiceData, pdf: bytes, lang: Optional[str] = None) -> None:
        content = self.templates.render_receipt_email(invoice, lang)
        self.send(OutgoingMail(
            to=invoice.customer,
            subject=content.subject,
            text=content.text,
            html=content.html,
            attachments=[MailAttachment(
                filename=f"invoice_{invoice.invoice_id}.pdf",
                content=pdf,
                content_type="application/pdf",
            )],
        ))
        logger.info("Receipt %s sent", invoice.invoice_id)

    def send_contact_message(self, name: str, email: str, message: str, to: str) -> bool:
        content = self.templates.render_contact_email(name, email, message)
        return self.send(OutgoingMail(
            to=to,
            subject=content.subject,
            text=content.text,
            html=content.html,
            reply_to=email,
        ))
