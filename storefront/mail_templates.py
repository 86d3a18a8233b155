"""
Branded, localized email bodies.

Two languages are supported. The storefront sells to the German market
first, so German is the fallback for any address whose domain suffix is
not recognized.
"""

from dataclasses import dataclass
from html import escape
from typing import Optional
from urllib.parse import urlencode

from .config import Settings
from .license_keys import license_price, license_type_name
from .models import InvoiceData, License
from .utils import parse_iso

GERMAN_SUFFIXES = (".de", ".at", ".ch")
ENGLISH_SUFFIXES = (".uk", ".us", ".au", ".ca", ".nz", ".ie")

PRIMARY_COLOR = "#2563eb"
SECONDARY_COLOR = "#7c3aed"
FOOTER_BACKGROUND = "#1f2937"

TRANSLATIONS = {
    "de": {
        "thank_you": "Vielen Dank für Ihren Kauf bei {company}",
        "license_subject": "Ihre Lizenz von {company}",
        "license_intro": "Vielen Dank für Ihren Kauf! Hier sind Ihre Lizenzinformationen "
                         "und der Download-Link für Ihr Template.",
        "license_details": "Lizenzdetails",
        "download_button": "Projekt jetzt herunterladen",
        "support_title": "Support & Dokumentation",
        "support_text": "Bei Fragen oder Problemen kontaktieren Sie uns gerne unter {email}",
        "invoice_subject": "Ihre Rechnung von {company}",
        "invoice_intro": "Vielen Dank für Ihren Kauf! Ihre Rechnung finden Sie im Anhang.",
        "invoice_details": "Rechnungsdetails",
        "invoice_attached": "Ihre Rechnung ist als PDF im Anhang dieser E-Mail.",
        "pdf_invoice": "PDF-Rechnung",
        "footer": "© {company}. Alle Rechte vorbehalten.",
        "license_key": "Lizenzschlüssel:",
        "license_type": "Lizenztyp:",
        "price": "Preis:",
        "purchase_date": "Kaufdatum:",
        "email": "E-Mail:",
        "invoice_number": "Rechnungsnummer:",
        "date": "Datum:",
        "product": "Produkt:",
        "amount": "Betrag:",
    },
    "en": {
        "thank_you": "Thank you for your purchase at {company}",
        "license_subject": "Your License from {company}",
        "license_intro": "Thank you for your purchase! Here are your license details "
                         "and the download link for your template.",
        "license_details": "License Details",
        "download_button": "Download Project Now",
        "support_title": "Support & Documentation",
        "support_text": "If you have any questions or issues, please contact us at {email}",
        "invoice_subject": "Your Invoice from {company}",
        "invoice_intro": "Thank you for your purchase! Your invoice is attached to this email.",
        "invoice_details": "Invoice Details",
        "invoice_attached": "Your invoice is attached as a PDF to this email.",
        "pdf_invoice": "PDF Invoice",
        "footer": "© {company}. All rights reserved.",
        "license_key": "License Key:",
        "license_type": "License Type:",
        "price": "Price:",
        "purchase_date": "Purchase Date:",
        "email": "Email:",
        "invoice_number": "Invoice Number:",
        "date": "Date:",
        "product": "Product:",
        "amount": "Amount:",
    },
}

STYLES = f"""
    body {{ margin: 0; padding: 0; font-family: -apple-system, 'Segoe UI', Roboto, Arial, sans-serif; background-color: #f3f4f6; }}
    .container {{ max-width: 600px; margin: 0 auto; background-color: #ffffff; }}
    .header {{ background: linear-gradient(135deg, {PRIMARY_COLOR} 0%, {SECONDARY_COLOR} 100%); padding: 40px 20px; text-align: center; color: #ffffff; }}
    .header h1 {{ margin: 0; font-size: 28px; font-weight: bold; }}
    .content {{ padding: 40px 30px; color: #374151; }}
    .button {{ display: inline-block; padding: 14px 28px; background: {PRIMARY_COLOR}; color: #ffffff !important; text-decoration: none; border-radius: 8px; font-weight: 600; margin: 20px 0; }}
    .info-box {{ background-color: #f9fafb; border-left: 4px solid {PRIMARY_COLOR}; padding: 20px; margin: 20px 0; border-radius: 4px; }}
    .notice {{ background-color: #fef3c7; border-left: 4px solid #f59e0b; padding: 20px; margin: 20px 0; border-radius: 4px; }}
    .footer {{ background-color: {FOOTER_BACKGROUND}; padding: 30px 20px; text-align: center; color: #9ca3af; font-size: 14px; }}
    .footer a {{ color: {PRIMARY_COLOR}; text-decoration: none; }}
"""


@dataclass
class MailContent:
    subject: str
    text: str
    html: str


def detect_language(email: str) -> str:
    """Pick "de" or "en" from the address's domain suffix; German by default."""
    domain = email.rsplit("@", 1)[-1].lower() if "@" in email else ""
    if domain.endswith(GERMAN_SUFFIXES):
        return "de"
    if domain.endswith(ENGLISH_SUFFIXES):
        return "en"
    return "de"


def format_date(value: str, lang: str) -> str:
    parsed = parse_iso(value)
    if parsed is None:
        return value
    if lang == "de":
        return f"{parsed.day}.{parsed.month}.{parsed.year}"
    return f"{parsed.month}/{parsed.day}/{parsed.year}"


def single_line(value: str) -> str:
    """Collapse line breaks so user text cannot add mail headers."""
    return value.replace("\r", " ").replace("\n", " ")


def sanitize(value: str) -> str:
    """Collapse line breaks and escape markup in user-supplied text."""
    return escape(single_line(value))


class MailTemplates:
    def __init__(self, settings: Settings):
        self.company = settings.COMPANY_NAME
        self.support_email = settings.CONTACT_EMAIL
        self.site_url = settings.SITE_URL.rstrip("/")
        self.single_price = settings.LICENSE_SINGLE_PRICE
        self.agency_price = settings.LICENSE_AGENCY_PRICE
        self.currency = settings.CURRENCY

    def _t(self, lang: str) -> dict:
        return {
            k: v.format(company=self.company, email=self.support_email)
            for k, v in TRANSLATIONS[lang].items()
        }

    def download_link(self, license: License) -> str:
        return f"{self.site_url}/download?{urlencode({'key': license.key, 'email': license.email})}"

    def _rows(self, rows) -> str:
        return "\n".join(
            f'<tr><td style="padding: 8px 0; color: #6b7280; font-weight: 600;">{escape(label)}</td>'
            f'<td style="padding: 8px 0; color: #1f2937;"><strong>{escape(value)}</strong></td></tr>'
            for label, value in rows
        )

    def _page(self, lang: str, title: str, heading: str, body: str) -> str:
        t = self._t(lang)
        return f"""<!DOCTYPE html>
<html lang="{lang}">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{escape(title)}</title>
  <style>{STYLES}</style>
</head>
<body>
  <div class="container">
    <div class="header"><h1>{escape(heading)}</h1></div>
    <div class="content">
{body}
      <div class="notice">
        <strong>{escape(t["support_title"])}</strong><br>
        <span>{escape(t["support_text"])}</span>
      </div>
    </div>
    <div class="footer">
      <p style="margin: 0 0 10px 0;"><a href="mailto:{escape(self.support_email)}">{escape(self.support_email)}</a></p>
      <p style="margin: 0; font-size: 12px;">{escape(t["footer"])}</p>
    </div>
  </div>
</body>
</html>"""

    def _text_footer(self, t: dict) -> str:
        return (
            f"{t['support_title']}\n{t['support_text']}\n\n"
            f"----------------------------------------\n"
            f"{self.company}\n{self.support_email}\n{self.site_url}\n\n{t['footer']}"
        )

    def render_license_email(self, license: License, lang: Optional[str] = None) -> MailContent:
        lang = lang or detect_language(license.email)
        t = self._t(lang)
        price = license_price(license.type, self.single_price, self.agency_price)
        rows = [
            (t["license_key"], license.key),
            (t["license_type"], license_type_name(license.type)),
            (t["price"], f"{price:.2f} {self.currency}"),
            (t["purchase_date"], format_date(license.purchase_date, lang)),
            (t["email"], license.email),
        ]
        link = self.download_link(license)
        subject = f"{t['license_subject']} ({license.key})"

        body = f"""      <h2 style="color: #1f2937; margin-top: 0;">{escape(t["license_subject"])}</h2>
      <p style="font-size: 16px; line-height: 1.6;">{escape(t["license_intro"])}</p>
      <div class="info-box">
        <h3 style="margin-top: 0; color: {PRIMARY_COLOR};">{escape(t["license_details"])}</h3>
        <table style="width: 100%; border-collapse: collapse;">
{self._rows(rows)}
        </table>
      </div>
      <div style="text-align: center; margin: 30px 0;">
        <a href="{escape(link)}" class="button">{escape(t["download_button"])}</a>
      </div>"""

        details = "\n".join(f"{label} {value}" for label, value in rows)
        text = (
            f"{t['thank_you']}\n\n{t['license_intro']}\n\n"
            f"{t['license_details'].upper()}\n----------------------------------------\n\n"
            f"{details}\n\n"
            f"DOWNLOAD\n----------------------------------------\n{t['download_button']}\n{link}\n\n"
            f"{self._text_footer(t)}"
        )
        return MailContent(
            subject=subject,
            text=text,
            html=self._page(lang, subject, t["thank_you"], body),
        )

    def render_receipt_email(self, invoice: InvoiceData, lang: Optional[str] = None) -> MailContent:
        lang = lang or detect_language(invoice.customer)
        t = self._t(lang)
        rows = [
            (t["invoice_number"], invoice.invoice_id),
            (t["date"], format_date(invoice.date, lang)),
            (t["product"], invoice.product),
            (t["license_type"], license_type_name(invoice.license_type)),
            (t["amount"], f"{invoice.amount} {invoice.currency}"),
        ]
        subject = f"{t['invoice_subject']} ({invoice.invoice_id})"

        body = f"""      <h2 style="color: #1f2937; margin-top: 0;">{escape(t["invoice_subject"])}</h2>
      <p style="font-size: 16px; line-height: 1.6;">{escape(t["invoice_intro"])}</p>
      <div class="info-box">
        <h3 style="margin-top: 0; color: {PRIMARY_COLOR};">{escape(t["invoice_details"])}</h3>
        <table style="width: 100%; border-collapse: collapse;">
{self._rows(rows)}
        </table>
      </div>
      <div class="info-box">
        <strong>{escape(t["pdf_invoice"])}</strong><br>
        <span>{escape(t["invoice_attached"])}</span>
      </div>"""

        details = "\n".join(f"{label} {value}" for label, value in rows)
        text = (
            f"{t['thank_you']}\n\n{t['invoice_intro']}\n\n"
            f"{t['invoice_details'].upper()}\n----------------------------------------\n\n"
            f"{details}\n\n"
            f"{t['pdf_invoice'].upper()}\n{t['invoice_attached']}\n\n"
            f"{self._text_footer(t)}"
        )
        return MailContent(
            subject=subject,
            text=text,
            html=self._page(lang, subject, t["thank_you"], body),
        )

    def render_contact_email(self, name: str, email: str, message: str) -> MailContent:
        html = (
            "<h2>Neue Kontaktanfrage</h2>\n"
            f"<p><b>Name:</b> {sanitize(name)}</p>\n"
            f"<p><b>E-Mail:</b> {sanitize(email)}</p>\n"
            f"<p><b>Nachricht:</b><br/>{sanitize(message)}</p>"
        )
        return MailContent(
            subject=f"EVS Kontakt – {single_line(name)}",
            text=f"Von: {name} <{email}>\n\n{message}",
            html=html,
        )
