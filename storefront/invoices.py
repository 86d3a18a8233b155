"""
Invoice numbering and PDF rendering.

Invoice ids look like ``EVS-2025-0001``. The sequence comes from an atomic
Redis INCR on a per-year counter, so concurrent purchases on different
instances never share a number.

The PDF is a fixed single-page A4 layout drawn with reportlab's canvas:
seller header, invoice number and date, customer, one line item with the
license key, total, and the PayPal payment metadata.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

import redis
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from .exceptions import ConfigUnavailableError, StorageError
from .license_keys import license_type_name
from .models import InvoiceData
from .utils import utc_now

logger = logging.getLogger(__name__)

INVOICE_COUNTER_KEY_FMT = "INVOICE:COUNTER:{}"

PRIMARY = colors.HexColor("#2563eb")
HEADING = colors.HexColor("#1f2937")
MUTED = colors.HexColor("#6b7280")
RULE = colors.HexColor("#e5e7eb")
FAINT = colors.HexColor("#9ca3af")


class RedisCounter:
    """Durable atomic counter; a missing key starts at 1 on first increment."""

    def __init__(self, client: Optional[redis.Redis]):
        self.client = client

    def increment(self, name: str) -> int:
        if self.client is None:
            raise ConfigUnavailableError()
        try:
            return int(self.client.incr(name))
        except redis.RedisError as e:
            raise StorageError() from e


class InvoiceGenerator:
    def __init__(
        self,
        counter: RedisCounter,
        output_dir: str,
        prefix: str = "EVS",
        company_name: str = "EverVibe Studios",
        company_email: str = "info@evervibestudios.com",
        company_url: str = "www.evervibestudios.com",
        clock: Callable[[], datetime] = utc_now,
    ):
        self.counter = counter
        self.output_dir = Path(output_dir)
        self.prefix = prefix
        self.company_name = company_name
        self.company_email = company_email
        self.company_url = company_url
        self._clock = clock

    def next_invoice_id(self) -> str:
        year = self._clock().year
        number = self.counter.increment(INVOICE_COUNTER_KEY_FMT.format(year))
        return f"{self.prefix}-{year}-{number:04d}"

    def path_for(self, invoice_id: str) -> Path:
        return self.output_dir / f"invoice_{invoice_id}.pdf"

    def generate(self, data: InvoiceData) -> str:
        """Render the invoice PDF and return its file path."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        file_path = self.path_for(data.invoice_id)

        width, height = A4
        c = canvas.Canvas(str(file_path), pagesize=A4)
        c.setTitle(f"Rechnung {data.invoice_id}")
        c.setAuthor(self.company_name)

        def y(top: float) -> float:
            # layout is measured from the top edge
            return height - top

        # Header
        c.setFont("Helvetica-Bold", 20)
        c.setFillColor(PRIMARY)
        c.drawString(50, y(70), self.company_name)
        c.setFont("Helvetica", 10)
        c.setFillColor(colors.black)
        c.drawString(50, y(88), self.company_email)
        c.drawString(50, y(103), self.company_url)

        c.setFont("Helvetica-Bold", 24)
        c.setFillColor(HEADING)
        c.drawRightString(width - 45, y(70), "RECHNUNG")

        c.setFont("Helvetica", 10)
        c.setFillColor(MUTED)
        c.drawRightString(width - 45, y(100), "Rechnungsnummer:")
        c.setFillColor(colors.black)
        c.drawRightString(width - 45, y(115), data.invoice_id)
        c.setFillColor(MUTED)
        c.drawRightString(width - 45, y(135), "Datum:")
        c.setFillColor(colors.black)
        c.drawRightString(width - 45, y(150), data.date)

        # Customer
        c.setFont("Helvetica-Bold", 12)
        c.setFillColor(HEADING)
        c.drawString(50, y(165), "Kunde:")
        c.setFont("Helvetica", 10)
        c.setFillColor(colors.black)
        c.drawString(50, y(183), data.customer_name or data.customer)
        c.drawString(50, y(198), data.customer)

        c.setStrokeColor(RULE)
        c.line(50, y(230), width - 45, y(230))

        # Line item
        table_top = 255
        c.setFont("Helvetica", 11)
        c.setFillColor(MUTED)
        c.drawString(50, y(table_top), "Artikel")
        c.drawString(300, y(table_top), "Lizenztyp")
        c.drawRightString(width - 45, y(table_top), "Betrag")

        item_top = table_top + 25
        c.setFont("Helvetica", 10)
        c.setFillColor(colors.black)
        c.drawString(50, y(item_top), data.product[:45])
        c.drawString(300, y(item_top), license_type_name(data.license_type))
        c.drawRightString(width - 45, y(item_top), f"{data.amount} {data.currency}")

        c.setFont("Helvetica", 9)
        c.setFillColor(MUTED)
        c.drawString(50, y(item_top + 20), f"Lizenzschlüssel: {data.license_key}")

        # Total
        total_line = item_top + 60
        c.line(350, y(total_line), width - 45, y(total_line))
        c.setFont("Helvetica-Bold", 12)
        c.setFillColor(HEADING)
        c.drawString(350, y(total_line + 20), "Gesamtbetrag:")
        c.setFont("Helvetica-Bold", 14)
        c.setFillColor(PRIMARY)
        c.drawRightString(width - 45, y(total_line + 20), f"{data.amount} {data.currency}")

        # Footer
        footer = 700
        c.setFont("Helvetica", 8)
        c.setFillColor(MUTED)
        c.drawCentredString(
            width / 2,
            y(footer),
            "Diese Rechnung wurde automatisch erstellt und ist ohne Unterschrift gültig.",
        )

        c.setFont("Helvetica-Bold", 9)
        c.setFillColor(colors.black)
        c.drawString(50, y(footer + 30), "Zahlungsinformationen:")
        c.setFont("Helvetica", 8)
        c.setFillColor(MUTED)
        c.drawString(50, y(footer + 45), "Zahlung über PayPal")
        if data.order_id:
            c.drawString(50, y(footer + 60), f"PayPal Order ID: {data.order_id}")

        c.setFont("Helvetica", 7)
        c.setFillColor(FAINT)
        c.drawCentredString(
            width / 2,
            y(footer + 90),
            f"{self.company_name} | {self.company_email} | {self.company_url}",
        )

        c.showPage()
        c.save()
        logger.info("Invoice %s written to %s", data.invoice_id, file_path)
        return str(file_path)

    def get_buffer(self, file_path: str) -> bytes:
        return Path(file_path).read_bytes()
