"""
Purchase flow: PayPal order → capture → license issuance.

After a successful capture the issuance runs as a saga:

    1. store the license record          best-effort
    2. invoice id, PDF and receipt mail  best-effort
    3. license email                     critical
    4. audit record                      best-effort

The payment cannot be rolled back, so storage and invoicing favour
availability: both can be repaired later from the emailed license. The
license email is the one channel that gets the key to the customer, and its
failure is reported to the caller even though the capture succeeded.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Tuple

from .config import Settings
from .db import AuditLog
from .exceptions import (
    ConfigUnavailableError,
    LicenseDeliveryError,
    PaymentIncompleteError,
    RateLimitedError,
    ValidationError,
)
from .invoices import InvoiceGenerator
from .license_keys import generate_license, license_price, license_type_name, validate_email
from .license_store import LicenseStore
from .models import (
    LICENSE_TYPES,
    CaptureOrderResponse,
    CreateOrderResponse,
    InvoiceData,
    License,
    StoredLicense,
)
from .notifications import NotificationService
from .paypal import PayPalClient
from .rate_limit import RateLimiter
from .saga import PurchaseState, Saga, SagaResult, SagaStep
from .utils import utc_now

logger = logging.getLogger(__name__)

PAYMENT_UNAVAILABLE = "Zahlungssystem vorübergehend nicht verfügbar. Bitte versuchen Sie es später erneut."
LICENSE_UNAVAILABLE = "Lizenzsystem vorübergehend nicht verfügbar. Bitte versuchen Sie es später erneut."


@dataclass
class Issuance:
    license: License
    result: SagaResult


class PurchaseOrchestrator:
    def __init__(
        self,
        settings: Settings,
        paypal: Optional[PayPalClient],
        store: LicenseStore,
        invoices: InvoiceGenerator,
        notifications: NotificationService,
        audit: AuditLog,
        order_limiter: RateLimiter,
        capture_limiter: RateLimiter,
        issue_limiter: RateLimiter,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.settings = settings
        self.paypal = paypal
        self.store = store
        self.invoices = invoices
        self.notifications = notifications
        self.audit = audit
        self.order_limiter = order_limiter
        self.capture_limiter = capture_limiter
        self.issue_limiter = issue_limiter
        self._clock = clock

    # ------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------
    def _require_paypal(self) -> PayPalClient:
        if self.paypal is None:
            raise ConfigUnavailableError(PAYMENT_UNAVAILABLE)
        return self.paypal

    def _require_issuance(self) -> None:
        if not self.settings.license_configured or not self.notifications.configured:
            raise ConfigUnavailableError(LICENSE_UNAVAILABLE)

    @staticmethod
    def _check_rate(limiter: RateLimiter, client_ip: Optional[str]) -> None:
        if client_ip is not None and not limiter.check(client_ip):
            logger.warning("Rate limit exceeded for %s", client_ip)
            raise RateLimitedError()

    def price_for(self, license_type: str) -> float:
        return license_price(license_type, self.settings.LICENSE_SINGLE_PRICE, self.settings.LICENSE_AGENCY_PRICE)

    def product_name(self, license_type: str) -> str:
        return f"{self.settings.PRODUCT_NAME} – {license_type_name(license_type)}"

    # ------------------------------------------------------------
    # PayPal
    # ------------------------------------------------------------
    def create_order(self, license_type: str, email: str, client_ip: Optional[str] = None) -> CreateOrderResponse:
        paypal = self._require_paypal()
        self._check_rate(self.order_limiter, client_ip)
        if license_type not in LICENSE_TYPES or not validate_email(email):
            raise ValidationError()

        usage = "unlimited client projects" if license_type == "agency" else "single project"
        order = paypal.create_order(
            license_type=license_type,
            email=email,
            price=self.price_for(license_type),
            currency=self.settings.CURRENCY,
            item_name=self.product_name(license_type),
            item_description=f"Professional Next.js template with {usage} usage",
        )
        logger.info("PayPal order %s %s (%s license)", order.get("id"), PurchaseState.ORDER_CREATED.value, license_type)
        return CreateOrderResponse(order_id=order["id"], status=order.get("status", "CREATED"))

    @staticmethod
    def correlation_data(capture: Dict[str, Any]) -> Tuple[str, str]:
        """
        Recover (license type, email) from a capture response.

        The custom_id set at order creation wins; the payer's PayPal address
        is used when it is missing or unparsable. Type falls back to single.
        """
        license_type, email = "single", ""
        units = capture.get("purchase_units") or [{}]
        custom_id = units[0].get("custom_id")
        if custom_id:
            try:
                custom = json.loads(custom_id)
                if custom.get("licenseType") in LICENSE_TYPES:
                    license_type = custom["licenseType"]
                email = custom.get("email") or ""
            except (ValueError, AttributeError) as e:
                logger.warning("Failed to parse custom_id %r: %s", custom_id, e)

        if not email:
            email = (capture.get("payer") or {}).get("email_address") or ""
        return license_type, email

    def capture_order(self, order_id: str, client_ip: Optional[str] = None) -> CaptureOrderResponse:
        paypal = self._require_paypal()
        # issuance prerequisites are checked before any money moves
        self._require_issuance()
        self._check_rate(self.capture_limiter, client_ip)
        if not order_id:
            raise ValidationError()

        capture = paypal.capture_order(order_id)
        license_type, email = self.correlation_data(capture)
        status = capture.get("status", "")

        if status != "COMPLETED":
            logger.warning("PayPal order %s not completed: %s", order_id, status)
            raise PaymentIncompleteError(status=status)

        captured_id = capture.get("id", order_id)
        logger.info("PayPal order %s captured", captured_id)
        issuance = self.issue_license(license_type, email, order_id=captured_id)

        return CaptureOrderResponse(
            order_id=captured_id,
            status=status,
            email=email,
            license_type=license_type,
            license_key=issuance.license.key,
        )

    # ------------------------------------------------------------
    # Issuance
    # ------------------------------------------------------------
    def issue_license(
        self,
        license_type: str,
        email: str,
        order_id: Optional[str] = None,
        client_ip: Optional[str] = None,
    ) -> Issuance:
        self._require_issuance()
        self._check_rate(self.issue_limiter, client_ip)
        if license_type not in LICENSE_TYPES:
            raise ValidationError()
        if not validate_email(email):
            # reached after capture only when PayPal returned no usable address
            logger.error("No deliverable email for order %s", order_id)
            raise LicenseDeliveryError()

        license = generate_license(
            license_type,
            email,
            salt=self.settings.LICENSE_SALT,
            prefix=self.settings.LICENSE_PREFIX,
            now=self._clock(),
        )

        saga = Saga(
            f"issue {license.key}",
            [
                SagaStep("store_license", lambda: self._store(license), on_success=PurchaseState.LICENSE_ISSUED),
                SagaStep("invoice", lambda: self._send_invoice(license, order_id), on_success=PurchaseState.INVOICE_SENT),
                SagaStep(
                    "license_email",
                    lambda: self.notifications.send_license_email(license),
                    critical=True,
                    on_success=PurchaseState.LICENSE_EMAIL_SENT,
                ),
                SagaStep(
                    "audit",
                    lambda: self.audit.record_issuance(license.key, license.type, license.email, order_id),
                ),
            ],
            initial=PurchaseState.CAPTURED,
            final=PurchaseState.COMPLETE,
        )
        result = saga.run()

        if not result.ok:
            logger.error(
                "License %s for order %s not delivered; manual follow-up required",
                license.key, order_id or "manual",
            )
            raise LicenseDeliveryError(license_key=license.key) from result.error

        logger.info(
            "License %s issued (%s) for order %s, skipped steps: %s",
            license.key, license.type, order_id or "manual", result.skipped or "none",
        )
        return Issuance(license=license, result=result)

    def _store(self, license: License) -> None:
        self.store.store(
            license.key,
            StoredLicense(
                email=license.email,
                type=license.type,
                issued_at=license.purchase_date,
                valid_until=None,
                download_count=0,
            ),
        )

    def _send_invoice(self, license: License, order_id: Optional[str]) -> None:
        invoice = InvoiceData(
            invoice_id=self.invoices.next_invoice_id(),
            customer=license.email,
            customer_name=license.email.split("@")[0],
            product=self.product_name(license.type),
            amount=f"{self.price_for(license.type):.2f}",
            currency=self.settings.CURRENCY,
            date=self._clock().date().isoformat(),
            license_key=license.key,
            license_type=license.type,
            order_id=order_id,
        )
        path = self.invoices.generate(invoice)
        self.notifications.send_receipt_email(invoice, self.invoices.get_buffer(path))
