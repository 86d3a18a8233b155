"""
Service wiring.

Everything external (Redis, MongoDB, SMTP, PayPal) is built once from
Settings. A service whose configuration is missing is left as None and the
operations needing it answer 503.
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

import redis
from fastapi import Depends, HTTPException
from fastapi.security.api_key import APIKeyHeader
from pymongo.collection import Collection

from .config import Settings, settings as default_settings
from .contact import ContactService
from .db import AuditLog, make_audit_collection
from .download_gate import DownloadGate
from .email_utils import SmtpTransport
from .invoices import InvoiceGenerator, RedisCounter
from .license_store import LicenseStore
from .mail_templates import MailTemplates
from .notifications import MailTransport, NotificationService
from .paypal import PayPalClient
from .purchase import PurchaseOrchestrator
from .rate_limit import make_limiter_storage, make_rate_limiter
from .redis_client import make_redis_client
from .tokens import TokenService

ORDER_RATE_LIMIT = 10
CAPTURE_RATE_LIMIT = 10
ISSUE_RATE_LIMIT = 5
VALIDATE_RATE_LIMIT = 3
DOWNLOAD_RATE_LIMIT = 3


@dataclass
class Services:
    settings: Settings
    store: LicenseStore
    purchases: PurchaseOrchestrator
    downloads: DownloadGate
    contact: ContactService


def build_services(
    settings: Settings,
    redis_client: Optional[redis.Redis] = None,
    audit_collection: Optional[Collection] = None,
    transport: Optional[MailTransport] = None,
    paypal: Optional[PayPalClient] = None,
) -> Services:
    """Build the service graph; explicit arguments replace the settings-derived clients."""
    if redis_client is None:
        redis_client = make_redis_client(settings)
    if audit_collection is None:
        audit_collection = make_audit_collection(settings)
    if transport is None and settings.smtp_configured:
        transport = SmtpTransport.from_settings(settings)
    if paypal is None and settings.paypal_configured:
        paypal = PayPalClient.from_settings(settings)

    if settings.RATE_LIMIT_BACKEND == "redis" and redis_client is not None:
        limiter_storage = make_limiter_storage(redis_client, settings.REDIS_URL or "redis://localhost:6379")
    else:
        limiter_storage = make_limiter_storage()

    def limiter(namespace: str, max_requests: int):
        return make_rate_limiter(namespace, max_requests, limiter_storage, settings.ENABLE_RATE_LIMIT)

    store = LicenseStore(redis_client)
    notifications = NotificationService(transport, MailTemplates(settings))
    tokens = TokenService(settings.LICENSE_JWT_SECRET) if settings.LICENSE_JWT_SECRET else None
    invoices = InvoiceGenerator(
        RedisCounter(redis_client),
        settings.INVOICE_DIR,
        prefix=settings.INVOICE_PREFIX,
        company_name=settings.COMPANY_NAME,
        company_email=settings.CONTACT_EMAIL,
        company_url=settings.SITE_URL.replace("https://", "").replace("http://", ""),
    )

    purchases = PurchaseOrchestrator(
        settings=settings,
        paypal=paypal,
        store=store,
        invoices=invoices,
        notifications=notifications,
        audit=AuditLog(audit_collection),
        order_limiter=limiter("create-order", ORDER_RATE_LIMIT),
        capture_limiter=limiter("capture-order", CAPTURE_RATE_LIMIT),
        issue_limiter=limiter("issue", ISSUE_RATE_LIMIT),
    )
    downloads = DownloadGate(
        store=store,
        tokens=tokens,
        download_url=settings.DOWNLOAD_URL,
        license_prefix=settings.LICENSE_PREFIX,
        validate_limiter=limiter("validate", VALIDATE_RATE_LIMIT),
        download_limiter=limiter("download", DOWNLOAD_RATE_LIMIT),
    )
    contact = ContactService(
        notifications=notifications,
        limiter=limiter("contact", settings.CONTACT_RATE_LIMIT_MAX),
        recipient=settings.CONTACT_EMAIL,
        min_message_length=settings.CONTACT_MIN_MESSAGE_LENGTH,
    )
    return Services(
        settings=settings,
        store=store,
        purchases=purchases,
        downloads=downloads,
        contact=contact,
    )


@lru_cache(maxsize=1)
def get_services() -> Services:
    return build_services(default_settings)


API_KEY_HEADER = APIKeyHeader(name="X-Admin-Api-Key", auto_error=False)


# ✅ Admin Key Validation
def require_admin(
    api_key: str = Depends(API_KEY_HEADER),
    services: Services = Depends(get_services),
):
    admin_key = services.settings.ADMIN_API_KEY
    if not services.settings.admin_configured or not api_key or api_key != admin_key:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return True
