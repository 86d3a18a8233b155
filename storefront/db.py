"""
MongoDB issuance audit log.

One document per issued license. Writes are best-effort: the purchase flow
never waits on or fails because of the audit trail.
"""

import logging
from typing import Optional

import certifi
from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from .config import Settings
from .utils import iso_now

logger = logging.getLogger(__name__)


def make_audit_collection(settings: Settings) -> Optional[Collection]:
    if not settings.mongo_configured:
        return None
    client = MongoClient(
        settings.MONGO_URI,
        tls=True,
        tlsCAFile=certifi.where(),
        serverSelectionTimeoutMS=5000,
    )
    return client[settings.DB_NAME][settings.AUDIT_COLLECTION]


class AuditLog:
    def __init__(self, collection: Optional[Collection]):
        self.collection = collection

    def record_issuance(
        self,
        license_key: str,
        license_type: str,
        email: str,
        order_id: Optional[str] = None,
    ) -> bool:
        if self.collection is None:
            logger.warning("Audit log not configured; skipping issuance record for %s", license_key)
            return False
        try:
            self.collection.insert_one({
                "timestamp": iso_now(),
                "licenseKey": license_key,
                "licenseType": license_type,
                "email": email,
                "orderId": order_id or "manual",
            })
        except PyMongoError:
            logger.exception("Failed to write issuance audit record for %s", license_key)
            return False
        return True
