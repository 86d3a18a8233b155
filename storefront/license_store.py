"""
Redis-backed license records.

Layout:
    LICENSE:<key>        hash   email, type, issuedAt, validUntil, downloadCount
    DOWNLOAD:LOG:<key>   list   JSON download log entries, oldest first

Records have no TTL; licenses are never deleted. ``validUntil`` is stored
as an empty string when the license does not expire.
"""

import json
import logging
from typing import List, Optional

import redis

from .exceptions import (
    ConfigUnavailableError,
    EmailMismatchError,
    LicenseExpiredError,
    NotFoundError,
    StorageError,
)
from .models import DownloadLogEntry, StoredLicense
from .utils import is_expired

logger = logging.getLogger(__name__)

LICENSE_KEY_FMT = "LICENSE:{}"
DOWNLOAD_LOG_KEY_FMT = "DOWNLOAD:LOG:{}"


class LicenseStore:
    def __init__(self, client: Optional[redis.Redis]):
        self.client = client

    def _redis(self) -> redis.Redis:
        if self.client is None:
            raise ConfigUnavailableError("Lizenzsystem vorübergehend nicht verfügbar.")
        return self.client

    def store(self, license_key: str, record: StoredLicense) -> None:
        mapping = {
            "email": record.email,
            "type": record.type,
            "issuedAt": record.issued_at,
            "validUntil": record.valid_until or "",
            "downloadCount": record.download_count,
        }
        try:
            self._redis().hset(LICENSE_KEY_FMT.format(license_key), mapping=mapping)
        except redis.RedisError as e:
            raise StorageError() from e

    def get(self, license_key: str) -> Optional[StoredLicense]:
        try:
            data = self._redis().hgetall(LICENSE_KEY_FMT.format(license_key))
        except redis.RedisError as e:
            raise StorageError() from e
        if not data:
            return None
        return StoredLicense(
            email=data.get("email", ""),
            type=data.get("type", "single"),
            issued_at=data.get("issuedAt", ""),
            valid_until=data.get("validUntil") or None,
            download_count=int(data.get("downloadCount") or 0),
        )

    def validate(self, license_key: str, email: str) -> StoredLicense:
        """
        Look up a license and check it belongs to ``email``.

        Raises NotFoundError, EmailMismatchError or LicenseExpiredError, in
        that order of precedence; returns the record on success.
        """
        record = self.get(license_key)
        if record is None:
            raise NotFoundError()
        if record.email.lower() != email.lower():
            raise EmailMismatchError()
        if is_expired(record.valid_until):
            raise LicenseExpiredError()
        return record

    def record_download(self, license_key: str, entry: DownloadLogEntry) -> None:
        """Append a download log entry and bump the license's download count."""
        client = self._redis()
        record_key = LICENSE_KEY_FMT.format(license_key)
        try:
            client.rpush(
                DOWNLOAD_LOG_KEY_FMT.format(license_key),
                entry.model_dump_json(by_alias=True, exclude_none=True),
            )
            # HINCRBY is atomic; only bump records that exist
            if client.exists(record_key):
                client.hincrby(record_key, "downloadCount", 1)
            else:
                logger.warning("Download logged for unknown license %s", license_key)
        except redis.RedisError as e:
            raise StorageError() from e

    def get_download_logs(self, license_key: str) -> List[DownloadLogEntry]:
        try:
            raw = self._redis().lrange(DOWNLOAD_LOG_KEY_FMT.format(license_key), 0, -1)
        except redis.RedisError as e:
            raise StorageError() from e
        return [DownloadLogEntry.model_validate(json.loads(item)) for item in raw]
