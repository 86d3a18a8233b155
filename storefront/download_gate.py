import logging
from typing import Optional

from .exceptions import ConfigUnavailableError, ForbiddenError, RateLimitedError, ValidationError
from .license_keys import validate_email, validate_format
from .license_store import LicenseStore
from .models import DownloadLogEntry, DownloadResponse, ValidateLicenseResponse
from .rate_limit import RateLimiter
from .tokens import TokenService
from .utils import iso_now

logger = logging.getLogger(__name__)


class DownloadGate:
    """
    License validation and token-gated downloads.

    A valid key + email pair buys a five-minute download token; presenting
    the token records the download and returns the artifact location.
    """

    def __init__(
        self,
        store: LicenseStore,
        tokens: Optional[TokenService],
        download_url: str,
        license_prefix: str,
        validate_limiter: RateLimiter,
        download_limiter: RateLimiter,
    ):
        self.store = store
        self.tokens = tokens
        self.download_url = download_url
        self.license_prefix = license_prefix
        self.validate_limiter = validate_limiter
        self.download_limiter = download_limiter

    def _require_tokens(self) -> TokenService:
        if self.tokens is None:
            raise ConfigUnavailableError("Lizenzsystem vorübergehend nicht verfügbar.")
        return self.tokens

    def validate_and_issue_token(
        self, license_key: str, email: str, client_ip: str = "0.0.0.0"
    ) -> ValidateLicenseResponse:
        if not self.validate_limiter.check(client_ip):
            raise RateLimitedError()
        tokens = self._require_tokens()

        if not validate_format(license_key, self.license_prefix):
            raise ValidationError("Ungültiges Lizenzschlüssel-Format")
        if not validate_email(email):
            raise ValidationError("Ungültige E-Mail-Adresse")

        record = self.store.validate(license_key, email)
        token = tokens.issue(license_key, email)
        logger.info("Download token issued for %s", license_key)

        return ValidateLicenseResponse(
            token=token,
            license_type=record.type,
            download_count=record.download_count,
        )

    def authorize_download(
        self, token: Optional[str], client_ip: str = "0.0.0.0", user_agent: Optional[str] = None
    ) -> DownloadResponse:
        if not self.download_limiter.check(client_ip):
            raise RateLimitedError("Zu viele Download-Anfragen. Bitte versuchen Sie es in 5 Minuten erneut.")
        if not token:
            raise ValidationError("Download-Token fehlt")

        claims = self._require_tokens().verify(token)
        if claims is None:
            raise ForbiddenError()

        self.store.record_download(
            claims.license_key,
            DownloadLogEntry(ip=client_ip, timestamp=iso_now(), user_agent=user_agent),
        )
        logger.info("Download authorized for %s from %s", claims.license_key, client_ip)
        return DownloadResponse(download_url=self.download_url, license_key=claims.license_key)
