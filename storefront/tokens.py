"""
Short-lived download tokens.

HS256 JWTs carrying ``licenseKey`` and ``email`` claims, valid for five
minutes. Tokens are stateless: nothing is stored, and a token can be
presented again until it expires.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

import jwt

logger = logging.getLogger(__name__)

TOKEN_TTL_SECONDS = 5 * 60
ALGORITHM = "HS256"


@dataclass(frozen=True)
class DownloadClaims:
    license_key: str
    email: str


class TokenService:
    def __init__(
        self,
        secret: str,
        ttl_seconds: int = TOKEN_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.secret = secret
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    def issue(self, license_key: str, email: str) -> str:
        issued_at = int(self._clock())
        payload = {
            "licenseKey": license_key,
            "email": email,
            "iat": issued_at,
            "exp": issued_at + self.ttl_seconds,
        }
        return jwt.encode(payload, self.secret, algorithm=ALGORITHM)

    def verify(self, token: str) -> Optional[DownloadClaims]:
        """Return the token's claims, or None if it is expired, forged or malformed."""
        try:
            decoded = jwt.decode(
                token,
                self.secret,
                algorithms=[ALGORITHM],
                options={"require": ["exp", "iat"]},
            )
        except jwt.ExpiredSignatureError:
            logger.info("Download token expired")
            return None
        except jwt.InvalidTokenError as e:
            logger.info("Download token rejected: %s", e)
            return None

        license_key = decoded.get("licenseKey")
        email = decoded.get("email")
        if not isinstance(license_key, str) or not isinstance(email, str):
            logger.info("Download token missing licenseKey/email claims")
            return None
        return DownloadClaims(license_key=license_key, email=email)
