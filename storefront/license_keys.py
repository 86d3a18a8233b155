"""
License key generation and integrity checks.

Key format: PREFIX-XXXX-XXXX-XXXX, each block four uppercase hex digits
taken from a random uuid4. The integrity hash covers key, type, email and
purchase date plus a server-held salt, so editing any of those fields
invalidates the license.
"""

import hashlib
import hmac
import re
import uuid
from datetime import datetime
from typing import Optional

from .models import LICENSE_TYPES, License, ValidationResult
from .utils import iso_now, parse_iso, utc_now

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

LICENSE_TYPE_NAMES = {
    "single": "Single License",
    "agency": "Agency License",
}


def generate_key(prefix: str) -> str:
    """
    Generate a license key in format: PREFIX-XXXX-XXXX-XXXX.

    No collision check is made; three hex blocks of a uuid4 make one
    negligible for the expected volume.
    """
    clean = uuid.uuid4().hex.upper()
    parts = [clean[0:4], clean[4:8], clean[8:12]]
    return f"{prefix}{'-'.join(parts)}"


def compute_digest(key: str, license_type: str, email: str, purchase_date: str, salt: str) -> str:
    data = f"{key}|{license_type}|{email}|{purchase_date}|{salt}"
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def validate_format(key: str, prefix: str) -> bool:
    pattern = rf"{re.escape(prefix)}[A-F0-9]{{4}}-[A-F0-9]{{4}}-[A-F0-9]{{4}}"
    return bool(key) and re.fullmatch(pattern, key) is not None


def validate_email(email: str) -> bool:
    return bool(email) and EMAIL_PATTERN.match(email) is not None


def generate_license(
    license_type: str,
    email: str,
    salt: str,
    prefix: str,
    now: Optional[datetime] = None,
) -> License:
    key = generate_key(prefix)
    purchase_date = iso_now(now)
    return License(
        key=key,
        type=license_type,
        email=email,
        purchase_date=purchase_date,
        hash=compute_digest(key, license_type, email, purchase_date, salt),
    )


def validate_integrity(
    license: License,
    salt: str,
    prefix: str,
    now: Optional[datetime] = None,
) -> ValidationResult:
    """
    Validate a complete license object.

    Checks run in a fixed order and stop at the first failure:
    key format, email format, license type, hash, purchase date parse,
    purchase date not in the future.
    """
    if not validate_format(license.key, prefix):
        return ValidationResult(valid=False, reason="Invalid license key format", code="VALIDATION_ERROR")

    if not validate_email(license.email):
        return ValidationResult(valid=False, reason="Invalid email format", code="VALIDATION_ERROR")

    if license.type not in LICENSE_TYPES:
        return ValidationResult(valid=False, reason="Invalid license type", code="VALIDATION_ERROR")

    expected = compute_digest(license.key, license.type, license.email, license.purchase_date, salt)
    if not hmac.compare_digest(license.hash, expected):
        return ValidationResult(
            valid=False,
            reason="License hash mismatch - possible tampering detected",
            code="INTEGRITY_VIOLATION",
        )

    purchased = parse_iso(license.purchase_date)
    if purchased is None:
        return ValidationResult(valid=False, reason="Invalid purchase date", code="VALIDATION_ERROR")

    if purchased > (now or utc_now()):
        return ValidationResult(
            valid=False,
            reason="Purchase date cannot be in the future",
            code="VALIDATION_ERROR",
        )

    return ValidationResult(valid=True)


def license_type_name(license_type: str) -> str:
    return LICENSE_TYPE_NAMES.get(license_type, license_type)


def license_price(license_type: str, single_price: float, agency_price: float) -> float:
    return single_price if license_type == "single" else agency_price
