from datetime import datetime, timedelta, timezone

from storefront.license_keys import (
    compute_digest,
    generate_key,
    generate_license,
    license_price,
    license_type_name,
    validate_email,
    validate_format,
    validate_integrity,
)
from storefront.models import License

SALT = "test-salt"
PREFIX = "EVS-"


class TestKeyFormat:
    def test_generated_key_matches_format(self):
        for _ in range(20):
            key = generate_key(PREFIX)
            assert validate_format(key, PREFIX)
            assert len(key) == len("EVS-XXXX-XXXX-XXXX")

    def test_keys_differ(self):
        assert generate_key(PREFIX) != generate_key(PREFIX)

    def test_rejects_lowercase_and_wrong_prefix(self):
        assert not validate_format("EVS-abcd-1234-5678", PREFIX)
        assert not validate_format("ABC-ABCD-1234-5678", PREFIX)
        assert not validate_format("EVS-ABCD-1234", PREFIX)
        assert not validate_format("", PREFIX)

    def test_rejects_trailing_garbage(self):
        assert not validate_format("EVS-ABCD-1234-5678-9999", PREFIX)


def test_validate_email():
    assert validate_email("max@muster-kunde.de")
    assert not validate_email("no-at-sign")
    assert not validate_email("a b@c.de")
    assert not validate_email("")


class TestIntegrity:
    def test_fresh_license_is_valid(self):
        license = generate_license("single", "max@muster-kunde.de", SALT, PREFIX)
        assert validate_integrity(license, SALT, PREFIX).valid

    def test_digest_is_deterministic(self):
        a = compute_digest("EVS-AAAA-BBBB-CCCC", "single", "a@b.de", "2025-01-01T00:00:00.000Z", SALT)
        b = compute_digest("EVS-AAAA-BBBB-CCCC", "single", "a@b.de", "2025-01-01T00:00:00.000Z", SALT)
        assert a == b
        assert len(a) == 64

    def test_changing_type_is_detected(self):
        license = generate_license("single", "max@muster-kunde.de", SALT, PREFIX)
        tampered = license.model_copy(update={"type": "agency"})
        result = validate_integrity(tampered, SALT, PREFIX)
        assert not result.valid
        assert result.code == "INTEGRITY_VIOLATION"

    def test_changing_email_is_detected(self):
        license = generate_license("single", "max@muster-kunde.de", SALT, PREFIX)
        tampered = license.model_copy(update={"email": "other@muster-kunde.de"})
        assert validate_integrity(tampered, SALT, PREFIX).code == "INTEGRITY_VIOLATION"

    def test_changing_key_is_detected(self):
        license = generate_license("single", "max@muster-kunde.de", SALT, PREFIX)
        other_key = generate_key(PREFIX)
        assert validate_format(other_key, PREFIX)

        result = validate_integrity(license.model_copy(update={"key": other_key}), SALT, PREFIX)

        assert result.code == "INTEGRITY_VIOLATION"

    def test_changing_purchase_date_is_detected(self):
        license = generate_license("single", "max@muster-kunde.de", SALT, PREFIX)
        backdated = license.model_copy(update={"purchase_date": "2020-01-01T00:00:00.000Z"})

        result = validate_integrity(backdated, SALT, PREFIX)

        assert result.code == "INTEGRITY_VIOLATION"

    def test_bad_email_fails_before_hash(self):
        license = generate_license("single", "max@muster-kunde.de", SALT, PREFIX)
        result = validate_integrity(license.model_copy(update={"email": "not-an-email"}), SALT, PREFIX)
        assert result.code == "VALIDATION_ERROR"
        assert result.reason == "Invalid email format"

    def test_unparsable_purchase_date(self):
        key = generate_key(PREFIX)
        license = License(
            key=key,
            type="single",
            email="max@muster-kunde.de",
            purchase_date="garbage",
            hash=compute_digest(key, "single", "max@muster-kunde.de", "garbage", SALT),
        )

        result = validate_integrity(license, SALT, PREFIX)

        assert result.code == "VALIDATION_ERROR"
        assert result.reason == "Invalid purchase date"

    def test_hash_mismatch_wins_over_bad_date(self):
        license = License(
            key=generate_key(PREFIX),
            type="single",
            email="max@muster-kunde.de",
            purchase_date="garbage",
            hash="0" * 64,
        )

        assert validate_integrity(license, SALT, PREFIX).code == "INTEGRITY_VIOLATION"

    def test_wrong_salt_is_detected(self):
        license = generate_license("agency", "max@muster-kunde.de", SALT, PREFIX)
        assert validate_integrity(license, "other-salt", PREFIX).code == "INTEGRITY_VIOLATION"

    def test_unknown_type_fails_before_hash(self):
        license = generate_license("single", "max@muster-kunde.de", SALT, PREFIX)
        result = validate_integrity(license.model_copy(update={"type": "enterprise"}), SALT, PREFIX)
        assert result.code == "VALIDATION_ERROR"
        assert result.reason == "Invalid license type"

    def test_future_purchase_date_is_rejected(self):
        future = datetime.now(timezone.utc) + timedelta(days=1)
        license = generate_license("single", "max@muster-kunde.de", SALT, PREFIX, now=future)
        result = validate_integrity(license, SALT, PREFIX)
        assert not result.valid
        assert result.reason == "Purchase date cannot be in the future"


def test_type_names_and_prices():
    assert license_type_name("single") == "Single License"
    assert license_type_name("agency") == "Agency License"
    assert license_price("single", 29.0, 79.0) == 29.0
    assert license_price("agency", 29.0, 79.0) == 79.0
