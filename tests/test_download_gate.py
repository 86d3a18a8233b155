import time

import pytest

from storefront.dependencies import VALIDATE_RATE_LIMIT
from storefront.exceptions import (
    EmailMismatchError,
    ForbiddenError,
    NotFoundError,
    RateLimitedError,
    ValidationError,
)
from storefront.tokens import TokenService

JWT_SECRET = "test-jwt-secret-with-enough-length-0123456789"


@pytest.fixture
def issued(services):
    return services.purchases.issue_license("agency", "max@muster-kunde.de").license


def test_validate_then_download(services, settings, issued):
    gate = services.downloads

    validated = gate.validate_and_issue_token(issued.key, "Max@Muster-Kunde.de", "1.2.3.4")
    assert validated.license_type == "agency"
    assert validated.download_count == 0

    response = gate.authorize_download(validated.token, "1.2.3.4", "Mozilla/5.0")

    assert response.download_url == settings.DOWNLOAD_URL
    assert response.license_key == issued.key
    assert services.store.get(issued.key).download_count == 1
    (entry,) = services.store.get_download_logs(issued.key)
    assert entry.ip == "1.2.3.4"
    assert entry.user_agent == "Mozilla/5.0"


def test_token_can_be_used_until_expiry(services, issued):
    token = services.downloads.validate_and_issue_token(issued.key, issued.email, "1.2.3.4").token

    services.downloads.authorize_download(token, "1.2.3.4")
    services.downloads.authorize_download(token, "1.2.3.4")

    assert services.store.get(issued.key).download_count == 2


def test_expired_token_records_nothing(services, issued):
    stale = TokenService(JWT_SECRET, clock=lambda: time.time() - 600).issue(issued.key, issued.email)

    with pytest.raises(ForbiddenError):
        services.downloads.authorize_download(stale, "1.2.3.4")

    assert services.store.get_download_logs(issued.key) == []
    assert services.store.get(issued.key).download_count == 0


def test_missing_token(services):
    with pytest.raises(ValidationError):
        services.downloads.authorize_download(None, "1.2.3.4")


def test_bad_key_format(services):
    with pytest.raises(ValidationError) as exc_info:
        services.downloads.validate_and_issue_token("EVS-nope", "max@muster-kunde.de", "1.2.3.4")
    assert exc_info.value.message == "Ungültiges Lizenzschlüssel-Format"


def test_unknown_key(services):
    with pytest.raises(NotFoundError):
        services.downloads.validate_and_issue_token("EVS-AAAA-BBBB-CCCC", "max@muster-kunde.de", "1.2.3.4")


def test_wrong_email(services, issued):
    with pytest.raises(EmailMismatchError):
        services.downloads.validate_and_issue_token(issued.key, "other@muster-kunde.de", "1.2.3.4")


def test_validate_rate_limit(services):
    for _ in range(VALIDATE_RATE_LIMIT):
        with pytest.raises(NotFoundError):
            services.downloads.validate_and_issue_token("EVS-AAAA-BBBB-CCCC", "max@muster-kunde.de", "9.9.9.9")

    with pytest.raises(RateLimitedError):
        services.downloads.validate_and_issue_token("EVS-AAAA-BBBB-CCCC", "max@muster-kunde.de", "9.9.9.9")
