import fakeredis
import pytest

from storefront.exceptions import (
    ConfigUnavailableError,
    EmailMismatchError,
    LicenseExpiredError,
    NotFoundError,
    StorageError,
)
from storefront.license_store import LicenseStore
from storefront.models import DownloadLogEntry, StoredLicense

KEY = "EVS-AAAA-BBBB-CCCC"


@pytest.fixture
def store(redis_client):
    return LicenseStore(redis_client)


def record(**overrides):
    data = {
        "email": "Max@Muster-Kunde.de",
        "type": "single",
        "issued_at": "2025-01-10T12:00:00.000Z",
    }
    data.update(overrides)
    return StoredLicense(**data)


def test_store_and_get(store, redis_client):
    store.store(KEY, record())

    loaded = store.get(KEY)

    assert loaded.email == "Max@Muster-Kunde.de"
    assert loaded.type == "single"
    assert loaded.valid_until is None
    assert loaded.download_count == 0
    assert redis_client.hget(f"LICENSE:{KEY}", "validUntil") == ""


def test_get_missing(store):
    assert store.get(KEY) is None


def test_validate_ignores_email_case(store):
    store.store(KEY, record())
    assert store.validate(KEY, "max@muster-kunde.DE").type == "single"


def test_validate_unknown_key(store):
    with pytest.raises(NotFoundError):
        store.validate(KEY, "max@muster-kunde.de")


def test_validate_wrong_email(store):
    store.store(KEY, record())
    with pytest.raises(EmailMismatchError):
        store.validate(KEY, "someone@else.de")


def test_validate_expired(store):
    store.store(KEY, record(valid_until="2020-01-01T00:00:00.000Z"))
    with pytest.raises(LicenseExpiredError):
        store.validate(KEY, "max@muster-kunde.de")


def test_unparsable_expiry_does_not_expire(store):
    store.store(KEY, record(valid_until="irgendwann"))
    assert store.validate(KEY, "max@muster-kunde.de").valid_until == "irgendwann"


def test_validate_not_yet_expired(store):
    store.store(KEY, record(valid_until="2999-01-01T00:00:00.000Z"))
    assert store.validate(KEY, "max@muster-kunde.de")


def test_record_download_counts_and_logs(store):
    store.store(KEY, record())

    store.record_download(KEY, DownloadLogEntry(ip="1.2.3.4", timestamp="2025-01-10T12:01:00.000Z"))
    store.record_download(
        KEY, DownloadLogEntry(ip="5.6.7.8", timestamp="2025-01-10T12:02:00.000Z", user_agent="curl/8")
    )

    assert store.get(KEY).download_count == 2
    logs = store.get_download_logs(KEY)
    assert [entry.ip for entry in logs] == ["1.2.3.4", "5.6.7.8"]
    assert logs[1].user_agent == "curl/8"


def test_record_download_for_unknown_license_only_logs(store, redis_client):
    store.record_download(KEY, DownloadLogEntry(ip="1.2.3.4", timestamp="2025-01-10T12:01:00.000Z"))

    assert store.get(KEY) is None
    assert len(store.get_download_logs(KEY)) == 1


def test_unconfigured_store():
    with pytest.raises(ConfigUnavailableError):
        LicenseStore(None).get(KEY)


def test_redis_failure_becomes_storage_error():
    server = fakeredis.FakeServer()
    server.connected = False
    store = LicenseStore(fakeredis.FakeRedis(server=server, decode_responses=True))

    with pytest.raises(StorageError):
        store.get(KEY)
