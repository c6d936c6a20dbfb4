import pytest
from botocore.exceptions import ClientError

from rentals.capabilities.geocoding import Address, NominatimGeocoder
from rentals.capabilities.storage import S3ObjectStorage
from rentals.errors import ConfigurationError, StorageError

ADDRESS = Address(street="12 Harbour St", city="Seattle", country="US", postal_code="98101", state="WA")


class StubResponse:
    def __init__(self, payload):
        self.payload = payload

    def raise_for_status(self):
        pass

    def json(self):
        return self.payload


class StubS3:
    def __init__(self, error=None):
        self.error = error
        self.calls = []

    def put_object(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error


def test_storage_requires_bucket():
    with pytest.raises(ConfigurationError):
        S3ObjectStorage(bucket_name="")


def test_public_url_variants():
    assert S3ObjectStorage("photos", region="eu-west-1").public_url("properties/a.jpg") == \
        "https://photos.s3.eu-west-1.amazonaws.com/properties/a.jpg"
    assert S3ObjectStorage("photos", endpoint_url="http://minio:9000/").public_url("a.jpg") == \
        "http://minio:9000/photos/a.jpg"
    assert S3ObjectStorage("photos", public_base="https://cdn.example.com/").public_url("a.jpg") == \
        "https://cdn.example.com/a.jpg"


@pytest.mark.anyio
async def test_store_puts_object(anyio_backend):
    storage = S3ObjectStorage("photos", region="us-east-1")
    storage.s3_client = StubS3()

    url = await storage.store(b"jpeg", "image/jpeg", "properties/1-0-front.jpg")

    assert url == "https://photos.s3.us-east-1.amazonaws.com/properties/1-0-front.jpg"
    assert storage.s3_client.calls == [{
        "Bucket": "photos",
        "Key": "properties/1-0-front.jpg",
        "Body": b"jpeg",
        "ContentType": "image/jpeg",
    }]


@pytest.mark.anyio
async def test_store_wraps_client_errors(anyio_backend):
    storage = S3ObjectStorage("photos")
    storage.s3_client = StubS3(ClientError({"Error": {"Code": "AccessDenied", "Message": "denied"}}, "PutObject"))

    with pytest.raises(StorageError):
        await storage.store(b"jpeg", "image/jpeg", "properties/1-0-front.jpg")


@pytest.mark.anyio
async def test_geocoder_parses_first_result(anyio_backend, monkeypatch):
    geocoder = NominatimGeocoder("https://geo.test/search", "rentals-tests")
    seen = {}

    def fake_get(url, params=None, timeout=None):
        seen.update(url=url, params=params, timeout=timeout)
        return StubResponse([{"lat": "47.6062", "lon": "-122.3321"}, {"lat": "0", "lon": "0"}])

    monkeypatch.setattr(geocoder.session, "get", fake_get)

    assert await geocoder.resolve(ADDRESS) == (47.6062, -122.3321)
    assert seen["params"]["postalcode"] == "98101"
    assert seen["params"]["limit"] == "1"
    assert geocoder.session.headers["User-Agent"] == "rentals-tests"


@pytest.mark.anyio
@pytest.mark.parametrize("payload", [[], [{"lat": "", "lon": "1"}]])
async def test_geocoder_returns_none_without_match(anyio_backend, monkeypatch, payload):
    geocoder = NominatimGeocoder("https://geo.test/search", "rentals-tests")
    monkeypatch.setattr(geocoder.session, "get", lambda *args, **kwargs: StubResponse(payload))

    assert await geocoder.resolve(ADDRESS) is None
