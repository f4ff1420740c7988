import pytest
import requests
from conftest import TOKEN

from verity_core.crypto import device_hash
from verity_core.errors import RemoteErrorCode, RemoteResolveError
from verity_core.transport import HTTPResolver, LocalResolver, ProductData, resolver_factory

# CMD Line Usage: pytest -v -s --log-cli-level=DEBUG .\tests\test_transport.py

BODY = {
    "status": "active",
    "token_type": "LP",
    "version": "v1",
    "product": {
        "product_id": "prod_xyz",
        "name": "Daily Wellness Blend",
        "category": "Supplement",
        "description": "A daily herbal supplement blend.",
        "batch_id": "batch_001",
        "verified_at": "2025-11-15T10:30:00Z",
    },
    "cache_ttl": 86400,
}


class FakeResponse:
    def __init__(self, status_code=200, body=None, headers=None):
        self.status_code = status_code
        self._body = body
        self.headers = headers or {}

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._body is None:
            raise ValueError("no JSON")
        return self._body


def patch_get(monkeypatch, response=None, exc=None):
    calls = []

    def fake_get(self, url, headers=None, timeout=None):
        calls.append({"url": url, "headers": headers, "timeout": timeout})
        if exc:
            raise exc
        return response

    monkeypatch.setattr(requests.Session, "get", fake_get)
    return calls


def test_parse_success_response():
    data = ProductData.from_response(BODY)
    assert data.product_id == "prod_xyz"
    assert data.cache_ttl == 86400
    assert data.verified_at.year == 2025


def test_parse_optional_fields_missing():
    body = {**BODY, "product": {k: v for k, v in BODY["product"].items() if k not in ("description", "batch_id")}}
    data = ProductData.from_response(body)
    assert data.description is None and data.batch_id is None


@pytest.mark.parametrize("body", [
    None,
    {**BODY, "product": None},
    {**BODY, "cache_ttl": "soon"},
    {**BODY, "product": {**BODY["product"], "verified_at": "yesterday"}},
    {k: v for k, v in BODY.items() if k != "status"},
])
def test_parse_malformed_is_decoding_error(body):
    with pytest.raises(RemoteResolveError) as exc:
        ProductData.from_response(body)
    assert exc.value.code is RemoteErrorCode.DECODING_ERROR


def test_status_mapping():
    assert RemoteErrorCode.from_status(404) is RemoteErrorCode.NOT_FOUND
    assert RemoteErrorCode.from_status(410) is RemoteErrorCode.INACTIVE
    assert RemoteErrorCode.from_status(429) is RemoteErrorCode.RATE_LIMITED
    assert RemoteErrorCode.from_status(503) is RemoteErrorCode.UNAVAILABLE
    assert RemoteErrorCode.from_status(500) is RemoteErrorCode.SERVER_ERROR
    assert RemoteErrorCode.from_status(401) is RemoteErrorCode.SERVER_ERROR
    assert RemoteErrorCode.NOT_FOUND.terminal and not RemoteErrorCode.RATE_LIMITED.terminal


def test_http_resolve_request(monkeypatch):
    calls = patch_get(monkeypatch, FakeResponse(200, BODY))
    resolver = HTTPResolver("https://api.reflectapp.com/v1/", device_id="device-1", app_version="2.3.0")

    data = resolver.resolve(TOKEN)

    assert data.name == "Daily Wellness Blend"
    assert calls[0]["url"] == f"https://api.reflectapp.com/v1/tokens/{TOKEN}"
    assert calls[0]["headers"]["X-Device-Hash"] == device_hash("device-1")
    assert calls[0]["headers"]["X-App-Version"] == "2.3.0"
    assert calls[0]["timeout"] == 10


def test_http_status_check_url(monkeypatch):
    calls = patch_get(monkeypatch, FakeResponse(200, {"status": "revoked", "updated_at": "2025-11-16T00:00:00Z"}))
    status = HTTPResolver("https://api.reflectapp.com/v1").check_status(TOKEN)
    assert status.status == "revoked"
    assert calls[0]["url"].endswith(f"/tokens/{TOKEN}/status")


def test_http_rate_limit_carries_retry_after(monkeypatch):
    body = {"error": "rate_limited", "message": "Too many requests", "retry_after": 60}
    patch_get(monkeypatch, FakeResponse(429, body))

    with pytest.raises(RemoteResolveError) as exc:
        HTTPResolver().resolve(TOKEN)

    assert exc.value.code is RemoteErrorCode.RATE_LIMITED
    assert exc.value.retry_after == 60
    assert exc.value.status_code == 429


@pytest.mark.parametrize("status,code", [
    (404, RemoteErrorCode.NOT_FOUND), (410, RemoteErrorCode.INACTIVE),
    (503, RemoteErrorCode.UNAVAILABLE), (502, RemoteErrorCode.SERVER_ERROR),
])
def test_http_error_statuses(monkeypatch, status, code):
    patch_get(monkeypatch, FakeResponse(status))
    with pytest.raises(RemoteResolveError) as exc:
        HTTPResolver().resolve(TOKEN)
    assert exc.value.code is code


@pytest.mark.parametrize("exc", [requests.ConnectionError("offline"), requests.Timeout("slow")])
def test_http_network_failures(monkeypatch, exc):
    patch_get(monkeypatch, exc=exc)
    with pytest.raises(RemoteResolveError) as err:
        HTTPResolver().resolve(TOKEN)
    assert err.value.code is RemoteErrorCode.NETWORK_ERROR


def test_http_non_json_body(monkeypatch):
    patch_get(monkeypatch, FakeResponse(200, None))
    with pytest.raises(RemoteResolveError) as exc:
        HTTPResolver().resolve(TOKEN)
    assert exc.value.code is RemoteErrorCode.DECODING_ERROR


def test_http_healthz(monkeypatch):
    patch_get(monkeypatch, exc=requests.ConnectionError("offline"))
    assert HTTPResolver().healthz()["status"] == "unreachable"


def test_device_hash_is_stable_hex():
    h = device_hash("ABC-123")
    assert h == device_hash("ABC-123")
    assert h != device_hash("ABC-124")
    assert len(h) == 64 and int(h, 16) >= 0


def test_local_resolver_logs(caplog):
    caplog.set_level("INFO")
    resolver = LocalResolver()
    with pytest.raises(RemoteResolveError):
        resolver.resolve(TOKEN)
    assert "LOCAL RESOLVE" in caplog.text
    assert resolver.calls == [TOKEN]


def test_resolver_factory_modes(monkeypatch):
    monkeypatch.delenv("VERITY_RESOLVER", raising=False)
    assert isinstance(resolver_factory(), HTTPResolver)

    monkeypatch.setenv("VERITY_RESOLVER", "local")
    assert isinstance(resolver_factory(), LocalResolver)

    monkeypatch.setenv("VERITY_RESOLVER", "carrier-pigeon")
    with pytest.raises(ValueError):
        resolver_factory()


@pytest.mark.parametrize("ttl", [1e300, float("nan"), float("inf"), -1])
def test_parse_rejects_unusable_cache_ttl(ttl):
    with pytest.raises(RemoteResolveError) as exc:
        ProductData.from_response({**BODY, "cache_ttl": ttl})
    assert exc.value.code is RemoteErrorCode.DECODING_ERROR


def test_resolver_factory_uses_settings():
    from verity_core.config import Settings

    settings = Settings(api_url="https://staging.example.org/v1", device_id="dev-9", request_timeout=3.0)
    resolver = resolver_factory(settings=settings)

    assert isinstance(resolver, HTTPResolver)
    assert resolver.base_url == "https://staging.example.org/v1"
    assert resolver.timeout == 3.0
    assert isinstance(resolver_factory("local", settings=settings), LocalResolver)
