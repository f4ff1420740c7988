from datetime import datetime, timedelta, timezone

import pytest

from verity_core.storage import InMemoryStorage, SQLiteStorage
from verity_core.transport import LocalResolver, ProductData

HOST = "link.reflectapp.com"
TOKEN = "qr_ABCDEFGHIJKLMNOPQRST"


class FakeClock:
    def __init__(self, start=None):
        self.now = start or datetime(2025, 11, 15, 10, 30, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now = self.now + timedelta(seconds=seconds)


def link(token):
    return f"https://{HOST}/t/{token}"


def make_data(status="active", name="Daily Wellness Blend", ttl=86400, product_id="prod_xyz", **kw):
    return ProductData(
        status=status,
        token_type="LP",
        version="v1",
        product_id=product_id,
        name=name,
        category=kw.get("category", "Supplement"),
        description=kw.get("description", "A daily herbal supplement blend."),
        batch_id=kw.get("batch_id", "batch_001"),
        verified_at=datetime(2025, 11, 15, 10, 30, tzinfo=timezone.utc),
        cache_ttl=ttl,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        s = InMemoryStorage()
    else:
        s = SQLiteStorage(str(tmp_path / "verity_state.db"))
    yield s
    s.close()


@pytest.fixture
def resolver():
    return LocalResolver()
