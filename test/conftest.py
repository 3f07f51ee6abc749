import pytest
from fastapi.testclient import TestClient

from _helper import FakeOrderService, make_order
from harvest_orders.main import app
from harvest_orders.routes.deps import get_order_api


@pytest.fixture
def fake_api():
    return FakeOrderService(make_order("ord-1", "pending"))


@pytest.fixture
def client(fake_api):
    """TestClient whose order service calls go to fake_api. Lifespan (Redis) is not started."""
    app.dependency_overrides[get_order_api] = lambda: fake_api
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def claimed_keys(monkeypatch):
    """Replace the Redis-backed Idempotency-Key claim and release with an in-memory set."""
    seen: set[str] = set()

    async def fake_claim(scope: str, key: str, ttl_seconds=None) -> bool:
        full = f"{scope}:{key}"
        if full in seen:
            return False
        seen.add(full)
        return True

    async def fake_release(scope: str, key: str) -> None:
        seen.discard(f"{scope}:{key}")

    monkeypatch.setattr("harvest_orders.routes.deps.claim_submission", fake_claim)
    monkeypatch.setattr("harvest_orders.routes.deps.release_submission", fake_release)
    return seen
