"""Middleware tests — request ID, rate limiting, error handling."""

import pytest
from httpx import AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.exc import OperationalError


class _FakePipeline:
    def __init__(self, redis: "_FakeRedis") -> None:
        self.redis = redis
        self.key: str | None = None

    def incr(self, key: str) -> None:
        self.key = key

    def expire(self, _key: str, _seconds: int) -> None:
        pass

    async def execute(self) -> list:
        if self.redis.fail:
            raise RedisConnectionError("redis down")
        self.redis.counts[self.key] = self.redis.counts.get(self.key, 0) + 1
        return [self.redis.counts[self.key], True]


class _FakeRedis:
    def __init__(self, fail: bool = False) -> None:
        self.counts: dict[str, int] = {}
        self.fail = fail

    def pipeline(self) -> _FakePipeline:
        return _FakePipeline(self)


@pytest.fixture
def fake_redis(monkeypatch):
    redis = _FakeRedis()
    monkeypatch.setattr("cpms.middleware.rate_limit.get_redis", lambda: redis)
    return redis


async def test_request_id_generated(client: AsyncClient) -> None:
    """Request ID is auto-generated when not provided."""
    response = await client.get("/health")
    assert len(response.headers["x-request-id"]) == 36


async def test_request_id_preserved(client: AsyncClient) -> None:
    """Custom request ID is echoed back in response."""
    response = await client.get("/health", headers={"X-Request-Id": "test-abc-123"})
    assert response.headers["x-request-id"] == "test-abc-123"


async def test_rate_limit_headers(client: AsyncClient, fake_redis) -> None:
    response = await client.get("/version")
    assert response.headers["x-ratelimit-limit"] == "100"
    assert response.headers["x-ratelimit-remaining"] == "99"


async def test_rate_limit_blocks_excess(client: AsyncClient, fake_redis) -> None:
    """101st request returns 429 with Retry-After header."""
    for _ in range(100):
        await client.get("/version")
    response = await client.get("/version")
    assert response.status_code == 429
    assert "retry-after" in response.headers
    assert response.json() == {"detail": "Rate limit exceeded. Try again later."}


async def test_login_has_its_own_bucket(client: AsyncClient, fake_redis) -> None:
    response = await client.post("/api/v1/auth/login", json={})
    assert response.headers["x-ratelimit-limit"] == "20"
    assert any(key.startswith("ratelimit:login:") for key in fake_redis.counts)


async def test_health_exempt_from_rate_limit(client: AsyncClient, fake_redis) -> None:
    await client.get("/health")
    assert fake_redis.counts == {}


async def test_rate_limit_passes_through_when_redis_fails(client: AsyncClient, monkeypatch) -> None:
    monkeypatch.setattr("cpms.middleware.rate_limit.get_redis", lambda: _FakeRedis(fail=True))
    response = await client.get("/version")
    assert response.status_code == 200
    assert "x-ratelimit-limit" not in response.headers


async def test_rate_limit_skipped_before_redis_init(client: AsyncClient) -> None:
    response = await client.get("/version")
    assert response.status_code == 200
    assert "x-ratelimit-limit" not in response.headers


async def test_cors_preflight(client: AsyncClient) -> None:
    response = await client.options(
        "/health",
        headers={"Origin": "http://localhost:5173", "Access-Control-Request-Method": "GET"},
    )
    assert response.headers["access-control-allow-origin"] == "http://localhost:5173"
    assert response.headers["access-control-allow-credentials"] == "true"


async def test_404_returns_json(client: AsyncClient) -> None:
    response = await client.get("/nonexistent-path")
    assert response.status_code == 404
    assert response.json() == {"detail": "Not Found"}


async def test_validation_error_omits_input(client: AsyncClient) -> None:
    response = await client.post("/api/v1/auth/login", json={"email": "a@university.edu", "password": ""})
    assert response.status_code == 422
    data = response.json()
    assert data["detail"] == "Validation error"
    assert data["errors"]
    assert all("input" not in err for err in data["errors"])


async def test_storage_fault_returns_generic_500(app, client: AsyncClient) -> None:
    async def _broken() -> None:
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    app.add_api_route("/broken", _broken)

    response = await client.get("/broken")

    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error"}


def test_log_redaction_masks_credentials() -> None:
    from cpms.middleware.logging import redact_sensitive

    event = redact_sensitive(None, "info", {"event": "login_failed", "password": "hunter2", "account_id": 3})
    assert event == {"event": "login_failed", "password": "***", "account_id": 3}
