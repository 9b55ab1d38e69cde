"""Tests for the Redis-backed rate limiter."""
from fastapi import FastAPI
from fastapi.testclient import TestClient
import pytest
import redis

from storefront.redis_rate_limiter import RedisRateLimiter


class FakePipeline:

    def __init__(self, store):
        self.store = store
        self.calls = []

    def zremrangebyscore(self, key, low, high):
        self.calls.append(lambda: self.store.zremrangebyscore(key, low, high))

    def zcard(self, key):
        self.calls.append(lambda: len(self.store.sets.get(key, {})))

    def zadd(self, key, mapping):
        self.calls.append(lambda: self.store.sets.setdefault(key, {}).update(mapping))

    def expire(self, key, seconds):
        self.calls.append(lambda: True)

    def execute(self):
        return [call() for call in self.calls]


class FakeSortedSets:
    """Sorted-set commands used by the limiter."""

    def __init__(self):
        self.sets = {}

    def zremrangebyscore(self, key, low, high):
        members = self.sets.get(key, {})
        for member, score in list(members.items()):
            if low <= score <= high:
                del members[member]

    def pipeline(self):
        return FakePipeline(self)


class BrokenRedis:

    def pipeline(self):
        raise redis.ConnectionError("redis is down")


def _app(redis_client, ip_limit=100, user_limit=100) -> FastAPI:
    app = FastAPI()
    app.add_middleware(
        RedisRateLimiter,
        redis_client=redis_client,
        requests_per_minute_ip=ip_limit,
        requests_per_minute_user=user_limit
    )

    @app.get("/ping")
    async def ping():
        return {"ok": True}

    return app


class TestRedisRateLimiter:

    def test_ip_limit(self):
        client = TestClient(_app(FakeSortedSets(), ip_limit=3))

        statuses = [client.get("/ping").status_code for _ in range(4)]

        assert statuses == [200, 200, 200, 429]

    def test_rejection_has_retry_after(self):
        client = TestClient(_app(FakeSortedSets(), ip_limit=1))
        client.get("/ping")

        response = client.get("/ping")

        assert response.status_code == 429
        assert response.headers["retry-after"] == "60"

    def test_session_limit_is_per_token(self):
        client = TestClient(_app(FakeSortedSets(), user_limit=2))
        first = {"Authorization": "Bearer first-token"}
        second = {"Authorization": "Bearer second-token"}

        assert client.get("/ping", headers=first).status_code == 200
        assert client.get("/ping", headers=first).status_code == 200
        assert client.get("/ping", headers=first).status_code == 429
        assert client.get("/ping", headers=second).status_code == 200

    def test_session_keys_do_not_store_tokens(self):
        store = FakeSortedSets()
        client = TestClient(_app(store))

        client.get("/ping", headers={"Authorization": "Bearer very-secret-token"})

        assert not any("very-secret-token" in key for key in store.sets)

    @pytest.mark.parametrize("forwarded", ["10.0.0.1", "10.0.0.1, 172.16.0.1"])
    def test_forwarded_address(self, forwarded):
        store = FakeSortedSets()
        client = TestClient(_app(store))

        client.get("/ping", headers={"X-Forwarded-For": forwarded})

        assert "rate:ip:10.0.0.1" in store.sets

    def test_fails_open_without_redis(self):
        client = TestClient(_app(BrokenRedis(), ip_limit=1))

        assert [client.get("/ping").status_code for _ in range(3)] == [200, 200, 200]
