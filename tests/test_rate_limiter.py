"""Tests for the sliding window rate limiters."""

from __future__ import annotations

import time

import fakeredis
import pytest

from user_admin.security.rate_limiter import RedisSlidingWindowRateLimiter, SlidingWindowRateLimiter


@pytest.fixture()
def redis_client() -> fakeredis.FakeStrictRedis:
    client = fakeredis.FakeStrictRedis()
    client.flushall()
    return client


def test_memory_limiter_tracks_keys_independently():
    limiter = SlidingWindowRateLimiter(max_requests=1, window_seconds=60)
    assert limiter.allow("login:a@x.com")
    assert not limiter.allow("login:a@x.com")
    assert limiter.allow("login:b@x.com")


def test_redis_rate_limiter_blocks_excess(redis_client):
    limiter = RedisSlidingWindowRateLimiter(
        redis_client, max_requests=2, window_seconds=1, key_prefix="test"
    )
    key = "login:a@x.com"
    assert limiter.allow(key)
    assert limiter.allow(key)
    assert not limiter.allow(key)
    # denied attempts do not occupy the window
    assert redis_client.zcard(f"test:{key}") == 2


def test_redis_rate_limiter_expires_entries(redis_client):
    limiter = RedisSlidingWindowRateLimiter(
        redis_client, max_requests=1, window_seconds=1, key_prefix="test"
    )
    key = "register:a@x.com"
    assert limiter.allow(key)
    assert not limiter.allow(key)
    time.sleep(1.1)
    assert limiter.allow(key)
