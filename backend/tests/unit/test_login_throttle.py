"""Unit tests for login throttling (sliding window and lockout)"""

import pytest

import sys
from pathlib import Path
backend_src = Path(__file__).parent.parent.parent / "src"
sys.path.insert(0, str(backend_src))

from redis import RedisError

from auth.rate_limit import LoginThrottle
from config import settings
from errors import TooManyAttempts


class InMemoryRedis:
    """Just enough of the Redis command set for LoginThrottle."""

    def __init__(self):
        self.sorted_sets = {}
        self.values = {}
        self.ttls = {}

    def zremrangebyscore(self, key, low, high):
        members = self.sorted_sets.get(key, {})
        for member, score in list(members.items()):
            if low <= score <= high:
                del members[member]

    def zcard(self, key):
        return len(self.sorted_sets.get(key, {}))

    def zadd(self, key, mapping):
        self.sorted_sets.setdefault(key, {}).update(mapping)

    def expire(self, key, seconds):
        self.ttls[key] = seconds

    def incr(self, key):
        self.values[key] = int(self.values.get(key, 0)) + 1
        return self.values[key]

    def setex(self, key, seconds, value):
        self.values[key] = value
        self.ttls[key] = seconds

    def ttl(self, key):
        if key not in self.values and key not in self.sorted_sets:
            return -2
        return self.ttls.get(key, -1)

    def delete(self, key):
        self.values.pop(key, None)
        self.ttls.pop(key, None)


class BrokenRedis:
    def __getattr__(self, name):
        def fail(*args, **kwargs):
            raise RedisError("connection lost")
        return fail


@pytest.fixture
def limits(monkeypatch):
    monkeypatch.setattr(settings, "LOGIN_MAX_ATTEMPTS", 3)
    monkeypatch.setattr(settings, "LOGIN_WINDOW_SECONDS", 60)
    monkeypatch.setattr(settings, "LOCKOUT_THRESHOLD", 2)
    monkeypatch.setattr(settings, "LOCKOUT_SECONDS", 300)


@pytest.fixture
def redis_double():
    return InMemoryRedis()


@pytest.fixture
def throttle(redis_double, limits):
    return LoginThrottle(connect=lambda: redis_double)


class TestSlidingWindow:

    def test_admits_up_to_limit(self, throttle):
        for _ in range(3):
            throttle.admit("client-a")

        with pytest.raises(TooManyAttempts) as exc_info:
            throttle.admit("client-a")

        assert exc_info.value.status_code == 429
        assert exc_info.value.headers() == {"Retry-After": "60"}

    def test_clients_counted_separately(self, throttle):
        for _ in range(3):
            throttle.admit("client-a")

        throttle.admit("client-b")

    def test_expired_attempts_dropped(self, throttle, redis_double):
        redis_double.zadd("login_window:client-a", {"old-1": 1.0, "old-2": 2.0, "old-3": 3.0})

        throttle.admit("client-a")

        assert redis_double.zcard("login_window:client-a") == 1


class TestLockout:

    def test_threshold_locks_client(self, throttle):
        assert throttle.note_failure("alice", "client-a") is False
        assert throttle.note_failure("alice", "client-a") is True

        assert throttle.lockout_remaining("client-a") == 300
        with pytest.raises(TooManyAttempts) as exc_info:
            throttle.admit("client-a")
        assert exc_info.value.retry_after == 300

    def test_identifier_normalized(self, throttle):
        throttle.note_failure("Alice ", "client-a")

        assert throttle.note_failure("alice", "client-a") is True

    def test_failures_from_other_clients_do_not_lock_owner(self, throttle):
        throttle.note_failure("alice", "attacker-1")
        throttle.note_failure("alice", "attacker-2")

        assert throttle.note_failure("alice", "owner") is False
        assert throttle.lockout_remaining("owner") == 0
        throttle.admit("owner")

    def test_reset_clears_failures(self, throttle):
        throttle.note_failure("alice", "client-a")
        throttle.reset_failures("alice", "client-a")

        assert throttle.note_failure("alice", "client-a") is False

    def test_identifier_not_stored_in_clear(self, throttle, redis_double):
        throttle.note_failure("alice@mail.com", "client-a")

        assert not any("alice" in key for key in redis_double.values)


class TestDegradedMode:

    def test_no_redis_admits_everything(self, limits):
        throttle = LoginThrottle(connect=lambda: None)

        for _ in range(10):
            throttle.admit("client-a")
            assert throttle.note_failure("alice", "client-a") is False

    def test_redis_errors_admit(self, limits):
        throttle = LoginThrottle(connect=lambda: BrokenRedis())

        throttle.admit("client-a")
        assert throttle.note_failure("alice", "client-a") is False
        throttle.reset_failures("alice", "client-a")

    def test_connects_once(self, limits):
        calls = []

        def connect():
            calls.append(1)
            return None

        throttle = LoginThrottle(connect=connect)
        throttle.admit("client-a")
        throttle.admit("client-a")

        assert len(calls) == 1
