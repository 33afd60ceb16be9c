"""Login throttling backed by Redis.

Two independent limits apply to POST /auth/login:

- a sliding window of LOGIN_MAX_ATTEMPTS attempts per client (IP and
  User-Agent fingerprint) per LOGIN_WINDOW_SECONDS;
- a lockout of LOCKOUT_SECONDS for the client once it has made
  LOCKOUT_THRESHOLD failed logins for one submitted identifier.

Identifiers and fingerprints are hashed before they become Redis keys.
When Redis is unreachable every check passes and nothing is recorded.
"""

import hashlib
import time
from typing import Callable, Optional

from fastapi import Request
from redis import Redis, RedisError

from audit.service import get_client_ip
from config import settings
from errors import TooManyAttempts
from observability.logging_config import get_logger
from observability.metrics import auth_attempts_total

logger = get_logger(__name__)


def _digest(value: str) -> str:
    return hashlib.sha256(value.encode()).hexdigest()[:32]


def client_fingerprint(request: Request) -> str:
    ip = get_client_ip(request) or "unknown"
    return _digest(f"{ip}:{request.headers.get('User-Agent', '')}")


def _failure_key(identifier: str, fingerprint: str) -> str:
    return f"login_failures:{_digest(identifier.strip().lower() + '|' + fingerprint)}"


def connect_redis() -> Optional[Redis]:
    """Ping-checked client, or None when Redis cannot be reached."""
    client = Redis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
        socket_connect_timeout=1,
        socket_timeout=1,
    )
    try:
        client.ping()
    except RedisError:
        logger.warning("Redis unavailable, login throttling disabled")
        return None
    return client


class LoginThrottle:
    """Sliding-window attempt limit plus failed-login lockout.

    The Redis connection is opened on first use through connect.
    """

    def __init__(self, connect: Callable[[], Optional[Redis]] = connect_redis):
        self._connect = connect
        self._client: Optional[Redis] = None
        self._resolved = False

    @property
    def client(self) -> Optional[Redis]:
        if not self._resolved:
            self._client = self._connect()
            self._resolved = True
        return self._client

    def lockout_remaining(self, fingerprint: str) -> int:
        """Seconds left on the client's lockout, 0 when not locked out."""
        if self.client is None:
            return 0
        try:
            ttl = self.client.ttl(f"lockout:{fingerprint}")
        except RedisError:
            logger.warning("Lockout lookup failed", exc_info=True)
            return 0
        return max(0, ttl or 0)

    def window_exhausted(self, fingerprint: str) -> bool:
        """Drop expired attempts and report whether the window is full."""
        if self.client is None:
            return False
        key = f"login_window:{fingerprint}"
        cutoff = time.time() - settings.LOGIN_WINDOW_SECONDS
        try:
            self.client.zremrangebyscore(key, 0, cutoff)
            return self.client.zcard(key) >= settings.LOGIN_MAX_ATTEMPTS
        except RedisError:
            logger.warning("Login window lookup failed", exc_info=True)
            return False

    def note_attempt(self, fingerprint: str) -> None:
        if self.client is None:
            return
        key = f"login_window:{fingerprint}"
        now = time.time()
        try:
            self.client.zadd(key, {repr(now): now})
            self.client.expire(key, settings.LOGIN_WINDOW_SECONDS)
        except RedisError:
            logger.warning("Login window update failed", exc_info=True)

    def note_failure(self, identifier: str, fingerprint: str) -> bool:
        """Count a failed login for identifier from this client.

        Failures are counted per identifier and client pair, so failures from
        other clients never push this client into a lockout.

        Returns:
            True when this failure locked the client out
        """
        if self.client is None:
            return False
        key = _failure_key(identifier, fingerprint)
        try:
            failures = self.client.incr(key)
            self.client.expire(key, settings.LOGIN_WINDOW_SECONDS)
            if failures >= settings.LOCKOUT_THRESHOLD:
                self.client.setex(f"lockout:{fingerprint}", settings.LOCKOUT_SECONDS, "1")
                logger.warning("Client locked out after repeated login failures")
                return True
        except RedisError:
            logger.warning("Failed-login counter update failed", exc_info=True)
        return False

    def reset_failures(self, identifier: str, fingerprint: str) -> None:
        if self.client is None:
            return
        try:
            self.client.delete(_failure_key(identifier, fingerprint))
        except RedisError:
            logger.warning("Failed-login counter reset failed", exc_info=True)

    def admit(self, fingerprint: str) -> None:
        """Let one login attempt through or raise TooManyAttempts."""
        remaining = self.lockout_remaining(fingerprint)
        if remaining:
            auth_attempts_total.labels(outcome="rate_limited").inc()
            raise TooManyAttempts(remaining)

        if self.window_exhausted(fingerprint):
            auth_attempts_total.labels(outcome="rate_limited").inc()
            raise TooManyAttempts(settings.LOGIN_WINDOW_SECONDS)

        self.note_attempt(fingerprint)


login_throttle = LoginThrottle()


def throttle_login(request: Request) -> str:
    """Dependency for the login endpoint; returns the client fingerprint."""
    fingerprint = client_fingerprint(request)
    login_throttle.admit(fingerprint)
    return fingerprint
