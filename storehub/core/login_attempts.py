"""
Failed Login Tracking

Counts failed logins per (tenant, email) in Redis and locks the pair out
once LOGIN_MAX_ATTEMPTS is reached. The counter expires after
LOGIN_LOCKOUT_SECONDS, which is also the lockout duration.

Without Redis the tracker is disabled and logins are never locked.
"""
from functools import lru_cache
from typing import Optional
import redis

from storehub.config import get_settings
from storehub.utils.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()


class LoginAttemptTracker:

    def __init__(self, client=None, max_attempts: int = None, lockout_seconds: int = None):
        self.client = client
        self.max_attempts = max_attempts or settings.LOGIN_MAX_ATTEMPTS
        self.lockout_seconds = lockout_seconds or settings.LOGIN_LOCKOUT_SECONDS

    @property
    def enabled(self) -> bool:
        return self.client is not None

    @staticmethod
    def _key(tenant_id: Optional[str], email: str) -> str:
        return f"login_attempts:{tenant_id or 'platform'}:{email.lower()}"

    def retry_after(self, tenant_id: Optional[str], email: str) -> int:
        """Seconds until the pair may log in again; 0 when not locked."""
        if not self.enabled:
            return 0
        key = self._key(tenant_id, email)
        try:
            attempts = self.client.get(key)
            if attempts is None or int(attempts) < self.max_attempts:
                return 0
            ttl = self.client.ttl(key)
        except redis.RedisError as e:
            logger.error(f"Redis error reading login attempts: {e}")
            return 0
        return ttl if ttl and ttl > 0 else self.lockout_seconds

    def record_failure(self, tenant_id: Optional[str], email: str) -> int:
        """Count a failed attempt and return the running total."""
        if not self.enabled:
            return 0
        key = self._key(tenant_id, email)
        try:
            attempts = self.client.incr(key)
            if attempts == 1:
                self.client.expire(key, self.lockout_seconds)
        except redis.RedisError as e:
            logger.error(f"Redis error recording login attempt: {e}")
            return 0
        return int(attempts)

    def reset(self, tenant_id: Optional[str], email: str) -> None:
        if not self.enabled:
            return
        try:
            self.client.delete(self._key(tenant_id, email))
        except redis.RedisError as e:
            logger.error(f"Redis error clearing login attempts: {e}")


@lru_cache()
def get_login_tracker() -> LoginAttemptTracker:
    """
    Shared tracker. Connects once; a Redis outage at startup disables it.
    """
    if not settings.RATE_LIMIT_ENABLED:
        return LoginAttemptTracker()

    try:
        client = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=5
        )
        client.ping()
    except (redis.ConnectionError, redis.TimeoutError) as e:
        logger.error(f"Redis connection failed, login lockout disabled: {e}")
        return LoginAttemptTracker()

    logger.info("Redis connection established for login tracking")
    return LoginAttemptTracker(client)
