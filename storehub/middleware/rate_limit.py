"""
Rate Limiting Middleware

Token bucket rate limiting using Redis, keyed by tenant subdomain when the
request carries one and by client IP otherwise.

TRADEOFF: If Redis is down the limiter is disabled (fail open). We choose
availability over strict limiting. Set RATE_LIMIT_ENABLED=false to skip
the Redis connection entirely (tests, local development).
"""
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
import redis
import time

from storehub.config import get_settings
from storehub.core.exceptions import RateLimitExceeded
from storehub.utils.logging import get_logger, log_security_event

logger = get_logger(__name__)
settings = get_settings()

# Refill, take one token and store the bucket in a single round trip, so
# concurrent requests cannot spend the same tokens.
# KEYS[1] bucket hash; ARGV: burst, tokens per second, now, ttl seconds
TOKEN_BUCKET_SCRIPT = """
local burst = tonumber(ARGV[1])
local rate = tonumber(ARGV[2])
local now = tonumber(ARGV[3])

local bucket = redis.call("HMGET", KEYS[1], "tokens", "ts")
local tokens = tonumber(bucket[1])
local last = tonumber(bucket[2])
if tokens == nil or last == nil then
    tokens = burst
    last = now
end

tokens = math.min(burst, tokens + math.max(0, now - last) * rate)
local allowed = 0
local retry_after = 0
if tokens >= 1 then
    tokens = tokens - 1
    allowed = 1
else
    retry_after = math.floor((1 - tokens) / rate) + 1
end

redis.call("HSET", KEYS[1], "tokens", tostring(tokens), "ts", tostring(now))
redis.call("EXPIRE", KEYS[1], tonumber(ARGV[4]))
return {allowed, retry_after}
"""


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Token bucket rate limiter.

    - Bucket holds RATE_LIMIT_BURST tokens
    - Refills at RATE_LIMIT_PER_MINUTE tokens per minute
    - Each request consumes one token
    - Refill and consume run as one Lua script on the Redis server
    """

    def __init__(self, app, enabled: bool = None):
        super().__init__(app)
        self.redis_client = None
        self.redis_available = False
        self.bucket_script = None

        self.excluded_paths = [
            "/docs",
            "/redoc",
            "/openapi.json",
            "/health",
        ]

        enabled = settings.RATE_LIMIT_ENABLED if enabled is None else enabled
        if not enabled:
            logger.info("Rate limiting disabled by configuration")
            return

        try:
            self.redis_client = redis.from_url(
                settings.REDIS_URL,
                decode_responses=True,
                socket_connect_timeout=5
            )
            self.redis_client.ping()
            self.bucket_script = self.redis_client.register_script(TOKEN_BUCKET_SCRIPT)
            self.redis_available = True
            logger.info("Redis connection established for rate limiting")
        except (redis.ConnectionError, redis.TimeoutError) as e:
            logger.error(f"Redis connection failed, rate limiting disabled: {e}")

    async def dispatch(self, request: Request, call_next):
        if not self.redis_available:
            return await call_next(request)

        if any(request.url.path.startswith(path) for path in self.excluded_paths):
            return await call_next(request)

        identifier = self._get_client_identifier(request)
        allowed, retry_after = self._check_rate_limit(identifier)

        if not allowed:
            log_security_event(
                "rate_limit_exceeded",
                {"identifier": identifier, "path": request.url.path},
                logger
            )
            exc = RateLimitExceeded(retry_after=retry_after)
            return JSONResponse(
                status_code=exc.status_code,
                content={"error": exc.detail, "type": exc.error_type},
                headers=exc.headers
            )

        return await call_next(request)

    def _check_rate_limit(self, identifier: str) -> tuple[bool, int]:
        """
        Check if request is allowed under rate limit.

        Returns: (allowed, retry_after_seconds)
        """
        refill_per_second = settings.RATE_LIMIT_PER_MINUTE / 60.0
        key = f"rate_limit:{identifier}"

        try:
            allowed, retry_after = self.bucket_script(
                keys=[key],
                args=[settings.RATE_LIMIT_BURST, refill_per_second, time.time(), 60],
            )
        except redis.RedisError as e:
            logger.error(f"Redis error in rate limiting: {e}")
            return True, 0

        return bool(int(allowed)), int(retry_after)

    def _get_client_identifier(self, request: Request) -> str:
        """Subdomain when present, else client IP."""
        subdomain = getattr(request.state, "subdomain", None)
        if subdomain:
            return f"tenant:{subdomain}"
        client_host = request.client.host if request.client else "unknown"
        return f"ip:{client_host}"
