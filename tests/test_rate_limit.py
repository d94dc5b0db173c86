"""
Tests for the Redis token bucket rate limiter
"""
import redis

from storehub.config import get_settings
from storehub.middleware.rate_limit import RateLimitMiddleware

settings = get_settings()


class FakeBucketScript:
    """Stands in for the registered Lua script; answers with queued results."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = []

    def __call__(self, keys=None, args=None):
        self.calls.append((keys, args))
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


async def downstream(scope, receive, send):
    pass


def limiter_with(script):
    limiter = RateLimitMiddleware(downstream, enabled=False)
    limiter.redis_available = True
    limiter.bucket_script = script
    return limiter


def test_disabled_limiter_has_no_script():
    limiter = RateLimitMiddleware(downstream, enabled=False)

    assert limiter.redis_available is False
    assert limiter.bucket_script is None


def test_one_script_call_per_request():
    script = FakeBucketScript([1, 0])
    limiter = limiter_with(script)

    assert limiter._check_rate_limit("tenant:citypharma") == (True, 0)

    assert len(script.calls) == 1
    keys, args = script.calls[0]
    assert keys == ["rate_limit:tenant:citypharma"]
    assert args[0] == settings.RATE_LIMIT_BURST
    assert args[1] == settings.RATE_LIMIT_PER_MINUTE / 60.0
    assert args[3] == 60


def test_empty_bucket_reports_retry_after():
    limiter = limiter_with(FakeBucketScript([0, 7]))

    assert limiter._check_rate_limit("ip:10.0.0.1") == (False, 7)


def test_redis_errors_fail_open():
    limiter = limiter_with(FakeBucketScript(redis.ConnectionError("gone")))

    assert limiter._check_rate_limit("ip:10.0.0.1") == (True, 0)
