from fintrack.core.config import settings
from fintrack.core.rate_limit import RateLimiter

rate_limiter = RateLimiter(redis_url=settings.redis_url, key_prefix=settings.redis_prefix)
