import threading
import time

from redis import Redis
from redis.exceptions import RedisError


class RateLimiter:
    """Fixed-window request counter.

    Counts live in redis when it is reachable so every worker shares them;
    otherwise each process keeps its own windows.
    """

    def __init__(self, redis_url: str | None = None, key_prefix: str = "fintrack") -> None:
        self._windows: dict[str, tuple[int, int]] = {}
        self._lock = threading.Lock()
        self._key_prefix = key_prefix
        self._redis: Redis | None = None
        if redis_url:
            try:
                client = Redis.from_url(redis_url, decode_responses=False)
                client.ping()
                self._redis = client
            except RedisError:
                self._redis = None

    def _redis_key(self, key: str, window_start: int) -> str:
        return f"{self._key_prefix}:ratelimit:{key}:{window_start}"

    def _hit_redis(self, key: str, window_start: int, window_seconds: int) -> int | None:
        if self._redis is None:
            return None
        try:
            pipe = self._redis.pipeline()
            pipe.incr(self._redis_key(key, window_start))
            pipe.expire(self._redis_key(key, window_start), window_seconds + 1)
            count, _ = pipe.execute()
            return int(count or 0)
        except RedisError:
            return None

    def _hit_local(self, key: str, window_start: int) -> int:
        with self._lock:
            start, count = self._windows.get(key, (window_start, 0))
            if start != window_start:
                count = 0
            count += 1
            self._windows[key] = (window_start, count)
            return count

    def exceeded(self, key: str, limit: int, window_seconds: int) -> bool:
        limit = max(1, int(limit))
        window_seconds = max(1, int(window_seconds))
        window_start = int(time.time()) // window_seconds * window_seconds

        count = self._hit_redis(key, window_start, window_seconds)
        if count is None:
            count = self._hit_local(key, window_start)
        return count > limit
