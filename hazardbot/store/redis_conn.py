from functools import lru_cache
from redis import Redis
from hazardbot.settings import settings


@lru_cache(maxsize=4)
def _client(url: str) -> Redis:
    return Redis.from_url(url, decode_responses=True)


def get_redis() -> Redis:
    """Shared client (and connection pool) for the configured REDIS_URL."""
    return _client(settings.REDIS_URL)
