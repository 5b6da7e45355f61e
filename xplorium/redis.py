import redis.asyncio as redis

from .core.settings import settings

redis_client = redis.Redis.from_url(
    settings.redis.redis_url,
    max_connections=settings.redis.MAX_CONNECTIONS,
    retry_on_timeout=settings.redis.RETRY_ON_TIMEOUT,
    socket_timeout=settings.redis.SOCKET_TIMEOUT,
    socket_connect_timeout=settings.redis.SOCKET_CONNECT_TIMEOUT,
    health_check_interval=settings.redis.HEALTH_CHECK_INTERVAL,
    decode_responses=True,
)
