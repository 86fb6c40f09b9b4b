from aiocache import Cache
from aiocache.serializers import JsonSerializer
from functools import wraps
from urllib.parse import urlparse
import json
import uuid
import datetime
import decimal

from ..config import settings
from ..logging_config import get_logger

logger = get_logger(__name__)

def _custom_default(obj):
    """Convert unsupported types to JSON-safe values"""
    if isinstance(obj, uuid.UUID):
        return str(obj)
    if isinstance(obj, (datetime.datetime, datetime.date)):
        return obj.isoformat()
    if isinstance(obj, decimal.Decimal):
        return float(obj)
    raise TypeError(f"Object of type {obj.__class__.__name__} is not JSON serializable")

class CustomJsonSerializer(JsonSerializer):
    """JSON serializer with UUID/datetime support and safe cache misses"""
    def dumps(self, value):
        return json.dumps(value, default=_custom_default)

    def loads(self, value):
        if value is None:
            return None
        return json.loads(value)

def _build_cache():
    if settings.CACHE_BACKEND == "redis":
        url = urlparse(settings.REDIS_URL)
        return Cache(
            Cache.REDIS,
            endpoint=url.hostname or "localhost",
            port=url.port or 6379,
            namespace="glo_cloud",
            serializer=CustomJsonSerializer(),
        )
    return Cache(Cache.MEMORY, namespace="glo_cloud", serializer=CustomJsonSerializer())

# Global cache client
cache = _build_cache()

def cached(key: str, expire: int = None):
    """Cache an async function's JSON-able result under a fixed key.

    Cache failures fall through to the wrapped function.
    """
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                result = await cache.get(key)
            except Exception as e:
                logger.warning("Cache read failed for %s: %s", key, e)
                result = None
            if result is not None:
                return result

            result = await func(*args, **kwargs)
            try:
                await cache.set(key, result, ttl=expire or settings.CACHE_TTL)
            except Exception as e:
                logger.warning("Could not cache result for %s: %s", func.__name__, e)
            return result
        return wrapper
    return decorator

async def invalidate(key: str):
    try:
        await cache.delete(key)
    except Exception as e:
        logger.warning("Cache invalidation failed for %s: %s", key, e)
