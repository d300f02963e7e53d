# utils/redis_client.py

from typing import Optional

import redis

from utils.app_config import REDIS_URL, REDIS_KEY_PREFIX
from utils.logger import logger


class RedisClient:
    """
    Cache-only wrapper over redis-py.

    Every key is namespaced with ``prefix`` so several deployments can share
    one Redis. No method raises: a Redis failure is logged and the caller
    carries on as if the cache were empty.
    """

    def __init__(self, url: str = REDIS_URL, prefix: str = REDIS_KEY_PREFIX):
        self.prefix = prefix
        self.client = redis.Redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
        )

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def ping(self) -> bool:
        try:
            self.client.ping()
            return True
        except redis.RedisError as e:
            logger.warning(f"Redis ping failed: {e}")
            return False

    def get(self, key: str) -> Optional[str]:
        try:
            value = self.client.get(self._key(key))
        except redis.RedisError as e:
            logger.warning(f"Redis GET failed for key={key}: {e}")
            return None

        logger.debug(f"Cache {'hit' if value is not None else 'miss'} for key={key}")
        return value

    def setex(self, key: str, ttl: int, value: str) -> None:
        try:
            self.client.setex(self._key(key), ttl, value)
            logger.debug(f"Cached key={key} for {ttl}s")
        except redis.RedisError as e:
            logger.warning(f"Redis SETEX failed for key={key}: {e}")

    def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        try:
            deleted = self.client.delete(*(self._key(k) for k in keys))
        except redis.RedisError as e:
            logger.warning(f"Redis DELETE failed for keys={keys}: {e}")
            return 0
        if deleted:
            logger.info(f"Cache invalidated: {', '.join(keys)}")
        return deleted

    def delete_pattern(self, pattern: str) -> int:
        try:
            # SCAN rather than KEYS so a large keyspace does not block the server
            keys = list(self.client.scan_iter(match=self._key(pattern)))
            if not keys:
                return 0
            deleted = self.client.delete(*keys)
        except redis.RedisError as e:
            logger.warning(f"Redis DELETE failed for pattern={pattern}: {e}")
            return 0
        logger.info(f"Cache invalidated for pattern={pattern}, keys_deleted={deleted}")
        return deleted


redis_client = RedisClient()
