# utils/caching_utils.py

import json
from typing import Any, Callable, Iterable

from utils.redis_client import redis_client
from utils.logger import logger


def get_or_set_cache(
    *,
    key: str,
    ttl: int,
    fetch_fn: Callable[[], Any],
) -> Any:
    """
    Cache-aside read.

    Returns the decoded cached value when present, otherwise calls
    ``fetch_fn``, stores its JSON encoding for ``ttl`` seconds and returns
    it. ``fetch_fn`` must return JSON-friendly data; datetimes and decimals
    are stringified on the way in.
    """
    cached = redis_client.get(key)
    if cached is not None:
        try:
            return json.loads(cached)
        except ValueError:
            logger.warning(f"Discarding undecodable cache entry key={key}")
            redis_client.delete(key)

    data = fetch_fn()

    try:
        payload = json.dumps(data, default=str)
    except (TypeError, ValueError) as e:
        logger.warning(f"Not caching key={key}: {e}")
        return data

    redis_client.setex(key, ttl, payload)
    return data


def invalidate_cache(keys: Iterable[str] = (), patterns: Iterable[str] = ()) -> None:
    """Drop exact ``keys`` and everything matching ``patterns``."""
    keys = [k for k in keys if k]
    if keys:
        redis_client.delete(*keys)
    for pattern in patterns:
        redis_client.delete_pattern(pattern)
