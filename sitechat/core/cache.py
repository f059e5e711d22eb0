import hashlib
import json
from typing import Any, Awaitable, Callable, Optional

from sitechat.core.upstash_redis import UpstashRedis

DEFAULT_TTL_SECONDS = 3600


def make_cache_key(prefix: str, raw: str) -> str:
    digest = hashlib.sha256(raw.encode("utf-8")).hexdigest()
    return f"{prefix}:{digest}"


async def cache_get_or_set(
    *,
    redis: UpstashRedis,
    key: str,
    fetch: Callable[[], Awaitable[Any]],
    ttl_seconds: int = DEFAULT_TTL_SECONDS,
    enabled: bool = True,
    should_cache: Optional[Callable[[Any], bool]] = None,
) -> Any:
    """Return the cached JSON value for ``key`` or compute it with ``fetch``.

    Cache failures never fail the caller: a broken read falls through to
    ``fetch`` and a broken write is only logged. Values rejected by
    ``should_cache`` are returned but not stored.
    """
    if not enabled or ttl_seconds <= 0 or not redis.is_configured():
        return await fetch()

    try:
        cached = await redis.get(key)
        if cached is not None:
            print(f"[CACHE] hit {key[:24]}", flush=True)
            return json.loads(cached)
        print(f"[CACHE] miss {key[:24]}", flush=True)
    except Exception as e:
        print(f"[CACHE] read error ({type(e).__name__}: {e})", flush=True)
        return await fetch()

    data = await fetch()
    if should_cache is not None and not should_cache(data):
        print(f"[CACHE] not storing {key[:24]}", flush=True)
        return data

    try:
        await redis.set_json(key, data, ttl_seconds=ttl_seconds)
    except Exception as e:
        print(f"[CACHE] write error ({type(e).__name__}: {e})", flush=True)

    return data
