import json
from typing import Any, List, Optional

import httpx

from sitechat.errors import SiteChatError


class UpstashRedisError(SiteChatError):
    pass


class UpstashRedis:
    """Minimal Upstash Redis REST client used for the crawl cache.

    Unconfigured (no URL or token) is a valid state: callers check
    ``is_configured()`` and skip caching.
    """

    def __init__(self, rest_url: Optional[str] = None, rest_token: Optional[str] = None):
        self.rest_url = rest_url
        self.rest_token = rest_token
        self._client: Optional[httpx.AsyncClient] = None

    def is_configured(self) -> bool:
        return bool(self.rest_url and self.rest_token)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(10.0, connect=5.0))
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def command(self, args: List[Any]) -> Any:
        if not self.is_configured():
            raise UpstashRedisError("Upstash Redis is not configured")

        resp = await self._get_client().post(
            self.rest_url,
            headers={"Authorization": f"Bearer {self.rest_token}"},
            content=json.dumps(args),
        )
        resp.raise_for_status()
        payload = resp.json()

        if isinstance(payload, dict) and payload.get("error"):
            raise UpstashRedisError(str(payload.get("error")))
        if isinstance(payload, dict) and "result" in payload:
            return payload.get("result")
        return payload

    async def get(self, key: str) -> Optional[str]:
        return await self.command(["GET", key])

    async def set_json(self, key: str, value: Any, ttl_seconds: int) -> None:
        await self.command(["SET", key, json.dumps(value), "EX", int(ttl_seconds)])
