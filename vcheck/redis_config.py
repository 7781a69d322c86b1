import inspect
from typing import Protocol

import httpx
from fastapi import Request
from redis.asyncio import Redis
from redis.exceptions import RedisError

from vcheck.config import Settings
from vcheck.utils.logging import get_logger

logger = get_logger(__name__)


class UpstashError(RuntimeError):
    pass


# Failures that mean "cache unavailable"; callers fall back to the database.
CACHE_ERRORS = (RedisError, httpx.HTTPError, OSError, UpstashError)


class CacheClient(Protocol):
    async def get(self, key: str) -> str | None: ...

    async def setex(self, key: str, ttl_seconds: int, value: str) -> None: ...

    async def close(self) -> None: ...


class RedisTcpCache:
    def __init__(self, client: Redis):
        self.client = client

    async def get(self, key: str) -> str | None:
        return await self.client.get(key)

    async def setex(self, key: str, ttl_seconds: int, value: str) -> None:
        await self.client.setex(key, ttl_seconds, value)

    async def close(self) -> None:
        close_result = self.client.aclose()
        if inspect.isawaitable(close_result):
            await close_result


class UpstashRestCache:
    def __init__(self, rest_url: str, token: str):
        self.client = httpx.AsyncClient(
            base_url=rest_url.rstrip("/"),
            headers={"Authorization": f"Bearer {token}"},
            timeout=5.0,
        )

    async def _run(self, *command: str) -> object | None:
        response = await self.client.post("/", json=list(command))
        response.raise_for_status()
        payload = response.json()
        if isinstance(payload, dict):
            if payload.get("error"):
                raise UpstashError(str(payload["error"]))
            return payload.get("result")
        return None

    async def ping(self) -> None:
        result = await self._run("PING")
        if str(result).upper() != "PONG":
            raise UpstashError("Upstash REST ping failed")

    async def get(self, key: str) -> str | None:
        result = await self._run("GET", key)
        if result is None:
            return None
        return str(result)

    async def setex(self, key: str, ttl_seconds: int, value: str) -> None:
        await self._run("SETEX", key, str(ttl_seconds), value)

    async def close(self) -> None:
        await self.client.aclose()


class NullCache:
    """Cache disabled: every lookup misses, the database constraint decides."""

    async def get(self, key: str) -> str | None:
        return None

    async def setex(self, key: str, ttl_seconds: int, value: str) -> None:
        return None

    async def close(self) -> None:
        return None


async def _build_redis_cache(redis_url: str) -> RedisTcpCache:
    redis = Redis.from_url(redis_url, decode_responses=True)
    try:
        await redis.ping()
        return RedisTcpCache(redis)
    except Exception:
        await redis.aclose()
        raise


async def build_cache_client(config: Settings) -> CacheClient:
    """
    Build the cache client once at startup.

    ``auto`` prefers Upstash REST when credentials exist, then plain Redis.
    Redis being unreachable is not fatal: the check-in fast path is an
    optimisation and the unique index on attendance stays authoritative.
    """
    backend = config.CACHE_BACKEND.strip().lower()
    if backend not in {"auto", "redis", "upstash_rest", "none"}:
        logger.warning("Unknown CACHE_BACKEND %r, using auto", backend)
        backend = "auto"

    if backend == "none":
        logger.info("Cache backend: disabled")
        return NullCache()

    if backend in {"auto", "upstash_rest"}:
        if config.UPSTASH_REDIS_REST_URL and config.UPSTASH_REDIS_REST_TOKEN:
            upstash_cache = UpstashRestCache(
                config.UPSTASH_REDIS_REST_URL, config.UPSTASH_REDIS_REST_TOKEN
            )
            try:
                await upstash_cache.ping()
                logger.info("Cache backend: Upstash REST")
                return upstash_cache
            except (httpx.HTTPError, UpstashError) as error:
                await upstash_cache.close()
                logger.warning("Upstash REST unavailable: %s", error)
        elif backend == "upstash_rest":
            logger.warning(
                "Upstash REST selected but credentials are missing. "
                "Falling back to Redis."
            )

    try:
        cache = await _build_redis_cache(config.REDIS_URL)
        logger.info("Cache backend: Redis TCP")
        return cache
    except Exception as error:
        logger.warning("Redis unavailable (%s); check-in fast path disabled", error)
        return NullCache()


async def get_cache(request: Request) -> CacheClient:
    return request.app.state.cache
