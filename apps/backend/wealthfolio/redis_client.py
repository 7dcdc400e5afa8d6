"""
快取層

設定 REDIS_URL 時使用 Redis（JSON 字串）；未設定或連線失敗時
降級為行程內記憶體快取。報價與匯率快取皆經由此模組讀寫。
"""

import json
import logging
import time
from typing import Any

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from wealthfolio.config import get_settings

logger = logging.getLogger(__name__)

_client: aioredis.Redis | None = None
# 連線失敗後不再重試，避免每次查價都等待逾時
_unavailable = False

# key -> (value, expire_at)
_memory: dict[str, tuple[Any, float]] = {}


async def get_redis() -> aioredis.Redis | None:
    global _client, _unavailable

    url = get_settings().redis_url
    if not url or _unavailable:
        return None
    if _client is not None:
        return _client

    client = aioredis.from_url(url, encoding="utf-8", decode_responses=True, max_connections=20)
    try:
        await client.ping()
    except (RedisError, OSError) as e:
        logger.warning("Redis 連線失敗，改用記憶體快取: %s", e)
        _unavailable = True
        await client.aclose()
        return None

    logger.info("Redis 連線成功")
    _client = client
    return _client


def cache_backend() -> str:
    return "redis" if _client is not None else "memory"


async def cache_get(key: str) -> Any | None:
    redis = await get_redis()
    if redis is not None:
        try:
            raw = await redis.get(key)
        except RedisError as e:
            logger.warning("Redis GET %s 失敗: %s", key, e)
        else:
            return json.loads(raw) if raw else None

    entry = _memory.get(key)
    if entry is None:
        return None
    value, expire_at = entry
    if time.monotonic() >= expire_at:
        _memory.pop(key, None)
        return None
    return value


async def cache_set(key: str, value: Any, ttl: int | None = None) -> None:
    ttl = ttl or get_settings().price_cache_ttl

    redis = await get_redis()
    if redis is not None:
        try:
            await redis.set(key, json.dumps(value, default=str), ex=ttl)
            return
        except RedisError as e:
            logger.warning("Redis SET %s 失敗，暫存於記憶體: %s", key, e)

    _memory[key] = (value, time.monotonic() + ttl)


def clear_memory_cache() -> None:
    _memory.clear()


async def close_redis() -> None:
    global _client, _unavailable
    if _client is not None:
        await _client.aclose()
        _client = None
    _unavailable = False
