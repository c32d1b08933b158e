"""
Redis access for outcome and pattern-status persistence, with an in-memory fallback while Redis is unreachable.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

from config import REDIS_URL, settings

log = logging.getLogger(__name__)

T = TypeVar("T")

_OP_TIMEOUT_SECONDS = 0.5


class _FallbackStore:
    def __init__(self, max_items: int) -> None:
        self.max_items = max(1, max_items)
        self.values: Dict[str, str] = {}
        self.lists: Dict[str, List[str]] = {}

    def set(self, key: str, value: str) -> None:
        if key in self.values or len(self.values) < self.max_items:
            self.values[key] = value

    def rpush(self, key: str, value: str, max_len: Optional[int]) -> None:
        lst = self.lists.setdefault(key, [])
        lst.append(value)
        cap = min(max_len or self.max_items, self.max_items)
        if len(lst) > cap:
            del lst[:-cap]

    def delete(self, key: str) -> None:
        self.values.pop(key, None)
        self.lists.pop(key, None)

    def clear(self) -> None:
        self.values.clear()
        self.lists.clear()


_redis_client: Any = None
_fallback = _FallbackStore(settings.store_fallback_max_items)
_using_fallback = False
_init_lock = asyncio.Lock()
_retry_after_monotonic = 0.0


async def get_redis() -> Any:
    global _redis_client, _using_fallback, _retry_after_monotonic

    if _redis_client is not None:
        return _redis_client
    if time.monotonic() < _retry_after_monotonic:
        _using_fallback = True
        return None

    async with _init_lock:
        if _redis_client is not None:
            return _redis_client
        try:
            import redis.asyncio as aioredis

            client = aioredis.from_url(
                REDIS_URL,
                decode_responses=True,
                socket_connect_timeout=_OP_TIMEOUT_SECONDS,
                socket_timeout=_OP_TIMEOUT_SECONDS,
            )
            await asyncio.wait_for(client.ping(), timeout=_OP_TIMEOUT_SECONDS)
        except Exception as exc:
            _retry_after_monotonic = time.monotonic() + max(0.0, settings.store_redis_retry_cooldown_seconds)
            if not _using_fallback:
                log.warning("Redis unavailable (%s); using in-memory fallback", exc)
                _using_fallback = True
            return None
        _redis_client = client
        _retry_after_monotonic = 0.0
        _using_fallback = False
        log.info("Redis connected: %s", REDIS_URL)
        return _redis_client


async def _run(op: str, key: str, remote: Callable[[Any], Awaitable[T]], local: Callable[[], T]) -> T:
    client = await get_redis()
    if client is None:
        return local()
    try:
        return await asyncio.wait_for(remote(client), timeout=_OP_TIMEOUT_SECONDS)
    except Exception as exc:
        log.debug("Redis %s error %s: %s", op, key, exc)
        return local()


async def redis_get(key: str) -> Optional[str]:
    return await _run("GET", key, lambda c: c.get(key), lambda: _fallback.values.get(key))


async def redis_set(key: str, value: str, ttl: Optional[int] = None) -> None:
    async def remote(client: Any) -> None:
        if ttl:
            await client.setex(key, ttl, value)
        else:
            await client.set(key, value)

    await _run("SET", key, remote, lambda: _fallback.set(key, value))


async def redis_delete(key: str) -> None:
    await _run("DEL", key, lambda c: c.delete(key), lambda: _fallback.delete(key))


async def redis_rpush(key: str, values: List[str], ttl: Optional[int] = None, max_len: Optional[int] = None) -> None:
    if not values:
        return

    async def remote(client: Any) -> None:
        pipe = client.pipeline()
        pipe.rpush(key, *values)
        if max_len:
            pipe.ltrim(key, -max_len, -1)
        if ttl:
            pipe.expire(key, ttl)
        await pipe.execute()

    def local() -> None:
        for value in values:
            _fallback.rpush(key, value, max_len)

    await _run("RPUSH", key, remote, local)


async def redis_lrange(key: str) -> List[str]:
    return await _run("LRANGE", key, lambda c: c.lrange(key, 0, -1), lambda: list(_fallback.lists.get(key, [])))


def is_using_fallback() -> bool:
    return _using_fallback


def reset_fallback() -> None:
    _fallback.clear()
