"""Redis-backed fixed-window rate limiting utilities."""

from __future__ import annotations

import math
import time
from typing import Any, Optional

from running_diary.infra.redis import redis_client


def _window_key(kind: str, actor_id: str, window_seconds: int, now: float) -> str:
	window = max(1, int(window_seconds))
	slot = int(math.floor(now / window))
	return f"rl:{kind}:{actor_id}:{slot}:{window}"


async def allow(
	kind: str,
	actor_id: str,
	*,
	limit: int,
	window_seconds: int = 60,
	now: Optional[float] = None,
	client: Any = None,
) -> bool:
	"""Return True when the operation is still within the allowed budget."""

	if limit <= 0:
		return False
	now = now or time.time()
	key = _window_key(kind, actor_id, window_seconds, now)
	redis = client if client is not None else redis_client
	async with redis.pipeline(transaction=True) as pipe:
		pipe.incr(key)
		pipe.expire(key, max(1, int(window_seconds)))
		count, _ = await pipe.execute()
	return int(count) <= limit


class RateLimitExceeded(Exception):
	"""Raised when the rate limit has been hit."""

	def __init__(self, kind: str, limit: int, window_seconds: int) -> None:
		super().__init__(f"{kind}: limit {limit} per {window_seconds}s")
		self.kind = kind
		self.limit = limit
		self.window_seconds = window_seconds


class RateLimiter:
	"""Per-actor budget whose counters live in a shared Redis instance.

	The client is injected so every server instance sharing the Redis sees the
	same counters.
	"""

	def __init__(self, kind: str, *, limit: int, window_seconds: int, client: Any = None) -> None:
		self.kind = kind
		self.limit = limit
		self.window_seconds = window_seconds
		self._client = client

	@property
	def redis(self) -> Any:
		return self._client if self._client is not None else redis_client

	async def hit(self, actor_id: str, *, now: Optional[float] = None) -> None:
		allowed = await allow(
			self.kind,
			actor_id,
			limit=self.limit,
			window_seconds=self.window_seconds,
			now=now,
			client=self.redis,
		)
		if not allowed:
			raise RateLimitExceeded(self.kind, self.limit, self.window_seconds)

	async def count(self, actor_id: str, *, now: Optional[float] = None) -> int:
		key = _window_key(self.kind, actor_id, self.window_seconds, now or time.time())
		raw = await self.redis.get(key)
		return int(raw) if raw else 0
