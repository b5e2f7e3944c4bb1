"""Redis-backed retry queue for notifications that failed to send."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Optional

from running_diary.infra.redis import redis_client
from running_diary.notifications.templates import RenderedEmail
from running_diary.obs import metrics as obs_metrics
from running_diary.settings import settings

_LOG = logging.getLogger(__name__)

RETRY_KEY = "notify:retry"
DEAD_KEY = "notify:dead"


@dataclass
class PendingEmail:
	key: str
	kind: str
	to: list[str]
	subject: str
	html: str
	from_name: Optional[str] = None
	attempts: int = 0
	queued_at: float = field(default_factory=time.time)
	last_error: Optional[str] = None

	def to_json(self) -> str:
		return json.dumps(asdict(self))

	@classmethod
	def from_json(cls, raw: str) -> "PendingEmail":
		return cls(**json.loads(raw))


class NotificationOutbox:
	"""Keeps at most one pending entry per entity key so retries never duplicate."""

	def __init__(self, *, client: Any = None, max_attempts: Optional[int] = None) -> None:
		self._client = client
		self.max_attempts = max_attempts or settings.notification_retry_max_attempts

	@property
	def redis(self) -> Any:
		return self._client if self._client is not None else redis_client

	async def enqueue(
		self,
		*,
		key: str,
		kind: str,
		to: list[str],
		email: RenderedEmail,
		from_name: Optional[str] = None,
		error: Optional[str] = None,
	) -> None:
		entry = PendingEmail(
			key=key,
			kind=kind,
			to=list(to),
			subject=email.subject,
			html=email.html,
			from_name=from_name,
			last_error=error,
		)
		await self.redis.hset(RETRY_KEY, key, entry.to_json())
		obs_metrics.inc_email(kind, "queued")
		_LOG.info("notification queued for retry", extra={"key": key, "kind": kind})

	async def pending(self) -> list[PendingEmail]:
		raw = await self.redis.hgetall(RETRY_KEY)
		entries = [PendingEmail.from_json(value) for value in raw.values()]
		return sorted(entries, key=lambda entry: entry.queued_at)

	async def size(self) -> int:
		return int(await self.redis.hlen(RETRY_KEY))

	async def drain(self, mailer: Any) -> int:
		"""Retry every queued email once; returns how many were delivered."""
		delivered = 0
		for entry in await self.pending():
			try:
				await mailer.send(entry.to, entry.subject, entry.html, from_name=entry.from_name)
			except Exception as exc:
				entry.attempts += 1
				entry.last_error = str(exc)
				if entry.attempts >= self.max_attempts:
					await self.redis.hdel(RETRY_KEY, entry.key)
					await self.redis.hset(DEAD_KEY, entry.key, entry.to_json())
					obs_metrics.inc_email(entry.kind, "dead")
					_LOG.error("notification dropped after retries", extra={"key": entry.key, "kind": entry.kind})
				else:
					await self.redis.hset(RETRY_KEY, entry.key, entry.to_json())
					obs_metrics.inc_email(entry.kind, "retry_failed")
				continue
			await self.redis.hdel(RETRY_KEY, entry.key)
			obs_metrics.inc_email(entry.kind, "sent")
			delivered += 1
		return delivered
