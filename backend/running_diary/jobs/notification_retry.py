"""Background job that re-sends queued notifications."""

from __future__ import annotations

import logging
import time

from running_diary.notifications.mailer import Mailer
from running_diary.notifications.outbox import NotificationOutbox
from running_diary.obs import metrics as obs_metrics

_LOG = logging.getLogger(__name__)
_JOB_NAME = "notification-retry"


class NotificationRetryJob:
	def __init__(self, *, outbox: NotificationOutbox | None = None, mailer: Mailer | None = None) -> None:
		self.outbox = outbox or NotificationOutbox()
		self.mailer = mailer or Mailer()

	async def run_once(self) -> int:
		started = time.perf_counter()
		try:
			delivered = await self.outbox.drain(self.mailer)
			obs_metrics.BACKGROUND_RUNS.labels(name=_JOB_NAME, result="success").inc()
		except Exception:
			obs_metrics.BACKGROUND_RUNS.labels(name=_JOB_NAME, result="error").inc()
			raise
		finally:
			obs_metrics.BACKGROUND_DURATION.labels(name=_JOB_NAME).observe(time.perf_counter() - started)
		if delivered:
			_LOG.info("queued notifications delivered", extra={"delivered": delivered})
		return delivered
