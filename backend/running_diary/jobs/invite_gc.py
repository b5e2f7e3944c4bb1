"""Background job for pruning long-expired invitations."""

from __future__ import annotations

from datetime import datetime, timezone

from running_diary.domain.invitations_service import InvitationsService
from running_diary.obs import metrics as obs_metrics

_JOB_NAME = "invite-gc"


class InviteGarbageCollector:
	"""Removes invitations that expired past the retention window."""

	def __init__(self, *, service: InvitationsService | None = None) -> None:
		self.service = service or InvitationsService()

	async def run_once(self) -> int:
		started = datetime.now(timezone.utc)
		try:
			deleted = await self.service.purge_expired(now=started)
			obs_metrics.BACKGROUND_RUNS.labels(name=_JOB_NAME, result="success").inc()
			return deleted
		except Exception:
			obs_metrics.BACKGROUND_RUNS.labels(name=_JOB_NAME, result="error").inc()
			raise
		finally:
			duration = (datetime.now(timezone.utc) - started).total_seconds()
			obs_metrics.BACKGROUND_DURATION.labels(name=_JOB_NAME).observe(duration)
