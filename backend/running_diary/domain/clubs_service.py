"""Club registration, lookup and settings."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

from running_diary.domain import models, permissions, repo as repo_module
from running_diary.domain.errors import AlreadyExists, AlreadyInClub, NotFound, PermissionDenied
from running_diary.domain.schemas import ClubCreateRequest, ClubUpdateRequest
from running_diary.domain.tokens import generate_club_id
from running_diary.domain.validation import NAME_MAX_LENGTH, sanitize_input
from running_diary.realtime import sockets

_LOG = logging.getLogger(__name__)

TRIAL_DAYS = 7


def _utcnow() -> datetime:
	return datetime.now(timezone.utc)


class ClubsService:
	def __init__(
		self,
		*,
		repository: repo_module.DiaryRepository | None = None,
		clock: Callable[[], datetime] | None = None,
	) -> None:
		self.repo = repository or repo_module.DiaryRepository()
		self.clock = clock or _utcnow

	async def check_club_name_available(self, name: str) -> bool:
		"""Exact, case-sensitive match against existing club names."""
		return await self.repo.get_club_by_name(name.strip()) is None

	async def register_club(self, actor_uid: str, payload: ClubCreateRequest) -> models.Club:
		actor = await self.repo.get_user(actor_uid)
		if actor is None:
			raise PermissionDenied("profile_required")
		if actor.club_id is not None:
			raise AlreadyInClub()
		name = sanitize_input(payload.name, NAME_MAX_LENGTH)
		if not await self.check_club_name_available(name):
			raise AlreadyExists("club_name_taken")

		now = self.clock()
		club = models.Club(
			id=generate_club_id(now_millis=int(now.timestamp() * 1000)),
			name=name,
			description=payload.description.strip(),
			location=payload.location.strip(),
			website=payload.website.strip(),
			image=payload.image,
			plan_type=payload.plan_type,
			plan_expires_at=now + timedelta(days=TRIAL_DAYS) if payload.plan_type == "7day-trial" else None,
			created_by=actor.uid,
			created_at=now,
			is_active=True,
		)
		created = await self.repo.create_club_with_admin(club, admin_uid=actor.uid)
		_LOG.info("club registered", extra={"club_id": created.id, "actor_id": actor.uid, "plan_type": created.plan_type})
		return created

	async def get_club(self, club_id: str) -> models.Club:
		club = await self.repo.get_club(club_id)
		if club is None:
			raise NotFound("club_not_found")
		return club

	async def update_club(self, actor_uid: str, club_id: str, payload: ClubUpdateRequest) -> models.Club:
		actor = await self.repo.get_user(actor_uid)
		permissions.assert_club_admin(actor, club_id)
		await self.get_club(club_id)
		fields = payload.model_dump(exclude_unset=True)
		if "name" in fields:
			fields["name"] = sanitize_input(fields["name"], NAME_MAX_LENGTH)
			existing = await self.repo.get_club_by_name(fields["name"])
			if existing is not None and existing.id != club_id:
				raise AlreadyExists("club_name_taken")
		updated = await self.repo.update_club(club_id, fields)
		await sockets.emit_club(club_id, "club:updated", updated.model_dump(mode="json"))
		return updated

	async def search_clubs(self, query: str = "", *, limit: int = 20) -> list[models.Club]:
		return await self.repo.search_clubs(query.strip(), limit=limit)

	async def club_admin_emails(self, actor_uid: str, club_id: str) -> list[str]:
		actor = await self.repo.get_user(actor_uid)
		if actor is None or actor.club_id != club_id:
			raise PermissionDenied("membership_required")
		return await self.repo.club_staff_emails(club_id)
