"""Profile bootstrap, wishlist and badges."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

from running_diary.domain import badges, models, repo as repo_module
from running_diary.domain.errors import NotFound
from running_diary.domain.schemas import Badge, BadgesResponse
from running_diary.domain.validation import NAME_MAX_LENGTH, sanitize_input
from running_diary.infra.auth import AuthenticatedUser


def _utcnow() -> datetime:
	return datetime.now(timezone.utc)


class UsersService:
	def __init__(
		self,
		*,
		repository: repo_module.DiaryRepository | None = None,
		clock: Callable[[], datetime] | None = None,
	) -> None:
		self.repo = repository or repo_module.DiaryRepository()
		self.clock = clock or _utcnow

	async def ensure_profile(self, identity: AuthenticatedUser) -> models.User:
		"""Create an unaffiliated member profile on first sign-in, else bump last_login."""
		return await self.repo.upsert_profile(
			uid=identity.id,
			email=identity.email,
			display_name=identity.default_display_name,
			now=self.clock(),
		)

	async def get_profile(self, uid: str) -> models.User:
		user = await self.repo.get_user(uid)
		if user is None:
			raise NotFound("user_not_found")
		return user

	async def update_profile(self, uid: str, *, display_name: str) -> models.User:
		return await self.repo.update_display_name(uid, sanitize_input(display_name, NAME_MAX_LENGTH))

	async def toggle_wishlist(self, uid: str, event_id: str) -> bool:
		if await self.repo.get_event(event_id) is None:
			raise NotFound("event_not_found")
		return await self.repo.toggle_wishlist(uid, event_id)

	async def badges(self, uid: str) -> BadgesResponse:
		now = self.clock()
		past = await self.repo.list_attended_events(uid, before=now)
		earned = badges.earned_badges(past, now=now)
		return BadgesResponse(
			events_attended=len(past),
			items=[
				Badge(id=rule.id, name=rule.name, description=rule.description, earned=earned[rule.id])
				for rule in badges.BADGE_RULES
			],
		)
