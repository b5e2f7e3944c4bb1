"""Club membership mutations."""

from __future__ import annotations

import logging

from running_diary.domain import models, permissions, repo as repo_module
from running_diary.domain.errors import InvalidArgument, NotFound, PermissionDenied
from running_diary.domain.models import ROLES
from running_diary.realtime import sockets

_LOG = logging.getLogger(__name__)


class MembersService:
	"""Role changes, soft removal and member listing."""

	def __init__(self, *, repository: repo_module.DiaryRepository | None = None) -> None:
		self.repo = repository or repo_module.DiaryRepository()

	async def _load_pair(self, actor_uid: str, target_uid: str) -> tuple[models.User, models.User]:
		actor = await self.repo.get_user(actor_uid)
		if actor is None:
			raise PermissionDenied("profile_required")
		target = await self.repo.get_user(target_uid)
		if target is None:
			raise NotFound("user_not_found")
		return actor, target

	async def update_member_role(self, actor_uid: str, target_uid: str, role: str) -> models.User:
		if role not in ROLES:
			raise InvalidArgument("invalid_role")
		actor, target = await self._load_pair(actor_uid, target_uid)
		permissions.assert_club_staff(actor, actor.club_id)
		permissions.assert_can_edit_member(actor, target)
		permissions.assert_can_assign(actor.role, role)
		if target.role == role:
			return target
		updated = await self.repo.set_user_role(target.uid, role)
		_LOG.info("member role updated", extra={"club_id": actor.club_id, "user_id": target.uid, "role": role})
		await sockets.emit_club(actor.club_id, "club:member_updated", {"uid": target.uid, "role": role})
		return updated

	async def remove_member(self, actor_uid: str, target_uid: str) -> models.User:
		"""Soft removal: the profile stays, detached from the club and inactive."""
		actor, target = await self._load_pair(actor_uid, target_uid)
		permissions.assert_club_staff(actor, actor.club_id)
		permissions.assert_can_remove_member(actor, target)
		removed = await self.repo.detach_user(target.uid)
		_LOG.info("member removed", extra={"club_id": actor.club_id, "user_id": target.uid})
		await sockets.emit_club(actor.club_id, "club:member_removed", {"uid": target.uid})
		return removed

	async def list_members(self, actor_uid: str, club_id: str) -> list[models.User]:
		actor = await self.repo.get_user(actor_uid)
		if actor is None or actor.club_id != club_id:
			raise PermissionDenied("membership_required")
		return await self.repo.list_club_members(club_id)

	async def get_user_role(self, uid: str) -> str | None:
		user = await self.repo.get_user(uid)
		return user.role if user else None
