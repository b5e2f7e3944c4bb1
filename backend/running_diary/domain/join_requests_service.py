"""Join request submission and moderation."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional
from uuid import uuid4

from running_diary.domain import models, permissions, repo as repo_module
from running_diary.domain.errors import (
	AlreadyExists,
	AlreadyInClub,
	DuplicateRequest,
	InvalidArgument,
	NoLongerValid,
	NotFound,
	PermissionDenied,
)
from running_diary.notifications.dispatcher import NotificationDispatcher, get_dispatcher
from running_diary.obs import metrics as obs_metrics
from running_diary.realtime import sockets

_LOG = logging.getLogger(__name__)


def _utcnow() -> datetime:
	return datetime.now(timezone.utc)


class JoinRequestsService:
	"""Handles submission and moderation of join requests."""

	def __init__(
		self,
		*,
		repository: repo_module.DiaryRepository | None = None,
		dispatcher: NotificationDispatcher | None = None,
		clock: Callable[[], datetime] | None = None,
	) -> None:
		self.repo = repository or repo_module.DiaryRepository()
		self._dispatcher = dispatcher
		self.clock = clock or _utcnow

	@property
	def dispatcher(self) -> NotificationDispatcher:
		return self._dispatcher or get_dispatcher()

	async def _load_actor(self, actor_uid: str) -> models.User:
		actor = await self.repo.get_user(actor_uid)
		if actor is None:
			raise PermissionDenied("profile_required")
		return actor

	async def request_to_join(self, actor_uid: str, club_id: str) -> tuple[models.JoinRequest, bool]:
		club = await self.repo.get_club(club_id)
		if club is None or not club.is_active:
			raise NotFound("club_not_found")
		actor = await self._load_actor(actor_uid)
		if actor.club_id is not None:
			raise AlreadyInClub()
		if await self.repo.find_pending_join_request(actor.uid, club_id) is not None:
			raise DuplicateRequest()
		try:
			request = await self.repo.create_join_request(
				models.JoinRequest(
					id=uuid4().hex,
					user_id=actor.uid,
					club_id=club_id,
					user_name=actor.display_name,
					user_email=actor.email,
					status="pending",
					created_at=self.clock(),
				)
			)
		except AlreadyExists as exc:
			raise DuplicateRequest() from exc
		obs_metrics.inc_join_request("created")
		_LOG.info("join request created", extra={"club_id": club_id, "user_id": actor.uid})
		await sockets.emit_club(club_id, "club:join_request", {"id": request.id, "user_name": request.user_name})
		email_sent = await self.dispatcher.notify_join_request(request, club)
		return request, email_sent

	async def approve_join_request(
		self,
		actor_uid: str,
		request_id: str,
		user_id: str,
		club_id: str,
	) -> tuple[models.JoinRequest, bool]:
		"""Attach the requester to the club.

		The requester keeps a role already on their profile only when the
		approver could have assigned it; otherwise they join as ``member``.
		Approving an already approved request returns it unchanged.
		"""
		request = await self.repo.get_join_request(request_id)
		if request is None:
			raise NotFound("join_request_not_found")
		if request.user_id != user_id or request.club_id != club_id:
			raise InvalidArgument("join_request_mismatch")
		actor = await self._load_actor(actor_uid)
		permissions.assert_club_staff(actor, club_id)
		if request.status == "approved":
			return request, False
		if request.status != "pending":
			raise NoLongerValid(f"join_request_{request.status}")

		requester = await self.repo.get_user(user_id)
		if requester is None:
			raise NotFound("user_not_found")
		if requester.club_id not in (None, club_id):
			raise AlreadyInClub()
		role = requester.role if requester.role in permissions.editable_roles(actor.role) else "member"
		approved, member = await self.repo.approve_join_request(
			request_id,
			approver_uid=actor.uid,
			role=role,
			now=self.clock(),
		)
		obs_metrics.inc_join_request("approved")
		_LOG.info("join request approved", extra={"club_id": club_id, "user_id": user_id, "actor_id": actor.uid})
		await sockets.emit_club(club_id, "club:member_joined", {"uid": member.uid, "role": member.role})

		club = await self.repo.get_club(club_id)
		email_sent = False
		if club is not None:
			email_sent = await self.dispatcher.notify_approval(approved, club, actor)
		return approved, email_sent

	async def reject_join_request(self, actor_uid: str, request_id: str) -> models.JoinRequest:
		request = await self.repo.get_join_request(request_id)
		if request is None:
			raise NotFound("join_request_not_found")
		actor = await self._load_actor(actor_uid)
		permissions.assert_club_staff(actor, request.club_id)
		if request.status != "pending":
			raise NoLongerValid(f"join_request_{request.status}")
		rejected = await self.repo.reject_join_request(request_id, approver_uid=actor.uid, now=self.clock())
		obs_metrics.inc_join_request("rejected")
		return rejected

	async def list_club_requests(
		self,
		actor_uid: str,
		club_id: str,
		status: Optional[str] = "pending",
	) -> list[models.JoinRequest]:
		actor = await self._load_actor(actor_uid)
		permissions.assert_club_staff(actor, club_id)
		return await self.repo.list_join_requests(club_id, status=status)

	async def list_user_requests(self, actor_uid: str) -> list[models.JoinRequest]:
		return await self.repo.list_user_join_requests(actor_uid)
