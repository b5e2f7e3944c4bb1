"""Invitation lifecycle: create, verify, redeem, cancel."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from running_diary.domain import models, permissions, repo as repo_module
from running_diary.domain.errors import AlreadyExists, EmailMismatch, Expired, NoLongerValid, NotFound, PermissionDenied
from running_diary.domain.tokens import InvitationKey
from running_diary.domain.validation import NAME_MAX_LENGTH, sanitize_input, validate_email
from running_diary.notifications import templates
from running_diary.notifications.dispatcher import NotificationDispatcher, get_dispatcher
from running_diary.obs import metrics as obs_metrics
from running_diary.realtime import sockets
from running_diary.settings import settings

_LOG = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
	return datetime.now(timezone.utc)


class InvitationsService:
	"""Create, verify, redeem and cancel club invitations."""

	def __init__(
		self,
		*,
		repository: repo_module.DiaryRepository | None = None,
		dispatcher: NotificationDispatcher | None = None,
		clock: Clock | None = None,
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

	async def create_invitation(
		self,
		actor_uid: str,
		club_id: str,
		*,
		email: str,
		display_name: str,
		role: str = "member",
	) -> tuple[models.Invitation, bool]:
		"""Store a pending invitation and email it.

		Returns the invitation and whether the email went out; a failed send is
		queued for retry and never undoes the invitation.
		"""
		actor = await self._load_actor(actor_uid)
		permissions.assert_club_staff(actor, club_id)
		permissions.assert_can_invite(actor.role, role)
		email = validate_email(email)
		display_name = sanitize_input(display_name, NAME_MAX_LENGTH)
		club = await self.repo.get_club(club_id)
		if club is None:
			raise NotFound("club_not_found")
		if await self.repo.get_user_by_email(email) is not None:
			raise AlreadyExists("user_exists")

		now = self.clock()
		key = InvitationKey.new(club_id, now_millis=int(now.timestamp() * 1000))
		invitation, superseded = await self.repo.create_invitation(
			models.Invitation(
				id=key.token,
				email=email,
				display_name=display_name,
				role=role,
				club_id=club_id,
				invited_by=actor.uid,
				status="pending",
				created_at=now,
				expires_at=now + timedelta(days=settings.invitation_ttl_days),
			)
		)
		obs_metrics.inc_invitation("created")
		for _ in superseded:
			obs_metrics.inc_invitation("superseded")
		_LOG.info(
			"invitation created",
			extra={"club_id": club_id, "actor_id": actor.uid, "superseded": len(superseded)},
		)
		email_sent = await self.dispatcher.notify_invitation(invitation, club)
		return invitation, email_sent

	def invitation_link(self, invitation: models.Invitation) -> str:
		return templates.invitation_link(settings.app_url, invitation.id)

	async def verify_invitation(self, invitation_id: str) -> models.Invitation:
		"""Return the invitation if it can still be redeemed.

		Expiry is checked before status, so an expired record reports ``Expired``
		whatever its status.
		"""
		invitation = await self.repo.get_invitation(invitation_id)
		if invitation is None:
			raise NotFound("invitation_not_found")
		if self.clock() > invitation.expires_at:
			raise Expired("invitation_expired")
		if invitation.status != "pending":
			raise NoLongerValid(f"invitation_{invitation.status}")
		return invitation

	async def redeem_invitation(
		self,
		invitation_id: str,
		redeemer_email: str,
		redeemer_uid: str,
	) -> tuple[models.Invitation, models.User]:
		existing = await self.repo.get_invitation(invitation_id)
		if existing is not None and existing.status == "accepted" and existing.accepted_by == redeemer_uid:
			user = await self.repo.get_user(redeemer_uid)
			if user is not None:
				return existing, user

		invitation = await self.verify_invitation(invitation_id)
		if (redeemer_email or "").strip().lower() != invitation.email.lower():
			obs_metrics.inc_invitation("email_mismatch")
			raise EmailMismatch("invitation_email_mismatch")
		accepted, user = await self.repo.redeem_invitation(
			invitation.id,
			uid=redeemer_uid,
			email=invitation.email,
			now=self.clock(),
		)
		obs_metrics.inc_invitation("accepted")
		_LOG.info("invitation redeemed", extra={"club_id": accepted.club_id, "user_id": redeemer_uid})
		await sockets.emit_club(accepted.club_id, "club:member_joined", {"uid": user.uid, "role": user.role})
		return accepted, user

	async def cancel_invitation(self, actor_uid: str, invitation_id: str) -> models.Invitation:
		invitation = await self.repo.get_invitation(invitation_id)
		if invitation is None:
			raise NotFound("invitation_not_found")
		actor = await self._load_actor(actor_uid)
		permissions.assert_club_staff(actor, invitation.club_id)
		if invitation.status == "cancelled":
			return invitation
		if invitation.status != "pending":
			raise NoLongerValid(f"invitation_{invitation.status}")
		cancelled = await self.repo.cancel_invitation(invitation_id)
		obs_metrics.inc_invitation("cancelled")
		return cancelled

	async def list_pending_invitations(self, actor_uid: str, club_id: str) -> list[models.Invitation]:
		actor = await self._load_actor(actor_uid)
		permissions.assert_club_staff(actor, club_id)
		return await self.repo.list_invitations(club_id, status="pending")

	async def resend_invitation(self, actor_uid: str, invitation_id: str) -> tuple[models.Invitation, bool]:
		invitation = await self.verify_invitation(invitation_id)
		actor = await self._load_actor(actor_uid)
		permissions.assert_club_staff(actor, invitation.club_id)
		club = await self.repo.get_club(invitation.club_id)
		if club is None:
			raise NotFound("club_not_found")
		obs_metrics.inc_invitation("resent")
		return invitation, await self.dispatcher.notify_invitation(invitation, club)

	async def purge_expired(self, *, now: Optional[datetime] = None, retention_days: Optional[int] = None) -> int:
		"""Delete unaccepted invitations that expired more than ``retention_days`` ago."""
		now = now or self.clock()
		days = settings.invitation_retention_days if retention_days is None else retention_days
		deleted = await self.repo.delete_expired_invitations(before=now - timedelta(days=days))
		if deleted:
			obs_metrics.INVITATIONS.labels(action="purged").inc(deleted)
		return deleted
