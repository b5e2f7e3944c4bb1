"""Transactional email dispatch: the callable functions and service side effects."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from running_diary.domain import models, permissions, repo as repo_module
from running_diary.domain.errors import FailedPrecondition, InvalidArgument, NotFound, PermissionDenied, ResourceExhausted
from running_diary.domain.tokens import InvitationKey
from running_diary.domain.validation import (
	NAME_MAX_LENGTH,
	TOKEN_MAX_LENGTH,
	normalise_emails,
	sanitize_input,
	validate_email,
	validate_emails,
)
from running_diary.infra.rate_limit import RateLimiter, RateLimitExceeded
from running_diary.notifications import templates
from running_diary.notifications.mailer import Mailer
from running_diary.notifications.outbox import NotificationOutbox
from running_diary.obs import metrics as obs_metrics
from running_diary.settings import settings

_LOG = logging.getLogger(__name__)

EMAIL_RATE_KIND = "email"
EMAIL_RATE_WINDOW_SECONDS = 3600


def default_limiter() -> RateLimiter:
	return RateLimiter(
		EMAIL_RATE_KIND,
		limit=settings.email_rate_limit_per_hour,
		window_seconds=EMAIL_RATE_WINDOW_SECONDS,
	)


def _require(data: Mapping[str, Any], *names: str) -> None:
	missing = [name for name in names if not data.get(name)]
	if missing:
		raise InvalidArgument("missing_required_parameters")


class NotificationDispatcher:
	"""Sends invitation, join-request and approval emails.

	The ``send_*`` methods back the callable functions and raise domain errors.
	The ``notify_*`` methods are side effects of lifecycle operations: they never
	raise, and a failed send is queued on the outbox for retry.
	"""

	def __init__(
		self,
		*,
		repository: repo_module.DiaryRepository | None = None,
		mailer: Mailer | None = None,
		limiter: RateLimiter | None = None,
		outbox: NotificationOutbox | None = None,
	) -> None:
		self.repo = repository or repo_module.DiaryRepository()
		self.mailer = mailer or Mailer()
		self.limiter = limiter or default_limiter()
		self.outbox = outbox or NotificationOutbox()

	async def _load_actor(self, actor_uid: str) -> models.User:
		actor = await self.repo.get_user(actor_uid)
		if actor is None:
			raise PermissionDenied("profile_required")
		return actor

	async def _enforce_rate_limit(self, actor_uid: str) -> None:
		try:
			await self.limiter.hit(actor_uid)
		except RateLimitExceeded as exc:
			obs_metrics.inc_rate_limited(exc.kind)
			raise ResourceExhausted(f"rate_limit_exceeded:{exc.limit}_per_hour") from exc

	async def _deliver(self, kind: str, to: list[str], email: templates.RenderedEmail, *, from_name: str) -> str:
		try:
			message_id = await self.mailer.send(to, email.subject, email.html, from_name=from_name)
		except Exception:
			obs_metrics.inc_email(kind, "failed")
			raise
		obs_metrics.inc_email(kind, "sent")
		return message_id

	# --- Callable functions -------------------------------------------------

	async def send_invitation_email(self, actor_uid: str, data: Mapping[str, Any]) -> dict[str, Any]:
		await self._enforce_rate_limit(actor_uid)
		_require(data, "email", "displayName", "invitationToken", "clubName")
		email = validate_email(data["email"])
		display_name = sanitize_input(data["displayName"], NAME_MAX_LENGTH)
		token = sanitize_input(data["invitationToken"], TOKEN_MAX_LENGTH)
		club_name = sanitize_input(data["clubName"], NAME_MAX_LENGTH)
		key = InvitationKey.parse(token)

		actor = await self._load_actor(actor_uid)
		if not permissions.is_club_staff(actor, key.club_id):
			raise PermissionDenied("club_staff_required")
		invitation = await self.repo.get_invitation(key.token)
		if invitation is None:
			raise NotFound("invitation_not_found")
		if invitation.email.lower() != email:
			raise InvalidArgument("email_does_not_match_invitation")

		rendered = templates.invitation_email(
			display_name=display_name,
			club_name=club_name,
			link=templates.invitation_link(settings.app_url, key.token),
			role=invitation.role,
		)
		message_id = await self._deliver("invitation", [email], rendered, from_name=settings.smtp_from_name)
		_LOG.info("invitation email sent", extra={"club_id": key.club_id, "actor_id": actor_uid})
		return {"success": True, "message": f"Invitation sent to {email}", "emailId": message_id}

	async def send_join_request_notification(self, actor_uid: str, data: Mapping[str, Any]) -> dict[str, Any]:
		await self._enforce_rate_limit(actor_uid)
		_require(data, "userName", "userEmail", "clubName", "requestId")
		user_name = sanitize_input(data["userName"], NAME_MAX_LENGTH)
		user_email = validate_email(data["userEmail"])
		club_name = sanitize_input(data["clubName"], NAME_MAX_LENGTH)
		request_id = sanitize_input(data["requestId"], TOKEN_MAX_LENGTH)
		requested = validate_emails(data["adminEmails"]) if data.get("adminEmails") else None

		request = await self.repo.get_join_request(request_id)
		if request is None:
			raise NotFound("join_request_not_found")
		actor = await self._load_actor(actor_uid)
		if request.user_id != actor.uid and not permissions.is_club_staff(actor, request.club_id):
			raise PermissionDenied("not_request_owner")

		recipients = normalise_emails(await self.repo.club_staff_emails(request.club_id))
		if requested is not None:
			recipients = [email for email in recipients if email in set(requested)]
		if not recipients:
			raise FailedPrecondition("no_club_admins")

		rendered = templates.join_request_email(
			user_name=user_name,
			user_email=user_email,
			club_name=club_name,
			app_url=settings.app_url,
		)
		message_id = await self._deliver("join_request", recipients, rendered, from_name=club_name)
		return {
			"success": True,
			"message": f"Notification sent to {len(recipients)} admin(s)",
			"emailId": message_id,
		}

	async def send_approval_confirmation(self, actor_uid: str, data: Mapping[str, Any]) -> dict[str, Any]:
		await self._enforce_rate_limit(actor_uid)
		_require(data, "email", "displayName", "clubName", "approvedBy")
		email = validate_email(data["email"])
		display_name = sanitize_input(data["displayName"], NAME_MAX_LENGTH)
		club_name = sanitize_input(data["clubName"], NAME_MAX_LENGTH)
		approved_by = sanitize_input(data["approvedBy"], NAME_MAX_LENGTH)

		actor = await self._load_actor(actor_uid)
		club_id = sanitize_input(data["clubId"], NAME_MAX_LENGTH) if data.get("clubId") else actor.club_id
		if not permissions.is_club_staff(actor, club_id):
			raise PermissionDenied("only_club_admins_can_approve")

		rendered = templates.approval_email(
			member_name=display_name,
			club_name=club_name,
			approved_by=approved_by,
			app_url=settings.app_url,
		)
		message_id = await self._deliver("approval", [email], rendered, from_name=club_name)
		return {"success": True, "message": f"Approval confirmation sent to {email}", "emailId": message_id}

	# --- Lifecycle side effects ---------------------------------------------

	async def _send_or_queue(
		self,
		*,
		key: str,
		kind: str,
		to: list[str],
		email: templates.RenderedEmail,
		from_name: str,
	) -> bool:
		try:
			await self._deliver(kind, to, email, from_name=from_name)
			return True
		except Exception as exc:
			_LOG.warning("notification send failed", extra={"key": key, "kind": kind, "error": str(exc)})
			await self.outbox.enqueue(key=key, kind=kind, to=to, email=email, from_name=from_name, error=str(exc))
			return False

	async def notify_invitation(self, invitation: models.Invitation, club: models.Club) -> bool:
		rendered = templates.invitation_email(
			display_name=invitation.display_name,
			club_name=club.name,
			link=templates.invitation_link(settings.app_url, invitation.id),
			role=invitation.role,
		)
		return await self._send_or_queue(
			key=f"invitation:{invitation.id}",
			kind="invitation",
			to=[invitation.email],
			email=rendered,
			from_name=settings.smtp_from_name,
		)

	async def notify_join_request(self, request: models.JoinRequest, club: models.Club) -> bool:
		recipients = normalise_emails(await self.repo.club_staff_emails(club.id))
		if not recipients:
			_LOG.warning("no club admins to notify", extra={"club_id": club.id})
			obs_metrics.inc_email("join_request", "no_recipients")
			return False
		rendered = templates.join_request_email(
			user_name=request.user_name,
			user_email=request.user_email,
			club_name=club.name,
			app_url=settings.app_url,
		)
		return await self._send_or_queue(
			key=f"join_request:{request.id}",
			kind="join_request",
			to=recipients,
			email=rendered,
			from_name=club.name,
		)

	async def notify_approval(
		self,
		request: models.JoinRequest,
		club: models.Club,
		approver: models.User,
	) -> bool:
		rendered = templates.approval_email(
			member_name=request.user_name,
			club_name=club.name,
			approved_by=approver.display_name or "Admin",
			app_url=settings.app_url,
		)
		return await self._send_or_queue(
			key=f"approval:{request.id}",
			kind="approval",
			to=[request.user_email],
			email=rendered,
			from_name=club.name,
		)


_default: Optional[NotificationDispatcher] = None


def get_dispatcher() -> NotificationDispatcher:
	global _default
	if _default is None:
		_default = NotificationDispatcher()
	return _default
