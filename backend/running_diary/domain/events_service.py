"""Event scheduling and RSVP flows."""

from __future__ import annotations

import calendar
import logging
from datetime import MAXYEAR, MINYEAR, datetime, timezone
from typing import Any, Callable, Optional
from uuid import uuid4

from running_diary.domain import models, permissions, recurrence, repo as repo_module
from running_diary.domain.errors import InvalidArgument, NotFound, PermissionDenied
from running_diary.domain.schemas import EventCreateRequest, EventUpdateRequest
from running_diary.obs import metrics as obs_metrics
from running_diary.realtime import sockets

_LOG = logging.getLogger(__name__)


def _utcnow() -> datetime:
	return datetime.now(timezone.utc)


def _event_payload(event: models.Event) -> dict[str, Any]:
	return event.model_dump(mode="json", exclude={"attendees"}) | {"attendee_count": len(event.attendees)}


class EventsService:
	"""Create, edit, delete and RSVP to club events."""

	def __init__(
		self,
		*,
		repository: repo_module.DiaryRepository | None = None,
		clock: Callable[[], datetime] | None = None,
	) -> None:
		self.repo = repository or repo_module.DiaryRepository()
		self.clock = clock or _utcnow

	async def _load_actor(self, actor_uid: str) -> models.User:
		actor = await self.repo.get_user(actor_uid)
		if actor is None:
			raise PermissionDenied("profile_required")
		return actor

	async def _require_event(self, event_id: str) -> models.Event:
		event = await self.repo.get_event(event_id)
		if event is None:
			raise NotFound("event_not_found")
		return event

	async def create_event(self, actor_uid: str, payload: EventCreateRequest) -> list[models.Event]:
		"""Create one event, or one per occurrence for a recurring payload."""
		actor = await self._load_actor(actor_uid)
		if actor.club_id is None:
			raise PermissionDenied("club_membership_required")
		permissions.assert_club_staff(actor, actor.club_id)

		if payload.is_recurring:
			if payload.recurring_end_date is None:
				raise InvalidArgument("recurring_end_date_required")
			dates = recurrence.expand(payload.date, payload.recurring_pattern, payload.recurring_end_date)
		else:
			dates = [payload.date]

		now = self.clock()
		drafts = [
			models.Event(
				id=uuid4().hex,
				club_id=actor.club_id,
				name=payload.name,
				location=payload.location,
				distance=payload.distance,
				date=occurrence,
				description=payload.description,
				signup_link=payload.signup_link,
				created_by=actor.uid,
				created_by_email=actor.email,
				created_at=now,
				is_recurring=payload.is_recurring,
				recurring_pattern=payload.recurring_pattern if payload.is_recurring else None,
				recurring_end_date=payload.recurring_end_date if payload.is_recurring else None,
			)
			for occurrence in dates
		]
		events = await self.repo.create_events(drafts)
		obs_metrics.inc_events_created(len(events))
		_LOG.info("events created", extra={"club_id": actor.club_id, "count": len(events)})
		for event in events:
			await sockets.emit_calendar("event:created", _event_payload(event))
		return events

	async def update_event(self, actor_uid: str, event_id: str, payload: EventUpdateRequest) -> models.Event:
		actor = await self._load_actor(actor_uid)
		event = await self._require_event(event_id)
		permissions.assert_can_edit_event(actor, event)
		fields = payload.model_dump(exclude_unset=True)
		updated = await self.repo.update_event(event_id, fields)
		await sockets.emit_calendar("event:updated", _event_payload(updated))
		return updated

	async def delete_event(self, actor_uid: str, event_id: str) -> None:
		actor = await self._load_actor(actor_uid)
		event = await self._require_event(event_id)
		permissions.assert_can_edit_event(actor, event)
		await self.repo.delete_event(event_id)
		_LOG.info("event deleted", extra={"event_id": event_id, "actor_id": actor.uid})
		await sockets.emit_calendar("event:deleted", {"id": event_id})

	async def rsvp_to_event(self, actor_uid: str, event_id: str, should_attend: bool) -> models.Event:
		"""Add or remove the actor's attendee row.

		Rows are keyed by uid: adding twice leaves one row, and a changed display
		name refreshes that row instead of creating a second one.
		"""
		actor = await self._load_actor(actor_uid)
		await self._require_event(event_id)
		if should_attend:
			club_name = ""
			if actor.club_id:
				club = await self.repo.get_club(actor.club_id)
				club_name = club.name if club else ""
			await self.repo.upsert_attendee(
				event_id,
				models.Attendee(
					uid=actor.uid,
					email=actor.email,
					display_name=actor.display_name or actor.email.split("@", 1)[0],
					club_name=club_name,
					joined_at=self.clock(),
				),
			)
			obs_metrics.inc_event_rsvp_updated("going")
		else:
			await self.repo.remove_attendee(event_id, actor.uid)
			obs_metrics.inc_event_rsvp_updated("not_going")
		event = await self._require_event(event_id)
		await sockets.emit_calendar("event:rsvp", {"id": event_id, "attendee_count": len(event.attendees)})
		return event

	async def get_event(self, event_id: str) -> models.Event:
		return await self._require_event(event_id)

	async def list_events(
		self,
		*,
		start: Optional[datetime] = None,
		end: Optional[datetime] = None,
		club_id: Optional[str] = None,
	) -> list[models.Event]:
		return await self.repo.list_events(start=start, end=end, club_id=club_id)

	async def list_events_for_month(self, year: int, month: int) -> list[models.Event]:
		if not MINYEAR <= year <= MAXYEAR:
			raise InvalidArgument("invalid_year")
		if not 1 <= month <= 12:
			raise InvalidArgument("invalid_month")
		last_day = calendar.monthrange(year, month)[1]
		start = datetime(year, month, 1, tzinfo=timezone.utc)
		end = datetime(year, month, last_day, 23, 59, 59, 999999, tzinfo=timezone.utc)
		return await self.repo.list_events(start=start, end=end)

	async def list_user_events(self, uid: str) -> list[models.Event]:
		return await self.repo.list_attended_events(uid)

	async def past_events(self, uid: str) -> list[models.Event]:
		return await self.repo.list_attended_events(uid, before=self.clock())
