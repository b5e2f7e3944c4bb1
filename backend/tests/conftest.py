import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from fakeredis.aioredis import FakeRedis

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

from running_diary.domain import models
from running_diary.domain.errors import AlreadyExists, AlreadyInClub, NoLongerValid, NotFound
from running_diary.infra import postgres
from running_diary.main import app
from running_diary.notifications.dispatcher import NotificationDispatcher
from running_diary.notifications.outbox import NotificationOutbox
from running_diary.realtime import sockets
from running_diary.settings import settings


class InMemoryRepository:
	"""Dict-backed stand-in for DiaryRepository with the same async surface."""

	def __init__(self) -> None:
		self.users: dict[str, models.User] = {}
		self.clubs: dict[str, models.Club] = {}
		self.invitations: dict[str, models.Invitation] = {}
		self.join_requests: dict[str, models.JoinRequest] = {}
		self.events: dict[str, models.Event] = {}

	# users

	def add_user(self, uid: str, email: str, *, role: str = "member", club_id: Optional[str] = None, display_name: Optional[str] = None, status: str = "active") -> models.User:
		user = models.User(
			uid=uid,
			email=email,
			display_name=display_name or email.split("@", 1)[0],
			role=role,
			club_id=club_id,
			status=status,
			created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
		)
		self.users[uid] = user
		return user

	def add_club(self, club_id: str, name: str = "Harbour Harriers") -> models.Club:
		club = models.Club(id=club_id, name=name, created_at=datetime(2024, 1, 1, tzinfo=timezone.utc))
		self.clubs[club_id] = club
		return club

	async def get_user(self, uid: str) -> models.User | None:
		return self.users.get(uid)

	async def get_user_by_email(self, email: str) -> models.User | None:
		for user in self.users.values():
			if user.email.lower() == email.lower():
				return user
		return None

	async def upsert_profile(self, *, uid: str, email: str, display_name: str, now: datetime) -> models.User:
		existing = self.users.get(uid)
		if existing is not None:
			existing = existing.model_copy(update={"last_login": now})
		else:
			existing = models.User(uid=uid, email=email, display_name=display_name, created_at=now, last_login=now)
		self.users[uid] = existing
		return existing

	async def update_display_name(self, uid: str, display_name: str) -> models.User:
		if uid not in self.users:
			raise NotFound("user_not_found")
		self.users[uid] = self.users[uid].model_copy(update={"display_name": display_name})
		return self.users[uid]

	async def set_user_role(self, uid: str, role: str) -> models.User:
		self.users[uid] = self.users[uid].model_copy(update={"role": role})
		return self.users[uid]

	async def detach_user(self, uid: str) -> models.User:
		self.users[uid] = self.users[uid].model_copy(update={"club_id": None, "status": "inactive"})
		return self.users[uid]

	async def list_club_members(self, club_id: str) -> list[models.User]:
		return [user for user in self.users.values() if user.club_id == club_id and user.status == "active"]

	async def club_staff_emails(self, club_id: str) -> list[str]:
		return [
			user.email
			for user in self.users.values()
			if user.club_id == club_id and user.status == "active" and user.role in models.STAFF_ROLES
		]

	async def toggle_wishlist(self, uid: str, event_id: str) -> bool:
		user = self.users[uid]
		wishlist = set(user.wishlist)
		added = event_id not in wishlist
		if added:
			wishlist.add(event_id)
		else:
			wishlist.discard(event_id)
		self.users[uid] = user.model_copy(update={"wishlist": wishlist})
		return added

	# clubs

	async def get_club(self, club_id: str) -> models.Club | None:
		return self.clubs.get(club_id)

	async def get_club_by_name(self, name: str) -> models.Club | None:
		for club in self.clubs.values():
			if club.name == name:
				return club
		return None

	async def create_club_with_admin(self, club: models.Club, *, admin_uid: str) -> models.Club:
		if self.users[admin_uid].club_id is not None:
			raise AlreadyInClub()
		if await self.get_club_by_name(club.name) is not None:
			raise AlreadyExists("club_name_taken")
		self.clubs[club.id] = club
		self.users[admin_uid] = self.users[admin_uid].model_copy(update={"club_id": club.id, "role": "admin"})
		return club

	async def update_club(self, club_id: str, fields: dict[str, Any]) -> models.Club:
		self.clubs[club_id] = self.clubs[club_id].model_copy(update=fields)
		return self.clubs[club_id]

	async def search_clubs(self, query: str, *, limit: int = 20) -> list[models.Club]:
		matches = [club for club in self.clubs.values() if club.is_active and query.lower() in club.name.lower()]
		return sorted(matches, key=lambda club: club.name)[:limit]

	# invitations

	async def create_invitation(self, invitation: models.Invitation) -> tuple[models.Invitation, list[str]]:
		superseded = []
		for existing in list(self.invitations.values()):
			if (
				existing.status == "pending"
				and existing.club_id == invitation.club_id
				and existing.email.lower() == invitation.email.lower()
			):
				self.invitations[existing.id] = existing.model_copy(update={"status": "cancelled"})
				superseded.append(existing.id)
		self.invitations[invitation.id] = invitation
		return invitation, superseded

	async def get_invitation(self, invitation_id: str) -> models.Invitation | None:
		return self.invitations.get(invitation_id)

	async def cancel_invitation(self, invitation_id: str) -> models.Invitation:
		invitation = self.invitations[invitation_id]
		if invitation.status == "accepted":
			raise NoLongerValid("invitation_accepted")
		self.invitations[invitation_id] = invitation.model_copy(update={"status": "cancelled"})
		return self.invitations[invitation_id]

	async def redeem_invitation(self, invitation_id: str, *, uid: str, email: str, now: datetime) -> tuple[models.Invitation, models.User]:
		invitation = self.invitations[invitation_id]
		user = self.users.get(uid)
		if user is not None and user.club_id not in (None, invitation.club_id):
			raise AlreadyInClub()
		base = user or models.User(uid=uid, email=email, display_name=invitation.display_name, created_at=now)
		user = base.model_copy(
			update={"club_id": invitation.club_id, "role": invitation.role, "status": "active", "last_login": now}
		)
		self.users[uid] = user
		accepted = invitation.model_copy(update={"status": "accepted", "accepted_at": now, "accepted_by": uid})
		self.invitations[invitation_id] = accepted
		return accepted, user

	async def list_invitations(self, club_id: str, *, status: Optional[str] = "pending") -> list[models.Invitation]:
		return [
			invitation
			for invitation in self.invitations.values()
			if invitation.club_id == club_id and (status is None or invitation.status == status)
		]

	async def delete_expired_invitations(self, *, before: datetime) -> int:
		doomed = [
			invitation.id
			for invitation in self.invitations.values()
			if invitation.status != "accepted" and invitation.expires_at < before
		]
		for invitation_id in doomed:
			del self.invitations[invitation_id]
		return len(doomed)

	# join requests

	async def create_join_request(self, request: models.JoinRequest) -> models.JoinRequest:
		if await self.find_pending_join_request(request.user_id, request.club_id) is not None:
			raise AlreadyExists("join_request_exists")
		self.join_requests[request.id] = request
		return request

	async def get_join_request(self, request_id: str) -> models.JoinRequest | None:
		return self.join_requests.get(request_id)

	async def find_pending_join_request(self, user_id: str, club_id: str) -> models.JoinRequest | None:
		for request in self.join_requests.values():
			if request.user_id == user_id and request.club_id == club_id and request.status == "pending":
				return request
		return None

	async def list_join_requests(self, club_id: str, *, status: Optional[str] = None) -> list[models.JoinRequest]:
		return [
			request
			for request in self.join_requests.values()
			if request.club_id == club_id and (status is None or request.status == status)
		]

	async def list_user_join_requests(self, user_id: str) -> list[models.JoinRequest]:
		return [request for request in self.join_requests.values() if request.user_id == user_id]

	async def approve_join_request(self, request_id: str, *, approver_uid: str, role: str, now: datetime) -> tuple[models.JoinRequest, models.User]:
		request = self.join_requests[request_id]
		if request.status != "pending":
			raise NoLongerValid(f"join_request_{request.status}")
		approved = request.model_copy(update={"status": "approved", "processed_at": now, "processed_by": approver_uid})
		self.join_requests[request_id] = approved
		member = self.users[request.user_id].model_copy(update={"club_id": request.club_id, "role": role, "status": "active"})
		self.users[member.uid] = member
		return approved, member

	async def reject_join_request(self, request_id: str, *, approver_uid: str, now: datetime) -> models.JoinRequest:
		request = self.join_requests[request_id]
		if request.status != "pending":
			raise NoLongerValid(f"join_request_{request.status}")
		rejected = request.model_copy(update={"status": "rejected", "processed_at": now, "processed_by": approver_uid})
		self.join_requests[request_id] = rejected
		return rejected

	# events

	async def create_events(self, events: list[models.Event]) -> list[models.Event]:
		for event in events:
			self.events[event.id] = event
		return list(events)

	async def get_event(self, event_id: str) -> models.Event | None:
		return self.events.get(event_id)

	async def update_event(self, event_id: str, fields: dict[str, Any]) -> models.Event:
		self.events[event_id] = self.events[event_id].model_copy(update=fields)
		return self.events[event_id]

	async def delete_event(self, event_id: str) -> bool:
		return self.events.pop(event_id, None) is not None

	async def upsert_attendee(self, event_id: str, attendee: models.Attendee) -> None:
		event = self.events[event_id]
		attendees = [row for row in event.attendees if row.uid != attendee.uid]
		previous = next((row for row in event.attendees if row.uid == attendee.uid), None)
		if previous is not None:
			attendee = attendee.model_copy(update={"joined_at": previous.joined_at})
		attendees.append(attendee)
		self.events[event_id] = event.model_copy(update={"attendees": attendees})

	async def remove_attendee(self, event_id: str, uid: str) -> None:
		event = self.events[event_id]
		self.events[event_id] = event.model_copy(
			update={"attendees": [row for row in event.attendees if row.uid != uid]}
		)

	async def list_events(self, *, start: Optional[datetime] = None, end: Optional[datetime] = None, club_id: Optional[str] = None) -> list[models.Event]:
		items = [
			event
			for event in self.events.values()
			if (start is None or event.date >= start)
			and (end is None or event.date <= end)
			and (club_id is None or event.club_id == club_id)
		]
		return sorted(items, key=lambda event: event.date)

	async def list_attended_events(self, uid: str, *, before: Optional[datetime] = None) -> list[models.Event]:
		items = [
			event
			for event in self.events.values()
			if event.is_attending(uid) and (before is None or event.date < before)
		]
		return sorted(items, key=lambda event: event.date)


class RecordingMailer:
	"""Collects outgoing mail; flip ``fail`` to simulate a provider outage."""

	def __init__(self) -> None:
		self.sent: list[dict[str, Any]] = []
		self.fail = False

	async def send(self, to, subject, html, *, from_name=None):
		if self.fail:
			raise RuntimeError("smtp unavailable")
		recipients = [to] if isinstance(to, str) else list(to)
		self.sent.append({"to": recipients, "subject": subject, "html": html, "from_name": from_name})
		return f"<msg-{len(self.sent)}@test>"


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
	from running_diary.infra.redis import redis_client, set_redis_client
	original = redis_client._client
	client = FakeRedis(decode_responses=True)
	set_redis_client(client)
	try:
		yield client
	finally:
		await client.flushall()
		set_redis_client(original)


@pytest.fixture(autouse=True)
def patch_postgres(monkeypatch):
	async def _noop():
		return None

	monkeypatch.setattr(postgres, "init_pool", _noop)
	monkeypatch.setattr(postgres, "close_pool", _noop)


@pytest.fixture(autouse=True)
def silence_sockets(monkeypatch):
	monkeypatch.setattr(sockets, "_namespace", None)


@pytest.fixture(autouse=True)
def force_test_settings():
	"""Ensure a consistent test environment.

	API tests authenticate via X-User-Id/X-User-Email headers, which are only
	accepted in dev mode.
	"""
	original_env = settings.environment
	original_jobs = settings.jobs_enabled
	settings.environment = "dev"
	settings.jobs_enabled = False
	try:
		yield
	finally:
		settings.environment = original_env
		settings.jobs_enabled = original_jobs


@pytest.fixture
def repo() -> InMemoryRepository:
	return InMemoryRepository()


@pytest.fixture
def mailer() -> RecordingMailer:
	return RecordingMailer()


@pytest.fixture
def outbox(fake_redis) -> NotificationOutbox:
	return NotificationOutbox(client=fake_redis, max_attempts=3)


@pytest.fixture
def dispatcher(repo, mailer, outbox) -> NotificationDispatcher:
	return NotificationDispatcher(repository=repo, mailer=mailer, outbox=outbox)


@pytest_asyncio.fixture
async def api_client():
	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client
