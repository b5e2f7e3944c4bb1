"""Async repository for the running diary tables."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Optional, Sequence

import asyncpg

from running_diary.domain import models
from running_diary.domain.errors import AlreadyExists, AlreadyInClub, NoLongerValid, NotFound
from running_diary.infra.postgres import get_pool

_CLUB_UPDATABLE = ("name", "description", "location", "website", "image", "plan_type", "plan_expires_at", "is_active")
_EVENT_UPDATABLE = (
	"name",
	"location",
	"distance",
	"date",
	"description",
	"signup_link",
	"is_recurring",
	"recurring_pattern",
	"recurring_end_date",
)


def _set_clause(fields: dict[str, Any], allowed: Sequence[str], *, start: int = 2) -> tuple[str, list[Any]]:
	assignments: list[str] = []
	values: list[Any] = []
	for column in allowed:
		if column in fields:
			values.append(fields[column])
			assignments.append(f"{column}=${start + len(values) - 1}")
	return ", ".join(assignments), values


class DiaryRepository:
	"""Thin data-access layer around asyncpg."""

	# --- Users -------------------------------------------------------------

	async def _user_from_record(self, conn: asyncpg.Connection, record: asyncpg.Record) -> models.User:
		rows = await conn.fetch("SELECT event_id FROM user_wishlist WHERE uid=$1", record["uid"])
		data = dict(record)
		data["wishlist"] = {row["event_id"] for row in rows}
		return models.User.model_validate(data)

	async def get_user(self, uid: str) -> models.User | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow("SELECT * FROM users WHERE uid=$1", uid)
			if not record:
				return None
			return await self._user_from_record(conn, record)

	async def get_user_by_email(self, email: str) -> models.User | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow("SELECT * FROM users WHERE lower(email)=lower($1)", email)
			if not record:
				return None
			return await self._user_from_record(conn, record)

	async def upsert_profile(self, *, uid: str, email: str, display_name: str, now: datetime) -> models.User:
		"""Create a bare profile on first sign-in, otherwise bump last_login."""
		pool = await get_pool()
		async with pool.acquire() as conn:
			try:
				record = await conn.fetchrow(
					"""
					INSERT INTO users (uid, email, display_name, role, club_id, status, created_at, last_login)
					VALUES ($1, $2, $3, 'member', NULL, 'active', $4, $4)
					ON CONFLICT (uid) DO UPDATE SET last_login = EXCLUDED.last_login
					RETURNING *
					""",
					uid,
					email.lower(),
					display_name,
					now,
				)
			except asyncpg.UniqueViolationError as exc:  # type: ignore[attr-defined]
				raise AlreadyExists("email_in_use") from exc
			return await self._user_from_record(conn, record)

	async def update_display_name(self, uid: str, display_name: str) -> models.User:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"UPDATE users SET display_name=$2 WHERE uid=$1 RETURNING *",
				uid,
				display_name,
			)
			if not record:
				raise NotFound("user_not_found")
			return await self._user_from_record(conn, record)

	async def set_user_role(self, uid: str, role: str) -> models.User:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow("UPDATE users SET role=$2 WHERE uid=$1 RETURNING *", uid, role)
			if not record:
				raise NotFound("user_not_found")
			return await self._user_from_record(conn, record)

	async def detach_user(self, uid: str) -> models.User:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"UPDATE users SET club_id=NULL, status='inactive' WHERE uid=$1 RETURNING *",
				uid,
			)
			if not record:
				raise NotFound("user_not_found")
			return await self._user_from_record(conn, record)

	async def list_club_members(self, club_id: str) -> list[models.User]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			records = await conn.fetch(
				"SELECT * FROM users WHERE club_id=$1 ORDER BY display_name ASC, uid ASC",
				club_id,
			)
			return [await self._user_from_record(conn, record) for record in records]

	async def club_staff_emails(self, club_id: str) -> list[str]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			records = await conn.fetch(
				"""
				SELECT email FROM users
				WHERE club_id=$1 AND role IN ('admin', 'moderator') AND status='active'
				ORDER BY email ASC
				""",
				club_id,
			)
		return [record["email"] for record in records if record["email"]]

	async def toggle_wishlist(self, uid: str, event_id: str) -> bool:
		"""Flip the wishlist entry; returns True when the event is now wishlisted."""
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				deleted = await conn.fetchval(
					"DELETE FROM user_wishlist WHERE uid=$1 AND event_id=$2 RETURNING event_id",
					uid,
					event_id,
				)
				if deleted:
					return False
				await conn.execute(
					"INSERT INTO user_wishlist (uid, event_id) VALUES ($1, $2) ON CONFLICT DO NOTHING",
					uid,
					event_id,
				)
		return True

	# --- Clubs -------------------------------------------------------------

	async def get_club(self, club_id: str) -> models.Club | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow("SELECT * FROM clubs WHERE id=$1", club_id)
		return models.Club.model_validate(dict(record)) if record else None

	async def get_club_by_name(self, name: str) -> models.Club | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow("SELECT * FROM clubs WHERE name=$1", name)
		return models.Club.model_validate(dict(record)) if record else None

	async def create_club_with_admin(self, club: models.Club, *, admin_uid: str) -> models.Club:
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				owner = await conn.fetchrow("SELECT club_id FROM users WHERE uid=$1 FOR UPDATE", admin_uid)
				if not owner:
					raise NotFound("user_not_found")
				if owner["club_id"] is not None:
					raise AlreadyInClub()
				try:
					record = await conn.fetchrow(
						"""
						INSERT INTO clubs (id, name, description, location, website, image, plan_type,
							plan_expires_at, created_by, created_at, is_active)
						VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11)
						RETURNING *
						""",
						club.id,
						club.name,
						club.description,
						club.location,
						club.website,
						club.image,
						club.plan_type,
						club.plan_expires_at,
						admin_uid,
						club.created_at,
						club.is_active,
					)
				except asyncpg.UniqueViolationError as exc:  # type: ignore[attr-defined]
					raise AlreadyExists("club_name_taken") from exc
				await conn.execute(
					"UPDATE users SET club_id=$2, role='admin', status='active' WHERE uid=$1",
					admin_uid,
					club.id,
				)
		return models.Club.model_validate(dict(record))

	async def update_club(self, club_id: str, fields: dict[str, Any]) -> models.Club:
		assignments, values = _set_clause(fields, _CLUB_UPDATABLE)
		pool = await get_pool()
		async with pool.acquire() as conn:
			if not assignments:
				record = await conn.fetchrow("SELECT * FROM clubs WHERE id=$1", club_id)
			else:
				try:
					record = await conn.fetchrow(
						f"UPDATE clubs SET {assignments} WHERE id=$1 RETURNING *",
						club_id,
						*values,
					)
				except asyncpg.UniqueViolationError as exc:  # type: ignore[attr-defined]
					raise AlreadyExists("club_name_taken") from exc
		if not record:
			raise NotFound("club_not_found")
		return models.Club.model_validate(dict(record))

	async def search_clubs(self, query: str, *, limit: int = 20) -> list[models.Club]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			records = await conn.fetch(
				"""
				SELECT * FROM clubs
				WHERE is_active AND ($1 = '' OR name ILIKE '%' || $1 || '%')
				ORDER BY name ASC
				LIMIT $2
				""",
				query,
				limit,
			)
		return [models.Club.model_validate(dict(record)) for record in records]

	# --- Invitations -------------------------------------------------------

	async def create_invitation(self, invitation: models.Invitation) -> tuple[models.Invitation, list[str]]:
		"""Insert a pending invitation, cancelling older pending ones for the same email and club.

		Returns the stored invitation and the ids it superseded.
		"""
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				superseded = await conn.fetch(
					"""
					UPDATE invitations SET status='cancelled'
					WHERE club_id=$1 AND lower(email)=lower($2) AND status='pending'
					RETURNING id
					""",
					invitation.club_id,
					invitation.email,
				)
				record = await conn.fetchrow(
					"""
					INSERT INTO invitations (id, email, display_name, role, club_id, invited_by, status,
						created_at, expires_at)
					VALUES ($1, $2, $3, $4, $5, $6, 'pending', $7, $8)
					RETURNING *
					""",
					invitation.id,
					invitation.email,
					invitation.display_name,
					invitation.role,
					invitation.club_id,
					invitation.invited_by,
					invitation.created_at,
					invitation.expires_at,
				)
		return models.Invitation.model_validate(dict(record)), [row["id"] for row in superseded]

	async def get_invitation(self, invitation_id: str) -> models.Invitation | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow("SELECT * FROM invitations WHERE id=$1", invitation_id)
		return models.Invitation.model_validate(dict(record)) if record else None

	async def cancel_invitation(self, invitation_id: str) -> models.Invitation:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"""
				UPDATE invitations SET status='cancelled'
				WHERE id=$1 AND status IN ('pending', 'cancelled')
				RETURNING *
				""",
				invitation_id,
			)
		if not record:
			raise NoLongerValid("invitation_not_pending")
		return models.Invitation.model_validate(dict(record))

	async def redeem_invitation(
		self,
		invitation_id: str,
		*,
		uid: str,
		email: str,
		now: datetime,
	) -> tuple[models.Invitation, models.User]:
		"""Create or attach the user and accept the invitation in one transaction."""
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				invite = await conn.fetchrow(
					"""
					UPDATE invitations SET status='accepted', accepted_at=$2, accepted_by=$3
					WHERE id=$1 AND status='pending'
					RETURNING *
					""",
					invitation_id,
					now,
					uid,
				)
				if not invite:
					raise NoLongerValid("invitation_not_pending")
				existing = await conn.fetchrow("SELECT club_id FROM users WHERE uid=$1 FOR UPDATE", uid)
				if existing and existing["club_id"] not in (None, invite["club_id"]):
					raise AlreadyInClub()
				try:
					user = await conn.fetchrow(
						"""
						INSERT INTO users (uid, email, display_name, role, club_id, status, created_at, last_login)
						VALUES ($1, $2, $3, $4, $5, 'active', $6, $6)
						ON CONFLICT (uid) DO UPDATE SET
							display_name = EXCLUDED.display_name,
							role = EXCLUDED.role,
							club_id = EXCLUDED.club_id,
							status = 'active'
						RETURNING *
						""",
						uid,
						email.lower(),
						invite["display_name"],
						invite["role"],
						invite["club_id"],
						now,
					)
				except asyncpg.UniqueViolationError as exc:  # type: ignore[attr-defined]
					raise AlreadyExists("email_in_use") from exc
			return models.Invitation.model_validate(dict(invite)), await self._user_from_record(conn, user)

	async def list_invitations(self, club_id: str, *, status: Optional[str] = "pending") -> list[models.Invitation]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			records = await conn.fetch(
				"""
				SELECT * FROM invitations
				WHERE club_id=$1 AND ($2::text IS NULL OR status=$2)
				ORDER BY created_at DESC
				""",
				club_id,
				status,
			)
		return [models.Invitation.model_validate(dict(record)) for record in records]

	async def delete_expired_invitations(self, *, before: datetime) -> int:
		pool = await get_pool()
		async with pool.acquire() as conn:
			result = await conn.execute(
				"DELETE FROM invitations WHERE expires_at < $1 AND status <> 'accepted'",
				before,
			)
		return int(result.split()[-1]) if result else 0

	# --- Join requests -----------------------------------------------------

	async def create_join_request(self, request: models.JoinRequest) -> models.JoinRequest:
		pool = await get_pool()
		async with pool.acquire() as conn:
			try:
				record = await conn.fetchrow(
					"""
					INSERT INTO join_requests (id, user_id, club_id, user_name, user_email, status, created_at)
					VALUES ($1, $2, $3, $4, $5, 'pending', $6)
					RETURNING *
					""",
					request.id,
					request.user_id,
					request.club_id,
					request.user_name,
					request.user_email,
					request.created_at,
				)
			except asyncpg.UniqueViolationError as exc:  # type: ignore[attr-defined]
				raise AlreadyExists("duplicate_request") from exc
		return models.JoinRequest.model_validate(dict(record))

	async def get_join_request(self, request_id: str) -> models.JoinRequest | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow("SELECT * FROM join_requests WHERE id=$1", request_id)
		return models.JoinRequest.model_validate(dict(record)) if record else None

	async def find_pending_join_request(self, user_id: str, club_id: str) -> models.JoinRequest | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"SELECT * FROM join_requests WHERE user_id=$1 AND club_id=$2 AND status='pending'",
				user_id,
				club_id,
			)
		return models.JoinRequest.model_validate(dict(record)) if record else None

	async def list_join_requests(self, club_id: str, *, status: Optional[str] = None) -> list[models.JoinRequest]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			records = await conn.fetch(
				"""
				SELECT * FROM join_requests
				WHERE club_id=$1 AND ($2::text IS NULL OR status=$2)
				ORDER BY created_at DESC
				""",
				club_id,
				status,
			)
		return [models.JoinRequest.model_validate(dict(record)) for record in records]

	async def list_user_join_requests(self, user_id: str) -> list[models.JoinRequest]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			records = await conn.fetch(
				"SELECT * FROM join_requests WHERE user_id=$1 ORDER BY created_at DESC",
				user_id,
			)
		return [models.JoinRequest.model_validate(dict(record)) for record in records]

	async def approve_join_request(
		self,
		request_id: str,
		*,
		approver_uid: str,
		role: str,
		now: datetime,
	) -> tuple[models.JoinRequest, models.User]:
		"""Attach the requester to the club and mark the request approved atomically."""
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				request = await conn.fetchrow(
					"""
					UPDATE join_requests SET status='approved', processed_at=$2, processed_by=$3
					WHERE id=$1 AND status='pending'
					RETURNING *
					""",
					request_id,
					now,
					approver_uid,
				)
				if not request:
					raise NoLongerValid("join_request_not_pending")
				user = await conn.fetchrow(
					"UPDATE users SET club_id=$2, role=$3, status='active' WHERE uid=$1 RETURNING *",
					request["user_id"],
					request["club_id"],
					role,
				)
				if not user:
					raise NotFound("user_not_found")
			return models.JoinRequest.model_validate(dict(request)), await self._user_from_record(conn, user)

	async def reject_join_request(self, request_id: str, *, approver_uid: str, now: datetime) -> models.JoinRequest:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"""
				UPDATE join_requests SET status='rejected', processed_at=$2, processed_by=$3
				WHERE id=$1 AND status='pending'
				RETURNING *
				""",
				request_id,
				now,
				approver_uid,
			)
		if not record:
			raise NoLongerValid("join_request_not_pending")
		return models.JoinRequest.model_validate(dict(record))

	# --- Events ------------------------------------------------------------

	async def _attach_attendees(self, conn: asyncpg.Connection, records: Iterable[asyncpg.Record]) -> list[models.Event]:
		rows = [dict(record) for record in records]
		if not rows:
			return []
		attendees = await conn.fetch(
			"""
			SELECT * FROM event_attendees
			WHERE event_id = ANY($1::text[])
			ORDER BY joined_at ASC, uid ASC
			""",
			[row["id"] for row in rows],
		)
		by_event: dict[str, list[dict[str, Any]]] = {}
		for attendee in attendees:
			by_event.setdefault(attendee["event_id"], []).append(dict(attendee))
		for row in rows:
			row["attendees"] = by_event.get(row["id"], [])
		return [models.Event.model_validate(row) for row in rows]

	async def create_events(self, events: Sequence[models.Event]) -> list[models.Event]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				records = []
				for event in events:
					record = await conn.fetchrow(
						"""
						INSERT INTO events (id, club_id, name, location, distance, date, description, signup_link,
							created_by, created_by_email, created_at, is_recurring, recurring_pattern, recurring_end_date)
						VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14)
						RETURNING *
						""",
						event.id,
						event.club_id,
						event.name,
						event.location,
						event.distance,
						event.date,
						event.description,
						event.signup_link,
						event.created_by,
						event.created_by_email,
						event.created_at,
						event.is_recurring,
						event.recurring_pattern,
						event.recurring_end_date,
					)
					records.append(record)
			return await self._attach_attendees(conn, records)

	async def get_event(self, event_id: str) -> models.Event | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow("SELECT * FROM events WHERE id=$1", event_id)
			if not record:
				return None
			events = await self._attach_attendees(conn, [record])
		return events[0]

	async def update_event(self, event_id: str, fields: dict[str, Any]) -> models.Event:
		assignments, values = _set_clause(fields, _EVENT_UPDATABLE)
		pool = await get_pool()
		async with pool.acquire() as conn:
			if assignments:
				record = await conn.fetchrow(
					f"UPDATE events SET {assignments} WHERE id=$1 RETURNING *",
					event_id,
					*values,
				)
			else:
				record = await conn.fetchrow("SELECT * FROM events WHERE id=$1", event_id)
			if not record:
				raise NotFound("event_not_found")
			events = await self._attach_attendees(conn, [record])
		return events[0]

	async def delete_event(self, event_id: str) -> bool:
		pool = await get_pool()
		async with pool.acquire() as conn:
			result = await conn.execute("DELETE FROM events WHERE id=$1", event_id)
		return result.endswith(" 1")

	async def upsert_attendee(self, event_id: str, attendee: models.Attendee) -> None:
		"""Add the RSVP keyed by uid; an existing row keeps its joined_at."""
		pool = await get_pool()
		async with pool.acquire() as conn:
			await conn.execute(
				"""
				INSERT INTO event_attendees (event_id, uid, email, display_name, club_name, joined_at)
				VALUES ($1, $2, $3, $4, $5, $6)
				ON CONFLICT (event_id, uid) DO UPDATE SET
					email = EXCLUDED.email,
					display_name = EXCLUDED.display_name,
					club_name = EXCLUDED.club_name
				""",
				event_id,
				attendee.uid,
				attendee.email,
				attendee.display_name,
				attendee.club_name,
				attendee.joined_at,
			)

	async def remove_attendee(self, event_id: str, uid: str) -> None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			await conn.execute("DELETE FROM event_attendees WHERE event_id=$1 AND uid=$2", event_id, uid)

	async def list_events(
		self,
		*,
		start: Optional[datetime] = None,
		end: Optional[datetime] = None,
		club_id: Optional[str] = None,
	) -> list[models.Event]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			records = await conn.fetch(
				"""
				SELECT * FROM events
				WHERE ($1::timestamptz IS NULL OR date >= $1)
					AND ($2::timestamptz IS NULL OR date <= $2)
					AND ($3::text IS NULL OR club_id = $3)
				ORDER BY date ASC
				""",
				start,
				end,
				club_id,
			)
			return await self._attach_attendees(conn, records)

	async def list_attended_events(self, uid: str, *, before: Optional[datetime] = None) -> list[models.Event]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			records = await conn.fetch(
				"""
				SELECT e.* FROM events e
				JOIN event_attendees a ON a.event_id = e.id
				WHERE a.uid=$1 AND ($2::timestamptz IS NULL OR e.date < $2)
				ORDER BY e.date ASC
				""",
				uid,
				before,
			)
			return await self._attach_attendees(conn, records)
