"""Domain models for the running diary core entities."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

Role = Literal["member", "moderator", "admin"]
UserStatus = Literal["active", "inactive"]
InvitationStatus = Literal["pending", "accepted", "cancelled"]
JoinRequestStatus = Literal["pending", "approved", "rejected"]
PlanType = Literal["7day-trial", "monthly", "yearly"]

ROLES: tuple[str, ...] = ("member", "moderator", "admin")
STAFF_ROLES = frozenset({"moderator", "admin"})


class User(BaseModel):
	"""A runner profile keyed by the identity provider uid."""

	uid: str
	email: str
	display_name: str
	role: Role = "member"
	club_id: Optional[str] = None
	status: UserStatus = "active"
	wishlist: set[str] = Field(default_factory=set)
	created_at: datetime
	last_login: Optional[datetime] = None

	model_config = ConfigDict(from_attributes=True)


class Club(BaseModel):
	"""Represents a running club."""

	id: str
	name: str
	description: str = ""
	location: str = ""
	website: str = ""
	image: Optional[str] = None
	plan_type: PlanType = "7day-trial"
	plan_expires_at: Optional[datetime] = None
	created_by: Optional[str] = None
	created_at: datetime
	is_active: bool = True

	model_config = ConfigDict(from_attributes=True)


class Invitation(BaseModel):
	"""Represents an invitation addressed to an email."""

	id: str
	email: str
	display_name: str
	role: Role
	club_id: str
	invited_by: str
	status: InvitationStatus = "pending"
	created_at: datetime
	expires_at: datetime
	accepted_at: Optional[datetime] = None
	accepted_by: Optional[str] = None

	model_config = ConfigDict(from_attributes=True)


class JoinRequest(BaseModel):
	"""Represents a user asking to join a club."""

	id: str
	user_id: str
	club_id: str
	user_name: str
	user_email: str
	status: JoinRequestStatus = "pending"
	created_at: datetime
	processed_at: Optional[datetime] = None
	processed_by: Optional[str] = None

	model_config = ConfigDict(from_attributes=True)


class Attendee(BaseModel):
	"""One RSVP row, unique per (event, uid)."""

	uid: str
	email: str
	display_name: str
	club_name: str = ""
	joined_at: datetime

	model_config = ConfigDict(from_attributes=True)


class Event(BaseModel):
	"""Represents a scheduled run."""

	id: str
	club_id: Optional[str] = None
	name: str
	location: str = ""
	distance: str = ""
	date: datetime
	description: str = ""
	signup_link: Optional[str] = None
	attendees: list[Attendee] = Field(default_factory=list)
	created_by: str
	created_by_email: str
	created_at: datetime
	is_recurring: bool = False
	recurring_pattern: Optional[str] = None
	recurring_end_date: Optional[datetime] = None

	model_config = ConfigDict(from_attributes=True)

	def is_attending(self, uid: str) -> bool:
		return any(attendee.uid == uid for attendee in self.attendees)
