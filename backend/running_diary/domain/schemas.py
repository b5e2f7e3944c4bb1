"""Pydantic schemas for the running diary API."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from running_diary.domain.models import Attendee, InvitationStatus, JoinRequestStatus, PlanType, Role, User, UserStatus


class ProfileResponse(BaseModel):
	uid: str
	email: str
	display_name: str
	role: Role
	club_id: Optional[str] = None
	status: UserStatus
	wishlist: List[str] = Field(default_factory=list)
	created_at: datetime
	last_login: Optional[datetime] = None

	@classmethod
	def from_user(cls, user: User) -> "ProfileResponse":
		data = user.model_dump()
		data["wishlist"] = sorted(user.wishlist)
		return cls(**data)


class ProfileUpdateRequest(BaseModel):
	display_name: str = Field(..., min_length=1, max_length=100)


class MemberRoleResponse(BaseModel):
	uid: str
	role: Role


class ClubAdminsResponse(BaseModel):
	club_id: str
	emails: List[str]


class MemberResponse(BaseModel):
	uid: str
	email: str
	display_name: str
	role: Role
	status: UserStatus


class RoleUpdateRequest(BaseModel):
	role: Role


class WishlistResponse(BaseModel):
	event_id: str
	wishlisted: bool


class Badge(BaseModel):
	id: str
	name: str
	description: str
	earned: bool


class BadgesResponse(BaseModel):
	events_attended: int
	items: List[Badge]


class ClubCreateRequest(BaseModel):
	name: str = Field(..., min_length=1, max_length=100)
	description: str = Field(default="", max_length=2000)
	location: str = Field(default="", max_length=200)
	website: str = Field(default="", max_length=200)
	image: Optional[str] = Field(default=None, max_length=500)
	plan_type: PlanType = "7day-trial"


class ClubUpdateRequest(BaseModel):
	name: Optional[str] = Field(default=None, min_length=1, max_length=100)
	description: Optional[str] = Field(default=None, max_length=2000)
	location: Optional[str] = Field(default=None, max_length=200)
	website: Optional[str] = Field(default=None, max_length=200)
	image: Optional[str] = Field(default=None, max_length=500)

	@field_validator("name", "description", "location", "website")
	@classmethod
	def _not_null(cls, value: Optional[str]) -> str:
		if value is None:
			raise ValueError("field may not be null")
		return value


class ClubResponse(BaseModel):
	id: str
	name: str
	description: str
	location: str
	website: str
	image: Optional[str] = None
	plan_type: PlanType
	plan_expires_at: Optional[datetime] = None
	created_at: datetime
	is_active: bool


class NameAvailabilityResponse(BaseModel):
	name: str
	available: bool


class InvitationCreateRequest(BaseModel):
	email: str = Field(..., min_length=3, max_length=254)
	display_name: str = Field(..., min_length=1, max_length=100)
	role: Role = "member"


class InvitationResponse(BaseModel):
	id: str
	email: str
	display_name: str
	role: Role
	club_id: str
	invited_by: str
	status: InvitationStatus
	created_at: datetime
	expires_at: datetime
	accepted_at: Optional[datetime] = None
	accepted_by: Optional[str] = None


class InvitationCreateResponse(BaseModel):
	invitation: InvitationResponse
	invitation_link: str
	email_sent: bool


class RedeemResponse(BaseModel):
	invitation: InvitationResponse
	user: ProfileResponse


class JoinRequestResponse(BaseModel):
	id: str
	user_id: str
	club_id: str
	user_name: str
	user_email: str
	status: JoinRequestStatus
	created_at: datetime
	processed_at: Optional[datetime] = None
	processed_by: Optional[str] = None


class JoinRequestCreateResponse(BaseModel):
	request: JoinRequestResponse
	email_sent: bool


class JoinRequestApproveRequest(BaseModel):
	user_id: str
	club_id: str


class JoinRequestApproveResponse(BaseModel):
	request: JoinRequestResponse
	email_sent: bool


class EventCreateRequest(BaseModel):
	name: str = Field(..., min_length=1, max_length=200)
	location: str = Field(default="", max_length=200)
	distance: str = Field(default="", max_length=50)
	date: datetime
	description: str = Field(default="", max_length=4000)
	signup_link: Optional[str] = Field(default=None, max_length=500)
	is_recurring: bool = False
	recurring_pattern: Optional[str] = None
	recurring_end_date: Optional[datetime] = None


class EventUpdateRequest(BaseModel):
	name: Optional[str] = Field(default=None, min_length=1, max_length=200)
	location: Optional[str] = Field(default=None, max_length=200)
	distance: Optional[str] = Field(default=None, max_length=50)
	date: Optional[datetime] = None
	description: Optional[str] = Field(default=None, max_length=4000)
	signup_link: Optional[str] = Field(default=None, max_length=500)

	@field_validator("name", "location", "distance", "date", "description")
	@classmethod
	def _not_null(cls, value: Any) -> Any:
		if value is None:
			raise ValueError("field may not be null")
		return value


class EventResponse(BaseModel):
	id: str
	club_id: Optional[str] = None
	name: str
	location: str
	distance: str
	date: datetime
	description: str
	signup_link: Optional[str] = None
	attendees: List[Attendee]
	created_by: str
	created_by_email: str
	created_at: datetime
	is_recurring: bool
	recurring_pattern: Optional[str] = None
	recurring_end_date: Optional[datetime] = None


class EventListResponse(BaseModel):
	items: List[EventResponse]


class RsvpRequest(BaseModel):
	attend: bool = True


class RsvpResponse(BaseModel):
	event_id: str
	attending: bool
	attendee_count: int


class FunctionCallRequest(BaseModel):
	data: Dict[str, Any] = Field(default_factory=dict)
