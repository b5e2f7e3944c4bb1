"""Authorization policies for club membership and event operations.

Predicates are pure. The ``assert_*`` helpers raise ``PermissionDenied`` and are
what the services call; they always receive the actor's stored profile.
"""

from __future__ import annotations

from typing import Optional

from running_diary.domain import models
from running_diary.domain.errors import PermissionDenied


def can_edit_member(actor: models.User, target: models.User) -> bool:
	if target.uid == actor.uid:
		return False
	if actor.role == "admin":
		return True
	if actor.role == "moderator":
		return target.role == "member"
	return False


def can_remove_member(actor: models.User, target: models.User) -> bool:
	return can_edit_member(actor, target)


def available_invite_roles(actor_role: Optional[str]) -> frozenset[str]:
	if actor_role == "admin":
		return frozenset({"member", "moderator", "admin"})
	return frozenset({"member"})


def editable_roles(actor_role: Optional[str]) -> frozenset[str]:
	if actor_role == "admin":
		return frozenset({"member", "moderator", "admin"})
	if actor_role == "moderator":
		return frozenset({"member", "moderator"})
	return frozenset({"member"})


def is_club_staff(actor: Optional[models.User], club_id: Optional[str]) -> bool:
	if actor is None or club_id is None:
		return False
	if actor.status != "active" or actor.club_id != club_id:
		return False
	return actor.role in models.STAFF_ROLES


def can_edit_event(actor: models.User, event: models.Event) -> bool:
	if event.created_by == actor.uid:
		return True
	return is_club_staff(actor, event.club_id)


def assert_club_staff(actor: Optional[models.User], club_id: Optional[str]) -> None:
	if not is_club_staff(actor, club_id):
		raise PermissionDenied("club_staff_required")


def assert_club_admin(actor: Optional[models.User], club_id: Optional[str]) -> None:
	if not is_club_staff(actor, club_id) or actor.role != "admin":
		raise PermissionDenied("club_admin_required")


def assert_can_edit_member(actor: models.User, target: models.User) -> None:
	if target.club_id != actor.club_id or not can_edit_member(actor, target):
		raise PermissionDenied("cannot_edit_member")


def assert_can_remove_member(actor: models.User, target: models.User) -> None:
	if target.club_id != actor.club_id or not can_remove_member(actor, target):
		raise PermissionDenied("cannot_remove_member")


def assert_can_assign(actor_role: Optional[str], role: str) -> None:
	if role not in editable_roles(actor_role):
		raise PermissionDenied("role_not_assignable")


def assert_can_invite(actor_role: Optional[str], role: str) -> None:
	if role not in available_invite_roles(actor_role):
		raise PermissionDenied("role_not_invitable")


def assert_can_edit_event(actor: models.User, event: models.Event) -> None:
	if not can_edit_event(actor, event):
		raise PermissionDenied("cannot_edit_event")
