from __future__ import annotations

from datetime import datetime, timezone

import pytest

from running_diary.domain import models, permissions
from running_diary.domain.errors import PermissionDenied


def _user(uid: str, role: str = "member", club_id: str | None = "club_1", status: str = "active") -> models.User:
	return models.User(
		uid=uid,
		email=f"{uid}@example.com",
		display_name=uid,
		role=role,
		club_id=club_id,
		status=status,
		created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
	)


@pytest.mark.parametrize(
	"actor_role,target_role,expected",
	[
		("admin", "member", True),
		("admin", "moderator", True),
		("admin", "admin", True),
		("moderator", "member", True),
		("moderator", "moderator", False),
		("moderator", "admin", False),
		("member", "member", False),
		("member", "moderator", False),
		("member", "admin", False),
	],
)
def test_can_edit_member_table(actor_role, target_role, expected):
	actor = _user("actor", actor_role)
	target = _user("target", target_role)
	assert permissions.can_edit_member(actor, target) is expected
	assert permissions.can_remove_member(actor, target) is expected


@pytest.mark.parametrize("role", ["admin", "moderator", "member"])
def test_nobody_edits_themselves(role):
	actor = _user("same", role)
	assert permissions.can_edit_member(actor, actor) is False


def test_available_invite_roles():
	assert permissions.available_invite_roles("admin") == {"member", "moderator", "admin"}
	assert permissions.available_invite_roles("moderator") == {"member"}
	assert permissions.available_invite_roles("member") == {"member"}
	assert permissions.available_invite_roles(None) == {"member"}


def test_editable_roles():
	assert permissions.editable_roles("admin") == {"member", "moderator", "admin"}
	assert permissions.editable_roles("moderator") == {"member", "moderator"}
	assert permissions.editable_roles("member") == {"member"}


def test_staff_requires_active_profile_in_same_club():
	assert permissions.is_club_staff(_user("a", "admin"), "club_1")
	assert permissions.is_club_staff(_user("m", "moderator"), "club_1")
	assert not permissions.is_club_staff(_user("r", "member"), "club_1")
	assert not permissions.is_club_staff(_user("a", "admin"), "club_2")
	assert not permissions.is_club_staff(_user("a", "admin", status="inactive"), "club_1")
	assert not permissions.is_club_staff(None, "club_1")


def test_assert_can_edit_member_rejects_other_club():
	actor = _user("actor", "admin", club_id="club_1")
	target = _user("target", "member", club_id="club_2")
	with pytest.raises(PermissionDenied):
		permissions.assert_can_edit_member(actor, target)


def test_moderator_cannot_invite_moderator():
	with pytest.raises(PermissionDenied):
		permissions.assert_can_invite("moderator", "moderator")
	permissions.assert_can_invite("admin", "moderator")


def test_event_creator_or_staff_can_edit():
	now = datetime(2024, 5, 1, tzinfo=timezone.utc)
	event = models.Event(
		id="e1",
		club_id="club_1",
		name="Tempo",
		date=now,
		created_by="creator",
		created_by_email="creator@example.com",
		created_at=now,
	)
	assert permissions.can_edit_event(_user("creator", "member"), event)
	assert permissions.can_edit_event(_user("mod", "moderator"), event)
	assert not permissions.can_edit_event(_user("runner", "member"), event)
	with pytest.raises(PermissionDenied):
		permissions.assert_can_edit_event(_user("other", "admin", club_id="club_2"), event)
