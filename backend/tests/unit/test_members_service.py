from __future__ import annotations

import pytest

from running_diary.domain.errors import InvalidArgument, PermissionDenied
from running_diary.domain.members_service import MembersService

CLUB_ID = "club_1_abc"


@pytest.fixture
def service(repo) -> MembersService:
	repo.add_club(CLUB_ID)
	repo.add_user("admin-1", "admin@club.com", role="admin", club_id=CLUB_ID)
	repo.add_user("mod-1", "mod@club.com", role="moderator", club_id=CLUB_ID)
	repo.add_user("mod-2", "mod2@club.com", role="moderator", club_id=CLUB_ID)
	repo.add_user("runner", "runner@club.com", club_id=CLUB_ID)
	repo.add_user("outsider", "out@else.com", club_id="club_2_xyz")
	return MembersService(repository=repo)


@pytest.mark.asyncio
async def test_admin_promotes_member(service, repo):
	updated = await service.update_member_role("admin-1", "runner", "moderator")
	assert updated.role == "moderator"
	assert await service.get_user_role("runner") == "moderator"


@pytest.mark.asyncio
async def test_moderator_cannot_touch_other_moderator(service):
	with pytest.raises(PermissionDenied):
		await service.update_member_role("mod-1", "mod-2", "member")
	with pytest.raises(PermissionDenied):
		await service.remove_member("mod-1", "mod-2")


@pytest.mark.asyncio
async def test_moderator_cannot_grant_admin(service):
	with pytest.raises(PermissionDenied):
		await service.update_member_role("mod-1", "runner", "admin")


@pytest.mark.asyncio
async def test_self_edit_denied(service):
	with pytest.raises(PermissionDenied):
		await service.update_member_role("admin-1", "admin-1", "member")


@pytest.mark.asyncio
async def test_cross_club_edit_denied(service):
	with pytest.raises(PermissionDenied):
		await service.update_member_role("admin-1", "outsider", "moderator")


@pytest.mark.asyncio
async def test_unknown_role_rejected(service):
	with pytest.raises(InvalidArgument):
		await service.update_member_role("admin-1", "runner", "owner")


@pytest.mark.asyncio
async def test_remove_member_is_soft(service, repo):
	removed = await service.remove_member("mod-1", "runner")
	assert removed.club_id is None
	assert removed.status == "inactive"
	assert "runner" in repo.users
	members = await service.list_members("admin-1", CLUB_ID)
	assert "runner" not in {member.uid for member in members}


@pytest.mark.asyncio
async def test_list_members_requires_membership(service):
	with pytest.raises(PermissionDenied):
		await service.list_members("outsider", CLUB_ID)
