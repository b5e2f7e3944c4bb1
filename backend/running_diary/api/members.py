"""Club membership endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from running_diary.api.errors import to_http_error
from running_diary.domain import schemas as dto
from running_diary.domain.errors import DiaryError, NotFound
from running_diary.domain.members_service import MembersService
from running_diary.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["members"])
_service = MembersService()


@router.get("/clubs/{club_id}/members", response_model=list[dto.MemberResponse])
async def list_members_endpoint(
	club_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> list[dto.MemberResponse]:
	try:
		members = await _service.list_members(auth_user.id, club_id)
	except DiaryError as exc:
		raise to_http_error(exc) from exc
	return [dto.MemberResponse(**member.model_dump()) for member in members]


@router.get("/members/{uid}/role", response_model=dto.MemberRoleResponse)
async def get_member_role_endpoint(
	uid: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.MemberRoleResponse:
	role = await _service.get_user_role(uid)
	if role is None:
		raise to_http_error(NotFound("user_not_found"))
	return dto.MemberRoleResponse(uid=uid, role=role)


@router.put("/members/{uid}/role", response_model=dto.MemberResponse)
async def update_member_role_endpoint(
	uid: str,
	payload: dto.RoleUpdateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.MemberResponse:
	try:
		member = await _service.update_member_role(auth_user.id, uid, payload.role)
	except DiaryError as exc:
		raise to_http_error(exc) from exc
	return dto.MemberResponse(**member.model_dump())


@router.delete("/members/{uid}", response_model=dto.MemberResponse)
async def remove_member_endpoint(
	uid: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.MemberResponse:
	try:
		member = await _service.remove_member(auth_user.id, uid)
	except DiaryError as exc:
		raise to_http_error(exc) from exc
	return dto.MemberResponse(**member.model_dump())


__all__ = ["router"]
