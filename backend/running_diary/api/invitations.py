"""Invitation endpoints for club membership."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from running_diary.api.errors import to_http_error
from running_diary.domain import schemas as dto
from running_diary.domain.errors import DiaryError
from running_diary.domain.invitations_service import InvitationsService
from running_diary.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["invitations"])
_service = InvitationsService()


@router.get("/clubs/{club_id}/invitations", response_model=list[dto.InvitationResponse])
async def list_invitations_endpoint(
	club_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> list[dto.InvitationResponse]:
	try:
		invitations = await _service.list_pending_invitations(auth_user.id, club_id)
	except DiaryError as exc:
		raise to_http_error(exc) from exc
	return [dto.InvitationResponse(**invitation.model_dump()) for invitation in invitations]


@router.post("/clubs/{club_id}/invitations", response_model=dto.InvitationCreateResponse, status_code=201)
async def create_invitation_endpoint(
	club_id: str,
	payload: dto.InvitationCreateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.InvitationCreateResponse:
	try:
		invitation, email_sent = await _service.create_invitation(
			auth_user.id,
			club_id,
			email=payload.email,
			display_name=payload.display_name,
			role=payload.role,
		)
	except DiaryError as exc:
		raise to_http_error(exc) from exc
	return dto.InvitationCreateResponse(
		invitation=dto.InvitationResponse(**invitation.model_dump()),
		invitation_link=_service.invitation_link(invitation),
		email_sent=email_sent,
	)


@router.get("/invitations/{invitation_id}", response_model=dto.InvitationResponse)
async def verify_invitation_endpoint(invitation_id: str) -> dto.InvitationResponse:
	try:
		invitation = await _service.verify_invitation(invitation_id)
	except DiaryError as exc:
		raise to_http_error(exc) from exc
	return dto.InvitationResponse(**invitation.model_dump())


@router.post("/invitations/{invitation_id}/redeem", response_model=dto.RedeemResponse)
async def redeem_invitation_endpoint(
	invitation_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.RedeemResponse:
	try:
		invitation, user = await _service.redeem_invitation(invitation_id, auth_user.email, auth_user.id)
	except DiaryError as exc:
		raise to_http_error(exc) from exc
	return dto.RedeemResponse(
		invitation=dto.InvitationResponse(**invitation.model_dump()),
		user=dto.ProfileResponse.from_user(user),
	)


@router.post("/invitations/{invitation_id}/cancel", response_model=dto.InvitationResponse)
async def cancel_invitation_endpoint(
	invitation_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.InvitationResponse:
	try:
		invitation = await _service.cancel_invitation(auth_user.id, invitation_id)
	except DiaryError as exc:
		raise to_http_error(exc) from exc
	return dto.InvitationResponse(**invitation.model_dump())


@router.post("/invitations/{invitation_id}/resend", response_model=dto.InvitationCreateResponse)
async def resend_invitation_endpoint(
	invitation_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.InvitationCreateResponse:
	try:
		invitation, email_sent = await _service.resend_invitation(auth_user.id, invitation_id)
	except DiaryError as exc:
		raise to_http_error(exc) from exc
	return dto.InvitationCreateResponse(
		invitation=dto.InvitationResponse(**invitation.model_dump()),
		invitation_link=_service.invitation_link(invitation),
		email_sent=email_sent,
	)


__all__ = ["router"]
