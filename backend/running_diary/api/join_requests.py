"""Join request submission and moderation endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from running_diary.api.errors import to_http_error
from running_diary.domain import schemas as dto
from running_diary.domain.errors import DiaryError
from running_diary.domain.join_requests_service import JoinRequestsService
from running_diary.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["join-requests"])
_service = JoinRequestsService()


@router.post("/clubs/{club_id}/join-requests", response_model=dto.JoinRequestCreateResponse, status_code=201)
async def submit_join_request_endpoint(
	club_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.JoinRequestCreateResponse:
	try:
		request, email_sent = await _service.request_to_join(auth_user.id, club_id)
	except DiaryError as exc:
		raise to_http_error(exc) from exc
	return dto.JoinRequestCreateResponse(request=dto.JoinRequestResponse(**request.model_dump()), email_sent=email_sent)


@router.get("/clubs/{club_id}/join-requests", response_model=list[dto.JoinRequestResponse])
async def list_join_requests_endpoint(
	club_id: str,
	status: str | None = Query(default="pending", pattern="^(pending|approved|rejected)$"),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> list[dto.JoinRequestResponse]:
	try:
		requests = await _service.list_club_requests(auth_user.id, club_id, status=status)
	except DiaryError as exc:
		raise to_http_error(exc) from exc
	return [dto.JoinRequestResponse(**item.model_dump()) for item in requests]


@router.post("/join-requests/{request_id}/approve", response_model=dto.JoinRequestApproveResponse)
async def approve_join_request_endpoint(
	request_id: str,
	payload: dto.JoinRequestApproveRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.JoinRequestApproveResponse:
	try:
		request, email_sent = await _service.approve_join_request(
			auth_user.id,
			request_id,
			payload.user_id,
			payload.club_id,
		)
	except DiaryError as exc:
		raise to_http_error(exc) from exc
	return dto.JoinRequestApproveResponse(request=dto.JoinRequestResponse(**request.model_dump()), email_sent=email_sent)


@router.post("/join-requests/{request_id}/reject", response_model=dto.JoinRequestResponse)
async def reject_join_request_endpoint(
	request_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.JoinRequestResponse:
	try:
		request = await _service.reject_join_request(auth_user.id, request_id)
	except DiaryError as exc:
		raise to_http_error(exc) from exc
	return dto.JoinRequestResponse(**request.model_dump())


__all__ = ["router"]
