"""Profile, wishlist and badge endpoints for the signed-in runner."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from running_diary.api.errors import to_http_error
from running_diary.domain import schemas as dto
from running_diary.domain.errors import DiaryError
from running_diary.domain.events_service import EventsService
from running_diary.domain.join_requests_service import JoinRequestsService
from running_diary.domain.users_service import UsersService
from running_diary.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["profile"])
_service = UsersService()
_events = EventsService()
_join_requests = JoinRequestsService()


@router.get("/me", response_model=dto.ProfileResponse)
async def get_me_endpoint(auth_user: AuthenticatedUser = Depends(get_current_user)) -> dto.ProfileResponse:
	try:
		user = await _service.ensure_profile(auth_user)
	except DiaryError as exc:
		raise to_http_error(exc) from exc
	return dto.ProfileResponse.from_user(user)


@router.patch("/me", response_model=dto.ProfileResponse)
async def update_me_endpoint(
	payload: dto.ProfileUpdateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ProfileResponse:
	try:
		user = await _service.update_profile(auth_user.id, display_name=payload.display_name)
	except DiaryError as exc:
		raise to_http_error(exc) from exc
	return dto.ProfileResponse.from_user(user)


@router.post("/me/wishlist/{event_id}", response_model=dto.WishlistResponse)
async def toggle_wishlist_endpoint(
	event_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.WishlistResponse:
	try:
		wishlisted = await _service.toggle_wishlist(auth_user.id, event_id)
	except DiaryError as exc:
		raise to_http_error(exc) from exc
	return dto.WishlistResponse(event_id=event_id, wishlisted=wishlisted)


@router.get("/me/badges", response_model=dto.BadgesResponse)
async def badges_endpoint(auth_user: AuthenticatedUser = Depends(get_current_user)) -> dto.BadgesResponse:
	return await _service.badges(auth_user.id)


@router.get("/me/events", response_model=dto.EventListResponse)
async def my_events_endpoint(auth_user: AuthenticatedUser = Depends(get_current_user)) -> dto.EventListResponse:
	events = await _events.list_user_events(auth_user.id)
	return dto.EventListResponse(items=[dto.EventResponse(**event.model_dump()) for event in events])


@router.get("/me/join-requests", response_model=list[dto.JoinRequestResponse])
async def my_join_requests_endpoint(
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> list[dto.JoinRequestResponse]:
	requests = await _join_requests.list_user_requests(auth_user.id)
	return [dto.JoinRequestResponse(**item.model_dump()) for item in requests]


__all__ = ["router"]
