"""Club registration, lookup and settings endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from running_diary.api.errors import to_http_error
from running_diary.domain import schemas as dto
from running_diary.domain.clubs_service import ClubsService
from running_diary.domain.errors import DiaryError
from running_diary.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["clubs"])
_service = ClubsService()


@router.get("/clubs", response_model=list[dto.ClubResponse])
async def search_clubs_endpoint(
	q: str = Query(default="", max_length=100),
	limit: int = Query(default=20, ge=1, le=50),
) -> list[dto.ClubResponse]:
	clubs = await _service.search_clubs(q, limit=limit)
	return [dto.ClubResponse(**club.model_dump()) for club in clubs]


@router.get("/clubs/name-available", response_model=dto.NameAvailabilityResponse)
async def club_name_available_endpoint(name: str = Query(..., min_length=1, max_length=100)) -> dto.NameAvailabilityResponse:
	available = await _service.check_club_name_available(name)
	return dto.NameAvailabilityResponse(name=name, available=available)


@router.post("/clubs", response_model=dto.ClubResponse, status_code=201)
async def register_club_endpoint(
	payload: dto.ClubCreateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ClubResponse:
	try:
		club = await _service.register_club(auth_user.id, payload)
	except DiaryError as exc:
		raise to_http_error(exc) from exc
	return dto.ClubResponse(**club.model_dump())


@router.get("/clubs/{club_id}", response_model=dto.ClubResponse)
async def get_club_endpoint(club_id: str) -> dto.ClubResponse:
	try:
		club = await _service.get_club(club_id)
	except DiaryError as exc:
		raise to_http_error(exc) from exc
	return dto.ClubResponse(**club.model_dump())


@router.patch("/clubs/{club_id}", response_model=dto.ClubResponse)
async def update_club_endpoint(
	club_id: str,
	payload: dto.ClubUpdateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ClubResponse:
	try:
		club = await _service.update_club(auth_user.id, club_id, payload)
	except DiaryError as exc:
		raise to_http_error(exc) from exc
	return dto.ClubResponse(**club.model_dump())



@router.get("/clubs/{club_id}/admins", response_model=dto.ClubAdminsResponse)
async def club_admins_endpoint(
	club_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ClubAdminsResponse:
	try:
		emails = await _service.club_admin_emails(auth_user.id, club_id)
	except DiaryError as exc:
		raise to_http_error(exc) from exc
	return dto.ClubAdminsResponse(club_id=club_id, emails=emails)


__all__ = ["router"]
