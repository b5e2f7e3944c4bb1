"""Event calendar and RSVP endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from running_diary.api.errors import to_http_error
from running_diary.domain import schemas as dto
from running_diary.domain.errors import DiaryError
from running_diary.domain.events_service import EventsService
from running_diary.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["events"])
_service = EventsService()


def _to_response(event) -> dto.EventResponse:
	return dto.EventResponse(**event.model_dump())


@router.get("/events", response_model=dto.EventListResponse)
async def list_events_endpoint(
	start: Optional[datetime] = Query(default=None),
	end: Optional[datetime] = Query(default=None),
	club_id: Optional[str] = Query(default=None),
) -> dto.EventListResponse:
	events = await _service.list_events(start=start, end=end, club_id=club_id)
	return dto.EventListResponse(items=[_to_response(event) for event in events])


@router.post("/events", response_model=dto.EventListResponse, status_code=201)
async def create_event_endpoint(
	payload: dto.EventCreateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.EventListResponse:
	try:
		events = await _service.create_event(auth_user.id, payload)
	except DiaryError as exc:
		raise to_http_error(exc) from exc
	return dto.EventListResponse(items=[_to_response(event) for event in events])


@router.get("/events/month/{year}/{month}", response_model=dto.EventListResponse)
async def month_events_endpoint(year: int, month: int) -> dto.EventListResponse:
	try:
		events = await _service.list_events_for_month(year, month)
	except DiaryError as exc:
		raise to_http_error(exc) from exc
	return dto.EventListResponse(items=[_to_response(event) for event in events])


@router.get("/events/{event_id}", response_model=dto.EventResponse)
async def get_event_endpoint(event_id: str) -> dto.EventResponse:
	try:
		return _to_response(await _service.get_event(event_id))
	except DiaryError as exc:
		raise to_http_error(exc) from exc


@router.patch("/events/{event_id}", response_model=dto.EventResponse)
async def update_event_endpoint(
	event_id: str,
	payload: dto.EventUpdateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.EventResponse:
	try:
		return _to_response(await _service.update_event(auth_user.id, event_id, payload))
	except DiaryError as exc:
		raise to_http_error(exc) from exc


@router.delete("/events/{event_id}", status_code=204)
async def delete_event_endpoint(
	event_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> Response:
	try:
		await _service.delete_event(auth_user.id, event_id)
	except DiaryError as exc:
		raise to_http_error(exc) from exc
	return Response(status_code=204)


@router.post("/events/{event_id}/rsvp", response_model=dto.RsvpResponse)
async def rsvp_endpoint(
	event_id: str,
	payload: dto.RsvpRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.RsvpResponse:
	try:
		event = await _service.rsvp_to_event(auth_user.id, event_id, payload.attend)
	except DiaryError as exc:
		raise to_http_error(exc) from exc
	return dto.RsvpResponse(
		event_id=event.id,
		attending=event.is_attending(auth_user.id),
		attendee_count=len(event.attendees),
	)


__all__ = ["router"]
