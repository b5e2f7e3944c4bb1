from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from running_diary.domain.errors import InvalidArgument, NotFound, PermissionDenied
from running_diary.domain.events_service import EventsService
from running_diary.domain.schemas import EventCreateRequest, EventUpdateRequest

CLUB_ID = "club_1_abc"
NOW = datetime(2024, 3, 1, 12, tzinfo=timezone.utc)


@pytest.fixture
def service(repo) -> EventsService:
	repo.add_club(CLUB_ID, "Harbour Harriers")
	repo.add_user("coach", "coach@club.com", role="moderator", club_id=CLUB_ID, display_name="Coach")
	repo.add_user("runner", "runner@club.com", club_id=CLUB_ID, display_name="Rita")
	repo.add_user("guest", "guest@x.com", display_name="Gus")
	return EventsService(repository=repo, clock=lambda: NOW)


def _payload(**overrides) -> EventCreateRequest:
	data = {
		"name": "Saturday Long Run",
		"location": "Harbour",
		"distance": "10 Miles",
		"date": datetime(2024, 3, 2, 8, tzinfo=timezone.utc),
	}
	data.update(overrides)
	return EventCreateRequest(**data)


@pytest.mark.asyncio
async def test_staff_creates_single_event(service):
	events = await service.create_event("coach", _payload())
	assert len(events) == 1
	event = events[0]
	assert event.club_id == CLUB_ID
	assert event.created_by == "coach"
	assert event.created_by_email == "coach@club.com"
	assert event.distance == "10 Miles"
	assert event.is_recurring is False
	assert event.attendees == []


@pytest.mark.asyncio
async def test_recurring_event_creates_each_occurrence(service):
	events = await service.create_event(
		"coach",
		_payload(
			is_recurring=True,
			recurring_pattern="weekly-saturday",
			recurring_end_date=datetime(2024, 3, 30, tzinfo=timezone.utc),
		),
	)
	assert [event.date.day for event in events] == [2, 9, 16, 23, 30]
	assert len({event.id for event in events}) == 5
	assert all(event.recurring_pattern == "weekly-saturday" for event in events)


@pytest.mark.asyncio
async def test_recurring_without_end_date_rejected(service):
	with pytest.raises(InvalidArgument):
		await service.create_event("coach", _payload(is_recurring=True, recurring_pattern="daily"))


@pytest.mark.asyncio
async def test_members_cannot_create_events(service):
	with pytest.raises(PermissionDenied):
		await service.create_event("runner", _payload())
	with pytest.raises(PermissionDenied):
		await service.create_event("guest", _payload())


@pytest.mark.asyncio
async def test_rsvp_twice_keeps_one_row(service):
	event = (await service.create_event("coach", _payload()))[0]
	await service.rsvp_to_event("runner", event.id, True)
	updated = await service.rsvp_to_event("runner", event.id, True)
	assert [attendee.uid for attendee in updated.attendees] == ["runner"]
	assert updated.attendees[0].club_name == "Harbour Harriers"


@pytest.mark.asyncio
async def test_rsvp_after_display_name_change_refreshes_row(service, repo):
	event = (await service.create_event("coach", _payload()))[0]
	await service.rsvp_to_event("runner", event.id, True)
	await repo.update_display_name("runner", "Rita R.")
	updated = await service.rsvp_to_event("runner", event.id, True)
	assert len(updated.attendees) == 1
	assert updated.attendees[0].display_name == "Rita R."


@pytest.mark.asyncio
async def test_rsvp_remove(service):
	event = (await service.create_event("coach", _payload()))[0]
	await service.rsvp_to_event("guest", event.id, True)
	updated = await service.rsvp_to_event("guest", event.id, False)
	assert updated.attendees == []
	again = await service.rsvp_to_event("guest", event.id, False)
	assert again.attendees == []


@pytest.mark.asyncio
async def test_rsvp_unknown_event(service):
	with pytest.raises(NotFound):
		await service.rsvp_to_event("runner", "missing", True)


@pytest.mark.asyncio
async def test_only_creator_or_staff_edit(service):
	event = (await service.create_event("coach", _payload()))[0]
	with pytest.raises(PermissionDenied):
		await service.update_event("runner", event.id, EventUpdateRequest(name="Hijacked"))
	updated = await service.update_event("coach", event.id, EventUpdateRequest(distance="5K"))
	assert updated.distance == "5K"
	assert updated.name == "Saturday Long Run"
	await service.delete_event("coach", event.id)
	with pytest.raises(NotFound):
		await service.get_event(event.id)


@pytest.mark.asyncio
async def test_month_listing_and_past_events(service):
	march = (await service.create_event("coach", _payload()))[0]
	april = (await service.create_event("coach", _payload(date=datetime(2024, 4, 6, 8, tzinfo=timezone.utc))))[0]
	early = (await service.create_event("coach", _payload(date=NOW - timedelta(days=3))))[0]
	assert [event.id for event in await service.list_events_for_month(2024, 4)] == [april.id]
	assert {event.id for event in await service.list_events_for_month(2024, 3)} == {march.id}
	await service.rsvp_to_event("runner", early.id, True)
	await service.rsvp_to_event("runner", april.id, True)
	assert [event.id for event in await service.past_events("runner")] == [early.id]
	assert [event.id for event in await service.list_user_events("runner")] == [early.id, april.id]
	with pytest.raises(InvalidArgument):
		await service.list_events_for_month(2024, 13)
	with pytest.raises(InvalidArgument):
		await service.list_events_for_month(0, 5)
