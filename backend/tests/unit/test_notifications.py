from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from running_diary.domain import models
from running_diary.domain.errors import (
	FailedPrecondition,
	Internal,
	InvalidArgument,
	InvalidFormat,
	NotFound,
	PermissionDenied,
	ResourceExhausted,
)
from running_diary.infra.rate_limit import RateLimiter
from running_diary.notifications.dispatcher import NotificationDispatcher
from running_diary.notifications.mailer import Mailer
from running_diary.notifications.outbox import DEAD_KEY
from running_diary.notifications.templates import RenderedEmail
from running_diary.settings import settings

CLUB_ID = "club_1700000000_abcde"
TOKEN = f"{CLUB_ID}_1700000500000_Xy12Zw34Ab56Cd78Ef90"
NOW = datetime(2024, 4, 1, tzinfo=timezone.utc)


@pytest.fixture
def seeded(repo):
	repo.add_club(CLUB_ID, "Harbour Harriers")
	repo.add_user("admin-1", "admin@club.com", role="admin", club_id=CLUB_ID, display_name="Ada")
	repo.add_user("runner", "runner@x.com", display_name="Rita")
	repo.invitations[TOKEN] = models.Invitation(
		id=TOKEN,
		email="jane@x.com",
		display_name="Jane",
		role="member",
		club_id=CLUB_ID,
		invited_by="admin-1",
		created_at=NOW,
		expires_at=NOW + timedelta(days=7),
	)
	repo.join_requests["req-1"] = models.JoinRequest(
		id="req-1",
		user_id="runner",
		club_id=CLUB_ID,
		user_name="Rita",
		user_email="runner@x.com",
		created_at=NOW,
	)
	return repo


def _invite_data(**overrides):
	data = {"email": "Jane@x.com", "displayName": "Jane", "invitationToken": TOKEN, "clubName": "Harbour Harriers"}
	data.update(overrides)
	return data


@pytest.mark.asyncio
async def test_send_invitation_email(seeded, dispatcher, mailer):
	result = await dispatcher.send_invitation_email("admin-1", _invite_data())
	assert result["success"] is True
	assert result["message"] == "Invitation sent to jane@x.com"
	assert result["emailId"] == "<msg-1@test>"
	assert mailer.sent[0]["to"] == ["jane@x.com"]
	assert f"setup-account?token={TOKEN}" in mailer.sent[0]["html"]


@pytest.mark.asyncio
async def test_invitation_email_argument_checks(seeded, dispatcher):
	with pytest.raises(InvalidArgument):
		await dispatcher.send_invitation_email("admin-1", _invite_data(displayName=""))
	with pytest.raises(InvalidArgument):
		await dispatcher.send_invitation_email("admin-1", _invite_data(email="nope"))
	with pytest.raises(InvalidFormat):
		await dispatcher.send_invitation_email("admin-1", _invite_data(invitationToken="garbage"))
	with pytest.raises(InvalidArgument):
		await dispatcher.send_invitation_email("admin-1", _invite_data(email="other@x.com"))
	with pytest.raises(NotFound):
		await dispatcher.send_invitation_email("admin-1", _invite_data(invitationToken=f"{CLUB_ID}_1_abc"))


@pytest.mark.asyncio
async def test_invitation_email_requires_staff_of_token_club(seeded, dispatcher):
	with pytest.raises(PermissionDenied):
		await dispatcher.send_invitation_email("runner", _invite_data())
	seeded.add_user("foreign", "f@x.com", role="admin", club_id="club_2_zzz")
	with pytest.raises(PermissionDenied):
		await dispatcher.send_invitation_email("foreign", _invite_data())


@pytest.mark.asyncio
async def test_eleventh_send_in_an_hour_is_refused(seeded, repo, mailer, outbox, fake_redis):
	dispatcher = NotificationDispatcher(
		repository=repo,
		mailer=mailer,
		outbox=outbox,
		limiter=RateLimiter("email", limit=10, window_seconds=3600, client=fake_redis),
	)
	for _ in range(10):
		await dispatcher.send_invitation_email("admin-1", _invite_data())
	with pytest.raises(ResourceExhausted):
		await dispatcher.send_invitation_email("admin-1", _invite_data())
	assert len(mailer.sent) == 10


@pytest.mark.asyncio
async def test_join_request_notification_goes_to_staff(seeded, dispatcher, mailer):
	seeded.add_user("mod-1", "MOD@club.com", role="moderator", club_id=CLUB_ID)
	data = {"userName": "Rita", "userEmail": "runner@x.com", "clubName": "Harbour Harriers", "requestId": "req-1"}
	result = await dispatcher.send_join_request_notification("runner", data)
	assert result["message"] == "Notification sent to 2 admin(s)"
	assert sorted(mailer.sent[0]["to"]) == ["admin@club.com", "mod@club.com"]

	narrowed = dict(data, adminEmails=["admin@club.com", "stranger@x.com"])
	await dispatcher.send_join_request_notification("runner", narrowed)
	assert mailer.sent[1]["to"] == ["admin@club.com"]


@pytest.mark.asyncio
async def test_join_request_notification_guards(seeded, dispatcher):
	seeded.add_user("other", "other@x.com")
	data = {"userName": "Rita", "userEmail": "runner@x.com", "clubName": "Harbour Harriers", "requestId": "req-1"}
	with pytest.raises(PermissionDenied):
		await dispatcher.send_join_request_notification("other", data)
	with pytest.raises(NotFound):
		await dispatcher.send_join_request_notification("runner", dict(data, requestId="missing"))
	with pytest.raises(FailedPrecondition):
		await dispatcher.send_join_request_notification("runner", dict(data, adminEmails=["nobody@x.com"]))
	with pytest.raises(InvalidArgument):
		await dispatcher.send_join_request_notification("runner", dict(data, adminEmails=[f"a{i}@x.com" for i in range(11)]))


@pytest.mark.asyncio
async def test_approval_confirmation(seeded, dispatcher, mailer):
	data = {"email": "runner@x.com", "displayName": "Rita", "clubName": "Harbour Harriers", "approvedBy": "Ada"}
	result = await dispatcher.send_approval_confirmation("admin-1", data)
	assert result["message"] == "Approval confirmation sent to runner@x.com"
	assert mailer.sent[0]["from_name"] == "Harbour Harriers"
	with pytest.raises(PermissionDenied):
		await dispatcher.send_approval_confirmation("runner", dict(data, clubId=CLUB_ID))


@pytest.mark.asyncio
async def test_outbox_retries_until_delivered(seeded, dispatcher, mailer, outbox):
	mailer.fail = True
	club = seeded.clubs[CLUB_ID]
	assert await dispatcher.notify_invitation(seeded.invitations[TOKEN], club) is False
	assert await dispatcher.notify_invitation(seeded.invitations[TOKEN], club) is False
	assert await outbox.size() == 1
	assert await outbox.drain(mailer) == 0
	assert (await outbox.pending())[0].attempts == 1

	mailer.fail = False
	assert await outbox.drain(mailer) == 1
	assert await outbox.size() == 0
	assert mailer.sent[0]["to"] == ["jane@x.com"]


@pytest.mark.asyncio
async def test_outbox_moves_exhausted_entries_to_dead_letter(outbox, mailer, fake_redis):
	mailer.fail = True
	await outbox.enqueue(key="approval:r1", kind="approval", to=["a@x.com"], email=RenderedEmail("s", "<p>h</p>"))
	for _ in range(outbox.max_attempts):
		await outbox.drain(mailer)
	assert await outbox.size() == 0
	assert await fake_redis.hexists(DEAD_KEY, "approval:r1")


@pytest.mark.asyncio
async def test_mailer_requires_credentials(monkeypatch):
	monkeypatch.setattr(settings, "smtp_user", None)
	monkeypatch.setattr(settings, "smtp_password", None)
	with pytest.raises(FailedPrecondition):
		await Mailer(send_func=lambda *a, **k: None).send("a@x.com", "s", "<p>h</p>")


@pytest.mark.asyncio
async def test_mailer_builds_message_and_wraps_failures(monkeypatch):
	monkeypatch.setattr(settings, "smtp_user", "club@example.com")
	monkeypatch.setattr(settings, "smtp_password", "app-password")
	captured = {}

	async def _send(message, **kwargs):
		captured["message"] = message
		captured["kwargs"] = kwargs

	message_id = await Mailer(send_func=_send).send(["a@x.com", "b@x.com"], "Hello", "<p>Hi</p>", from_name="Harriers")
	assert captured["message"]["To"] == "a@x.com, b@x.com"
	assert captured["message"]["From"] == "Harriers <club@example.com>"
	assert captured["message"]["Message-ID"] == message_id
	assert captured["kwargs"]["username"] == "club@example.com"

	async def _broken(message, **kwargs):
		raise OSError("connection refused")

	with pytest.raises(Internal):
		await Mailer(send_func=_broken).send("a@x.com", "s", "<p>h</p>")
