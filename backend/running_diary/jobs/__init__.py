"""Periodic maintenance jobs."""

from __future__ import annotations

from running_diary.jobs.invite_gc import InviteGarbageCollector
from running_diary.jobs.notification_retry import NotificationRetryJob
from running_diary.jobs.scheduler import JobScheduler


def build_scheduler() -> JobScheduler:
	scheduler = JobScheduler()
	scheduler.schedule_every("invite-gc", InviteGarbageCollector().run_once, hours=6)
	scheduler.schedule_every("notification-retry", NotificationRetryJob().run_once, minutes=5)
	return scheduler


__all__ = ["JobScheduler", "InviteGarbageCollector", "NotificationRetryJob", "build_scheduler"]
