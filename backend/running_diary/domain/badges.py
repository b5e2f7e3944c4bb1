"""Achievement badges derived from a runner's attended events."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional

from running_diary.domain import models


@dataclass(frozen=True)
class BadgeRule:
    id: str
    name: str
    description: str
    min_events: int = 0
    current_month: bool = False


BADGE_RULES: tuple[BadgeRule, ...] = (
    BadgeRule("first-event", "First Steps", "Attended your first event", min_events=1),
    BadgeRule("five-events", "Regular Runner", "Completed 5 events", min_events=5),
    BadgeRule("ten-events", "Dedicated Athlete", "Completed 10 events", min_events=10),
    BadgeRule("twentyfive-events", "Marathon Master", "Completed 25 events", min_events=25),
    BadgeRule("early-bird", "Early Bird", "Attended an event this month", current_month=True),
)


def _in_month(value: datetime, now: datetime) -> bool:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(now.tzinfo or timezone.utc)
    return value.year == now.year and value.month == now.month


def earned_badges(past_events: Iterable[models.Event], *, now: Optional[datetime] = None) -> dict[str, bool]:
    """Map every badge id to whether it is earned."""
    now = now or datetime.now(timezone.utc)
    events = list(past_events)
    count = len(events)
    this_month = any(_in_month(event.date, now) for event in events)
    earned: dict[str, bool] = {}
    for rule in BADGE_RULES:
        if rule.current_month:
            earned[rule.id] = this_month
        else:
            earned[rule.id] = count >= rule.min_events
    return earned
