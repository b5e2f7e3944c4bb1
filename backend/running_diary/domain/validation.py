"""Input validation for free text and email addresses crossing the API boundary."""

from __future__ import annotations

import re
from typing import Any, Iterable

from running_diary.domain.errors import InvalidArgument

_TAG_RE = re.compile(r"<[^>]*>")
_ANGLE_RE = re.compile(r"[<>]")
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

NAME_MAX_LENGTH = 100
TOKEN_MAX_LENGTH = 150
DEFAULT_MAX_LENGTH = 200
EMAIL_MAX_LENGTH = 254
MAX_RECIPIENTS = 10


def sanitize_input(value: Any, max_length: int = DEFAULT_MAX_LENGTH) -> str:
	"""Strip tags and angle brackets, trim, then truncate.

	Raises ``InvalidArgument`` for non-strings and for values that end up empty.
	"""
	if not isinstance(value, str):
		raise InvalidArgument("input_must_be_string")
	cleaned = _ANGLE_RE.sub("", _TAG_RE.sub("", value)).strip()[:max_length]
	if not cleaned:
		raise InvalidArgument("input_empty")
	return cleaned


def is_valid_email(email: str) -> bool:
	return bool(_EMAIL_RE.match(email)) and len(email) <= EMAIL_MAX_LENGTH


def validate_email(email: Any) -> str:
	if not email or not isinstance(email, str):
		raise InvalidArgument("email_required")
	normalised = email.strip().lower()
	if not is_valid_email(normalised):
		raise InvalidArgument("invalid_email")
	return normalised


def validate_emails(emails: Any) -> list[str]:
	if not isinstance(emails, (list, tuple)) or not emails:
		raise InvalidArgument("email_list_required")
	if len(emails) > MAX_RECIPIENTS:
		raise InvalidArgument("too_many_recipients")
	return [validate_email(email) for email in emails]


def normalise_emails(emails: Iterable[str]) -> list[str]:
	"""Lower-case and de-duplicate while keeping order."""
	seen: dict[str, None] = {}
	for email in emails:
		if email:
			seen.setdefault(email.strip().lower(), None)
	return list(seen)
