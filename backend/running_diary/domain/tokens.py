"""Identifier helpers for clubs and invitations."""

from __future__ import annotations

import secrets
import string
import time
from dataclasses import dataclass
from typing import Optional

from running_diary.domain.errors import InvalidFormat

_ALNUM = string.ascii_letters + string.digits
_BASE36 = string.digits + string.ascii_lowercase
SECRET_LENGTH = 20
MAX_TOKEN_LENGTH = 150


def _now_millis() -> int:
	return int(time.time() * 1000)


def generate_club_id(*, now_millis: Optional[int] = None) -> str:
	millis = now_millis if now_millis is not None else _now_millis()
	suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
	return f"club_{millis}_{suffix}"


@dataclass(frozen=True, slots=True)
class InvitationKey:
	"""Structured invitation identifier.

	The wire form ``<club_id>_<issued_ms>_<secret>`` is produced by ``token`` and
	read back by ``parse``; nothing else splits invitation ids.
	"""

	club_id: str
	issued_ms: int
	secret: str

	@classmethod
	def new(cls, club_id: str, *, now_millis: Optional[int] = None) -> "InvitationKey":
		if not club_id:
			raise InvalidFormat("club_id_required")
		secret = "".join(secrets.choice(_ALNUM) for _ in range(SECRET_LENGTH))
		return cls(club_id=club_id, issued_ms=now_millis if now_millis is not None else _now_millis(), secret=secret)

	@classmethod
	def parse(cls, token: object) -> "InvitationKey":
		if not isinstance(token, str) or not token or len(token) > MAX_TOKEN_LENGTH:
			raise InvalidFormat("invalid_invitation_token")
		parts = token.rsplit("_", 2)
		if len(parts) != 3:
			raise InvalidFormat("invalid_invitation_token")
		club_id, issued, secret = parts
		if not club_id or any(ch.isspace() for ch in club_id):
			raise InvalidFormat("invalid_invitation_token")
		if not issued.isdigit() or not secret or not all(ch in _ALNUM for ch in secret):
			raise InvalidFormat("invalid_invitation_token")
		return cls(club_id=club_id, issued_ms=int(issued), secret=secret)

	@property
	def token(self) -> str:
		return f"{self.club_id}_{self.issued_ms}_{self.secret}"

	def __str__(self) -> str:
		return self.token


def club_id_from_token(token: object) -> str:
	"""Return the club a composite invitation token belongs to."""
	return InvitationKey.parse(token).club_id
