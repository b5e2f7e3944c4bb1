"""Authentication helpers for FastAPI endpoints.

Identity comes from the external identity provider as an HS256 bearer JWT.
Only the uid, email and display name are taken from the token; roles and club
affiliation are always read from the stored profile, never from the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from running_diary.infra import jwt as jwt_helper
from running_diary.settings import settings


@dataclass(slots=True)
class AuthenticatedUser:
	id: str
	email: str
	display_name: Optional[str] = None

	@property
	def default_display_name(self) -> str:
		return self.display_name or self.email.split("@", 1)[0]


_bearer_scheme = HTTPBearer(auto_error=False)


def verify_access_jwt(token: str) -> AuthenticatedUser:
	"""Decode and validate an identity JWT and return an AuthenticatedUser."""
	try:
		payload = jwt_helper.decode_access(token)
	except Exception:
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")

	sub = str(payload.get("sub") or "").strip()
	email = str(payload.get("email") or "").strip().lower()
	if not sub or not email:
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")
	display_name = payload.get("name") or payload.get("display_name")
	return AuthenticatedUser(
		id=sub,
		email=email,
		display_name=str(display_name) if display_name is not None else None,
	)


async def get_current_user(
	x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
	x_user_email: Optional[str] = Header(default=None, alias="X-User-Email"),
	x_user_name: Optional[str] = Header(default=None, alias="X-User-Name"),
	credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> AuthenticatedUser:
	"""Resolve the authenticated user.

	In development we allow simple headers. In all other environments, headers are
	ignored and a valid Bearer JWT is required.
	"""
	if credentials and credentials.scheme.lower() == "bearer":
		return verify_access_jwt(credentials.credentials)

	if settings.is_dev() and x_user_id and x_user_email:
		return AuthenticatedUser(id=x_user_id, email=x_user_email.strip().lower(), display_name=x_user_name)

	raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="unauthenticated")


async def get_optional_user(
	x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
	x_user_email: Optional[str] = Header(default=None, alias="X-User-Email"),
	x_user_name: Optional[str] = Header(default=None, alias="X-User-Name"),
	credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> Optional[AuthenticatedUser]:
	try:
		return await get_current_user(x_user_id, x_user_email, x_user_name, credentials)
	except HTTPException:
		return None
