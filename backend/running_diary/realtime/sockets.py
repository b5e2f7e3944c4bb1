"""Socket.IO namespace pushing calendar and club changes to connected clients."""

from __future__ import annotations

from typing import Any, Dict, Optional

import socketio

from running_diary.domain import repo as repo_module
from running_diary.infra.auth import AuthenticatedUser, verify_access_jwt
from running_diary.obs import metrics as obs_metrics
from running_diary.settings import settings

CALENDAR_ROOM = "calendar"


def _header(scope: dict, name: str) -> Optional[str]:
	target = name.encode().lower()
	for key, value in scope.get("headers", []):
		if key.lower() == target:
			return value.decode()
	return None


class DiaryNamespace(socketio.AsyncNamespace):
	"""Namespace for /diary connections.

	Every client joins the calendar room; clients whose stored profile has a club
	also join that club's room. Rooms are released on disconnect.
	"""

	def __init__(self, *, repository: repo_module.DiaryRepository | None = None) -> None:
		super().__init__("/diary")
		self.repo = repository or repo_module.DiaryRepository()
		self._sessions: Dict[str, AuthenticatedUser] = {}
		self._clubs: Dict[str, str] = {}

	def _resolve_user(self, environ: dict, auth: Optional[dict]) -> AuthenticatedUser:
		scope = environ.get("asgi.scope", environ)
		payload = auth or environ.get("auth") or scope.get("auth") or {}
		token = payload.get("token")
		if token:
			try:
				return verify_access_jwt(token)
			except Exception as exc:
				raise ConnectionRefusedError("invalid_token") from exc
		if settings.is_dev():
			user_id = payload.get("userId") or _header(scope, "x-user-id")
			email = payload.get("email") or _header(scope, "x-user-email")
			if user_id and email:
				return AuthenticatedUser(id=user_id, email=email.lower())
		raise ConnectionRefusedError("unauthenticated")

	async def on_connect(self, sid: str, environ: dict, auth: Optional[dict] = None) -> None:
		user = self._resolve_user(environ, auth)
		obs_metrics.socket_connected(self.namespace)
		self._sessions[sid] = user
		await self.enter_room(sid, CALENDAR_ROOM)
		profile = await self.repo.get_user(user.id)
		club_id = profile.club_id if profile and profile.status == "active" else None
		if club_id:
			self._clubs[sid] = club_id
			await self.enter_room(sid, self.room_name(club_id))
		await self.emit("diary:ready", {"club_id": club_id}, room=sid)

	async def on_disconnect(self, sid: str, *args: Any) -> None:
		if self._sessions.pop(sid, None) is None:
			return
		obs_metrics.socket_disconnected(self.namespace)
		club_id = self._clubs.pop(sid, None)
		if club_id:
			await self.leave_room(sid, self.room_name(club_id))
		await self.leave_room(sid, CALENDAR_ROOM)

	def session_count(self) -> int:
		return len(self._sessions)

	@staticmethod
	def room_name(club_id: str) -> str:
		return f"club:{club_id}"


_namespace: Optional[DiaryNamespace] = None


def register(server: socketio.AsyncServer, namespace: Optional[DiaryNamespace] = None) -> DiaryNamespace:
	global _namespace
	_namespace = namespace or DiaryNamespace()
	server.register_namespace(_namespace)
	return _namespace


def set_namespace(namespace: Optional[DiaryNamespace]) -> None:
	global _namespace
	_namespace = namespace


async def emit_calendar(event: str, payload: dict) -> None:
	if _namespace is None:
		return
	obs_metrics.socket_event(_namespace.namespace, event)
	await _namespace.emit(event, payload, room=CALENDAR_ROOM)


async def emit_club(club_id: str, event: str, payload: dict) -> None:
	if _namespace is None:
		return
	obs_metrics.socket_event(_namespace.namespace, event)
	await _namespace.emit(event, payload, room=DiaryNamespace.room_name(club_id))
