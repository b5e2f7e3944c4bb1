"""Callable function endpoint: ``POST /functions/{name}`` with a ``{"data": ...}`` body.

Results come back as ``{"result": ...}``; failures as
``{"error": {"status": <code>, "message": <detail>}}`` with the matching HTTP status.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from running_diary.domain import schemas as dto
from running_diary.domain.errors import DiaryError, Internal, NotFound, Unauthenticated
from running_diary.infra.auth import AuthenticatedUser, get_optional_user
from running_diary.notifications.dispatcher import get_dispatcher

_LOG = logging.getLogger(__name__)

router = APIRouter(tags=["functions"])
_dispatcher = get_dispatcher()

Handler = Callable[[str, dict[str, Any]], Awaitable[dict[str, Any]]]

FUNCTION_NAMES = {
	"sendInvitationEmail": "send_invitation_email",
	"sendJoinRequestNotification": "send_join_request_notification",
	"sendApprovalConfirmation": "send_approval_confirmation",
}


def _error_response(exc: DiaryError) -> JSONResponse:
	return JSONResponse(
		status_code=exc.status_code,
		content={"error": {"status": exc.code, "message": exc.detail}},
	)


@router.post("/functions/{name}")
async def call_function_endpoint(
	name: str,
	payload: dto.FunctionCallRequest,
	auth_user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> JSONResponse:
	try:
		method = FUNCTION_NAMES.get(name)
		if method is None:
			raise NotFound("function_not_found")
		if auth_user is None:
			raise Unauthenticated()
		handler: Handler = getattr(_dispatcher, method)
		result = await handler(auth_user.id, payload.data)
	except DiaryError as exc:
		_LOG.warning("function call failed", extra={"function": name, "code": exc.code, "detail": exc.detail})
		return _error_response(exc)
	except Exception:
		_LOG.exception("function call crashed", extra={"function": name})
		return _error_response(Internal())
	return JSONResponse(content={"result": result})


__all__ = ["router", "FUNCTION_NAMES"]
