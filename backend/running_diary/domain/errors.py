"""Domain exceptions shared by the HTTP routers and the callable functions."""

from __future__ import annotations

from fastapi import status


class DiaryError(Exception):
	"""Base class for running diary errors.

	``status_code`` is used by the HTTP routers, ``code`` by the callable
	function envelope.
	"""

	status_code: int = status.HTTP_400_BAD_REQUEST
	detail: str = "diary_error"
	code: str = "invalid-argument"

	def __init__(self, detail: str | None = None) -> None:
		super().__init__(detail or self.detail)
		if detail:
			self.detail = detail


class Unauthenticated(DiaryError):
	status_code = status.HTTP_401_UNAUTHORIZED
	detail = "unauthenticated"
	code = "unauthenticated"


class PermissionDenied(DiaryError):
	"""Raised when authorization fails."""

	status_code = status.HTTP_403_FORBIDDEN
	detail = "permission_denied"
	code = "permission-denied"


class InvalidArgument(DiaryError):
	status_code = status.HTTP_400_BAD_REQUEST
	detail = "invalid_argument"
	code = "invalid-argument"


class InvalidFormat(InvalidArgument):
	"""Raised for malformed composite tokens."""

	detail = "invalid_format"


class NotFound(DiaryError):
	"""Thrown when a resource is missing."""

	status_code = status.HTTP_404_NOT_FOUND
	detail = "not_found"
	code = "not-found"


class AlreadyExists(DiaryError):
	status_code = status.HTTP_409_CONFLICT
	detail = "already_exists"
	code = "already-exists"


class DuplicateRequest(AlreadyExists):
	detail = "duplicate_request"


class AlreadyInClub(AlreadyExists):
	detail = "already_in_club"


class Expired(DiaryError):
	status_code = status.HTTP_410_GONE
	detail = "expired"
	code = "deadline-exceeded"


class NoLongerValid(DiaryError):
	"""Raised when a record has already left its pending state."""

	status_code = status.HTTP_409_CONFLICT
	detail = "no_longer_valid"
	code = "failed-precondition"


class EmailMismatch(PermissionDenied):
	detail = "email_mismatch"


class ResourceExhausted(DiaryError):
	status_code = status.HTTP_429_TOO_MANY_REQUESTS
	detail = "resource_exhausted"
	code = "resource-exhausted"


class FailedPrecondition(DiaryError):
	status_code = status.HTTP_412_PRECONDITION_FAILED
	detail = "failed_precondition"
	code = "failed-precondition"


class Internal(DiaryError):
	status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
	detail = "internal"
	code = "internal"
