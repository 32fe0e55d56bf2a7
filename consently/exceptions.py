"""
Error taxonomy for the privacy centre endpoints.

Every error carries a machine readable ``code`` (and, where it helps the widget
recover, extra fields such as ``remainingAttempts`` or ``retryAfterSeconds``).
The DRF exception handler below renders all of them as::

	{"success": false, "error": "<message>", "code": "<CODE>", ...extra}
"""
import logging

from django.db import DatabaseError
from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

log = logging.getLogger(__name__)


class ConsentError(APIException):
	status_code = status.HTTP_400_BAD_REQUEST
	default_detail = "Request failed."
	default_code = "ERROR"

	def __init__(self, detail=None, code=None, **extra):
		super().__init__(detail=detail, code=code)
		self.code = code or self.default_code
		self.extra = extra


class ValidationFailed(ConsentError):
	"""Malformed or missing fields. Never retried server-side."""
	default_detail = "Invalid request."
	default_code = "VALIDATION_ERROR"


class UnknownActivityError(ValidationFailed):
	default_detail = "Invalid activity IDs provided."
	default_code = "INVALID_ACTIVITY"

	def __init__(self, activity_ids):
		ids = sorted(activity_ids)
		super().__init__(
			f"Activities not found: {', '.join(ids)}",
			invalidActivities=ids,
		)


class NotFoundError(ConsentError):
	status_code = status.HTTP_404_NOT_FOUND
	default_detail = "Not found."
	default_code = "NOT_FOUND"


class RateLimitedError(ConsentError):
	status_code = status.HTTP_429_TOO_MANY_REQUESTS
	default_detail = "Too many OTP requests. Please try again later."
	default_code = "RATE_LIMITED"

	def __init__(self, retry_after_seconds: int):
		super().__init__(retryAfterSeconds=retry_after_seconds)
		self.retry_after_seconds = retry_after_seconds


class AuthChallengeError(ConsentError):
	"""
	OTP challenge failures. The sub-code decides the recovery path in the widget:
	INVALID_OTP -> retype the code, the other two -> restart the flow.
	"""
	INVALID_OTP = "INVALID_OTP"
	MAX_ATTEMPTS_EXCEEDED = "MAX_ATTEMPTS_EXCEEDED"
	OTP_NOT_FOUND = "OTP_NOT_FOUND"

	MESSAGES = {
		INVALID_OTP: "Invalid OTP code.",
		MAX_ATTEMPTS_EXCEEDED: "Maximum verification attempts exceeded. Please request a new OTP.",
		OTP_NOT_FOUND: "Invalid or expired OTP. Please request a new one.",
	}

	def __init__(self, code: str, **extra):
		super().__init__(self.MESSAGES[code], code=code, **extra)
		if code == self.OTP_NOT_FOUND:
			self.status_code = status.HTTP_404_NOT_FOUND


class DependencyFailure(ConsentError):
	"""Email provider or store unavailable."""
	status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
	default_detail = "A required service is unavailable. Please try again."
	default_code = "DEPENDENCY_FAILURE"


def _body(message, code, **extra):
	body = {"success": False, "error": message, "code": code}
	body.update(extra)
	return body


def consent_exception_handler(exc, context):
	view = context.get("view")
	view_name = view.__class__.__name__ if view else "UnknownView"

	if isinstance(exc, ConsentError):
		if exc.status_code >= 500:
			log.error("[%s] %s: %s %s", view_name, exc.code, exc.detail, exc.extra)
		response = Response(_body(str(exc.detail), exc.code, **exc.extra), status=exc.status_code)
		if isinstance(exc, RateLimitedError):
			response["Retry-After"] = str(exc.retry_after_seconds)
		return response

	if isinstance(exc, DatabaseError):
		log.exception("[%s] Store unavailable", view_name, exc_info=exc)
		return Response(
			_body(DependencyFailure.default_detail, DependencyFailure.default_code),
			status=status.HTTP_500_INTERNAL_SERVER_ERROR,
		)

	response = exception_handler(exc, context)
	if response is None:
		log.exception("[%s] Unhandled exception", view_name, exc_info=exc)
		return Response(
			_body("Internal server error", "INTERNAL_ERROR"),
			status=status.HTTP_500_INTERNAL_SERVER_ERROR,
		)

	if isinstance(exc, ValidationError):
		response.data = _body("Invalid request.", ValidationFailed.default_code, errors=response.data)
	else:
		detail = response.data.get("detail", "") if isinstance(response.data, dict) else response.data
		response.data = _body(str(detail), str(getattr(exc, "default_code", "error")).upper())
	return response
