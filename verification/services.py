"""
OTP Verification Service.

Binds an anonymous visitor to a hashed email through a six digit code. The
plaintext address is only handed to the email provider; everything stored
or logged is keyed by its SHA-256 hash.
"""
import logging
import re
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from consently.exceptions import AuthChallengeError, DependencyFailure, RateLimitedError, ValidationFailed
from consents.repositories import PreferenceRepository
from widgets.provider import get_widget_config

from .events import record_event
from .hashing import constant_time_equals, hash_email, hash_prefix, is_valid_email
from .mailer import get_email_provider, render_otp_email, render_preferences_linked_email
from .models import EmailVerificationChallenge, VerificationEvent
from .ratelimit import OTPRateLimiter

log = logging.getLogger(__name__)

OTP_RE = re.compile(r"^\d{6}$")


def generate_otp() -> str:
	return f"{secrets.randbelow(900000) + 100000}"


@dataclass(frozen=True)
class ChallengeIssued:
	expires_at: datetime
	expires_in_minutes: int


@dataclass(frozen=True)
class ChallengeVerified:
	linked_devices: int
	verified_at: datetime


class OTPVerificationService:
	def __init__(self, email_provider=None, rate_limiter: Optional[OTPRateLimiter] = None, repository: Optional[PreferenceRepository] = None):
		self.email_provider = email_provider or get_email_provider()
		self.rate_limiter = rate_limiter or OTPRateLimiter()
		self.repository = repository or PreferenceRepository()

	@property
	def max_attempts(self) -> int:
		return settings.OTP_MAX_ATTEMPTS

	def request_challenge(self, email: str, visitor_id: str, widget_id: str) -> ChallengeIssued:
		if not email or not is_valid_email(email):
			raise ValidationFailed("Invalid email format")
		if not visitor_id:
			raise ValidationFailed("visitorId is required")

		widget = get_widget_config(widget_id)
		email_hash = hash_email(email)
		minutes = widget.effective_otp_expiration_minutes

		# the window check and the challenge insert commit together
		with transaction.atomic():
			decision = self.rate_limiter.allow(email_hash, widget_id)
			challenge = None
			if decision.allowed:
				now = timezone.now()
				challenge = EmailVerificationChallenge.objects.create(
					email_hash=email_hash,
					otp_code=generate_otp(),
					visitor_id=visitor_id,
					widget=widget,
					expires_at=now + timedelta(minutes=minutes),
					created_at=now,
				)

		if challenge is None:
			record_event(
				VerificationEvent.EventType.RATE_LIMITED, widget_id, visitor_id, email_hash,
				retryAfterSeconds=decision.retry_after_seconds,
			)
			raise RateLimitedError(decision.retry_after_seconds)

		subject, body = render_otp_email(challenge.otp_code, minutes)
		try:
			result = self.email_provider.send(email, subject, body)
		except Exception as e:
			log.exception("Email provider raised for challenge %s (%s)", challenge.id, hash_prefix(email_hash))
			result = None
			send_error = str(e)
		else:
			send_error = result.error

		if result is None or not result.success:
			# compensate: no unusable challenge, and the failed send does not count against the limit
			challenge.delete()
			self.rate_limiter.release(decision)
			log.error(
				"OTP email failed for %s on %s, challenge removed: %s",
				hash_prefix(email_hash), widget_id, send_error,
			)
			raise DependencyFailure("Failed to send OTP email. Please try again.")

		superseded = (
			EmailVerificationChallenge.objects
			.filter(email_hash=email_hash, widget_id=widget_id, verified=False, invalidated_at__isnull=True)
			.exclude(pk=challenge.pk)
			.update(invalidated_at=timezone.now())
		)
		record_event(
			VerificationEvent.EventType.OTP_SENT, widget_id, visitor_id, email_hash,
			expiresInMinutes=minutes, superseded=superseded,
		)
		log.info("OTP sent to %s for widget %s (expires in %s min)", hash_prefix(email_hash), widget_id, minutes)
		return ChallengeIssued(expires_at=challenge.expires_at, expires_in_minutes=minutes)

	def verify_challenge(self, email: str, code: str, visitor_id: str, widget_id: str) -> ChallengeVerified:
		if not email or not is_valid_email(email):
			raise ValidationFailed("Invalid email format")
		if not code or not OTP_RE.match(str(code)):
			raise ValidationFailed("OTP must be a 6-digit code")
		if not visitor_id:
			raise ValidationFailed("visitorId is required")

		get_widget_config(widget_id)
		email_hash = hash_email(email)
		now = timezone.now()
		failure = None

		# failed attempts must stay counted, so the error is raised after commit
		with transaction.atomic():
			challenge = (
				EmailVerificationChallenge.objects
				.select_for_update()
				.filter(
					email_hash=email_hash,
					widget_id=widget_id,
					verified=False,
					invalidated_at__isnull=True,
					expires_at__gt=now,
				)
				.order_by("-created_at")
				.first()
			)

			if challenge is None:
				failure = AuthChallengeError(AuthChallengeError.OTP_NOT_FOUND)
			elif not constant_time_equals(str(code), challenge.otp_code):
				EmailVerificationChallenge.objects.filter(pk=challenge.pk).update(attempts=F("attempts") + 1)
				challenge.refresh_from_db(fields=["attempts"])
				remaining = max(0, self.max_attempts - challenge.attempts)
				if remaining == 0:
					EmailVerificationChallenge.objects.filter(pk=challenge.pk).update(invalidated_at=now)
					failure = AuthChallengeError(AuthChallengeError.MAX_ATTEMPTS_EXCEEDED, remainingAttempts=0)
				else:
					failure = AuthChallengeError(AuthChallengeError.INVALID_OTP, remainingAttempts=remaining)
			else:
				EmailVerificationChallenge.objects.filter(pk=challenge.pk).update(
					verified=True, verified_at=now, verified_by_visitor_id=visitor_id,
				)
				self.repository.link_email_hash(visitor_id, widget_id, email_hash)

		if failure is not None:
			self._record_failure(failure, challenge, widget_id, visitor_id, email_hash)
			raise failure

		linked_devices = max(1, self.repository.count_linked_devices(widget_id, email_hash))
		self._send_linked_confirmation(email, email_hash, linked_devices)
		record_event(
			VerificationEvent.EventType.OTP_VERIFIED, widget_id, visitor_id, email_hash,
			linkedDevices=linked_devices, attempts=challenge.attempts + 1,
		)
		log.info("Email %s verified on %s, %s linked device(s)", hash_prefix(email_hash), widget_id, linked_devices)
		return ChallengeVerified(linked_devices=linked_devices, verified_at=now)

	def _record_failure(self, failure, challenge, widget_id, visitor_id, email_hash):
		if challenge is None:
			log.info("No active challenge for %s on %s", hash_prefix(email_hash), widget_id)
			return
		if failure.code == AuthChallengeError.MAX_ATTEMPTS_EXCEEDED:
			event_type = VerificationEvent.EventType.OTP_EXHAUSTED
			log.warning("Challenge %s invalidated after %s wrong codes", challenge.id, challenge.attempts)
		else:
			event_type = VerificationEvent.EventType.OTP_FAILED
		record_event(event_type, widget_id, visitor_id, email_hash, attempts=challenge.attempts)

	def _send_linked_confirmation(self, email: str, email_hash: str, linked_devices: int) -> None:
		subject, body = render_preferences_linked_email(linked_devices)
		try:
			result = self.email_provider.send(email, subject, body)
		except Exception:
			log.exception("Confirmation email to %s raised (non-critical)", hash_prefix(email_hash))
			return
		if not result.success:
			log.warning("Confirmation email to %s failed (non-critical): %s", hash_prefix(email_hash), result.error)
