import logging
import math
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from .hashing import hash_prefix
from .models import RateLimitBucket, RateLimitHit

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitDecision:
	allowed: bool
	retry_after_seconds: Optional[int] = None
	hit_id: Optional[int] = None


def increment_if_below(key: str, limit: int, window_seconds: int) -> RateLimitDecision:
	"""
	Storage-backed sliding window counter.

	The bucket row for ``key`` is locked (SELECT ... FOR UPDATE) while the
	window is counted and the new hit is written, so concurrent callers on
	any replica serialize on it. Call this inside the transaction that
	creates the rate-limited resource to make both atomic.
	"""
	now = timezone.now()
	window_start = now - timedelta(seconds=window_seconds)

	with transaction.atomic():
		RateLimitBucket.objects.get_or_create(key=key)
		bucket = RateLimitBucket.objects.select_for_update().get(key=key)

		hits = RateLimitHit.objects.filter(bucket=bucket, created_at__gt=window_start)
		if hits.count() >= limit:
			oldest = hits.order_by("created_at").values_list("created_at", flat=True).first()
			remaining = window_seconds - (now - oldest).total_seconds()
			retry_after = max(1, min(window_seconds, math.ceil(remaining)))
			return RateLimitDecision(allowed=False, retry_after_seconds=retry_after)

		hit = RateLimitHit.objects.create(bucket=bucket, created_at=now)
		return RateLimitDecision(allowed=True, hit_id=hit.pk)


def release(decision: RateLimitDecision) -> None:
	"""Give back a hit whose resource was never delivered (e.g. email send failed)."""
	if decision.allowed and decision.hit_id is not None:
		RateLimitHit.objects.filter(pk=decision.hit_id).delete()


class OTPRateLimiter:
	"""At most OTP_RATE_LIMIT challenges per (email hash, widget) per rolling window."""

	def __init__(self, limit: Optional[int] = None, window_seconds: Optional[int] = None):
		self.limit = limit or settings.OTP_RATE_LIMIT
		self.window_seconds = window_seconds or settings.OTP_RATE_WINDOW_SECONDS

	@staticmethod
	def key_for(email_hash: str, widget_id: str) -> str:
		return f"otp:{widget_id}:{email_hash}"

	def allow(self, email_hash: str, widget_id: str) -> RateLimitDecision:
		decision = increment_if_below(self.key_for(email_hash, widget_id), self.limit, self.window_seconds)
		if not decision.allowed:
			log.info(
				"OTP rate limit reached for %s on %s (retry in %ss)",
				hash_prefix(email_hash), widget_id, decision.retry_after_seconds,
			)
		return decision

	def release(self, decision: RateLimitDecision) -> None:
		release(decision)
