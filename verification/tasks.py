# verification/tasks.py
from celery import shared_task
from django.conf import settings
from django.db.models import Q
from django.utils import timezone
from datetime import timedelta
import logging

log = logging.getLogger(__name__)


@shared_task
def purge_inert_challenges():
	"""
	Delete challenges that became inert (verified, invalidated or expired)
	more than OTP_PURGE_AFTER_HOURS ago, and rate-limit hits that left the window.
	Runs hourly via Celery Beat.
	"""
	from verification.models import EmailVerificationChallenge, RateLimitHit

	now = timezone.now()
	cutoff = now - timedelta(hours=settings.OTP_PURGE_AFTER_HOURS)

	challenges, _ = EmailVerificationChallenge.objects.filter(
		Q(verified=True, verified_at__lt=cutoff)
		| Q(invalidated_at__lt=cutoff)
		| Q(expires_at__lt=cutoff)
	).delete()

	window_start = now - timedelta(seconds=settings.OTP_RATE_WINDOW_SECONDS)
	hits, _ = RateLimitHit.objects.filter(created_at__lt=window_start).delete()

	log.info(f"Purged {challenges} inert challenges and {hits} expired rate-limit hits")
	return {"challenges": challenges, "hits": hits}
