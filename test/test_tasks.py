from datetime import timedelta

import pytest
from django.utils import timezone

from verification.models import EmailVerificationChallenge, RateLimitBucket, RateLimitHit
from verification.tasks import purge_inert_challenges


def _challenge(widget, **kwargs):
	now = timezone.now()
	fields = {
		"email_hash": "f" * 64,
		"otp_code": "123456",
		"visitor_id": "v1",
		"widget": widget,
		"expires_at": now + timedelta(minutes=10),
	}
	fields.update(kwargs)
	return EmailVerificationChallenge.objects.create(**fields)


@pytest.mark.django_db
class TestPurgeInertChallenges:
	def test_purges_only_old_inert_challenges(self, widget):
		old = timezone.now() - timedelta(hours=30)
		pending = _challenge(widget)
		recent_verified = _challenge(widget, verified=True, verified_at=timezone.now())
		_challenge(widget, verified=True, verified_at=old, expires_at=old)
		_challenge(widget, invalidated_at=old)
		_challenge(widget, expires_at=old)

		result = purge_inert_challenges()

		assert result["challenges"] == 3
		remaining = set(EmailVerificationChallenge.objects.values_list("pk", flat=True))
		assert remaining == {pending.pk, recent_verified.pk}

	def test_purges_hits_outside_window(self, widget):
		bucket = RateLimitBucket.objects.create(key="otp:w1:abc")
		RateLimitHit.objects.create(bucket=bucket, created_at=timezone.now() - timedelta(hours=2))
		fresh = RateLimitHit.objects.create(bucket=bucket)

		result = purge_inert_challenges()

		assert result["hits"] == 1
		assert list(RateLimitHit.objects.values_list("pk", flat=True)) == [fresh.pk]
		assert RateLimitBucket.objects.filter(key="otp:w1:abc").exists()
