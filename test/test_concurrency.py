import threading
from datetime import timedelta

import pytest
from django.db import OperationalError, connection
from django.utils import timezone

from consently.exceptions import AuthChallengeError, ConsentError, RateLimitedError
from verification.hashing import hash_email
from verification.models import EmailVerificationChallenge, RateLimitHit
from verification.services import OTPVerificationService

EMAIL = "user@example.com"


def _race(*calls):
	"""
	Run each call on its own thread, released together by a barrier.

	Returns one outcome per call: the return value, or the raised ConsentError.
	On SQLite a writer blocked by the other thread fails with OperationalError
	instead of waiting; that call is rolled back and reported as such.
	"""
	barrier = threading.Barrier(len(calls), timeout=10)
	outcomes = [None] * len(calls)

	def run(i, call):
		try:
			barrier.wait()
			outcomes[i] = call()
		except (ConsentError, OperationalError) as e:
			outcomes[i] = e
		finally:
			connection.close()

	threads = [threading.Thread(target=run, args=(i, call)) for i, call in enumerate(calls)]
	for t in threads:
		t.start()
	for t in threads:
		t.join(timeout=30)
	assert not any(t.is_alive() for t in threads)
	return outcomes


@pytest.mark.django_db(transaction=True)
class TestChallengeRace:
	def test_last_slot_is_granted_at_most_once(self, widget, mailbox):
		service = OTPVerificationService(email_provider=mailbox)
		service.request_challenge(EMAIL, "v1", "w1")
		service.request_challenge(EMAIL, "v1", "w1")

		outcomes = _race(
			lambda: service.request_challenge(EMAIL, "v1", "w1"),
			lambda: service.request_challenge(EMAIL, "v2", "w1"),
		)

		issued = [o for o in outcomes if not isinstance(o, Exception)]
		refused = [o for o in outcomes if isinstance(o, Exception)]
		assert len(issued) <= 1
		assert all(isinstance(o, (RateLimitedError, OperationalError)) for o in refused)
		assert RateLimitHit.objects.count() <= 3
		assert EmailVerificationChallenge.objects.filter(email_hash=hash_email(EMAIL)).count() <= 3
		assert len(mailbox.sent) <= 3

		if RateLimitHit.objects.count() < 3:
			service.request_challenge(EMAIL, "v3", "w1")
		with pytest.raises(RateLimitedError):
			service.request_challenge(EMAIL, "v3", "w1")
		assert RateLimitHit.objects.count() == 3


@pytest.mark.django_db(transaction=True)
class TestVerifyRace:
	@pytest.fixture
	def challenge(self, widget):
		return EmailVerificationChallenge.objects.create(
			email_hash=hash_email(EMAIL),
			otp_code="123456",
			visitor_id="v1",
			widget=widget,
			expires_at=timezone.now() + timedelta(minutes=10),
			attempts=2,
		)

	def test_last_attempt_is_consumed_once(self, challenge, mailbox):
		service = OTPVerificationService(email_provider=mailbox)

		outcomes = _race(
			lambda: service.verify_challenge(EMAIL, "000000", "v1", "w1"),
			lambda: service.verify_challenge(EMAIL, "111111", "v2", "w1"),
		)

		assert all(isinstance(o, (AuthChallengeError, OperationalError)) for o in outcomes)
		codes = [o.code for o in outcomes if isinstance(o, AuthChallengeError)]
		assert AuthChallengeError.INVALID_OTP not in codes
		assert codes.count(AuthChallengeError.MAX_ATTEMPTS_EXCEEDED) <= 1

		challenge.refresh_from_db()
		assert challenge.attempts <= 3
		assert not challenge.verified
		if AuthChallengeError.MAX_ATTEMPTS_EXCEEDED in codes:
			assert challenge.attempts == 3
			assert challenge.invalidated_at is not None
			with pytest.raises(AuthChallengeError) as exc:
				service.verify_challenge(EMAIL, "123456", "v1", "w1")
			assert exc.value.code == AuthChallengeError.OTP_NOT_FOUND
