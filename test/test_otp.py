from datetime import timedelta

import pytest
from django.utils import timezone

from consently.exceptions import AuthChallengeError, DependencyFailure, NotFoundError, RateLimitedError, ValidationFailed
from consents.models import ActivityPreference
from verification.hashing import hash_email
from verification.models import EmailVerificationChallenge, RateLimitHit, VerificationEvent
from verification.services import OTPVerificationService, generate_otp
from conftest import RecordingEmailProvider

EMAIL = "User@Example.com"


def _latest_code():
	return EmailVerificationChallenge.objects.latest("created_at").otp_code


def _wrong(code):
	return "000000" if code != "000000" else "111111"


class TestGenerateOtp:
	def test_six_digits(self):
		for _ in range(50):
			code = generate_otp()
			assert len(code) == 6 and code.isdigit() and code[0] != "0"


@pytest.mark.django_db
class TestRequestChallenge:
	def test_creates_hashed_challenge_and_sends_mail(self, widget, mailbox):
		issued = OTPVerificationService(email_provider=mailbox).request_challenge(EMAIL, "v1", "w1")

		challenge = EmailVerificationChallenge.objects.get()
		assert challenge.email_hash == hash_email(EMAIL)
		assert challenge.visitor_id == "v1"
		assert challenge.widget_id == "w1"
		assert issued.expires_in_minutes == 10
		assert issued.expires_at == challenge.expires_at
		assert mailbox.sent[0]["to"] == EMAIL
		assert challenge.otp_code in mailbox.sent[0]["body"]
		assert VerificationEvent.objects.filter(event_type="otp_sent").count() == 1

	def test_widget_expiration_override(self, widget, mailbox):
		widget.otp_expiration_minutes = 5
		widget.save()
		issued = OTPVerificationService(email_provider=mailbox).request_challenge(EMAIL, "v1", "w1")
		assert issued.expires_in_minutes == 5

	def test_invalid_email(self, widget, mailbox):
		with pytest.raises(ValidationFailed):
			OTPVerificationService(email_provider=mailbox).request_challenge("nope", "v1", "w1")
		assert not EmailVerificationChallenge.objects.exists()

	def test_unknown_widget(self, widget, mailbox):
		with pytest.raises(NotFoundError):
			OTPVerificationService(email_provider=mailbox).request_challenge(EMAIL, "v1", "missing")

	def test_inactive_widget(self, widget, mailbox):
		widget.is_active = False
		widget.save()
		with pytest.raises(NotFoundError):
			OTPVerificationService(email_provider=mailbox).request_challenge(EMAIL, "v1", "w1")

	def test_fourth_request_is_rate_limited(self, widget, mailbox):
		service = OTPVerificationService(email_provider=mailbox)
		for _ in range(3):
			service.request_challenge(EMAIL, "v1", "w1")

		with pytest.raises(RateLimitedError) as exc:
			service.request_challenge(EMAIL, "v1", "w1")

		assert 3590 <= exc.value.retry_after_seconds <= 3600
		assert EmailVerificationChallenge.objects.count() == 3
		assert len(mailbox.sent) == 3
		assert VerificationEvent.objects.filter(event_type="rate_limited").count() == 1

	def test_failed_send_removes_challenge(self, widget):
		service = OTPVerificationService(email_provider=RecordingEmailProvider(fail=True))
		with pytest.raises(DependencyFailure):
			service.request_challenge(EMAIL, "v1", "w1")
		assert not EmailVerificationChallenge.objects.exists()
		assert not RateLimitHit.objects.exists()

	def test_provider_exception_removes_challenge(self, widget):
		service = OTPVerificationService(email_provider=RecordingEmailProvider(raises=RuntimeError("boom")))
		with pytest.raises(DependencyFailure):
			service.request_challenge(EMAIL, "v1", "w1")
		assert not EmailVerificationChallenge.objects.exists()

	def test_new_challenge_supersedes_pending_one(self, widget, mailbox):
		service = OTPVerificationService(email_provider=mailbox)
		service.request_challenge(EMAIL, "v1", "w1")
		first = EmailVerificationChallenge.objects.get()
		service.request_challenge(EMAIL, "v1", "w1")

		first.refresh_from_db()
		assert first.invalidated_at is not None
		assert EmailVerificationChallenge.objects.filter(invalidated_at__isnull=True).count() == 1


@pytest.mark.django_db
class TestVerifyChallenge:
	@pytest.fixture
	def service(self, widget, mailbox):
		service = OTPVerificationService(email_provider=mailbox)
		service.request_challenge(EMAIL, "v1", "w1")
		return service

	def test_correct_code_verifies(self, service):
		result = service.verify_challenge(EMAIL, _latest_code(), "v1", "w1")

		challenge = EmailVerificationChallenge.objects.get()
		assert challenge.verified
		assert challenge.verified_by_visitor_id == "v1"
		assert result.linked_devices == 1
		assert VerificationEvent.objects.filter(event_type="otp_verified").count() == 1

	def test_wrong_code_reports_remaining_attempts(self, service):
		code = _latest_code()
		with pytest.raises(AuthChallengeError) as exc:
			service.verify_challenge(EMAIL, _wrong(code), "v1", "w1")
		assert exc.value.code == AuthChallengeError.INVALID_OTP
		assert exc.value.extra == {"remainingAttempts": 2}
		assert EmailVerificationChallenge.objects.get().attempts == 1

	def test_three_wrong_codes_invalidate(self, service):
		code = _latest_code()
		for expected in (2, 1):
			with pytest.raises(AuthChallengeError) as exc:
				service.verify_challenge(EMAIL, _wrong(code), "v1", "w1")
			assert exc.value.extra["remainingAttempts"] == expected

		with pytest.raises(AuthChallengeError) as exc:
			service.verify_challenge(EMAIL, _wrong(code), "v1", "w1")
		assert exc.value.code == AuthChallengeError.MAX_ATTEMPTS_EXCEEDED

		challenge = EmailVerificationChallenge.objects.get()
		assert challenge.invalidated_at is not None
		assert challenge.attempts == 3
		assert VerificationEvent.objects.filter(event_type="otp_exhausted").count() == 1

		# even the right code cannot revive it
		with pytest.raises(AuthChallengeError) as exc:
			service.verify_challenge(EMAIL, code, "v1", "w1")
		assert exc.value.code == AuthChallengeError.OTP_NOT_FOUND
		assert not EmailVerificationChallenge.objects.get().verified

	def test_expired_challenge_not_found(self, service):
		EmailVerificationChallenge.objects.update(expires_at=timezone.now() - timedelta(seconds=1))
		with pytest.raises(AuthChallengeError) as exc:
			service.verify_challenge(EMAIL, _latest_code(), "v1", "w1")
		assert exc.value.code == AuthChallengeError.OTP_NOT_FOUND
		assert exc.value.status_code == 404

	def test_verified_challenge_is_not_reused(self, service):
		code = _latest_code()
		service.verify_challenge(EMAIL, code, "v1", "w1")
		with pytest.raises(AuthChallengeError) as exc:
			service.verify_challenge(EMAIL, code, "v1", "w1")
		assert exc.value.code == AuthChallengeError.OTP_NOT_FOUND

	def test_superseded_code_rejected(self, service):
		old_code = _latest_code()
		service.request_challenge(EMAIL, "v1", "w1")
		new_code = _latest_code()
		if old_code != new_code:
			with pytest.raises(AuthChallengeError):
				service.verify_challenge(EMAIL, old_code, "v1", "w1")
		assert service.verify_challenge(EMAIL, new_code, "v1", "w1").linked_devices == 1

	def test_malformed_code(self, service):
		with pytest.raises(ValidationFailed):
			service.verify_challenge(EMAIL, "12ab", "v1", "w1")

	def test_links_preferences_across_devices(self, service, mailbox):
		from consents.reconciliation import PreferenceReconciliationEngine

		engine = PreferenceReconciliationEngine()
		engine.apply("v1", "w1", "accept_all")
		engine.apply("v2", "w1", "reject_all")

		service.verify_challenge(EMAIL, _latest_code(), "v1", "w1")
		email_hash = hash_email(EMAIL)
		assert set(ActivityPreference.objects.filter(visitor_id="v1").values_list("email_hash", flat=True)) == {email_hash}
		assert set(ActivityPreference.objects.filter(visitor_id="v2").values_list("email_hash", flat=True)) == {None}

		service.request_challenge(EMAIL, "v2", "w1")
		result = service.verify_challenge(EMAIL, _latest_code(), "v2", "w1")
		assert result.linked_devices == 2
		assert "2 devices" in mailbox.sent[-1]["body"]

	def test_confirmation_mail_failure_does_not_fail_verify(self, widget):
		provider = RecordingEmailProvider()
		service = OTPVerificationService(email_provider=provider)
		service.request_challenge(EMAIL, "v1", "w1")
		provider.fail = True
		assert service.verify_challenge(EMAIL, _latest_code(), "v1", "w1").linked_devices == 1


@pytest.mark.django_db
class TestOTPEndpoints:
	def test_send_otp(self, api_client, widget):
		res = api_client.post("/api/privacy-centre/send-otp/", {
			"email": EMAIL, "visitorId": "v1", "widgetId": "w1",
		}, format="json")
		assert res.status_code == 200
		assert res.data["success"] is True
		assert res.data["expiresInMinutes"] == 10
		assert "expiresAt" in res.data

	def test_send_otp_validation(self, api_client, widget):
		res = api_client.post("/api/privacy-centre/send-otp/", {"email": "bad", "widgetId": "w1"}, format="json")
		assert res.status_code == 400
		assert res.data["code"] == "VALIDATION_ERROR"
		assert "visitorId" in res.data["errors"]

	def test_send_otp_unknown_widget(self, api_client, widget):
		res = api_client.post("/api/privacy-centre/send-otp/", {
			"email": EMAIL, "visitorId": "v1", "widgetId": "nope",
		}, format="json")
		assert res.status_code == 404
		assert res.data["code"] == "WIDGET_NOT_FOUND"

	def test_send_otp_rate_limited(self, api_client, widget):
		payload = {"email": EMAIL, "visitorId": "v1", "widgetId": "w1"}
		for _ in range(3):
			assert api_client.post("/api/privacy-centre/send-otp/", payload, format="json").status_code == 200
		res = api_client.post("/api/privacy-centre/send-otp/", payload, format="json")
		assert res.status_code == 429
		assert res.data["code"] == "RATE_LIMITED"
		assert 3590 <= res.data["retryAfterSeconds"] <= 3600
		assert res["Retry-After"] == str(res.data["retryAfterSeconds"])

	def test_send_otp_provider_failure(self, api_client, widget, settings):
		settings.CONSENT_EMAIL_PROVIDER = "verification.mailer.ResendEmailProvider"
		settings.RESEND_API_KEY = ""
		res = api_client.post("/api/privacy-centre/send-otp/", {
			"email": EMAIL, "visitorId": "v1", "widgetId": "w1",
		}, format="json")
		assert res.status_code == 500
		assert res.data["code"] == "DEPENDENCY_FAILURE"
		assert not EmailVerificationChallenge.objects.exists()

	def test_verify_flow(self, api_client, widget):
		payload = {"email": EMAIL, "visitorId": "v1", "widgetId": "w1"}
		api_client.post("/api/privacy-centre/send-otp/", payload, format="json")
		code = _latest_code()

		res = api_client.post("/api/privacy-centre/verify-otp/", {**payload, "otpCode": _wrong(code)}, format="json")
		assert res.status_code == 400
		assert res.data == {
			"success": False,
			"error": "Invalid OTP code.",
			"code": "INVALID_OTP",
			"remainingAttempts": 2,
		}

		res = api_client.post("/api/privacy-centre/verify-otp/", {**payload, "otpCode": code}, format="json")
		assert res.status_code == 200
		assert res.data["linkedDevices"] == 1

	def test_verify_exhausted(self, api_client, widget):
		payload = {"email": EMAIL, "visitorId": "v1", "widgetId": "w1"}
		api_client.post("/api/privacy-centre/send-otp/", payload, format="json")
		wrong = _wrong(_latest_code())
		codes = [
			api_client.post("/api/privacy-centre/verify-otp/", {**payload, "otpCode": wrong}, format="json").data["code"]
			for _ in range(4)
		]
		assert codes == ["INVALID_OTP", "INVALID_OTP", "MAX_ATTEMPTS_EXCEEDED", "OTP_NOT_FOUND"]

	def test_verify_without_challenge(self, api_client, widget):
		res = api_client.post("/api/privacy-centre/verify-otp/", {
			"email": EMAIL, "visitorId": "v1", "widgetId": "w1", "otpCode": "123456",
		}, format="json")
		assert res.status_code == 404
		assert res.data["code"] == "OTP_NOT_FOUND"

	def test_verify_rejects_non_numeric_code(self, api_client, widget):
		res = api_client.post("/api/privacy-centre/verify-otp/", {
			"email": EMAIL, "visitorId": "v1", "widgetId": "w1", "otpCode": "12345a",
		}, format="json")
		assert res.status_code == 400
		assert "otpCode" in res.data["errors"]
