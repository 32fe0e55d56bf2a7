import pytest
from rest_framework.test import APIClient

from verification.mailer import SendResult
from widgets.models import ProcessingActivity, WidgetConfig


class RecordingEmailProvider:
	"""Collects outgoing mail instead of sending it."""

	def __init__(self, fail=False, raises=None):
		self.fail = fail
		self.raises = raises
		self.sent = []

	def send(self, to, subject, body):
		if self.raises:
			raise self.raises
		if self.fail:
			return SendResult(success=False, error="provider down")
		self.sent.append({"to": to, "subject": subject, "body": body})
		return SendResult(success=True, message_id=f"msg-{len(self.sent)}")


@pytest.fixture(autouse=True)
def console_email(settings):
	settings.CONSENT_EMAIL_PROVIDER = "verification.mailer.ConsoleEmailProvider"
	settings.OTP_MAX_ATTEMPTS = 3
	settings.OTP_RATE_LIMIT = 3
	settings.OTP_RATE_WINDOW_SECONDS = 3600


@pytest.fixture
def activities(db):
	return [
		ProcessingActivity.objects.create(id="a1", name="Marketing emails"),
		ProcessingActivity.objects.create(id="a2", name="Analytics"),
	]


@pytest.fixture
def widget(activities):
	return WidgetConfig.objects.create(
		widget_id="w1",
		name="Shop",
		domain="https://shop.example.com",
		selected_activities=["a1", "a2"],
	)


@pytest.fixture
def mailbox():
	return RecordingEmailProvider()


@pytest.fixture
def api_client():
	return APIClient()
