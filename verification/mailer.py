"""
Email Delivery Provider.

The plaintext address only ever passes through ``send``; nothing here stores
or logs it.
"""
import logging
from dataclasses import dataclass
from typing import Optional

import resend
from django.conf import settings
from django.utils.module_loading import import_string

from .hashing import hash_email, hash_prefix

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SendResult:
	success: bool
	error: Optional[str] = None
	message_id: Optional[str] = None


class ResendEmailProvider:
	def send(self, to: str, subject: str, body: str) -> SendResult:
		api_key = settings.RESEND_API_KEY
		if not api_key:
			log.error("RESEND_API_KEY not configured, email not sent")
			return SendResult(success=False, error="Email service not configured")

		resend.api_key = api_key
		try:
			response = resend.Emails.send({
				"from": settings.RESEND_FROM_EMAIL,
				"to": to,
				"subject": subject,
				"html": body,
			})
		except Exception as e:
			log.error("Resend send failed for %s: %s", hash_prefix(hash_email(to)), e, exc_info=True)
			return SendResult(success=False, error=str(e) or "Failed to send email via Resend API")

		message_id = response.get("id") if isinstance(response, dict) else getattr(response, "id", None)
		if not message_id:
			log.error("Resend returned no email id for %s", hash_prefix(hash_email(to)))
			return SendResult(success=False, error="Email send completed but no email ID returned")

		log.info("Email %s sent via Resend (%s)", message_id, subject)
		return SendResult(success=True, message_id=message_id)


class ConsoleEmailProvider:
	"""Development provider: logs that a mail would have gone out."""

	def send(self, to: str, subject: str, body: str) -> SendResult:
		log.info("[Console email] '%s' to %s", subject, hash_prefix(hash_email(to)))
		return SendResult(success=True, message_id="console")


def get_email_provider():
	return import_string(settings.CONSENT_EMAIL_PROVIDER)()


def render_otp_email(otp_code: str, expires_in_minutes: int):
	subject = "Verify Your Email - Consently Privacy Centre"
	body = f"""
		<h2>Verify your email</h2>
		<p>You requested to link your privacy preferences across devices.
		Use the following one-time password to verify your email address:</p>
		<p style="font-size:28px;letter-spacing:6px;"><strong>{otp_code}</strong></p>
		<p>This code expires in {expires_in_minutes} minutes.</p>
		<p>If you didn't request this verification, you can safely ignore this email.</p>
	"""
	return subject, body


def render_preferences_linked_email(device_count: int):
	subject = "Your Preferences Are Now Linked - Consently"
	devices = "device" if device_count == 1 else "devices"
	body = f"""
		<h2>Your preferences are linked</h2>
		<p>Your email is now verified. Your consent preferences are linked across
		{device_count} {devices}.</p>
		<p>You can review or withdraw your consent at any time from the privacy centre.</p>
	"""
	return subject, body
