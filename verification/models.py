import uuid
from django.db import models
from django.utils import timezone
from widgets.models import WidgetConfig


class EmailVerificationChallenge(models.Model):
	"""
	One OTP issued to bind an anonymous visitor to a hashed email.
	Inert once verified, invalidated (attempts exhausted / superseded) or expired.
	"""
	id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
	email_hash = models.CharField(max_length=64)
	otp_code = models.CharField(max_length=6)
	visitor_id = models.CharField(max_length=255)
	widget = models.ForeignKey(
		WidgetConfig, to_field="widget_id", on_delete=models.CASCADE, related_name="verification_challenges"
	)
	expires_at = models.DateTimeField()
	verified = models.BooleanField(default=False)
	verified_at = models.DateTimeField(null=True, blank=True)
	verified_by_visitor_id = models.CharField(max_length=255, null=True, blank=True)
	attempts = models.PositiveSmallIntegerField(default=0)
	invalidated_at = models.DateTimeField(null=True, blank=True)

	created_at = models.DateTimeField(default=timezone.now)
	updated_at = models.DateTimeField(auto_now=True)

	class Meta:
		ordering = ["-created_at"]
		indexes = [
			models.Index(fields=["email_hash", "widget", "created_at"], name="challenge_hash_widget_idx"),
			models.Index(fields=["expires_at"], name="challenge_expires_idx"),
		]

	def __str__(self):
		return f"Challenge {self.id} ({self.email_hash[:10]}..., attempts={self.attempts})"

	@property
	def is_expired(self) -> bool:
		return timezone.now() >= self.expires_at

	@property
	def is_pending(self) -> bool:
		return not self.verified and self.invalidated_at is None and not self.is_expired


class RateLimitBucket(models.Model):
	"""Lock row per rate-limit key; hits are counted under its row lock."""
	key = models.CharField(max_length=255, unique=True)
	created_at = models.DateTimeField(auto_now_add=True)

	def __str__(self):
		return self.key


class RateLimitHit(models.Model):
	bucket = models.ForeignKey(RateLimitBucket, on_delete=models.CASCADE, related_name="hits")
	created_at = models.DateTimeField(default=timezone.now, db_index=True)

	class Meta:
		indexes = [
			models.Index(fields=["bucket", "created_at"], name="ratelimit_hit_bucket_idx"),
		]


class VerificationEvent(models.Model):
	class EventType(models.TextChoices):
		OTP_SENT = "otp_sent", "OTP sent"
		RATE_LIMITED = "rate_limited", "Rate limited"
		OTP_FAILED = "otp_failed", "OTP failed"
		OTP_EXHAUSTED = "otp_exhausted", "OTP attempts exhausted"
		OTP_VERIFIED = "otp_verified", "OTP verified"

	widget_id = models.CharField(max_length=64)
	visitor_id = models.CharField(max_length=255)
	event_type = models.CharField(max_length=20, choices=EventType.choices)
	email_hash = models.CharField(max_length=64)
	metadata = models.JSONField(default=dict, blank=True)
	created_at = models.DateTimeField(default=timezone.now)

	class Meta:
		ordering = ["-created_at"]
		indexes = [
			models.Index(fields=["widget_id", "event_type", "created_at"], name="verif_event_widget_type_idx"),
		]

	def __str__(self):
		return f"{self.event_type} on {self.widget_id} ({self.created_at:%Y-%m-%d %H:%M})"
