# widgets/models.py
import secrets
import uuid
from django.conf import settings
from django.db import models


def _new_widget_id() -> str:
	return f"dpdpa_{secrets.token_hex(4)}"


def _new_activity_id() -> str:
	return str(uuid.uuid4())


class ProcessingActivity(models.Model):
	"""A data-processing purpose a visitor can consent to, defined by the site operator."""
	id = models.CharField(primary_key=True, max_length=64, default=_new_activity_id, editable=False)
	name = models.CharField(max_length=255)
	industry = models.CharField(max_length=120, null=True, blank=True)
	is_active = models.BooleanField(default=True)
	created_at = models.DateTimeField(auto_now_add=True)
	updated_at = models.DateTimeField(auto_now=True)
	owner = models.ForeignKey(
		settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name="processing_activities"
	)

	class Meta:
		verbose_name_plural = "Processing activities"
		ordering = ["name"]

	def __str__(self):
		return f"{self.name} ({self.id})"


class WidgetConfig(models.Model):
	widget_id = models.CharField(max_length=64, unique=True, default=_new_widget_id)
	name = models.CharField(max_length=255, blank=True, default="")
	domain = models.URLField(max_length=500, blank=True, default="")
	owner = models.ForeignKey(
		settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name="consent_widgets"
	)

	# ordered list of ProcessingActivity ids governed by this widget
	selected_activities = models.JSONField(default=list, blank=True)
	consent_duration_days = models.PositiveIntegerField(null=True, blank=True)
	otp_expiration_minutes = models.PositiveSmallIntegerField(null=True, blank=True)
	is_active = models.BooleanField(default=True)

	created_at = models.DateTimeField(auto_now_add=True)
	updated_at = models.DateTimeField(auto_now=True)

	def __str__(self):
		return f"{self.name or self.widget_id} ({self.domain or 'no domain'})"

	@property
	def effective_consent_duration_days(self) -> int:
		return self.consent_duration_days or settings.CONSENT_DEFAULT_DURATION_DAYS

	@property
	def effective_otp_expiration_minutes(self) -> int:
		return self.otp_expiration_minutes or settings.OTP_DEFAULT_EXPIRATION_MINUTES

	def active_activity_ids(self) -> list:
		"""
		Selected activities that still exist and are active, in widget order.
		This is the set every consent decision is validated against.
		"""
		selected = [str(a) for a in (self.selected_activities or [])]
		if not selected:
			return []
		active = set(
			ProcessingActivity.objects.filter(id__in=selected, is_active=True).values_list("id", flat=True)
		)
		seen = set()
		ordered = []
		for activity_id in selected:
			if activity_id in active and activity_id not in seen:
				seen.add(activity_id)
				ordered.append(activity_id)
		return ordered
