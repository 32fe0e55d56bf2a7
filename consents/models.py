from django.db import models
from django.utils import timezone
from widgets.models import WidgetConfig, ProcessingActivity


class ConsentStatus(models.TextChoices):
	ACCEPTED = "accepted", "Accepted"
	REJECTED = "rejected", "Rejected"
	WITHDRAWN = "withdrawn", "Withdrawn"


class DeviceType(models.TextChoices):
	DESKTOP = "Desktop", "Desktop"
	MOBILE = "Mobile", "Mobile"
	TABLET = "Tablet", "Tablet"
	UNKNOWN = "Unknown", "Unknown"


class ActivityPreference(models.Model):
	"""
	Authoritative per-activity decision of one visitor on one widget.
	Written only through bulk upserts on (visitor_id, widget, activity).
	"""
	visitor_id = models.CharField(max_length=255)
	widget = models.ForeignKey(WidgetConfig, to_field="widget_id", on_delete=models.CASCADE, related_name="preferences")
	activity = models.ForeignKey(ProcessingActivity, on_delete=models.CASCADE, related_name="preferences")
	consent_status = models.CharField(max_length=20, choices=ConsentStatus.choices)

	# opaque correlation token set once the visitor verified an email; never joined back to PII
	email_hash = models.CharField(max_length=64, null=True, blank=True)

	# GDPR-safe context
	truncated_ip = models.GenericIPAddressField(null=True, blank=True)
	user_agent = models.TextField(blank=True, null=True)
	device_type = models.CharField(max_length=10, choices=DeviceType.choices, default=DeviceType.UNKNOWN)
	language = models.CharField(max_length=16, default="en")
	consent_version = models.CharField(max_length=20, default="1.0")

	decided_at = models.DateTimeField(default=timezone.now)
	expires_at = models.DateTimeField()
	created_at = models.DateTimeField(default=timezone.now)
	updated_at = models.DateTimeField(default=timezone.now)

	class Meta:
		ordering = ["widget", "visitor_id", "activity"]
		constraints = [
			models.UniqueConstraint(
				fields=["visitor_id", "widget", "activity"],
				name="uniq_preference_visitor_widget_activity",
			),
		]
		indexes = [
			models.Index(fields=["widget", "email_hash"], name="preference_widget_hash_idx"),
		]

	def __str__(self):
		return f"{self.visitor_id} / {self.activity_id}: {self.consent_status}"


class ConsentHistory(models.Model):
	"""One applied per-activity transition; previous_status is null for a first decision."""
	visitor_id = models.CharField(max_length=255)
	widget = models.ForeignKey(WidgetConfig, to_field="widget_id", on_delete=models.CASCADE, related_name="consent_history")
	activity = models.ForeignKey(ProcessingActivity, on_delete=models.CASCADE, related_name="consent_history")
	previous_status = models.CharField(max_length=20, choices=ConsentStatus.choices, null=True, blank=True)
	new_status = models.CharField(max_length=20, choices=ConsentStatus.choices)
	change_source = models.CharField(max_length=20)
	device_type = models.CharField(max_length=10, choices=DeviceType.choices, default=DeviceType.UNKNOWN)
	language = models.CharField(max_length=16, default="en")
	consent_version = models.CharField(max_length=20, default="1.0")
	changed_at = models.DateTimeField(default=timezone.now)

	class Meta:
		ordering = ["-changed_at"]
		verbose_name_plural = "Consent history"
		indexes = [
			models.Index(fields=["visitor_id", "widget", "changed_at"], name="history_visitor_widget_idx"),
		]

	def __str__(self):
		return f"{self.activity_id}: {self.previous_status or 'unset'} -> {self.new_status}"


class ConsentRecord(models.Model):
	"""
	Append-only audit projection of one consent transaction.
	Plain identifiers only: this is a read model, decoupled from the preference store.
	"""

	class Status(models.TextChoices):
		ACCEPTED = "accepted", "Accepted"
		REJECTED = "rejected", "Rejected"
		PARTIAL = "partial", "Partial"
		REVOKED = "revoked", "Revoked"

	widget_id = models.CharField(max_length=64)
	visitor_id = models.CharField(max_length=255)
	consent_id = models.CharField(max_length=255, db_index=True)
	consent_status = models.CharField(max_length=10, choices=Status.choices)
	consented_activities = models.JSONField(default=list)
	rejected_activities = models.JSONField(default=list)
	consent_details = models.JSONField(default=dict, blank=True)
	email_hash = models.CharField(max_length=64, null=True, blank=True)

	revoked_at = models.DateTimeField(null=True, blank=True)
	revocation_reason = models.TextField(null=True, blank=True)

	truncated_ip = models.GenericIPAddressField(null=True, blank=True)
	user_agent = models.TextField(blank=True, null=True)
	device_type = models.CharField(max_length=10, choices=DeviceType.choices, default=DeviceType.UNKNOWN)
	language = models.CharField(max_length=16, default="en")

	consent_given_at = models.DateTimeField()
	consent_expires_at = models.DateTimeField()
	privacy_notice_version = models.CharField(max_length=20, default="3.0")
	created_at = models.DateTimeField(default=timezone.now)

	class Meta:
		ordering = ["-created_at"]
		indexes = [
			models.Index(fields=["widget_id", "visitor_id"], name="record_widget_visitor_idx"),
			models.Index(fields=["widget_id", "email_hash"], name="record_widget_hash_idx"),
		]

	def __str__(self):
		return f"Consent {self.consent_status} on {self.widget_id} ({self.created_at.date()})"

	def save(self, *args, **kwargs):
		if not self._state.adding:
			raise ValueError("Consent records are append-only")
		super().save(*args, **kwargs)
