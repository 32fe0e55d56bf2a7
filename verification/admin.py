from django.contrib import admin
from .models import EmailVerificationChallenge, VerificationEvent, RateLimitBucket


@admin.register(EmailVerificationChallenge)
class EmailVerificationChallengeAdmin(admin.ModelAdmin):
	list_display = ("id", "widget", "short_hash", "attempts", "verified", "invalidated_at", "expires_at", "created_at")
	list_filter = ("verified", "created_at")
	search_fields = ("email_hash", "visitor_id", "widget__widget_id")
	# the code itself is never shown
	exclude = ("otp_code",)
	readonly_fields = (
		"id", "email_hash", "visitor_id", "widget", "expires_at", "verified", "verified_at",
		"verified_by_visitor_id", "attempts", "invalidated_at", "created_at", "updated_at",
	)

	@admin.display(description="Email hash")
	def short_hash(self, obj):
		return f"{obj.email_hash[:10]}..."


@admin.register(VerificationEvent)
class VerificationEventAdmin(admin.ModelAdmin):
	list_display = ("event_type", "widget_id", "visitor_id", "created_at")
	list_filter = ("event_type", "created_at")
	search_fields = ("widget_id", "visitor_id", "email_hash")
	readonly_fields = ("widget_id", "visitor_id", "event_type", "email_hash", "metadata", "created_at")


@admin.register(RateLimitBucket)
class RateLimitBucketAdmin(admin.ModelAdmin):
	list_display = ("key", "created_at")
	search_fields = ("key",)
