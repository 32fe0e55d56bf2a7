from django.contrib import admin
from .models import ActivityPreference, ConsentHistory, ConsentRecord


@admin.register(ActivityPreference)
class ActivityPreferenceAdmin(admin.ModelAdmin):
	list_display = ("visitor_id", "widget", "activity", "consent_status", "device_type", "expires_at", "updated_at")
	search_fields = ("visitor_id", "widget__widget_id", "activity__id", "email_hash")
	list_filter = ("consent_status", "device_type")
	readonly_fields = ("created_at", "updated_at")


@admin.register(ConsentHistory)
class ConsentHistoryAdmin(admin.ModelAdmin):
	list_display = ("visitor_id", "widget", "activity", "previous_status", "new_status", "change_source", "changed_at")
	search_fields = ("visitor_id", "widget__widget_id")
	list_filter = ("new_status", "change_source")


@admin.register(ConsentRecord)
class ConsentRecordAdmin(admin.ModelAdmin):
	list_display = ("consent_id", "widget_id", "consent_status", "device_type", "created_at")
	search_fields = ("consent_id", "widget_id", "visitor_id", "email_hash")
	list_filter = ("consent_status", "created_at")

	def get_readonly_fields(self, request, obj=None):
		return [f.name for f in self.model._meta.fields]

	def has_change_permission(self, request, obj=None):
		return False

	def has_delete_permission(self, request, obj=None):
		return False
