from django.contrib import admin
from .models import WidgetConfig, ProcessingActivity


@admin.register(WidgetConfig)
class WidgetConfigAdmin(admin.ModelAdmin):
	list_display = ("widget_id", "name", "domain", "is_active", "activity_count", "consent_duration_days", "created_at")
	list_filter = ("is_active", "created_at")
	search_fields = ("widget_id", "name", "domain")
	ordering = ("-created_at",)
	readonly_fields = ("created_at", "updated_at")

	@admin.display(description="Activities")
	def activity_count(self, obj):
		return len(obj.selected_activities or [])


@admin.register(ProcessingActivity)
class ProcessingActivityAdmin(admin.ModelAdmin):
	list_display = ("name", "id", "industry", "is_active", "created_at")
	list_filter = ("is_active", "industry")
	search_fields = ("id", "name")
	readonly_fields = ("id", "created_at", "updated_at")
