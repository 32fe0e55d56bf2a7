from rest_framework import serializers
from .models import ActivityPreference, ConsentHistory, ConsentStatus


class PreferenceItemSerializer(serializers.Serializer):
	activityId = serializers.CharField(max_length=64)
	consentStatus = serializers.ChoiceField(choices=ConsentStatus.choices)


class MetadataSerializer(serializers.Serializer):
	ipAddress = serializers.IPAddressField(required=False, allow_blank=True)
	userAgent = serializers.CharField(required=False, allow_blank=True)
	deviceType = serializers.CharField(required=False, allow_blank=True, max_length=64)
	language = serializers.CharField(required=False, allow_blank=True, max_length=16)


class BulkPreferencesSerializer(serializers.Serializer):
	visitorId = serializers.CharField(max_length=255)
	widgetId = serializers.CharField(max_length=64)
	action = serializers.ChoiceField(choices=["accept_all", "reject_all", "custom"])
	preferences = PreferenceItemSerializer(many=True, required=False)
	visitorEmail = serializers.EmailField(required=False, allow_blank=True)
	metadata = MetadataSerializer(required=False)

	def validate(self, data):
		if data["action"] == "custom" and not data.get("preferences"):
			raise serializers.ValidationError({"preferences": ["preferences array is required for custom action"]})
		return data


class VisitorQuerySerializer(serializers.Serializer):
	visitorId = serializers.CharField(max_length=255)
	widgetId = serializers.CharField(max_length=64)


class ActivityPreferenceSerializer(serializers.ModelSerializer):
	activityId = serializers.CharField(source="activity_id")
	consentStatus = serializers.CharField(source="consent_status")
	deviceType = serializers.CharField(source="device_type")
	consentVersion = serializers.CharField(source="consent_version")
	decidedAt = serializers.DateTimeField(source="decided_at")
	expiresAt = serializers.DateTimeField(source="expires_at")
	updatedAt = serializers.DateTimeField(source="updated_at")

	class Meta:
		model = ActivityPreference
		fields = [
			"activityId",
			"consentStatus",
			"deviceType",
			"language",
			"consentVersion",
			"decidedAt",
			"expiresAt",
			"updatedAt",
		]


class ConsentHistorySerializer(serializers.ModelSerializer):
	activityId = serializers.CharField(source="activity_id")
	activityName = serializers.CharField(source="activity.name")
	previousStatus = serializers.CharField(source="previous_status", allow_null=True)
	newStatus = serializers.CharField(source="new_status")
	changeSource = serializers.CharField(source="change_source")
	deviceType = serializers.CharField(source="device_type")
	changedAt = serializers.DateTimeField(source="changed_at")

	class Meta:
		model = ConsentHistory
		fields = [
			"activityId",
			"activityName",
			"previousStatus",
			"newStatus",
			"changeSource",
			"deviceType",
			"language",
			"changedAt",
		]
