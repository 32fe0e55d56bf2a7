from django.core.validators import RegexValidator
from rest_framework import serializers


class SendOTPSerializer(serializers.Serializer):
	email = serializers.EmailField()
	visitorId = serializers.CharField(max_length=255)
	widgetId = serializers.CharField(max_length=64)


class VerifyOTPSerializer(SendOTPSerializer):
	otpCode = serializers.CharField(
		validators=[RegexValidator(r"^\d{6}$", "OTP must be a 6-digit code")],
	)
