# verification/views.py
from drf_spectacular.utils import extend_schema
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from .serializers import SendOTPSerializer, VerifyOTPSerializer
from .services import OTPVerificationService

ERROR_SCHEMA = {"type": "object", "properties": {
	"success": {"type": "boolean"},
	"error": {"type": "string"},
	"code": {"type": "string"},
}}


@extend_schema(
	request=SendOTPSerializer,
	responses={
		200: {"type": "object", "properties": {
			"success": {"type": "boolean"},
			"expiresAt": {"type": "string", "format": "date-time"},
			"expiresInMinutes": {"type": "integer"},
		}},
		404: ERROR_SCHEMA,
		429: ERROR_SCHEMA,
		500: ERROR_SCHEMA,
	},
	description="Email a one-time code that links this visitor's preferences to the address (public)",
	tags=["Privacy Centre"]
)
@api_view(["POST"])
@authentication_classes([])
@permission_classes([AllowAny])
def send_otp(request):
	serializer = SendOTPSerializer(data=request.data)
	serializer.is_valid(raise_exception=True)
	data = serializer.validated_data

	issued = OTPVerificationService().request_challenge(
		email=data["email"],
		visitor_id=data["visitorId"],
		widget_id=data["widgetId"],
	)
	return Response({
		"success": True,
		"message": "OTP sent successfully to your email",
		"expiresAt": issued.expires_at.isoformat(),
		"expiresInMinutes": issued.expires_in_minutes,
	})


@extend_schema(
	request=VerifyOTPSerializer,
	responses={
		200: {"type": "object", "properties": {
			"success": {"type": "boolean"},
			"linkedDevices": {"type": "integer"},
		}},
		400: ERROR_SCHEMA,
		404: ERROR_SCHEMA,
	},
	description="Verify a one-time code and link the visitor's preferences to the email hash (public)",
	tags=["Privacy Centre"]
)
@api_view(["POST"])
@authentication_classes([])
@permission_classes([AllowAny])
def verify_otp(request):
	serializer = VerifyOTPSerializer(data=request.data)
	serializer.is_valid(raise_exception=True)
	data = serializer.validated_data

	verified = OTPVerificationService().verify_challenge(
		email=data["email"],
		code=data["otpCode"],
		visitor_id=data["visitorId"],
		widget_id=data["widgetId"],
	)
	return Response({
		"success": True,
		"message": "Email verified successfully",
		"linkedDevices": verified.linked_devices,
		"verifiedAt": verified.verified_at.isoformat(),
	})
