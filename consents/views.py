import csv
from drf_spectacular.utils import extend_schema, OpenApiParameter
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from django.http import HttpResponse

from consently.exceptions import ValidationFailed
from widgets.models import ProcessingActivity
from widgets.provider import get_widget_config
from .metadata import ConsentMetadata
from .reconciliation import PreferenceReconciliationEngine, ACCEPT_ALL, REJECT_ALL
from .repositories import PreferenceRepository
from .serializers import (
	BulkPreferencesSerializer,
	VisitorQuerySerializer,
	ActivityPreferenceSerializer,
	ConsentHistorySerializer,
)

VISITOR_PARAMS = [
	OpenApiParameter("visitorId", str, required=True),
	OpenApiParameter("widgetId", str, required=True),
]


def _visitor_query(request):
	query = VisitorQuerySerializer(data=request.query_params)
	if not query.is_valid():
		raise ValidationFailed("visitorId and widgetId are required", errors=query.errors)
	return query.validated_data["visitorId"], query.validated_data["widgetId"]


@extend_schema(
	request=BulkPreferencesSerializer,
	responses={200: {"type": "object", "properties": {
		"success": {"type": "boolean"},
		"updatedCount": {"type": "integer"},
		"expiresAt": {"type": "string", "format": "date-time"},
		"preferences": {"type": "array", "items": {"type": "object"}},
		"consentId": {"type": "string"},
		"overallStatus": {"type": "string"},
		"auditRecorded": {"type": "boolean"},
	}}},
	description="Apply accept all / reject all / custom decisions to every governed activity in one atomic write (public)",
	tags=["Privacy Centre"]
)
@api_view(["POST"])
@authentication_classes([])
@permission_classes([AllowAny])
def bulk_preferences(request):
	serializer = BulkPreferencesSerializer(data=request.data)
	serializer.is_valid(raise_exception=True)
	data = serializer.validated_data

	action = data["action"]
	result = PreferenceReconciliationEngine().apply(
		visitor_id=data["visitorId"],
		widget_id=data["widgetId"],
		action=action,
		preferences=[dict(p) for p in data.get("preferences") or []],
		visitor_email=data.get("visitorEmail") or None,
		metadata=ConsentMetadata.from_request(request, data.get("metadata")),
	)

	verb = {ACCEPT_ALL: "accepted", REJECT_ALL: "rejected"}.get(action, "updated")
	return Response({
		"success": True,
		"message": f"Successfully {verb} all preferences",
		"updatedCount": result.updated_count,
		"expiresAt": result.expires_at.isoformat(),
		"preferences": ActivityPreferenceSerializer(result.preferences, many=True).data,
		"consentId": result.consent_id,
		"overallStatus": result.overall_status,
		"auditRecorded": result.audit_recorded,
	})


@extend_schema(
	parameters=VISITOR_PARAMS,
	responses={200: {"type": "object"}},
	description="Current status of every governed activity for a visitor (public)",
	tags=["Privacy Centre"]
)
@api_view(["GET"])
@authentication_classes([])
@permission_classes([AllowAny])
def preferences(request):
	visitor_id, widget_id = _visitor_query(request)
	widget = get_widget_config(widget_id)
	governed = widget.active_activity_ids()

	names = dict(ProcessingActivity.objects.filter(id__in=governed).values_list("id", "name"))
	rows = {p.activity_id: p for p in PreferenceRepository().for_visitor(visitor_id, widget_id, governed)}

	items = []
	for activity_id in governed:
		pref = rows.get(activity_id)
		items.append({
			"activityId": activity_id,
			"activityName": names.get(activity_id, ""),
			"consentStatus": pref.consent_status if pref else "unset",
			"decidedAt": pref.decided_at.isoformat() if pref else None,
			"expiresAt": pref.expires_at.isoformat() if pref else None,
		})

	return Response({
		"success": True,
		"widgetId": widget_id,
		"visitorId": visitor_id,
		"preferences": items,
	})


@extend_schema(
	parameters=VISITOR_PARAMS + [OpenApiParameter("export", str, enum=["csv"], required=False)],
	responses={200: {"type": "object"}},
	description="Consent change history for a visitor; export=csv downloads it as a CSV file (public)",
	tags=["Privacy Centre"]
)
@api_view(["GET"])
@authentication_classes([])
@permission_classes([AllowAny])
def preference_history(request):
	visitor_id, widget_id = _visitor_query(request)
	get_widget_config(widget_id)
	entries = PreferenceRepository().history(visitor_id, widget_id)

	if request.query_params.get("export") == "csv":
		response = HttpResponse(content_type="text/csv")
		response["Content-Disposition"] = f'attachment; filename="consent_history_{widget_id}.csv"'

		writer = csv.writer(response)
		writer.writerow(["Date", "Activity", "Activity ID", "Previous Status", "New Status", "Source", "Device", "Language"])
		for h in entries:
			writer.writerow([
				h.changed_at.isoformat(),
				h.activity.name,
				h.activity_id,
				h.previous_status or "unset",
				h.new_status,
				h.change_source,
				h.device_type,
				h.language,
			])
		return response

	return Response({
		"success": True,
		"history": ConsentHistorySerializer(entries, many=True).data,
	})
