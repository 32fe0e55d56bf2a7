import logging
from typing import Dict, Iterable, List, Optional

from django.utils import timezone

from .models import ActivityPreference, ConsentHistory

log = logging.getLogger(__name__)

UPSERT_FIELDS = [
	"consent_status",
	"email_hash",
	"truncated_ip",
	"user_agent",
	"device_type",
	"language",
	"consent_version",
	"decided_at",
	"expires_at",
	"updated_at",
]


class PreferenceRepository:
	"""
	Strongly-consistent store of per-activity preferences.

	Rows are only ever written through ``upsert``, one INSERT ... ON CONFLICT
	statement keyed on (visitor_id, widget, activity). Callers wrap reads and
	the upsert in one transaction.
	"""

	def current_statuses(self, visitor_id: str, widget_id: str, lock: bool = True) -> Dict[str, str]:
		qs = ActivityPreference.objects.filter(visitor_id=visitor_id, widget_id=widget_id)
		if lock:
			qs = qs.select_for_update()
		return dict(qs.values_list("activity_id", "consent_status"))

	def upsert(self, rows: List[ActivityPreference]) -> int:
		if not rows:
			return 0
		ActivityPreference.objects.bulk_create(
			rows,
			update_conflicts=True,
			unique_fields=["visitor_id", "widget", "activity"],
			update_fields=UPSERT_FIELDS,
		)
		return len(rows)

	def for_visitor(self, visitor_id: str, widget_id: str, activity_ids: Optional[Iterable[str]] = None) -> List[ActivityPreference]:
		qs = ActivityPreference.objects.filter(visitor_id=visitor_id, widget_id=widget_id)
		if activity_ids is not None:
			qs = qs.filter(activity_id__in=list(activity_ids))
		return list(qs)

	def linked_email_hash(self, visitor_id: str, widget_id: str) -> Optional[str]:
		return (
			ActivityPreference.objects
			.filter(visitor_id=visitor_id, widget_id=widget_id, email_hash__isnull=False)
			.order_by("-updated_at")
			.values_list("email_hash", flat=True)
			.first()
		)

	def link_email_hash(self, visitor_id: str, widget_id: str, email_hash: str) -> int:
		"""Stamp every preference of this device with the verified hash."""
		updated = ActivityPreference.objects.filter(visitor_id=visitor_id, widget_id=widget_id).update(
			email_hash=email_hash, updated_at=timezone.now()
		)
		log.info("Linked %s preference rows of %s on %s", updated, visitor_id[:8], widget_id)
		return updated

	def count_linked_devices(self, widget_id: str, email_hash: str) -> int:
		return (
			ActivityPreference.objects
			.filter(widget_id=widget_id, email_hash=email_hash)
			.values("visitor_id")
			.distinct()
			.count()
		)

	def append_history(self, entries: List[ConsentHistory]) -> None:
		if entries:
			ConsentHistory.objects.bulk_create(entries)

	def history(self, visitor_id: str, widget_id: str):
		return ConsentHistory.objects.filter(visitor_id=visitor_id, widget_id=widget_id).select_related("activity")
