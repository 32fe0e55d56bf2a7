import logging
from django.db import DatabaseError, transaction
from .models import VerificationEvent

log = logging.getLogger(__name__)


def record_event(event_type: str, widget_id: str, visitor_id: str, email_hash: str, **metadata) -> None:
	"""Best-effort event trail; a failed insert is logged and never fails the request."""
	try:
		with transaction.atomic():
			VerificationEvent.objects.create(
				widget_id=widget_id,
				visitor_id=visitor_id,
				event_type=event_type,
				email_hash=email_hash,
				metadata=metadata,
			)
	except DatabaseError as e:
		log.warning("Failed to track %s event on %s (non-critical): %s", event_type, widget_id, e)
