import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from django.conf import settings
from django.db import DatabaseError, transaction

from .metadata import ConsentMetadata
from .models import ConsentRecord

log = logging.getLogger(__name__)


@dataclass
class ReconciledState:
	widget_id: str
	visitor_id: str
	consent_id: str
	overall_status: str
	consented_activities: List[str]
	rejected_activities: List[str]
	decided_at: datetime
	expires_at: datetime
	email_hash: Optional[str] = None
	revoked_at: Optional[datetime] = None
	revocation_reason: Optional[str] = None
	action: str = ""
	statuses: dict = field(default_factory=dict)
	metadata: ConsentMetadata = field(default_factory=ConsentMetadata)


class AuditProjector:
	"""
	Eventually-consistent, insert-only audit read model.

	``project`` never raises on a store failure: the preference write it
	describes is already committed and stays authoritative.
	"""

	def project(self, state: ReconciledState) -> Optional[ConsentRecord]:
		try:
			with transaction.atomic():
				return ConsentRecord.objects.create(
					widget_id=state.widget_id,
					visitor_id=state.visitor_id,
					consent_id=state.consent_id,
					consent_status=state.overall_status,
					consented_activities=state.consented_activities,
					rejected_activities=state.rejected_activities,
					consent_details={
						"action": state.action,
						"activityConsents": state.statuses,
					},
					email_hash=state.email_hash,
					revoked_at=state.revoked_at,
					revocation_reason=state.revocation_reason,
					truncated_ip=state.metadata.truncated_ip,
					user_agent=state.metadata.user_agent,
					device_type=state.metadata.device_type,
					language=state.metadata.language,
					consent_given_at=state.decided_at,
					consent_expires_at=state.expires_at,
					privacy_notice_version=settings.PRIVACY_NOTICE_VERSION,
				)
		except DatabaseError:
			log.exception(
				"Audit projection failed for %s on %s (preferences already saved)",
				state.consent_id, state.widget_id,
			)
			return None
