"""
Preference Reconciliation Engine.

Merges one consent action (accept_all, reject_all or custom) into the
visitor's persisted per-activity state:

1. validate the action against the widget's governed activities, all or nothing
2. read the prior statuses under a row lock and derive each target status
3. upsert every row in one statement and append the applied transitions to history
4. aggregate the post-write state, mint a consent id and hand it to the projector
5. re-read and return the authoritative preferences
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional

from django.conf import settings
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from consently.exceptions import UnknownActivityError, ValidationFailed
from verification.hashing import hash_email, hash_prefix
from verification.models import EmailVerificationChallenge
from widgets.provider import get_widget_config

from . import state
from .identity import resolve_consent_id
from .metadata import ConsentMetadata
from .models import ActivityPreference, ConsentHistory, ConsentRecord
from .projector import AuditProjector, ReconciledState
from .repositories import PreferenceRepository

log = logging.getLogger(__name__)

ACCEPT_ALL = "accept_all"
REJECT_ALL = "reject_all"
CUSTOM = "custom"
ACTIONS = (ACCEPT_ALL, REJECT_ALL, CUSTOM)

REVOCATION_REASON = "User withdrew all consent via preference centre (bulk)"


@dataclass
class BulkResult:
	updated_count: int
	expires_at: datetime
	preferences: List[ActivityPreference]
	consent_id: str
	overall_status: str
	audit_recorded: bool


class PreferenceReconciliationEngine:
	def __init__(self, repository: Optional[PreferenceRepository] = None, projector: Optional[AuditProjector] = None):
		self.repository = repository or PreferenceRepository()
		self.projector = projector or AuditProjector()

	def apply(
		self,
		visitor_id: str,
		widget_id: str,
		action: str,
		preferences: Optional[list] = None,
		visitor_email: Optional[str] = None,
		metadata: Optional[ConsentMetadata] = None,
	) -> BulkResult:
		metadata = metadata or ConsentMetadata()
		if not visitor_id:
			raise ValidationFailed("visitorId is required")
		if action not in ACTIONS:
			raise ValidationFailed("Invalid action. Must be accept_all, reject_all, or custom")
		if action == CUSTOM and not preferences:
			raise ValidationFailed("preferences array is required for custom action")

		widget = get_widget_config(widget_id)
		governed = widget.active_activity_ids()
		if not governed:
			raise ValidationFailed("Widget has no activities configured", code="NO_ACTIVITIES")

		requested = self._requested_statuses(action, governed, preferences)
		unknown = set(requested) - set(governed)
		if unknown:
			log.warning("Rejected %s batch on %s, unknown activities %s", action, widget_id, sorted(unknown))
			raise UnknownActivityError(unknown)

		email_hash = self._resolve_email_hash(visitor_id, widget_id, visitor_email)
		now = timezone.now()
		expires_at = now + timedelta(days=widget.effective_consent_duration_days)

		with transaction.atomic():
			prior = self.repository.current_statuses(visitor_id, widget_id, lock=True)
			rows, transitions = [], []
			for activity_id, requested_status in requested.items():
				before = prior.get(activity_id)
				target = state.target_status(before, requested_status)
				if not state.can_transition(before, target):
					raise ValidationFailed(
						f"Cannot move {activity_id} from {before or state.UNSET} to {target}",
						code="INVALID_TRANSITION",
					)
				rows.append(ActivityPreference(
					visitor_id=visitor_id,
					widget_id=widget_id,
					activity_id=activity_id,
					consent_status=target,
					email_hash=email_hash,
					truncated_ip=metadata.truncated_ip,
					user_agent=metadata.user_agent,
					device_type=metadata.device_type,
					language=metadata.language,
					consent_version=settings.CONSENT_VERSION,
					decided_at=now,
					expires_at=expires_at,
					created_at=now,
					updated_at=now,
				))
				if before != target:
					transitions.append(ConsentHistory(
						visitor_id=visitor_id,
						widget_id=widget_id,
						activity_id=activity_id,
						previous_status=before,
						new_status=target,
						change_source=action,
						device_type=metadata.device_type,
						language=metadata.language,
						consent_version=settings.CONSENT_VERSION,
						changed_at=now,
					))
			updated_count = self.repository.upsert(rows)
			self.repository.append_history(transitions)

		log.info(
			"Applied %s for %s on %s: %s rows, %s transitions",
			action, visitor_id[:8], widget_id, updated_count, len(transitions),
		)

		current = self.repository.for_visitor(visitor_id, widget_id, governed)
		statuses = {p.activity_id: p.consent_status for p in current}
		overall = state.aggregate_status(statuses.values())
		revoked = overall == ConsentRecord.Status.REVOKED
		consent_id = resolve_consent_id(widget_id, visitor_id, email_hash)

		record = self.projector.project(ReconciledState(
			widget_id=widget_id,
			visitor_id=visitor_id,
			consent_id=consent_id,
			overall_status=overall,
			consented_activities=[a for a in governed if statuses.get(a) == state.ACCEPTED],
			rejected_activities=[a for a in governed if statuses.get(a) in state.DECLINED],
			decided_at=now,
			expires_at=expires_at,
			email_hash=email_hash,
			revoked_at=now if revoked else None,
			revocation_reason=REVOCATION_REASON if revoked else None,
			action=action,
			statuses=statuses,
			metadata=metadata,
		))

		order = {a: i for i, a in enumerate(governed)}
		current.sort(key=lambda p: order.get(p.activity_id, len(order)))
		return BulkResult(
			updated_count=updated_count,
			expires_at=expires_at,
			preferences=current,
			consent_id=consent_id,
			overall_status=overall,
			audit_recorded=record is not None,
		)

	def _requested_statuses(self, action: str, governed: List[str], preferences: Optional[list]) -> dict:
		if action == ACCEPT_ALL:
			return {a: state.ACCEPTED for a in governed}
		if action == REJECT_ALL:
			return {a: state.REJECTED for a in governed}

		requested = {}
		for item in preferences:
			activity_id = str(item.get("activityId") or "")
			status = item.get("consentStatus")
			if not activity_id:
				raise ValidationFailed("Each preference needs an activityId")
			if status not in (state.ACCEPTED, state.REJECTED, state.WITHDRAWN):
				raise ValidationFailed(f"Invalid consentStatus for {activity_id}")
			if activity_id in requested:
				raise ValidationFailed(f"Duplicate activityId {activity_id}", code="DUPLICATE_ACTIVITY")
			requested[activity_id] = status
		return requested

	def _resolve_email_hash(self, visitor_id: str, widget_id: str, visitor_email: Optional[str]) -> Optional[str]:
		"""
		A supplied email only names the transaction once this visitor verified it;
		otherwise fall back to the hash linked to the device, if any.
		"""
		if visitor_email:
			email_hash = hash_email(visitor_email)
			verified = EmailVerificationChallenge.objects.filter(
				Q(visitor_id=visitor_id) | Q(verified_by_visitor_id=visitor_id),
				email_hash=email_hash,
				widget_id=widget_id,
				verified=True,
			).exists()
			if verified:
				return email_hash
			log.info("Ignoring unverified email %s for %s on %s", hash_prefix(email_hash), visitor_id[:8], widget_id)
		return self.repository.linked_email_hash(visitor_id, widget_id)
