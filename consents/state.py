"""
Per-activity consent state machine.

	unset     -> accepted | rejected
	accepted  -> accepted | withdrawn
	rejected  -> accepted | rejected
	withdrawn -> accepted | rejected

A decline becomes ``withdrawn`` only when the persisted status right before
it was ``accepted``; every other decline is ``rejected``, so declining again
after a withdrawal records a plain refusal.
"""
from collections import Counter
from typing import Iterable, Optional

from .models import ConsentRecord, ConsentStatus

UNSET = "unset"

ACCEPTED = ConsentStatus.ACCEPTED.value
REJECTED = ConsentStatus.REJECTED.value
WITHDRAWN = ConsentStatus.WITHDRAWN.value

DECLINED = {REJECTED, WITHDRAWN}

TRANSITIONS = {
	UNSET: {ACCEPTED, REJECTED},
	ACCEPTED: {ACCEPTED, WITHDRAWN},
	REJECTED: {ACCEPTED, REJECTED},
	WITHDRAWN: {ACCEPTED, REJECTED},
}


def target_status(prior: Optional[str], requested: str) -> str:
	"""Status to persist when ``requested`` is applied on top of ``prior``."""
	prior = prior or UNSET
	if requested == ACCEPTED:
		return ACCEPTED
	if requested not in DECLINED:
		raise ValueError(f"Unknown consent status: {requested}")
	return WITHDRAWN if prior == ACCEPTED else REJECTED


def can_transition(prior: Optional[str], target: str) -> bool:
	return target in TRANSITIONS.get(prior or UNSET, set())


def aggregate_status(statuses: Iterable[str]) -> str:
	counts = Counter(statuses)
	accepted, rejected, withdrawn = counts[ACCEPTED], counts[REJECTED], counts[WITHDRAWN]

	if withdrawn and not accepted and not rejected:
		return ConsentRecord.Status.REVOKED.value
	if accepted and not rejected and not withdrawn:
		return ConsentRecord.Status.ACCEPTED.value
	if (rejected or withdrawn) and not accepted:
		return ConsentRecord.Status.REJECTED.value
	return ConsentRecord.Status.PARTIAL.value
