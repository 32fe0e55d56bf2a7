"""
Consent Identity Resolver.

Verified:  {widget_id}_{email_hash[:16]}_{unix_millis}
Anonymous: {widget_id}_{visitor_id}_{unix_millis}_{5 lowercase alphanumerics}

Every id minted for the same (widget, email hash) starts with
``consent_id_prefix(widget_id, email_hash)``, so all transactions of one
verified person can be fetched with a prefix match. Anonymous ids never carry
anything derived from an email hash.
"""
import re
import secrets
import string
import time
from dataclasses import dataclass
from typing import Optional

HASH_PREFIX_LENGTH = 16
SUFFIX_LENGTH = 5
SUFFIX_ALPHABET = string.ascii_lowercase + string.digits

_VERIFIED_TAIL = re.compile(r"^(?P<rest>.+)_(?P<hash>[0-9a-f]{16})_(?P<ts>\d+)$")
_ANONYMOUS_TAIL = re.compile(r"^(?P<rest>.+)_(?P<ts>\d+)_(?P<suffix>[a-z0-9]{5})$")


@dataclass(frozen=True)
class ParsedConsentId:
	widget_id: Optional[str]
	timestamp_ms: int
	email_hash16: Optional[str] = None
	visitor_id: Optional[str] = None
	suffix: Optional[str] = None

	@property
	def is_verified(self) -> bool:
		return self.email_hash16 is not None


def _now_ms() -> int:
	return int(time.time() * 1000)


def _random_suffix() -> str:
	return "".join(secrets.choice(SUFFIX_ALPHABET) for _ in range(SUFFIX_LENGTH))


def consent_id_prefix(widget_id: str, email_hash: str) -> str:
	return f"{widget_id}_{email_hash[:HASH_PREFIX_LENGTH]}_"


def resolve_consent_id(widget_id: str, visitor_id: str, email_hash: Optional[str] = None, timestamp_ms: Optional[int] = None) -> str:
	ts = _now_ms() if timestamp_ms is None else int(timestamp_ms)
	if email_hash:
		return f"{consent_id_prefix(widget_id, email_hash)}{ts}"
	return f"{widget_id}_{visitor_id}_{ts}_{_random_suffix()}"


def parse_consent_id(consent_id: str, widget_id: Optional[str] = None) -> Optional[ParsedConsentId]:
	"""
	Split a consent id back into its parts; returns None when it matches neither form.

	Widget and visitor ids may themselves contain underscores, so the fixed
	tail is matched from the right. Pass ``widget_id`` to split the remaining
	head of an anonymous id exactly; without it the first ``_``-separated
	segment pair of a ``dpdpa_`` widget id is assumed.
	"""
	if not consent_id:
		return None

	m = _ANONYMOUS_TAIL.match(consent_id)
	if m:
		head = m.group("rest")
		widget, visitor = _split_head(head, widget_id)
		if visitor:
			return ParsedConsentId(
				widget_id=widget,
				visitor_id=visitor,
				timestamp_ms=int(m.group("ts")),
				suffix=m.group("suffix"),
			)

	m = _VERIFIED_TAIL.match(consent_id)
	if m:
		head = m.group("rest")
		if widget_id is not None and head != widget_id:
			return None
		return ParsedConsentId(
			widget_id=head,
			email_hash16=m.group("hash"),
			timestamp_ms=int(m.group("ts")),
		)
	return None


def _split_head(head: str, widget_id: Optional[str]):
	if widget_id is not None:
		if head.startswith(f"{widget_id}_") and len(head) > len(widget_id) + 1:
			return widget_id, head[len(widget_id) + 1:]
		return None, None
	parts = head.split("_")
	if len(parts) < 2:
		return None, None
	# dpdpa_<hex> widget ids carry one underscore of their own
	cut = 2 if parts[0] == "dpdpa" and len(parts) > 2 else 1
	return "_".join(parts[:cut]), "_".join(parts[cut:])
