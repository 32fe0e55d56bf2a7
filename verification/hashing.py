import hashlib
import hmac
from django.core.exceptions import ValidationError
from django.core.validators import validate_email


def normalize_email(email: str) -> str:
	return (email or "").strip().lower()


def hash_email(email: str) -> str:
	"""SHA-256 hex digest of the lower-cased, trimmed address."""
	return hashlib.sha256(normalize_email(email).encode("utf-8")).hexdigest()


def is_valid_email(email: str) -> bool:
	try:
		validate_email(normalize_email(email))
	except ValidationError:
		return False
	return True


def hash_prefix(email_hash: str, length: int = 10) -> str:
	"""Short, log-safe reference to an email hash."""
	return f"{(email_hash or '')[:length]}..."


def constant_time_equals(a: str, b: str) -> bool:
	return hmac.compare_digest((a or "").encode("utf-8"), (b or "").encode("utf-8"))
