from dataclasses import dataclass
from ipaddress import ip_address, IPv4Address, IPv6Address
from typing import Optional

from .models import DeviceType

DEFAULT_LANGUAGE = "en"


def truncate_ip(ip_str: str) -> str:
	"""Return anonymized IP (e.g., 192.168.54.203 -> 192.168.54.0)."""
	if not ip_str:
		return ""
	try:
		ip_obj = ip_address(ip_str)
	except ValueError:
		return ""
	if isinstance(ip_obj, IPv4Address):
		return ".".join(ip_str.split(".")[:3] + ["0"])
	if isinstance(ip_obj, IPv6Address):
		hextets = ip_obj.exploded.split(":")
		return str(ip_address(":".join(hextets[:3]) + "::"))
	return ""


def client_ip(request) -> str:
	xff = request.META.get("HTTP_X_FORWARDED_FOR")
	return xff.split(",")[0].strip() if xff else request.META.get("REMOTE_ADDR", "")


def normalize_device_type(value: Optional[str]) -> str:
	if not value:
		return DeviceType.UNKNOWN.value
	lowered = str(value).lower()
	if "mobile" in lowered or "phone" in lowered:
		return DeviceType.MOBILE.value
	if "tablet" in lowered:
		return DeviceType.TABLET.value
	if "desktop" in lowered or "pc" in lowered or "laptop" in lowered:
		return DeviceType.DESKTOP.value
	return DeviceType.UNKNOWN.value


@dataclass(frozen=True)
class ConsentMetadata:
	"""GDPR-safe request context stamped on preferences, history and projections."""
	truncated_ip: Optional[str] = None
	user_agent: str = ""
	device_type: str = DeviceType.UNKNOWN.value
	language: str = DEFAULT_LANGUAGE

	@classmethod
	def from_request(cls, request, payload: Optional[dict] = None) -> "ConsentMetadata":
		payload = payload or {}
		return cls(
			truncated_ip=truncate_ip(payload.get("ipAddress") or client_ip(request)) or None,
			user_agent=payload.get("userAgent") or request.META.get("HTTP_USER_AGENT", ""),
			device_type=normalize_device_type(payload.get("deviceType")),
			language=(payload.get("language") or DEFAULT_LANGUAGE)[:16],
		)
