from consently.exceptions import NotFoundError
from .models import WidgetConfig


def get_widget_config(widget_id: str) -> WidgetConfig:
	"""
	Widget Configuration Provider.

	Must be queried before any OTP or preference mutation. Unknown and
	deactivated widgets are indistinguishable to the caller (404).
	"""
	if not widget_id:
		raise NotFoundError("Widget not found", code="WIDGET_NOT_FOUND")
	try:
		widget = WidgetConfig.objects.get(widget_id=widget_id)
	except WidgetConfig.DoesNotExist:
		raise NotFoundError("Widget not found", code="WIDGET_NOT_FOUND")
	if not widget.is_active:
		raise NotFoundError("Widget not found", code="WIDGET_NOT_FOUND")
	return widget
