from django.urls import path
from . import views

urlpatterns = [
	path("preferences/", views.preferences, name="preferences"),  # GET /api/privacy-centre/preferences/
	path("preferences/bulk/", views.bulk_preferences, name="bulk_preferences"),  # POST /api/privacy-centre/preferences/bulk/
	path("preferences/history/", views.preference_history, name="preference_history"),  # GET /api/privacy-centre/preferences/history/
]
