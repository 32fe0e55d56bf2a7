from django.urls import path
from . import views

urlpatterns = [
	path("send-otp/", views.send_otp, name="send_otp"),  # POST /api/privacy-centre/send-otp/
	path("verify-otp/", views.verify_otp, name="verify_otp"),  # POST /api/privacy-centre/verify-otp/
]
