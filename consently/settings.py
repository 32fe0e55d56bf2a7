from pathlib import Path
import os
from dotenv import load_dotenv
import dj_database_url

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent

load_dotenv(BASE_DIR / ".env")  # load once

ENV = os.getenv("DJANGO_ENV", "development").lower()  # "development" | "production" | "staging"
DEBUG_ENV = os.getenv("DEBUG", "false").lower() in ("1", "true", "yes")

# Force DEBUG off if ENV=production (even if someone sets DEBUG=true by accident)
DEBUG = False if ENV == "production" else DEBUG_ENV

DJANGO_ENV = ENV

SECRET_KEY = os.getenv("DJANGO_SECRET_KEY")

if not SECRET_KEY:
	if ENV == "production":
		raise ValueError("DJANGO_SECRET_KEY must be set in production")
	SECRET_KEY = "django-insecure-consently-dev-only"

INSTALLED_APPS = [
	'django.contrib.admin',
	'django.contrib.auth',
	'django.contrib.contenttypes',
	'django.contrib.sessions',
	'django.contrib.messages',
	'django.contrib.staticfiles',
	'corsheaders',
	'rest_framework',
	'drf_spectacular',
	'widgets',
	'verification',
	'consents',
]

MIDDLEWARE = [
	"corsheaders.middleware.CorsMiddleware",
	"django.middleware.security.SecurityMiddleware",
	"whitenoise.middleware.WhiteNoiseMiddleware",
	"django.contrib.sessions.middleware.SessionMiddleware",
	"django.middleware.common.CommonMiddleware",
	"django.middleware.csrf.CsrfViewMiddleware",
	"django.contrib.auth.middleware.AuthenticationMiddleware",
	"django.contrib.messages.middleware.MessageMiddleware",
	"django.middleware.clickjacking.XFrameOptionsMiddleware",
]

# Allow all origins since widgets are embedded on external domains
CORS_ALLOW_ALL_ORIGINS = True

CORS_ALLOW_METHODS = [
	"GET",
	"POST",
	"OPTIONS",
]

CORS_ALLOW_HEADERS = [
	"content-type",
]

ALLOWED_HOSTS = [
	"localhost",
	"127.0.0.1",
	"testserver",
	"api.consently.in",
]

REST_FRAMEWORK = {
	"DEFAULT_AUTHENTICATION_CLASSES": (
		"rest_framework.authentication.SessionAuthentication",
	),
	"DEFAULT_PERMISSION_CLASSES": (
		"rest_framework.permissions.IsAuthenticated",
	),
	"DEFAULT_RENDERER_CLASSES": (
		"rest_framework.renderers.JSONRenderer",
	),
	"DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
	"EXCEPTION_HANDLER": "consently.exceptions.consent_exception_handler",
}

SPECTACULAR_SETTINGS = {
	"TITLE": "Consently Privacy Centre API",
	"DESCRIPTION": "Cross-device consent identity and preference synchronization",
	"VERSION": "1.0.0",
}

ROOT_URLCONF = 'consently.urls'

TEMPLATES = [
	{
		'BACKEND': 'django.template.backends.django.DjangoTemplates',
		'DIRS': [],
		'APP_DIRS': True,
		'OPTIONS': {
			'context_processors': [
				'django.template.context_processors.request',
				'django.contrib.auth.context_processors.auth',
				'django.contrib.messages.context_processors.messages',
			],
		},
	},
]

WSGI_APPLICATION = 'consently.wsgi.application'

# Database
if ENV == "production":
	DATABASES = {
		"default": dj_database_url.config(
			default=os.getenv("DATABASE_URL"),
			conn_max_age=600,
			ssl_require=True
		)
	}
else:
	DATABASES = {
		"default": {
			"ENGINE": "django.db.backends.sqlite3",
			"NAME": BASE_DIR / "db.sqlite3",
		}
	}

AUTH_PASSWORD_VALIDATORS = [
	{
		'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator',
	},
	{
		'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator',
	},
	{
		'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator',
	},
	{
		'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator',
	},
]

LANGUAGE_CODE = 'en-us'

TIME_ZONE = 'UTC'

USE_I18N = True

USE_TZ = True

# Static files (CSS, JavaScript, Images)
STATIC_URL = "/static/"

STATIC_ROOT = BASE_DIR / "staticfiles"

STORAGES = {
	"default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
	"staticfiles": {"BACKEND": "whitenoise.storage.CompressedManifestStaticFilesStorage"},
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

LOGGING = {
	"version": 1,
	"disable_existing_loggers": False,
	"formatters": {
		"simple": {"format": "%(asctime)s %(levelname)s [%(name)s] %(message)s"},
	},
	"handlers": {
		"console": {"class": "logging.StreamHandler", "formatter": "simple"},
	},
	"root": {"handlers": ["console"], "level": "WARNING"},
	"loggers": {
		"widgets": {"level": "INFO"},
		"verification": {"level": "INFO"},
		"consents": {"level": "INFO"},
		"consently": {"level": "INFO"},
	},
}

CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
CELERY_RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND", "redis://localhost:6379/0")
CELERY_ACCEPT_CONTENT = ['json']
CELERY_TASK_SERIALIZER = 'json'

# --- Email delivery (Resend) ---
RESEND_API_KEY = os.getenv("RESEND_API_KEY", "")
RESEND_FROM_EMAIL = os.getenv("RESEND_FROM_EMAIL", "Consently <onboarding@resend.dev>")

# Without a Resend key the OTP mails are only logged (local development)
CONSENT_EMAIL_PROVIDER = os.getenv("CONSENT_EMAIL_PROVIDER") or (
	"verification.mailer.ResendEmailProvider" if RESEND_API_KEY else "verification.mailer.ConsoleEmailProvider"
)

# --- OTP verification / rate limiting ---
OTP_MAX_ATTEMPTS = int(os.getenv("OTP_MAX_ATTEMPTS", "3"))
OTP_RATE_LIMIT = int(os.getenv("OTP_RATE_LIMIT", "3"))
OTP_RATE_WINDOW_SECONDS = int(os.getenv("OTP_RATE_WINDOW_SECONDS", "3600"))
OTP_DEFAULT_EXPIRATION_MINUTES = int(os.getenv("OTP_DEFAULT_EXPIRATION_MINUTES", "10"))
OTP_PURGE_AFTER_HOURS = int(os.getenv("OTP_PURGE_AFTER_HOURS", "24"))

# --- Consent records ---
CONSENT_DEFAULT_DURATION_DAYS = int(os.getenv("CONSENT_DEFAULT_DURATION_DAYS", "365"))
CONSENT_VERSION = os.getenv("CONSENT_VERSION", "1.0")
PRIVACY_NOTICE_VERSION = os.getenv("PRIVACY_NOTICE_VERSION", "3.0")
