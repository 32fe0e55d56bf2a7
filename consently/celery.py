import os
from celery import Celery
from celery.schedules import crontab

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'consently.settings')

app = Celery('consently')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()

# Celery Beat schedule for housekeeping
app.conf.beat_schedule = {
	# Drop verified / exhausted / expired OTP challenges and stale rate-limit hits (hourly)
	'purge-inert-challenges': {
		'task': 'verification.tasks.purge_inert_challenges',
		'schedule': crontab(minute=15),
	},
}
