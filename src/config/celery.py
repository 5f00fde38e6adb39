"""Celery configuration."""
import os

from celery import Celery
from celery.schedules import crontab

os.environ.setdefault(
    "DJANGO_SETTINGS_MODULE",
    os.getenv("DJANGO_SETTINGS_MODULE", "config.settings.dev"),
)

app = Celery("portal")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()

# Beat schedule
app.conf.beat_schedule = {
    "intelligence-refresh-tenants": {
        "task": "intelligence.tasks.refresh_tenant_intelligence",
        "schedule": crontab(minute=0, hour=2),  # Daily at 2am
    },
}
