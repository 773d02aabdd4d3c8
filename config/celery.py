# config/celery.py
"""
Celery application.

Run a worker and the beat scheduler with:
    celery -A config worker -l info
    celery -A config beat -l info
"""
import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("bike_rental")

# CELERY_* settings from config.settings
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()
