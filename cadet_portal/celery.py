"""Celery application for background email processing."""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "cadet_portal.settings")

app = Celery("cadet_portal")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()
