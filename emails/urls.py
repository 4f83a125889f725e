"""URL configuration for the email API."""

from django.urls import path
from rest_framework.routers import SimpleRouter

from .api import EmailQueueViewSet, EmailTemplateViewSet, queue_health

router = SimpleRouter()
router.register(r"templates", EmailTemplateViewSet, basename="email-template")
router.register(r"queue", EmailQueueViewSet, basename="email-queue")

urlpatterns = [
    path("health/", queue_health, name="email-queue-health"),
] + router.urls
