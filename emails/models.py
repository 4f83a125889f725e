"""Email templates, the outbound queue and its audit trail."""

from django.conf import settings
from django.db import models
from django.utils import timezone

from .rendering import extract_variables


User = settings.AUTH_USER_MODEL


class EmailTemplate(models.Model):
    class SourceTable(models.TextChoices):
        TASKS = "tasks", "Tasks"
        SUBTASKS = "subtasks", "Subtasks"
        PROFILES = "profiles", "Profiles"
        CADETS = "cadets", "Cadets"
        COMPETITIONS = "competitions", "Competitions"

    school = models.ForeignKey(
        "schools.School",
        on_delete=models.CASCADE,
        related_name="email_templates",
    )
    name = models.CharField(max_length=255)
    subject = models.CharField(max_length=255)
    body = models.TextField()
    source_table = models.CharField(max_length=20, choices=SourceTable.choices)
    variables_used = models.JSONField(default=list, blank=True)
    is_active = models.BooleanField(default=True)
    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="email_templates",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("name",)

    def save(self, *args, **kwargs):
        self.variables_used = extract_variables(f"{self.subject}\n{self.body}")
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return self.name


class EmailQueueItem(models.Model):
    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        SENT = "sent", "Sent"
        FAILED = "failed", "Failed"
        CANCELLED = "cancelled", "Cancelled"

    school = models.ForeignKey(
        "schools.School",
        on_delete=models.CASCADE,
        related_name="email_queue",
    )
    template = models.ForeignKey(
        EmailTemplate,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="queue_items",
    )
    recipient_email = models.EmailField()
    subject = models.CharField(max_length=255)
    body = models.TextField()
    source_table = models.CharField(max_length=20, choices=EmailTemplate.SourceTable.choices, blank=True)
    record_id = models.PositiveBigIntegerField(null=True, blank=True)
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.PENDING)
    scheduled_at = models.DateTimeField(default=timezone.now)
    sent_at = models.DateTimeField(null=True, blank=True)
    error_message = models.TextField(blank=True)
    retry_count = models.PositiveIntegerField(default=0)
    next_retry_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("-created_at",)
        indexes = [models.Index(fields=["status", "scheduled_at"], name="email_queue_status_sched_idx")]

    def __str__(self) -> str:
        return f"{self.recipient_email}: {self.subject} ({self.status})"


class EmailLog(models.Model):
    class EventType(models.TextChoices):
        QUEUED = "queued", "Queued"
        SENT = "sent", "Sent"
        FAILED = "failed", "Failed"
        RETRIED = "retried", "Retried"
        CANCELLED = "cancelled", "Cancelled"

    queue_item = models.ForeignKey(
        EmailQueueItem,
        on_delete=models.CASCADE,
        related_name="logs",
    )
    school = models.ForeignKey(
        "schools.School",
        on_delete=models.CASCADE,
        related_name="email_logs",
    )
    event_type = models.CharField(max_length=10, choices=EventType.choices)
    event_data = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("-created_at", "-id")


class EmailProcessingLog(models.Model):
    """One row per queue-processing run."""

    class Status(models.TextChoices):
        SUCCESS = "success", "Success"
        PARTIAL = "partial", "Partial"
        FAILED = "failed", "Failed"
        IDLE = "idle", "Idle"

    processed_count = models.PositiveIntegerField(default=0)
    failed_count = models.PositiveIntegerField(default=0)
    status = models.CharField(max_length=10, choices=Status.choices)
    message = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("-created_at",)
