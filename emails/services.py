"""Queueing, sending and monitoring outbound email."""

from __future__ import annotations

import logging
import smtplib
import socket
import ssl
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, Optional

from django.apps import apps
from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.mail import EmailMultiAlternatives, get_connection
from django.db import transaction
from django.utils import timezone
from django.utils.html import strip_tags

from schools.services import is_valid_email

from .models import EmailLog, EmailProcessingLog, EmailQueueItem, EmailTemplate
from .rendering import build_context, render_template

logger = logging.getLogger(__name__)

NO_SMTP_MESSAGE = "No active global SMTP settings configured"
STUCK_WARNING_COUNT = 5
STUCK_CRITICAL_COUNT = 10
OLDEST_WARNING_MINUTES = 30
OLDEST_CRITICAL_MINUTES = 60
TASK_SOURCES = {EmailTemplate.SourceTable.TASKS, EmailTemplate.SourceTable.SUBTASKS}
SOURCE_MODELS = {
    EmailTemplate.SourceTable.TASKS: "taskboard.Task",
    EmailTemplate.SourceTable.SUBTASKS: "taskboard.Subtask",
    EmailTemplate.SourceTable.PROFILES: "schools.User",
    EmailTemplate.SourceTable.CADETS: "cadets.Cadet",
    EmailTemplate.SourceTable.COMPETITIONS: "competitions.Competition",
}


def _log_event(item: EmailQueueItem, event_type: str, **data: Any) -> EmailLog:
    return EmailLog.objects.create(
        queue_item=item,
        school_id=item.school_id,
        event_type=event_type,
        event_data=data,
    )


def _validate_recipient(recipient: str) -> str:
    email = (recipient or "").strip()
    if not is_valid_email(email):
        raise ValidationError(f"Invalid recipient email: {recipient!r}", code="invalid_email")
    return email


def preview_template(template: EmailTemplate, record=None) -> Dict[str, str]:
    """Render a template against a record (or an empty context) without queueing."""

    context = build_context(template.source_table, record) if record is not None else {}
    context.setdefault("school_name", template.school.name)
    return {
        "subject": render_template(template.subject, context),
        "body": render_template(template.body, context),
    }


def queue_email(
    template: EmailTemplate,
    recipient: str,
    record=None,
    scheduled_at: Optional[datetime] = None,
) -> EmailQueueItem:
    """Render ``template`` for ``record`` and add it to the send queue."""

    if not template.is_active:
        raise ValidationError("Email template is inactive.", code="inactive_template")
    email = _validate_recipient(recipient)

    rendered = preview_template(template, record)
    with transaction.atomic():
        item = EmailQueueItem.objects.create(
            school_id=template.school_id,
            template=template,
            recipient_email=email,
            subject=rendered["subject"][:255],
            body=rendered["body"],
            source_table=template.source_table,
            record_id=getattr(record, "pk", None),
            scheduled_at=scheduled_at or timezone.now(),
        )
        _log_event(item, EmailLog.EventType.QUEUED, recipient=email, template_id=template.pk)

        if record is not None and template.source_table in TASK_SOURCES:
            from taskboard import services as task_services

            task_services.add_system_comment(record, f"Email queued for sending to {email}")

    logger.info("Queued email %s to %s (template %s)", item.pk, email, template.pk)
    return item


def smtp_settings() -> Optional[Dict[str, Any]]:
    """Return the global SMTP account, or ``None`` when it is incomplete."""

    config = {
        "host": getattr(settings, "SMTP_HOST", ""),
        "port": getattr(settings, "SMTP_PORT", 587),
        "username": getattr(settings, "SMTP_USERNAME", ""),
        "password": getattr(settings, "SMTP_PASSWORD", ""),
        "from_email": getattr(settings, "SMTP_FROM_EMAIL", ""),
        "from_name": getattr(settings, "SMTP_FROM_NAME", "") or "No-Reply",
        "use_tls": getattr(settings, "SMTP_USE_TLS", True),
        "timeout": getattr(settings, "SMTP_TIMEOUT", 30),
    }
    if not all(config[key] for key in ("host", "username", "password", "from_email")):
        return None
    return config


def smtp_error_message(exc: BaseException, host: str, port: int) -> str:
    """Turn an SMTP/socket failure into a message an administrator can act on."""

    text = str(exc)
    lowered = text.lower()
    if isinstance(exc, ConnectionRefusedError):
        return (
            f"Cannot connect to SMTP server {host}:{port}. "
            "The server may be down or the port may be blocked."
        )
    if isinstance(exc, (socket.timeout, TimeoutError)) or "timed out" in lowered or "timeout" in lowered:
        return f"Connection to {host}:{port} timed out. The SMTP server may be slow to respond."
    if isinstance(exc, smtplib.SMTPAuthenticationError) or "authentication" in lowered:
        return "SMTP authentication failed. Please verify your username and password are correct."
    if isinstance(exc, ssl.SSLCertVerificationError) or "certificate" in lowered:
        return "SSL certificate verification failed. The SMTP server certificate may not be trusted."
    if isinstance(exc, (ssl.SSLError, smtplib.SMTPNotSupportedError)) or "tls" in lowered or "ssl" in lowered:
        return f"TLS/SSL connection failed. Please verify the TLS setting is correct for port {port}."
    if isinstance(exc, smtplib.SMTPRecipientsRefused):
        return "SMTP server rejected the recipient address."
    if isinstance(exc, smtplib.SMTPResponseException):
        if exc.smtp_code == 550:
            return "SMTP server rejected the connection. The server may not allow connections from this IP address."
        detail = exc.smtp_error.decode(errors="replace") if isinstance(exc.smtp_error, bytes) else exc.smtp_error
        return f"SMTP server error ({exc.smtp_code}): {detail}"
    return f"SMTP error: {text}"


def _due_queryset(now: datetime):
    return (
        EmailQueueItem.objects.filter(status=EmailQueueItem.Status.PENDING, scheduled_at__lte=now)
        .exclude(next_retry_at__gt=now)
        .select_related("school", "template")
    )


def due_items(now: Optional[datetime] = None, limit: Optional[int] = None):
    now = now or timezone.now()
    queryset = _due_queryset(now).order_by("created_at", "pk")
    if limit:
        queryset = queryset[:limit]
    return list(queryset)


def lock_due_item(pk, now: datetime) -> Optional[EmailQueueItem]:
    """Row-lock a still-due item inside the caller's transaction.

    Returns ``None`` when another worker holds the row or has already moved
    it out of ``pending``.
    """

    return _due_queryset(now).select_for_update(skip_locked=True, of=("self",)).filter(pk=pk).first()


def _mark_failed(item: EmailQueueItem, message: str) -> None:
    item.status = EmailQueueItem.Status.FAILED
    item.error_message = message
    item.save(update_fields=["status", "error_message", "updated_at"])
    _log_event(item, EmailLog.EventType.FAILED, error=message)


def _mark_sent(item: EmailQueueItem, sent_at: datetime) -> None:
    item.status = EmailQueueItem.Status.SENT
    item.sent_at = sent_at
    item.error_message = ""
    item.save(update_fields=["status", "sent_at", "error_message", "updated_at"])
    _log_event(item, EmailLog.EventType.SENT, recipient=item.recipient_email)


def resolve_record(source_table: str, record_id, school=None):
    """Fetch the row a template renders against; ``None`` if it is gone."""

    try:
        model = apps.get_model(SOURCE_MODELS[source_table])
    except KeyError:
        raise ValueError(f"Unknown source table: {source_table}") from None
    queryset = model.objects.all()
    if school is not None:
        queryset = queryset.filter(school=school)
    return queryset.filter(pk=record_id).first()


def source_record(item: EmailQueueItem):
    """Load the task/subtask row an email was generated from, if it still exists."""

    if item.record_id is None or item.source_table not in TASK_SOURCES:
        return None
    return resolve_record(item.source_table, item.record_id)


def _after_send(item: EmailQueueItem) -> None:
    record = source_record(item)
    if record is None:
        return
    from taskboard import services as task_services

    task_services.record_email_sent(record, item.recipient_email, item.pk)
    template_name = item.template.name.lower() if item.template else ""
    if "information" in template_name:
        task_services.mark_information_requested(record)


def _build_message(item: EmailQueueItem, config: Dict[str, Any], connection) -> EmailMultiAlternatives:
    message = EmailMultiAlternatives(
        subject=item.subject,
        body=strip_tags(item.body),
        from_email=f"{config['from_name']} <{config['from_email']}>",
        to=[item.recipient_email],
        connection=connection,
    )
    message.attach_alternative(item.body, "text/html")
    return message


def process_email_queue(batch_size: Optional[int] = None, now: Optional[datetime] = None) -> Dict[str, int]:
    """Send due pending emails, oldest first.

    Every attempted item ends up ``sent`` or ``failed`` with a matching log
    row. Returns ``{"processed": sent, "failed": failed}``.
    """

    batch_size = batch_size or getattr(settings, "EMAIL_QUEUE_BATCH_SIZE", 10)
    now = now or timezone.now()
    items = due_items(now=now, limit=batch_size)
    if not items:
        EmailProcessingLog.objects.create(status=EmailProcessingLog.Status.IDLE)
        return {"processed": 0, "failed": 0}

    config = smtp_settings()
    if config is None:
        logger.error("%s; failing %d queued emails", NO_SMTP_MESSAGE, len(items))
        for item in items:
            _mark_failed(item, NO_SMTP_MESSAGE)
        EmailProcessingLog.objects.create(
            failed_count=len(items),
            status=EmailProcessingLog.Status.FAILED,
            message=NO_SMTP_MESSAGE,
        )
        return {"processed": 0, "failed": len(items)}

    connection = get_connection(
        host=config["host"],
        port=config["port"],
        username=config["username"],
        password=config["password"],
        use_tls=config["use_tls"],
        timeout=config["timeout"],
    )

    sent = failed = 0
    for candidate in items:
        with transaction.atomic():
            item = lock_due_item(candidate.pk, now)
            if item is None:
                logger.info("Email %s already claimed by another run; skipping", candidate.pk)
                continue
            try:
                _build_message(item, config, connection).send()
            except (smtplib.SMTPException, OSError) as exc:
                message = smtp_error_message(exc, config["host"], config["port"])
                logger.warning("Email %s to %s failed: %s", item.pk, item.recipient_email, message)
                _mark_failed(item, message)
                failed += 1
                continue
            _mark_sent(item, timezone.now())
            _after_send(item)
            sent += 1

    if failed and sent:
        status = EmailProcessingLog.Status.PARTIAL
    elif failed:
        status = EmailProcessingLog.Status.FAILED
    else:
        status = EmailProcessingLog.Status.SUCCESS
    EmailProcessingLog.objects.create(processed_count=sent, failed_count=failed, status=status)
    logger.info("Email queue run: %d sent, %d failed", sent, failed)
    return {"processed": sent, "failed": failed}


def _health(stuck_count: int, oldest_minutes: float) -> str:
    if stuck_count > STUCK_CRITICAL_COUNT or oldest_minutes > OLDEST_CRITICAL_MINUTES:
        return "critical"
    if stuck_count > STUCK_WARNING_COUNT or oldest_minutes > OLDEST_WARNING_MINUTES:
        return "warning"
    return "healthy"


def average_processing_seconds(now: Optional[datetime] = None, items=None) -> float:
    now = now or timezone.now()
    items = items if items is not None else EmailQueueItem.objects.all()
    rows = (
        items.filter(
            status=EmailQueueItem.Status.SENT,
            sent_at__isnull=False,
            sent_at__gte=now - timedelta(hours=24),
        )
        .order_by("-sent_at")
        .values_list("created_at", "sent_at")[:100]
    )
    durations = [(sent_at - created_at).total_seconds() for created_at, sent_at in rows]
    if not durations:
        return 0.0
    return round(sum(durations) / len(durations), 2)


def _stuck(items, now: datetime):
    """Pending rows older than the stuck threshold whose retry time has passed."""

    stuck_after = timedelta(minutes=getattr(settings, "EMAIL_QUEUE_STUCK_MINUTES", 10))
    return items.filter(
        status=EmailQueueItem.Status.PENDING,
        created_at__lt=now - stuck_after,
    ).exclude(next_retry_at__gt=now)


def monitor_email_queue(now: Optional[datetime] = None) -> Dict[str, Any]:
    """Retry or fail emails stuck in ``pending`` and report queue health."""

    now = now or timezone.now()
    max_retries = getattr(settings, "EMAIL_QUEUE_MAX_RETRIES", 3)
    stuck = list(_stuck(EmailQueueItem.objects.all(), now).order_by("created_at"))

    retried = 0
    for item in stuck:
        if item.retry_count >= max_retries:
            _mark_failed(
                item,
                f"Max retries exceeded ({max_retries}). Last error: {item.error_message or 'Unknown'}",
            )
            continue
        item.next_retry_at = now + timedelta(minutes=(2 ** item.retry_count) * 2)
        item.retry_count += 1
        item.error_message = f"Auto-retry {item.retry_count}/{max_retries}: Stuck email detected by monitor"
        item.save(update_fields=["retry_count", "next_retry_at", "error_message", "updated_at"])
        _log_event(item, EmailLog.EventType.RETRIED, retry_count=item.retry_count)
        retried += 1

    report = _health_report(EmailQueueItem.objects.all(), now, len(stuck), retried)
    if report["health"] != "healthy":
        logger.warning(
            "Email queue %s: %d stuck, oldest pending %.1f min",
            report["health"],
            len(stuck),
            report["metrics"]["oldest_pending_age"],
        )
    return report


def _health_report(items, now: datetime, stuck_count: int, retried: int) -> Dict[str, Any]:
    pending = items.filter(status=EmailQueueItem.Status.PENDING)
    oldest = pending.order_by("created_at").values_list("created_at", flat=True).first()
    oldest_minutes = (now - oldest).total_seconds() / 60 if oldest else 0.0
    return {
        "health": _health(stuck_count, oldest_minutes),
        "metrics": {
            "total_pending": pending.count(),
            "total_stuck": stuck_count,
            "total_retried": retried,
            "avg_processing_time": average_processing_seconds(now, items),
            "oldest_pending_age": round(oldest_minutes, 2),
        },
    }


def queue_health(school=None, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Read-only variant of the monitor report, optionally for one school."""

    now = now or timezone.now()
    items = EmailQueueItem.objects.all()
    if school is not None:
        items = items.filter(school=school)
    stuck_count = _stuck(items, now).count()
    retried = items.filter(status=EmailQueueItem.Status.PENDING, retry_count__gt=0).count()
    return _health_report(items, now, stuck_count, retried)


def retry_email(item: EmailQueueItem) -> EmailQueueItem:
    """Put a failed or cancelled email back in the queue for immediate sending."""

    if item.status == EmailQueueItem.Status.SENT:
        raise ValidationError("Email has already been sent.", code="already_sent")
    item.status = EmailQueueItem.Status.PENDING
    item.error_message = ""
    item.next_retry_at = None
    item.scheduled_at = timezone.now()
    item.save(update_fields=["status", "error_message", "next_retry_at", "scheduled_at", "updated_at"])
    _log_event(item, EmailLog.EventType.RETRIED, manual=True)
    return item


def cancel_email(item: EmailQueueItem) -> EmailQueueItem:
    if item.status != EmailQueueItem.Status.PENDING:
        raise ValidationError("Only pending emails can be cancelled.", code="not_pending")
    item.status = EmailQueueItem.Status.CANCELLED
    item.save(update_fields=["status", "updated_at"])
    _log_event(item, EmailLog.EventType.CANCELLED)
    return item


def cancel_pending_for(source_table: str, record_ids: Iterable[int]) -> int:
    """Cancel queued emails for records that are being deleted."""

    items = list(
        EmailQueueItem.objects.filter(
            status=EmailQueueItem.Status.PENDING,
            source_table=source_table,
            record_id__in=list(record_ids),
        )
    )
    for item in items:
        cancel_email(item)
    return len(items)
