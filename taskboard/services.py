"""Task and subtask workflows: numbering, option validation, system comments."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from schools.models import School

from . import status as status_utils
from .models import Subtask, SubtaskComment, Task, TaskComment, TaskPriorityOption, TaskStatusOption

logger = logging.getLogger(__name__)

INFORMATION_NEEDED = "need_information"
PENDING_RESPONSE = "pending_response"
INFORMATION_REQUESTED_COMMENT = (
    'Status automatically changed to "Pending Response" after information request email was sent.'
)

DEFAULT_STATUS_OPTIONS = [
    ("not_started", "Not Started", "bg-gray-100 text-gray-800"),
    ("working_on_it", "Working On It", "bg-blue-100 text-blue-800"),
    ("stuck", "Stuck", "bg-red-100 text-red-800"),
    ("need_information", "Need Information", "bg-yellow-100 text-yellow-800"),
    ("pending_response", "Pending Response", "bg-orange-100 text-orange-800"),
    ("done", "Done", "bg-green-100 text-green-800"),
    ("canceled", "Canceled", "bg-gray-100 text-gray-800"),
]

DEFAULT_PRIORITY_OPTIONS = [
    ("low", "Low", "bg-green-100 text-green-800"),
    ("medium", "Medium", "bg-yellow-100 text-yellow-800"),
    ("high", "High", "bg-orange-100 text-orange-800"),
    ("urgent", "Urgent", "bg-red-100 text-red-800"),
    ("critical", "Critical", "bg-purple-100 text-purple-800"),
]

OPTION_MODELS = {"status": TaskStatusOption, "priority": TaskPriorityOption}


def ensure_default_options(school: School) -> int:
    """Create the stock status/priority options a school is missing."""

    created = 0
    for model, rows in ((TaskStatusOption, DEFAULT_STATUS_OPTIONS), (TaskPriorityOption, DEFAULT_PRIORITY_OPTIONS)):
        for order, (value, label, color) in enumerate(rows, start=1):
            _, was_created = model.objects.get_or_create(
                school=school,
                value=value,
                defaults={"label": label, "color_class": color, "sort_order": order},
            )
            created += int(was_created)
    return created


def status_options(school: School) -> list[TaskStatusOption]:
    return list(TaskStatusOption.objects.filter(school=school))


def priority_options(school: School) -> list[TaskPriorityOption]:
    return list(TaskPriorityOption.objects.filter(school=school))


def _next_number(school: School, counter: str, prefix: str) -> str:
    with transaction.atomic():
        locked = School.objects.select_for_update().get(pk=school.pk)
        value = getattr(locked, counter) + 1
        setattr(locked, counter, value)
        locked.save(update_fields=[counter])
    setattr(school, counter, value)
    return f"{prefix}{value:05d}"


def next_task_number(school: School) -> str:
    return _next_number(school, "task_number", "TSK")


def next_subtask_number(school: School) -> str:
    return _next_number(school, "subtask_number", "STSK")


def validate_task_option(school: School, kind: str, value: str) -> str:
    """Ensure ``value`` is an active status/priority option of the school."""

    try:
        model = OPTION_MODELS[kind]
    except KeyError:
        raise ValueError(f"Unknown option kind: {kind}") from None
    if not model.objects.filter(school=school, value=value, is_active=True).exists():
        raise ValidationError({kind: f'"{value}" is not an active {kind} option.'})
    return value


def add_comment(record, user, text: str, *, system: bool = False):
    text = (text or "").strip()
    if not text:
        raise ValidationError("Comment text is required.")
    if isinstance(record, Subtask):
        return SubtaskComment.objects.create(
            subtask=record, user=user, comment_text=text, is_system_comment=system
        )
    return TaskComment.objects.create(task=record, user=user, comment_text=text, is_system_comment=system)


def add_system_comment(record, text: str, user=None):
    return add_comment(record, user or record.assigned_by, text, system=True)


def save_work_item(item, user=None):
    """Validate and persist a task or subtask.

    New rows get the next number from the school's counter. Moving into a
    done (completed or cancelled) status stamps ``completed_at``; moving out
    clears it. A status change is recorded as a system comment.
    """

    if isinstance(item, Subtask):
        item.school_id = item.parent_task.school_id
    school = item.school

    validate_task_option(school, "status", item.status)
    validate_task_option(school, "priority", item.priority)
    if item.assigned_to_id and item.assigned_to.school_id != school.pk:
        raise ValidationError({"assigned_to": "Assignee must belong to the same school."})

    previous_status = None
    if item.pk:
        previous_status = type(item).objects.filter(pk=item.pk).values_list("status", flat=True).first()
    elif isinstance(item, Subtask):
        item.task_number = next_subtask_number(school)
    else:
        item.task_number = next_task_number(school)

    options = status_options(school)
    if status_utils.is_task_done(item.status, options):
        if item.completed_at is None:
            item.completed_at = timezone.now()
    else:
        item.completed_at = None

    item.save()

    if previous_status is not None and previous_status != item.status:
        add_system_comment(
            item,
            f'Status changed from "{status_utils.status_label(previous_status, options)}" '
            f'to "{status_utils.status_label(item.status, options)}".',
            user=user,
        )
    return item


def record_email_sent(record, recipient: str, queue_item_id: int):
    """Turn the "queued" system comment for an email into a "sent" one."""

    comments = record.comments.filter(
        is_system_comment=True,
        comment_text__startswith=f"Email queued for sending to {recipient}",
    ).order_by("-created_at", "-id")
    text = f"Email sent to {recipient} - [Preview Email]({queue_item_id})"
    comment = comments.first()
    if comment is None:
        return add_system_comment(record, text)
    comment.comment_text = text
    comment.save(update_fields=["comment_text"])
    return comment


def mark_information_requested(record) -> bool:
    """``need_information`` becomes ``pending_response`` once the request email is out."""

    if record.status != INFORMATION_NEEDED:
        logger.info("%s not updated; status is %s", record.task_number, record.status)
        return False
    record.status = PENDING_RESPONSE
    record.save(update_fields=["status", "updated_at"])
    add_system_comment(record, INFORMATION_REQUESTED_COMMENT)
    return True


BULK_FIELDS = ("status", "priority", "assigned_to")


def bulk_update(items: Iterable, changes: Mapping[str, Any], user=None) -> int:
    """Apply the same status/priority/assignee change to many rows."""

    unknown = set(changes) - set(BULK_FIELDS)
    if unknown:
        raise ValueError(f"Unsupported bulk fields: {', '.join(sorted(unknown))}")
    count = 0
    with transaction.atomic():
        for item in items:
            for field, value in changes.items():
                setattr(item, field, value)
            save_work_item(item, user=user)
            count += 1
    return count


def bulk_delete(items: Iterable) -> int:
    """Delete rows and cancel any email still queued for them."""

    from emails import services as email_services

    rows = list(items)
    if not rows:
        return 0
    source = "subtasks" if isinstance(rows[0], Subtask) else "tasks"
    with transaction.atomic():
        email_services.cancel_pending_for(source, [row.pk for row in rows])
        for row in rows:
            row.delete()
    return len(rows)


def task_summary(school: School, today: Optional[Any] = None) -> dict[str, int]:
    """Counts for the task board header."""

    today = today or timezone.localdate()
    options = status_options(school)
    done = set(status_utils.completion_statuses(options)) | set(status_utils.cancel_statuses(options))
    tasks = Task.objects.filter(school=school)
    open_tasks = tasks.exclude(status__in=done)
    return {
        "total": tasks.count(),
        "open": open_tasks.count(),
        "done": tasks.filter(status__in=done).count(),
        "overdue": open_tasks.filter(due_date__lt=today).count(),
    }
