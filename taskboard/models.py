"""Tasks, subtasks, their comments and per-school option tables."""
from __future__ import annotations

from django.conf import settings
from django.db import models


User = settings.AUTH_USER_MODEL


class OptionBase(models.Model):
    school = models.ForeignKey("schools.School", on_delete=models.CASCADE)
    value = models.CharField(max_length=50)
    label = models.CharField(max_length=100)
    color_class = models.CharField(max_length=100, blank=True)
    sort_order = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)

    class Meta:
        abstract = True
        ordering = ("sort_order", "label")

    def __str__(self) -> str:
        return self.label


class TaskStatusOption(OptionBase):
    class Meta(OptionBase.Meta):
        constraints = [
            models.UniqueConstraint(fields=["school", "value"], name="unique_status_option_per_school"),
        ]


class TaskPriorityOption(OptionBase):
    class Meta(OptionBase.Meta):
        constraints = [
            models.UniqueConstraint(fields=["school", "value"], name="unique_priority_option_per_school"),
        ]


class WorkItem(models.Model):
    """Fields shared by tasks and subtasks."""

    school = models.ForeignKey("schools.School", on_delete=models.CASCADE)
    task_number = models.CharField(max_length=16, editable=False)
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    status = models.CharField(max_length=50, default="not_started")
    priority = models.CharField(max_length=50, default="medium")
    assigned_to = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    assigned_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    due_date = models.DateField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True
        ordering = ("-created_at",)

    def __str__(self) -> str:
        return f"{self.task_number} {self.title}"


class Task(WorkItem):
    class Meta(WorkItem.Meta):
        constraints = [
            models.UniqueConstraint(fields=["school", "task_number"], name="unique_task_number_per_school"),
        ]


class Subtask(WorkItem):
    parent_task = models.ForeignKey(Task, on_delete=models.CASCADE, related_name="subtasks")

    class Meta(WorkItem.Meta):
        constraints = [
            models.UniqueConstraint(fields=["school", "task_number"], name="unique_subtask_number_per_school"),
        ]


class TaskComment(models.Model):
    task = models.ForeignKey(Task, on_delete=models.CASCADE, related_name="comments")
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+")
    comment_text = models.TextField()
    is_system_comment = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("created_at", "id")


class SubtaskComment(models.Model):
    subtask = models.ForeignKey(Subtask, on_delete=models.CASCADE, related_name="comments")
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+")
    comment_text = models.TextField()
    is_system_comment = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("created_at", "id")
