"""Admin registrations for the task board."""
from django.contrib import admin

from . import models


class TaskCommentInline(admin.TabularInline):
    model = models.TaskComment
    extra = 0


class SubtaskInline(admin.TabularInline):
    model = models.Subtask
    extra = 0
    fields = ("task_number", "title", "status", "priority", "assigned_to", "due_date")
    readonly_fields = ("task_number",)


@admin.register(models.Task)
class TaskAdmin(admin.ModelAdmin):
    list_display = ("task_number", "title", "school", "status", "priority", "assigned_to", "due_date")
    list_filter = ("school", "status", "priority")
    search_fields = ("task_number", "title", "description")
    inlines = [SubtaskInline, TaskCommentInline]


@admin.register(models.Subtask)
class SubtaskAdmin(admin.ModelAdmin):
    list_display = ("task_number", "title", "parent_task", "status", "priority", "assigned_to")
    list_filter = ("school", "status")
    search_fields = ("task_number", "title")


@admin.register(models.TaskStatusOption, models.TaskPriorityOption)
class OptionAdmin(admin.ModelAdmin):
    list_display = ("label", "value", "school", "sort_order", "is_active")
    list_filter = ("school", "is_active")
