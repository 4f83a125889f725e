"""Serializers for the task board API."""

from __future__ import annotations

from rest_framework import serializers

from . import status as status_utils
from .models import Subtask, Task, TaskPriorityOption, TaskStatusOption

WORK_ITEM_FIELDS = [
    "id",
    "task_number",
    "title",
    "description",
    "status",
    "status_label",
    "priority",
    "priority_label",
    "assigned_to",
    "assigned_to_name",
    "assigned_by",
    "due_date",
    "completed_at",
    "created_at",
    "updated_at",
]
WORK_ITEM_READ_ONLY = ["task_number", "assigned_by", "completed_at", "created_at", "updated_at"]


class TaskStatusOptionSerializer(serializers.ModelSerializer):
    class Meta:
        model = TaskStatusOption
        fields = ["id", "value", "label", "color_class", "sort_order", "is_active"]


class TaskPriorityOptionSerializer(serializers.ModelSerializer):
    class Meta:
        model = TaskPriorityOption
        fields = ["id", "value", "label", "color_class", "sort_order", "is_active"]


class WorkItemSerializer(serializers.ModelSerializer):
    status_label = serializers.SerializerMethodField()
    priority_label = serializers.SerializerMethodField()
    assigned_to_name = serializers.SerializerMethodField()

    def _options(self, kind):
        # Option tables are read once per response, not once per row.
        cache = self.context.setdefault("_options", {})
        if kind not in cache:
            model = TaskStatusOption if kind == "status" else TaskPriorityOption
            request = self.context.get("request")
            school_id = getattr(getattr(request, "user", None), "school_id", None)
            cache[kind] = list(model.objects.filter(school_id=school_id)) if school_id else []
        return cache[kind]

    def get_status_label(self, obj) -> str:
        return status_utils.status_label(obj.status, self._options("status"))

    def get_priority_label(self, obj) -> str:
        return status_utils.priority_label(obj.priority, self._options("priority"))

    def get_assigned_to_name(self, obj) -> str:
        return obj.assigned_to.get_full_name() if obj.assigned_to else ""


class TaskSerializer(WorkItemSerializer):
    class Meta:
        model = Task
        fields = WORK_ITEM_FIELDS
        read_only_fields = WORK_ITEM_READ_ONLY


class SubtaskSerializer(WorkItemSerializer):
    class Meta:
        model = Subtask
        fields = WORK_ITEM_FIELDS + ["parent_task"]
        read_only_fields = WORK_ITEM_READ_ONLY

    def validate_parent_task(self, value):
        request = self.context.get("request")
        if request and not request.user.is_platform_admin and value.school_id != request.user.school_id:
            raise serializers.ValidationError("Parent task not found.")
        return value


class CommentSerializer(serializers.Serializer):
    id = serializers.IntegerField(read_only=True)
    user = serializers.PrimaryKeyRelatedField(read_only=True)
    user_name = serializers.SerializerMethodField()
    comment_text = serializers.CharField()
    is_system_comment = serializers.BooleanField(read_only=True)
    created_at = serializers.DateTimeField(read_only=True)

    def get_user_name(self, obj) -> str:
        return obj.user.get_full_name() if obj.user else "System"


class BulkActionSerializer(serializers.Serializer):
    ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=False)
    status = serializers.CharField(required=False)
    priority = serializers.CharField(required=False)
    assigned_to = serializers.IntegerField(required=False, allow_null=True)
