"""REST API for tasks, subtasks, comments and option tables."""

from __future__ import annotations

from django.contrib.auth import get_user_model
from django.shortcuts import get_object_or_404
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from schools.permissions import IsSchoolManager, SchoolScopedMixin

from . import services
from .models import Subtask, Task, TaskPriorityOption, TaskStatusOption
from .serializers import (
    BulkActionSerializer,
    CommentSerializer,
    SubtaskSerializer,
    TaskPriorityOptionSerializer,
    TaskSerializer,
    TaskStatusOptionSerializer,
)

User = get_user_model()


class WorkItemViewSet(SchoolScopedMixin, viewsets.ModelViewSet):
    permission_classes = [IsSchoolManager]
    search_fields = ["task_number", "title", "description"]
    ordering_fields = ["task_number", "title", "status", "priority", "due_date", "created_at"]

    def get_queryset(self):  # type: ignore[override]
        queryset = super().get_queryset()
        params = self.request.query_params
        for field in ("status", "priority", "assigned_to"):
            if params.get(field):
                queryset = queryset.filter(**{field: params[field]})
        return queryset

    def _save(self, serializer, **extra):
        instance = serializer.instance or serializer.Meta.model()
        for field, value in {**serializer.validated_data, **extra}.items():
            setattr(instance, field, value)
        services.save_work_item(instance, user=self.request.user)
        serializer.instance = instance

    def perform_create(self, serializer):
        extra = {"assigned_by": self.request.user}
        if serializer.Meta.model is Task:
            extra["school"] = self.get_school()
        self._save(serializer, **extra)

    def perform_update(self, serializer):
        self._save(serializer)

    @action(detail=True, methods=["get", "post"])
    def comments(self, request, pk=None):
        item = self.get_object()
        if request.method == "POST":
            serializer = CommentSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            comment = services.add_comment(item, request.user, serializer.validated_data["comment_text"])
            return Response(CommentSerializer(comment).data, status=status.HTTP_201_CREATED)
        return Response(CommentSerializer(item.comments.select_related("user"), many=True).data)

    @action(detail=False, methods=["post"], url_path="bulk-update")
    def bulk_update(self, request):
        serializer = BulkActionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        ids = data.pop("ids")
        if data.get("assigned_to") is not None:
            data["assigned_to"] = get_object_or_404(User, pk=data["assigned_to"], school_id=self.get_school().pk)
        if not data:
            return Response({"detail": "Nothing to update."}, status=status.HTTP_400_BAD_REQUEST)
        count = services.bulk_update(self.get_queryset().filter(pk__in=ids), data, user=request.user)
        return Response({"updated": count})

    @action(detail=False, methods=["post"], url_path="bulk-delete")
    def bulk_delete(self, request):
        serializer = BulkActionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        count = services.bulk_delete(self.get_queryset().filter(pk__in=serializer.validated_data["ids"]))
        return Response({"deleted": count})


class TaskViewSet(WorkItemViewSet):
    queryset = Task.objects.all().select_related("assigned_to", "assigned_by")
    serializer_class = TaskSerializer

    @action(detail=False, methods=["get"])
    def summary(self, request):
        return Response(services.task_summary(self.get_school()))


class SubtaskViewSet(WorkItemViewSet):
    queryset = Subtask.objects.all().select_related("assigned_to", "assigned_by", "parent_task")
    serializer_class = SubtaskSerializer

    def get_queryset(self):  # type: ignore[override]
        queryset = super().get_queryset()
        parent = self.request.query_params.get("parent_task")
        if parent:
            queryset = queryset.filter(parent_task_id=parent)
        return queryset


class TaskStatusOptionViewSet(SchoolScopedMixin, viewsets.ModelViewSet):
    queryset = TaskStatusOption.objects.all()
    serializer_class = TaskStatusOptionSerializer
    permission_classes = [IsSchoolManager]
    pagination_class = None


class TaskPriorityOptionViewSet(SchoolScopedMixin, viewsets.ModelViewSet):
    queryset = TaskPriorityOption.objects.all()
    serializer_class = TaskPriorityOptionSerializer
    permission_classes = [IsSchoolManager]
    pagination_class = None
