"""REST API for email templates, the queue and queue health."""

from __future__ import annotations

from django.http import Http404
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action, api_view
from rest_framework.response import Response

from schools.permissions import IsSchoolManager, SchoolScopedMixin

from . import services
from .models import EmailQueueItem, EmailTemplate
from .serializers import (
    EmailLogSerializer,
    EmailQueueItemSerializer,
    EmailTemplateSerializer,
    PreviewSerializer,
    QueueEmailSerializer,
)


class EmailTemplateViewSet(SchoolScopedMixin, viewsets.ModelViewSet):
    queryset = EmailTemplate.objects.all().select_related("school")
    serializer_class = EmailTemplateSerializer
    permission_classes = [IsSchoolManager]
    search_fields = ["name", "subject"]
    ordering_fields = ["name", "source_table", "created_at"]

    def perform_create(self, serializer):
        serializer.save(school=self.get_school(), created_by=self.request.user)

    def _record(self, template, record_id):
        if record_id is None:
            return None
        record = services.resolve_record(template.source_table, record_id, school=template.school)
        if record is None:
            raise Http404("Record not found.")
        return record

    @action(detail=True, methods=["post"])
    def preview(self, request, pk=None):
        template = self.get_object()
        serializer = PreviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        record = self._record(template, serializer.validated_data.get("record_id"))
        return Response(services.preview_template(template, record))

    @action(detail=True, methods=["post"])
    def send(self, request, pk=None):
        template = self.get_object()
        serializer = QueueEmailSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        record = self._record(template, data.get("record_id"))
        item = services.queue_email(
            template,
            data["recipient_email"],
            record=record,
            scheduled_at=data.get("scheduled_at"),
        )
        return Response(EmailQueueItemSerializer(item).data, status=status.HTTP_201_CREATED)


class EmailQueueViewSet(SchoolScopedMixin, mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    queryset = EmailQueueItem.objects.all().select_related("template")
    serializer_class = EmailQueueItemSerializer
    permission_classes = [IsSchoolManager]
    search_fields = ["recipient_email", "subject"]
    ordering_fields = ["created_at", "scheduled_at", "sent_at", "status"]

    def get_queryset(self):  # type: ignore[override]
        queryset = super().get_queryset()
        status_filter = self.request.query_params.get("status")
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        return queryset

    @action(detail=True, methods=["post"])
    def retry(self, request, pk=None):
        item = services.retry_email(self.get_object())
        return Response(EmailQueueItemSerializer(item).data)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        item = services.cancel_email(self.get_object())
        return Response(EmailQueueItemSerializer(item).data)

    @action(detail=True, methods=["get"])
    def logs(self, request, pk=None):
        item = self.get_object()
        return Response(EmailLogSerializer(item.logs.all(), many=True).data)


@api_view(["GET"])
def queue_health(request):
    school = None if request.user.is_platform_admin else request.user.school
    if school is None and not request.user.is_platform_admin:
        return Response({"detail": "You are not linked to a school."}, status=status.HTTP_404_NOT_FOUND)
    return Response(services.queue_health(school=school))
