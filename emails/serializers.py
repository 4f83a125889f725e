"""Serializers for email templates and the queue."""

from __future__ import annotations

from rest_framework import serializers

from .models import EmailLog, EmailQueueItem, EmailTemplate


class EmailTemplateSerializer(serializers.ModelSerializer):
    class Meta:
        model = EmailTemplate
        fields = [
            "id",
            "name",
            "subject",
            "body",
            "source_table",
            "variables_used",
            "is_active",
            "created_by",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["variables_used", "created_by", "created_at", "updated_at"]


class EmailLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = EmailLog
        fields = ["id", "event_type", "event_data", "created_at"]


class EmailQueueItemSerializer(serializers.ModelSerializer):
    template_name = serializers.CharField(source="template.name", read_only=True, default="")

    class Meta:
        model = EmailQueueItem
        fields = [
            "id",
            "template",
            "template_name",
            "recipient_email",
            "subject",
            "body",
            "source_table",
            "record_id",
            "status",
            "scheduled_at",
            "sent_at",
            "error_message",
            "retry_count",
            "next_retry_at",
            "created_at",
        ]
        read_only_fields = fields


class QueueEmailSerializer(serializers.Serializer):
    recipient_email = serializers.EmailField()
    record_id = serializers.IntegerField(required=False, allow_null=True)
    scheduled_at = serializers.DateTimeField(required=False, allow_null=True)


class PreviewSerializer(serializers.Serializer):
    record_id = serializers.IntegerField(required=False, allow_null=True)
