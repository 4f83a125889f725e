"""Serializers for the competition API."""

from __future__ import annotations

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import serializers

from cadets.services import decode_upload

from . import scoring
from .models import (
    Competition,
    CompetitionEvent,
    CompetitionEventType,
    CompetitionPlacement,
    CompetitionSchool,
    Judge,
    JudgeApplication,
    JudgeAssignment,
    ScheduleSlot,
    ScoreSheet,
    ScoreSheetHistory,
    ScoreTemplate,
)


def _model_clean(serializer, attrs):
    """Run the model's ``clean()`` over the merged instance and incoming values."""

    model = serializer.Meta.model
    values = {}
    if serializer.instance is not None:
        for field in model._meta.concrete_fields:
            values[field.attname] = getattr(serializer.instance, field.attname)
    candidate = model(**values)
    for key, value in attrs.items():
        setattr(candidate, key, value)
    try:
        candidate.clean()
    except DjangoValidationError as exc:
        raise serializers.ValidationError(exc.message_dict if hasattr(exc, "error_dict") else exc.messages)
    return attrs


class CompetitionEventTypeSerializer(serializers.ModelSerializer):
    class Meta:
        model = CompetitionEventType
        fields = ["id", "name", "initials", "category", "school", "is_active"]
        read_only_fields = ["school"]


class ScoreTemplateSerializer(serializers.ModelSerializer):
    max_points = serializers.FloatField(read_only=True)

    class Meta:
        model = ScoreTemplate
        fields = [
            "id",
            "template_name",
            "event_type",
            "jrotc_program",
            "description",
            "fields",
            "max_points",
            "is_global",
            "is_active",
            "school",
            "created_by",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["is_global", "school", "created_by", "created_at", "updated_at"]

    def validate_fields(self, value):
        try:
            scoring.validate_template_fields(value)
        except DjangoValidationError as exc:
            raise serializers.ValidationError(exc.message_dict["fields"])
        return value


class CompetitionSerializer(serializers.ModelSerializer):
    host_school_name = serializers.CharField(source="school.name", read_only=True)

    class Meta:
        model = Competition
        fields = [
            "id",
            "school",
            "host_school_name",
            "name",
            "description",
            "location",
            "start_date",
            "end_date",
            "registration_deadline",
            "status",
            "program",
            "fee",
            "max_participants",
            "created_by",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["school", "status", "created_by", "created_at", "updated_at"]

    def validate(self, attrs):
        return _model_clean(self, attrs)


class CompetitionEventSerializer(serializers.ModelSerializer):
    event_name = serializers.CharField(source="event_type.name", read_only=True)
    category = serializers.CharField(source="event_type.category", read_only=True)
    effective_max_points = serializers.FloatField(read_only=True)

    class Meta:
        model = CompetitionEvent
        fields = [
            "id",
            "competition",
            "event_type",
            "event_name",
            "category",
            "score_template",
            "location",
            "start_time",
            "end_time",
            "interval",
            "lunch_start",
            "lunch_end",
            "max_participants",
            "weight",
            "required",
            "judges_needed",
            "max_points",
            "effective_max_points",
        ]

    def validate_competition(self, value):
        request = self.context.get("request")
        if request and not request.user.is_platform_admin and value.school_id != request.user.school_id:
            raise serializers.ValidationError("Competition not found.")
        return value

    def validate(self, attrs):
        return _model_clean(self, attrs)


class CompetitionSchoolSerializer(serializers.ModelSerializer):
    class Meta:
        model = CompetitionSchool
        fields = [
            "id",
            "competition",
            "school",
            "school_name",
            "school_initials",
            "color",
            "status",
            "paid",
            "total_fee",
            "notes",
            "created_at",
        ]
        read_only_fields = ["competition", "school", "school_name", "status", "created_at"]


class RegistrationSerializer(serializers.Serializer):
    events = serializers.ListField(child=serializers.IntegerField(), allow_empty=True)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class CopyCompetitionSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    start_date = serializers.DateField()


class StatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Competition.Status.choices)


class ScheduleSlotSerializer(serializers.ModelSerializer):
    class Meta:
        model = ScheduleSlot
        fields = ["id", "competition", "event", "school", "scheduled_time", "duration"]


class AssignSlotSerializer(serializers.Serializer):
    event = serializers.IntegerField()
    scheduled_time = serializers.DateTimeField()
    school = serializers.IntegerField(required=False, allow_null=True)


class AvailableSchoolsSerializer(serializers.Serializer):
    event = serializers.IntegerField()
    overrides = serializers.DictField(child=serializers.IntegerField(allow_null=True), required=False)


class JudgeSerializer(serializers.ModelSerializer):
    class Meta:
        model = Judge
        fields = ["id", "name", "email", "phone", "user", "bio", "available", "created_at"]
        read_only_fields = ["user", "created_at"]

    def validate_email(self, value):
        return value.strip().lower()


class JudgeImportSerializer(serializers.Serializer):
    file = serializers.FileField(required=False)
    csv = serializers.CharField(required=False, trim_whitespace=False)

    def validate(self, attrs):
        if not attrs.get("file") and not attrs.get("csv"):
            raise serializers.ValidationError("Upload a CSV file or paste CSV text.")
        return attrs

    def text(self) -> str:
        upload = self.validated_data.get("file")
        if upload is not None:
            return decode_upload(upload)
        return self.validated_data["csv"]


class JudgeApplicationSerializer(serializers.ModelSerializer):
    judge_name = serializers.CharField(source="judge.name", read_only=True)
    competition_name = serializers.CharField(source="competition.name", read_only=True)

    class Meta:
        model = JudgeApplication
        fields = ["id", "competition", "competition_name", "judge", "judge_name", "status", "notes", "created_at"]
        read_only_fields = ["judge", "status", "created_at"]


class JudgeAssignmentSerializer(serializers.ModelSerializer):
    judge_name = serializers.CharField(source="judge.name", read_only=True)

    class Meta:
        model = JudgeAssignment
        fields = ["id", "competition", "judge", "judge_name", "event", "location", "start_time", "end_time"]

    def validate_competition(self, value):
        request = self.context.get("request")
        if request and not request.user.is_platform_admin and value.school_id != request.user.school_id:
            raise serializers.ValidationError("Competition not found.")
        return value


class ScoreSheetSerializer(serializers.ModelSerializer):
    school_name = serializers.SerializerMethodField()
    event_name = serializers.CharField(source="event.event_type.name", read_only=True)

    class Meta:
        model = ScoreSheet
        fields = [
            "id",
            "competition",
            "event",
            "event_name",
            "school",
            "school_name",
            "judge_number",
            "scores",
            "template_snapshot",
            "total_points",
            "team_name",
            "cadets",
            "created_by",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_school_name(self, obj) -> str:
        return obj.school.name


class ScoreSheetWriteSerializer(serializers.Serializer):
    competition = serializers.IntegerField()
    event = serializers.IntegerField()
    school = serializers.IntegerField()
    judge_number = serializers.CharField(max_length=32)
    scores = serializers.DictField()
    team_name = serializers.CharField(required=False, allow_blank=True, default="")
    cadets = serializers.ListField(child=serializers.IntegerField(), required=False)


class ScoreSheetHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = ScoreSheetHistory
        fields = [
            "id",
            "changed_by",
            "previous_scores",
            "previous_total",
            "new_scores",
            "new_total",
            "created_at",
        ]


class CompetitionPlacementSerializer(serializers.ModelSerializer):
    school_name = serializers.CharField(source="school.name", read_only=True)

    class Meta:
        model = CompetitionPlacement
        fields = ["id", "category", "event", "event_name", "placement", "school", "school_name", "total_points"]
