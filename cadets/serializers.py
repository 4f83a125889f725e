"""Serializers for cadets, their records and the chain of command."""

from __future__ import annotations

from rest_framework import serializers

from . import services
from .models import Cadet, ChainOfCommandRole, CommunityServiceRecord, PTTest, UniformInspection


class SchoolCadetField(serializers.PrimaryKeyRelatedField):
    """Only offers cadets from the requesting user's school."""

    def get_queryset(self):
        request = self.context.get("request")
        queryset = Cadet.objects.all()
        user = getattr(request, "user", None)
        if user is None or getattr(user, "is_platform_admin", False):
            return queryset
        return queryset.filter(school_id=getattr(user, "school_id", None))


class CadetSerializer(serializers.ModelSerializer):
    full_name = serializers.CharField(read_only=True)

    class Meta:
        model = Cadet
        fields = [
            "id",
            "first_name",
            "last_name",
            "full_name",
            "email",
            "role",
            "grade",
            "rank",
            "flight",
            "cadet_year",
            "is_active",
            "user",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["user", "created_at", "updated_at"]

    def to_internal_value(self, data):
        data = data.copy() if hasattr(data, "copy") else dict(data)
        if data.get("grade"):
            data["grade"] = services.normalize_grade(data["grade"])
        if data.get("cadet_year"):
            data["cadet_year"] = services.normalize_cadet_year(data["cadet_year"])
        return super().to_internal_value(data)


class PTTestSerializer(serializers.ModelSerializer):
    cadet = SchoolCadetField()
    cadet_name = serializers.CharField(source="cadet.full_name", read_only=True)
    plank_time = serializers.CharField(required=False, allow_blank=True, write_only=True)
    mile_time = serializers.CharField(required=False, allow_blank=True, write_only=True)
    plank_display = serializers.SerializerMethodField()
    mile_display = serializers.SerializerMethodField()

    class Meta:
        model = PTTest
        fields = [
            "id",
            "cadet",
            "cadet_name",
            "date",
            "push_ups",
            "sit_ups",
            "plank_seconds",
            "mile_seconds",
            "plank_time",
            "mile_time",
            "plank_display",
            "mile_display",
            "created_at",
        ]
        read_only_fields = ["plank_seconds", "mile_seconds", "created_at"]

    def validate(self, attrs):
        for text_field, seconds_field in (("plank_time", "plank_seconds"), ("mile_time", "mile_seconds")):
            if text_field in attrs:
                try:
                    attrs[seconds_field] = services.parse_duration(attrs.pop(text_field))
                except ValueError as exc:
                    raise serializers.ValidationError({text_field: str(exc)})
        return attrs

    def get_plank_display(self, obj) -> str:
        return services.format_duration(obj.plank_seconds)

    def get_mile_display(self, obj) -> str:
        return services.format_duration(obj.mile_seconds)


class CommunityServiceRecordSerializer(serializers.ModelSerializer):
    cadet = SchoolCadetField()
    cadet_name = serializers.CharField(source="cadet.full_name", read_only=True)

    class Meta:
        model = CommunityServiceRecord
        fields = ["id", "cadet", "cadet_name", "date", "event", "hours", "notes", "created_at"]
        read_only_fields = ["created_at"]


class UniformInspectionSerializer(serializers.ModelSerializer):
    cadet = SchoolCadetField()
    cadet_name = serializers.CharField(source="cadet.full_name", read_only=True)

    class Meta:
        model = UniformInspection
        fields = ["id", "cadet", "cadet_name", "date", "score", "notes", "created_at"]
        read_only_fields = ["created_at"]


class ChainOfCommandRoleSerializer(serializers.ModelSerializer):
    cadet = SchoolCadetField(required=False, allow_null=True)
    cadet_name = serializers.SerializerMethodField()

    class Meta:
        model = ChainOfCommandRole
        fields = ["id", "role", "cadet", "cadet_name", "email_address", "reports_to", "assistant"]
        extra_kwargs = {
            "reports_to": {"required": False},
            "assistant": {"required": False},
        }

    def get_cadet_name(self, obj) -> str:
        return obj.cadet.full_name if obj.cadet_id else ""


class CadetImportSerializer(serializers.Serializer):
    file = serializers.FileField(required=False)
    csv = serializers.CharField(required=False, trim_whitespace=False)
    dry_run = serializers.BooleanField(default=False)

    def validate(self, attrs):
        if not attrs.get("file") and not attrs.get("csv"):
            raise serializers.ValidationError("Upload a CSV file or paste CSV text.")
        return attrs

    def text(self) -> str:
        upload = self.validated_data.get("file")
        if upload is not None:
            return services.decode_upload(upload)
        return self.validated_data["csv"]


class MassActionSerializer(serializers.Serializer):
    ACTIONS = ("activate", "deactivate", "update")

    ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=False)
    action = serializers.ChoiceField(choices=ACTIONS)
    grade = serializers.CharField(required=False, allow_blank=True)
    flight = serializers.CharField(required=False, allow_blank=True)
    rank = serializers.CharField(required=False, allow_blank=True)
    cadet_year = serializers.CharField(required=False, allow_blank=True)
    role = serializers.CharField(required=False, allow_blank=True)

    def changes(self) -> dict:
        return {key: self.validated_data[key] for key in services.MASS_UPDATE_FIELDS if key in self.validated_data}


class PTEntrySerializer(serializers.Serializer):
    cadet = serializers.IntegerField()
    push_ups = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    sit_ups = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    plank_time = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    mile_time = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class BulkPTSerializer(serializers.Serializer):
    date = serializers.DateField()
    entries = PTEntrySerializer(many=True, allow_empty=False)


class BulkServiceSerializer(serializers.Serializer):
    cadets = serializers.ListField(child=serializers.IntegerField(), allow_empty=False)
    date = serializers.DateField()
    event = serializers.CharField(max_length=255)
    hours = serializers.DecimalField(max_digits=6, decimal_places=2)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class InspectionEntrySerializer(serializers.Serializer):
    cadet = serializers.IntegerField()
    score = serializers.IntegerField(required=False, allow_null=True, min_value=0, max_value=100)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class BulkInspectionSerializer(serializers.Serializer):
    date = serializers.DateField()
    entries = InspectionEntrySerializer(many=True, allow_empty=False)
