"""Serializers for schools and user accounts."""

from __future__ import annotations

from django.contrib.auth import get_user_model
from rest_framework import serializers

from .models import JROTCProgram, School
from .services import ONBOARDING_REQUIRED_FIELDS

User = get_user_model()


class SchoolSerializer(serializers.ModelSerializer):
    class Meta:
        model = School
        fields = [
            "id",
            "name",
            "initials",
            "jrotc_program",
            "timezone",
            "contact",
            "email",
            "phone",
            "address",
            "city",
            "state",
            "zip_code",
            "country",
            "referred_by",
            "notes",
            "comp_basic",
            "comp_analytics",
            "comp_hosting",
            "competition_module",
            "subscription_start",
            "subscription_end",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]

    def validate_name(self, value: str) -> str:
        name = value.strip()
        queryset = School.objects.filter(name__iexact=name)
        if self.instance is not None:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError("A school with this name already exists.")
        return name


class SchoolOnboardingSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    initials = serializers.CharField(max_length=16)
    contact_person = serializers.CharField(max_length=255)
    first_name = serializers.CharField(max_length=150)
    last_name = serializers.CharField(max_length=150)
    contact_email = serializers.EmailField()
    contact_phone = serializers.CharField(max_length=32)
    password = serializers.CharField(write_only=True, min_length=8)
    jrotc_program = serializers.ChoiceField(choices=JROTCProgram.choices)
    timezone = serializers.CharField(max_length=64)
    referred_by = serializers.CharField(max_length=255, required=False, allow_blank=True)

    required_fields = ONBOARDING_REQUIRED_FIELDS


class UserSerializer(serializers.ModelSerializer):
    full_name = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "email",
            "first_name",
            "last_name",
            "full_name",
            "role",
            "phone",
            "school",
            "is_active",
            "password_change_required",
        ]
        read_only_fields = ["id", "username", "school", "is_active"]

    def get_full_name(self, obj) -> str:
        return obj.get_full_name()
