"""Tenant scoping shared by every school-owned API."""

from __future__ import annotations

from rest_framework import permissions
from rest_framework.exceptions import PermissionDenied


class IsSchoolManager(permissions.BasePermission):
    """Write access for staff roles; read access for every signed-in member."""

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        if request.method in permissions.SAFE_METHODS:
            return True
        return getattr(user, "can_manage_school", False)


class IsPlatformAdmin(permissions.BasePermission):
    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and getattr(user, "is_platform_admin", False))


class SchoolScopedMixin:
    """Restrict a viewset's queryset to the requesting user's school.

    ``school_field`` is the lookup path from the model to ``School``.
    Platform admins see every school.
    """

    school_field = "school"

    def get_queryset(self):
        queryset = super().get_queryset()
        user = self.request.user
        if getattr(user, "is_platform_admin", False):
            return queryset
        if not getattr(user, "school_id", None):
            return queryset.none()
        return queryset.filter(**{self.school_field: user.school_id})

    def get_school(self):
        school = getattr(self.request.user, "school", None)
        if school is None:
            raise PermissionDenied("You are not linked to a school.")
        return school

    def perform_create(self, serializer):
        serializer.save(school=self.get_school())
