"""REST API for schools, onboarding and school user accounts."""

from __future__ import annotations

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from rest_framework import mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from . import ranks, services
from .models import School
from .permissions import IsSchoolManager, SchoolScopedMixin
from .serializers import SchoolOnboardingSerializer, SchoolSerializer, UserSerializer

User = get_user_model()


class SchoolViewSet(viewsets.ModelViewSet):
    queryset = School.objects.all()
    serializer_class = SchoolSerializer
    permission_classes = [IsSchoolManager]

    def get_queryset(self):  # type: ignore[override]
        queryset = super().get_queryset()
        user = self.request.user
        if user.is_platform_admin:
            return queryset
        return queryset.filter(pk=user.school_id)

    def create(self, request, *args, **kwargs):
        if not request.user.is_platform_admin:
            return Response(status=status.HTTP_403_FORBIDDEN)
        return super().create(request, *args, **kwargs)

    def destroy(self, request, *args, **kwargs):
        if not request.user.is_platform_admin:
            return Response(status=status.HTTP_403_FORBIDDEN)
        return super().destroy(request, *args, **kwargs)

    @action(detail=False, methods=["post"], permission_classes=[permissions.AllowAny])
    def onboard(self, request):
        serializer = SchoolOnboardingSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            result = services.create_school_admin(serializer.validated_data)
        except ValidationError as exc:
            return Response(
                {"error": exc.messages[0], "code": exc.code},
                status=status.HTTP_400_BAD_REQUEST,
            )
        return Response(
            {
                "success": True,
                "school_id": result.school.pk,
                "user_id": result.user.pk,
                "welcome_email_id": result.welcome_email_id,
            },
            status=status.HTTP_201_CREATED,
        )

    @action(detail=False, methods=["get"])
    def me(self, request):
        school = request.user.school
        if school is None:
            return Response({"detail": "You are not linked to a school."}, status=status.HTTP_404_NOT_FOUND)
        return Response(SchoolSerializer(school).data)

    @action(detail=False, methods=["get"])
    def ranks(self, request):
        program = request.query_params.get("program")
        if not program and request.user.school_id:
            program = request.user.school.jrotc_program
        if program:
            rows = [
                {"value": rank.rank, "label": f"{rank.rank} ({rank.abbreviation})", "order": rank.order}
                for rank in ranks.ranks_for_program(program)
            ]
        else:
            rows = ranks.all_rank_options()
        return Response(rows)


class UserViewSet(SchoolScopedMixin, mixins.ListModelMixin, mixins.RetrieveModelMixin, mixins.UpdateModelMixin, viewsets.GenericViewSet):
    queryset = User.objects.all().select_related("school").order_by("last_name", "first_name")
    serializer_class = UserSerializer
    permission_classes = [IsSchoolManager]

    @action(detail=True, methods=["post"], url_path="toggle-status")
    def toggle_status(self, request, pk=None):
        user = self.get_object()
        if user.pk == request.user.pk:
            return Response({"detail": "You cannot change your own status."}, status=status.HTTP_400_BAD_REQUEST)
        active = request.data.get("active")
        if active is None:
            active = not user.is_active
        elif isinstance(active, str):
            active = active.lower() in {"1", "true", "yes", "on"}
        services.toggle_user_status(user, bool(active))
        return Response(UserSerializer(user).data)
