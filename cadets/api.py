"""REST API for the cadet roster, personal records and chain of command."""

from __future__ import annotations

from django.http import HttpResponse
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from schools.permissions import IsSchoolManager, SchoolScopedMixin

from . import chain, services
from .models import Cadet, ChainOfCommandRole, CommunityServiceRecord, PTTest, UniformInspection
from .serializers import (
    BulkInspectionSerializer,
    BulkPTSerializer,
    BulkServiceSerializer,
    CadetImportSerializer,
    CadetSerializer,
    ChainOfCommandRoleSerializer,
    CommunityServiceRecordSerializer,
    MassActionSerializer,
    PTTestSerializer,
    UniformInspectionSerializer,
)


def _csv_response(content: str, filename: str) -> HttpResponse:
    response = HttpResponse(content, content_type="text/csv")
    response["Content-Disposition"] = f'attachment; filename="{filename}"'
    return response


class CadetViewSet(SchoolScopedMixin, viewsets.ModelViewSet):
    queryset = Cadet.objects.all()
    serializer_class = CadetSerializer
    permission_classes = [IsSchoolManager]
    search_fields = ["first_name", "last_name", "email", "rank", "flight"]
    ordering_fields = ["last_name", "first_name", "grade", "rank", "flight", "cadet_year", "created_at"]

    def get_queryset(self):  # type: ignore[override]
        queryset = super().get_queryset()
        params = self.request.query_params
        active = params.get("active")
        if active is not None:
            queryset = queryset.filter(is_active=active.lower() in {"1", "true", "yes"})
        for field in ("grade", "flight", "cadet_year", "role"):
            if params.get(field):
                queryset = queryset.filter(**{field: params[field]})
        return queryset

    @action(detail=False, methods=["post"], url_path="import")
    def import_csv(self, request):
        serializer = CadetImportSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        school = self.get_school()
        rows = services.validate_cadet_rows(school, services.parse_cadet_csv(serializer.text()))
        if serializer.validated_data["dry_run"]:
            return Response({"rows": [row.as_dict() for row in rows]})
        result = services.import_cadets(school, rows)
        return Response(result, status=status.HTTP_201_CREATED if result["success"] else status.HTTP_200_OK)

    @action(detail=False, methods=["get"], url_path="import-template")
    def import_template(self, request):
        return _csv_response(services.CSV_TEMPLATE, "cadets_template.csv")

    @action(detail=False, methods=["get"])
    def export(self, request):
        return _csv_response(services.export_roster_csv(self.filter_queryset(self.get_queryset())), "cadets.csv")

    @action(detail=False, methods=["post"], url_path="mass-action")
    def mass_action(self, request):
        serializer = MassActionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        cadets = self.get_queryset().filter(pk__in=serializer.validated_data["ids"])
        operation = serializer.validated_data["action"]
        if operation == "update":
            changes = serializer.changes()
            if not changes:
                return Response({"detail": "Nothing to update."}, status=status.HTTP_400_BAD_REQUEST)
            count = services.mass_update(self.get_school(), cadets, changes)
        else:
            count = services.set_active(cadets, operation == "activate")
        return Response({"updated": count})

    @action(detail=False, methods=["get"], url_path="service-hours")
    def service_hours(self, request):
        return Response(services.service_hours_summary(self.get_school()))


class CadetRecordViewSet(SchoolScopedMixin, viewsets.ModelViewSet):
    school_field = "cadet__school"
    permission_classes = [IsSchoolManager]
    ordering_fields = ["date", "created_at"]

    def get_queryset(self):  # type: ignore[override]
        queryset = super().get_queryset().select_related("cadet")
        cadet = self.request.query_params.get("cadet")
        if cadet:
            queryset = queryset.filter(cadet_id=cadet)
        return queryset

    def perform_create(self, serializer):
        serializer.save()


class PTTestViewSet(CadetRecordViewSet):
    queryset = PTTest.objects.all()
    serializer_class = PTTestSerializer

    @action(detail=False, methods=["post"])
    def bulk(self, request):
        serializer = BulkPTSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        created = services.bulk_create_pt_tests(
            self.get_school(), serializer.validated_data["date"], serializer.validated_data["entries"]
        )
        return Response({"created": len(created)}, status=status.HTTP_201_CREATED)


class CommunityServiceRecordViewSet(CadetRecordViewSet):
    queryset = CommunityServiceRecord.objects.all()
    serializer_class = CommunityServiceRecordSerializer
    search_fields = ["event", "notes"]

    @action(detail=False, methods=["post"])
    def bulk(self, request):
        serializer = BulkServiceSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        created = services.bulk_create_service_records(
            self.get_school(), data["cadets"], data["date"], data["event"], data["hours"], data["notes"]
        )
        return Response({"created": len(created)}, status=status.HTTP_201_CREATED)


class UniformInspectionViewSet(CadetRecordViewSet):
    queryset = UniformInspection.objects.all()
    serializer_class = UniformInspectionSerializer

    @action(detail=False, methods=["post"])
    def bulk(self, request):
        serializer = BulkInspectionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        created = services.bulk_create_inspections(
            self.get_school(), serializer.validated_data["date"], serializer.validated_data["entries"]
        )
        return Response({"created": len(created)}, status=status.HTTP_201_CREATED)


class ChainOfCommandViewSet(
    SchoolScopedMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    mixins.UpdateModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    queryset = ChainOfCommandRole.objects.all().select_related("cadet")
    serializer_class = ChainOfCommandRoleSerializer
    permission_classes = [IsSchoolManager]
    pagination_class = None

    def perform_create(self, serializer):
        serializer.instance = chain.save_chain_role(self.get_school(), dict(serializer.validated_data))

    def perform_update(self, serializer):
        instance = serializer.instance
        data = chain.linked_fields(serializer.validated_data, instance)
        serializer.instance = chain.save_chain_role(instance.school, data, instance)

    def perform_destroy(self, instance):
        chain.delete_chain_role(instance)

    @action(detail=False, methods=["get"])
    def tree(self, request):
        jobs = list(self.get_queryset())
        squadrons = chain.build_squadron_structures(jobs)
        return Response(
            {
                "nodes": [node.as_dict() for node in chain.build_command_tree(jobs)],
                "squadrons": [
                    {"name": s.name, "commander": s.commander, "members": s.members, "column": s.column}
                    for s in squadrons.values()
                ],
            }
        )

    @action(detail=False, methods=["get"])
    def export(self, request):
        return _csv_response(chain.export_chain_csv(self.get_queryset()), "chain_of_command.csv")
