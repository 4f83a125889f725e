"""REST API for hosting, entering, judging and scoring competitions."""

from __future__ import annotations

from django.db.models import Q
from django.http import HttpResponse
from django.shortcuts import get_object_or_404
from rest_framework import mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.response import Response

from cadets.models import Cadet
from schools.models import School
from schools.permissions import IsSchoolManager, SchoolScopedMixin

from . import rankings, schedule, scoring, services
from .models import (
    Competition,
    CompetitionEvent,
    CompetitionEventType,
    CompetitionPlacement,
    CompetitionSchool,
    Judge,
    JudgeApplication,
    JudgeAssignment,
    ScoreSheet,
    ScoreTemplate,
)
from .serializers import (
    AssignSlotSerializer,
    AvailableSchoolsSerializer,
    CompetitionEventSerializer,
    CompetitionEventTypeSerializer,
    CompetitionPlacementSerializer,
    CompetitionSchoolSerializer,
    CompetitionSerializer,
    CopyCompetitionSerializer,
    JudgeApplicationSerializer,
    JudgeAssignmentSerializer,
    JudgeImportSerializer,
    JudgeSerializer,
    RegistrationSerializer,
    ScheduleSlotSerializer,
    ScoreSheetHistorySerializer,
    ScoreSheetSerializer,
    ScoreSheetWriteSerializer,
    ScoreTemplateSerializer,
    StatusSerializer,
)


def _csv_response(content: str, filename: str) -> HttpResponse:
    response = HttpResponse(content, content_type="text/csv")
    response["Content-Disposition"] = f'attachment; filename="{filename}"'
    return response


def _judge_for(user):
    return getattr(user, "judge_profile", None) if user.is_authenticated else None


class CanScore(permissions.BasePermission):
    """Host staff and judges may enter scores; everyone signed in may read."""

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        if request.method in permissions.SAFE_METHODS:
            return True
        return getattr(user, "can_manage_school", False) or user.role == user.Role.JUDGE


class GlobalOrSchoolMixin(SchoolScopedMixin):
    """Reads include shared catalogue rows; writes only touch the school's own."""

    global_filter = Q(school__isnull=True)

    def get_queryset(self):
        queryset = self.queryset.all()
        user = self.request.user
        if getattr(user, "is_platform_admin", False):
            return queryset
        own = Q(school_id=getattr(user, "school_id", None))
        if self.request.method in permissions.SAFE_METHODS:
            own |= self.global_filter
        return queryset.filter(own)


class CompetitionEventTypeViewSet(GlobalOrSchoolMixin, viewsets.ModelViewSet):
    queryset = CompetitionEventType.objects.all()
    serializer_class = CompetitionEventTypeSerializer
    permission_classes = [IsSchoolManager]
    pagination_class = None


class ScoreTemplateViewSet(GlobalOrSchoolMixin, viewsets.ModelViewSet):
    queryset = ScoreTemplate.objects.select_related("event_type")
    serializer_class = ScoreTemplateSerializer
    permission_classes = [IsSchoolManager]
    global_filter = Q(is_global=True)
    search_fields = ["template_name", "description"]

    def get_queryset(self):  # type: ignore[override]
        queryset = super().get_queryset()
        params = self.request.query_params
        if params.get("event_type"):
            queryset = queryset.filter(event_type_id=params["event_type"])
        if params.get("program"):
            queryset = queryset.filter(jrotc_program=params["program"])
        return queryset

    def perform_create(self, serializer):
        serializer.save(school=self.get_school(), created_by=self.request.user)

    @action(detail=True, methods=["get"])
    def preview(self, request, pk=None):
        return Response(scoring.preview(list(self.get_object().fields or [])))


class CompetitionViewSet(SchoolScopedMixin, viewsets.ModelViewSet):
    """Competitions hosted by the user's school.

    Entry actions (``open``, ``register``, ``withdraw``) and the read-only
    timeline and rankings also reach competitions the school has entered.
    """

    queryset = Competition.objects.select_related("school")
    serializer_class = CompetitionSerializer
    permission_classes = [IsSchoolManager]
    search_fields = ["name", "location"]
    ordering_fields = ["start_date", "name", "status"]
    participant_actions = {"retrieve", "register", "withdraw", "timeline", "standings", "placements"}

    def get_queryset(self):  # type: ignore[override]
        if self.action in self.participant_actions:
            return self._visible_competitions()
        queryset = super().get_queryset()
        if self.request.query_params.get("status"):
            queryset = queryset.filter(status=self.request.query_params["status"])
        return queryset

    def _visible_competitions(self):
        user = self.request.user
        if getattr(user, "is_platform_admin", False):
            return self.queryset.all()
        school_id = getattr(user, "school_id", None)
        return self.queryset.filter(
            Q(school_id=school_id) | Q(schools__school_id=school_id) | Q(status=Competition.Status.OPEN)
        ).distinct()

    def perform_create(self, serializer):
        serializer.save(school=self.get_school(), created_by=self.request.user)

    @action(detail=False, methods=["get"], url_path="open", url_name="open")
    def open_for_registration(self, request):
        competitions = services.open_competitions(self.get_school())
        return Response(self.get_serializer(competitions, many=True).data)

    @action(detail=True, methods=["post"])
    def register(self, request, pk=None):
        competition = self.get_object()
        serializer = RegistrationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        events = list(competition.events.filter(pk__in=serializer.validated_data["events"]))
        if len(events) != len(set(serializer.validated_data["events"])):
            return Response({"events": ["Events must belong to this competition."]}, status=status.HTTP_400_BAD_REQUEST)
        entry = services.register_school(
            competition, self.get_school(), events, notes=serializer.validated_data["notes"]
        )
        return Response(CompetitionSchoolSerializer(entry).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def withdraw(self, request, pk=None):
        entry = services.withdraw_school(self.get_object(), self.get_school())
        return Response(CompetitionSchoolSerializer(entry).data)

    @action(detail=True, methods=["post"])
    def copy(self, request, pk=None):
        serializer = CopyCompetitionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        copy = services.copy_competition(
            self.get_object(),
            serializer.validated_data["name"],
            serializer.validated_data["start_date"],
            user=request.user,
        )
        return Response(self.get_serializer(copy).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"], url_path="status")
    def set_status(self, request, pk=None):
        serializer = StatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        competition = services.set_competition_status(self.get_object(), serializer.validated_data["status"])
        return Response(self.get_serializer(competition).data)

    @action(detail=True, methods=["post"], url_path="generate-placements")
    def generate_placements(self, request, pk=None):
        return Response(services.generate_placements(self.get_object()))

    @action(detail=True, methods=["get"])
    def placements(self, request, pk=None):
        placements = self.get_object().placements.select_related("school")
        return Response(CompetitionPlacementSerializer(placements, many=True).data)

    @action(detail=True, methods=["get"])
    def timeline(self, request, pk=None):
        timeline = schedule.competition_timeline(self.get_object())
        return Response(timeline.as_dict() if timeline else None)

    @action(detail=True, methods=["post", "delete"], url_path="schedule")
    def schedule_slot(self, request, pk=None):
        competition = self.get_object()
        serializer = AssignSlotSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        event = get_object_or_404(competition.events, pk=data["event"])
        if request.method == "DELETE" or data.get("school") is None:
            return Response({"deleted": schedule.clear_slot(event, data["scheduled_time"])})
        slot = schedule.assign_slot(event, data["scheduled_time"], data["school"])
        return Response(ScheduleSlotSerializer(slot).data)

    @action(detail=True, methods=["post"], url_path="available-schools")
    def available_schools(self, request, pk=None):
        serializer = AvailableSchoolsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        event = get_object_or_404(self.get_object().events, pk=serializer.validated_data["event"])
        return Response(schedule.available_schools(event, serializer.validated_data.get("overrides")))

    @action(detail=True, methods=["get"], url_path="schedule-export")
    def schedule_export(self, request, pk=None):
        competition = self.get_object()
        return _csv_response(schedule.export_schedule_csv(competition), f"schedule_{competition.pk}.csv")

    @action(detail=True, methods=["get"], url_path="judge-timeline")
    def judge_timeline(self, request, pk=None):
        assignments = self.get_object().judge_assignments.select_related("judge", "event__event_type")
        timeline = schedule.build_judge_timeline(assignments)
        return Response(timeline.as_dict() if timeline else None)

    @action(detail=True, methods=["get"], url_path="rankings")
    def standings(self, request, pk=None):
        results = services.competition_rankings(self.get_object())
        return Response(
            {
                "overall": [ranking.as_dict() for ranking in results["overall"]],
                "armed": [ranking.as_dict() for ranking in results["armed"]],
                "unarmed": [ranking.as_dict() for ranking in results["unarmed"]],
                "events": list(results["events"].values()),
            }
        )

    @action(detail=True, methods=["get"], url_path="results-export")
    def results_export(self, request, pk=None):
        competition = self.get_object()
        matrix = services.competition_results_matrix(competition)
        return _csv_response(rankings.matrix_to_csv(matrix), f"results_{competition.pk}.csv")


class CompetitionEventViewSet(SchoolScopedMixin, viewsets.ModelViewSet):
    queryset = CompetitionEvent.objects.select_related("event_type", "score_template")
    serializer_class = CompetitionEventSerializer
    permission_classes = [IsSchoolManager]
    school_field = "competition__school"
    pagination_class = None

    def get_queryset(self):  # type: ignore[override]
        queryset = super().get_queryset()
        competition = self.request.query_params.get("competition")
        if competition:
            queryset = queryset.filter(competition_id=competition)
        return queryset

    def perform_create(self, serializer):
        serializer.save()


class CompetitionSchoolViewSet(
    SchoolScopedMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet,
):
    """Entries in the host's competitions: colours, payment and notes."""

    queryset = CompetitionSchool.objects.all()
    serializer_class = CompetitionSchoolSerializer
    permission_classes = [IsSchoolManager]
    school_field = "competition__school"
    pagination_class = None

    def get_queryset(self):  # type: ignore[override]
        queryset = super().get_queryset()
        competition = self.request.query_params.get("competition")
        if competition:
            queryset = queryset.filter(competition_id=competition)
        return queryset


class JudgeViewSet(viewsets.ModelViewSet):
    queryset = Judge.objects.all()
    serializer_class = JudgeSerializer
    permission_classes = [IsSchoolManager]
    search_fields = ["name", "email"]

    def get_queryset(self):  # type: ignore[override]
        queryset = super().get_queryset()
        available = self.request.query_params.get("available")
        if available is not None:
            queryset = queryset.filter(available=available.lower() in {"1", "true", "yes"})
        return queryset

    @action(detail=False, methods=["post"], url_path="import")
    def import_csv(self, request):
        serializer = JudgeImportSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = services.import_judges_csv(serializer.text())
        created = result["created"] or result["updated"]
        return Response(result, status=status.HTTP_201_CREATED if created else status.HTTP_200_OK)


class JudgeApplicationViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """Judges apply to competitions; the host approves or declines."""

    queryset = JudgeApplication.objects.select_related("judge", "competition")
    serializer_class = JudgeApplicationSerializer
    host_actions = {"approve", "decline"}

    def get_permissions(self):
        if self.action in self.host_actions:
            return [IsSchoolManager()]
        return [permissions.IsAuthenticated()]

    def get_queryset(self):  # type: ignore[override]
        user = self.request.user
        queryset = self.queryset.all()
        if not user.is_platform_admin:
            hosted = Q(competition__school_id=user.school_id) if user.school_id else Q(pk__in=[])
            if self.action in self.host_actions:
                queryset = queryset.filter(hosted)
            else:
                queryset = queryset.filter(hosted | Q(judge__user=user))
        competition = self.request.query_params.get("competition")
        if competition:
            queryset = queryset.filter(competition_id=competition)
        return queryset

    def _judge(self):
        judge = _judge_for(self.request.user)
        if judge is None:
            raise PermissionDenied("Only judges can apply to competitions.")
        return judge

    @action(detail=False, methods=["post"])
    def apply(self, request):
        judge = self._judge()
        competition = get_object_or_404(
            Competition.objects.exclude(status=Competition.Status.DRAFT), pk=request.data.get("competition")
        )
        application = services.apply_to_judge(competition, judge, notes=request.data.get("notes", ""))
        return Response(self.get_serializer(application).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def withdraw(self, request, pk=None):
        application = self.get_object()
        if application.judge_id != self._judge().pk:
            raise PermissionDenied("You can only withdraw your own applications.")
        return Response(self.get_serializer(services.withdraw_application(application)).data)

    @action(detail=True, methods=["post"])
    def approve(self, request, pk=None):
        return Response(self.get_serializer(services.review_application(self.get_object(), True)).data)

    @action(detail=True, methods=["post"])
    def decline(self, request, pk=None):
        return Response(self.get_serializer(services.review_application(self.get_object(), False)).data)


class JudgeAssignmentViewSet(SchoolScopedMixin, viewsets.ModelViewSet):
    queryset = JudgeAssignment.objects.select_related("judge", "event__event_type")
    serializer_class = JudgeAssignmentSerializer
    permission_classes = [IsSchoolManager]
    school_field = "competition__school"
    pagination_class = None

    def get_queryset(self):  # type: ignore[override]
        queryset = super().get_queryset()
        params = self.request.query_params
        if params.get("competition"):
            queryset = queryset.filter(competition_id=params["competition"])
        if params.get("judge"):
            queryset = queryset.filter(judge_id=params["judge"])
        return queryset

    def perform_create(self, serializer):
        serializer.instance = services.save_judge_assignment(JudgeAssignment(**serializer.validated_data))

    def perform_update(self, serializer):
        assignment = serializer.instance
        for key, value in serializer.validated_data.items():
            setattr(assignment, key, value)
        serializer.instance = services.save_judge_assignment(assignment)


class ScoreSheetViewSet(viewsets.ModelViewSet):
    """Score sheets for hosted competitions, or ones the judge is approved for."""

    queryset = ScoreSheet.objects.select_related("school", "event__event_type")
    serializer_class = ScoreSheetSerializer
    permission_classes = [CanScore]
    ordering_fields = ["total_points", "created_at", "judge_number"]

    def _competitions(self):
        user = self.request.user
        if user.is_platform_admin:
            return Competition.objects.all()
        scope = Q(school_id=user.school_id) if user.school_id else Q(pk__in=[])
        judge = _judge_for(user)
        if judge is not None:
            scope |= Q(
                judge_applications__judge=judge,
                judge_applications__status=JudgeApplication.Status.APPROVED,
            )
        return Competition.objects.filter(scope).distinct()

    def get_queryset(self):  # type: ignore[override]
        queryset = self.queryset.filter(competition__in=self._competitions())
        params = self.request.query_params
        for field in ("competition", "event", "school"):
            if params.get(field):
                queryset = queryset.filter(**{f"{field}_id": params[field]})
        return queryset

    def _cadets(self, school, ids):
        if ids is None:
            return None
        return list(Cadet.objects.filter(school=school, pk__in=ids))

    def create(self, request, *args, **kwargs):
        serializer = ScoreSheetWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        competition = get_object_or_404(self._competitions(), pk=data["competition"])
        event = get_object_or_404(competition.events, pk=data["event"])
        school = get_object_or_404(School, pk=data["school"])
        sheet = services.save_score_sheet(
            competition,
            event,
            school,
            data["judge_number"],
            data["scores"],
            user=request.user,
            team_name=data["team_name"],
            cadets=self._cadets(school, data.get("cadets")),
        )
        return Response(ScoreSheetSerializer(sheet).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        sheet = self.get_object()
        serializer = ScoreSheetWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        sheet = services.save_score_sheet(
            sheet.competition,
            sheet.event,
            sheet.school,
            data.get("judge_number", sheet.judge_number),
            data.get("scores", sheet.scores),
            user=request.user,
            sheet=sheet,
            team_name=data.get("team_name", sheet.team_name),
            cadets=self._cadets(sheet.school, data.get("cadets")),
        )
        return Response(ScoreSheetSerializer(sheet).data)

    def perform_destroy(self, instance):
        services.delete_score_sheet(instance)

    @action(detail=True, methods=["get"])
    def history(self, request, pk=None):
        return Response(ScoreSheetHistorySerializer(self.get_object().history.all(), many=True).data)

    @action(detail=False, methods=["get"])
    def preview(self, request):
        """Blank sheet for an event: template fields with defaults and max points."""

        event = get_object_or_404(
            CompetitionEvent.objects.filter(competition__in=self._competitions()),
            pk=request.query_params.get("event"),
        )
        return Response(scoring.preview(list(event.score_template.fields or []) if event.score_template_id else []))


class CompetitionPlacementViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = CompetitionPlacement.objects.select_related("school")
    serializer_class = CompetitionPlacementSerializer
    permission_classes = [permissions.IsAuthenticated]
    pagination_class = None

    def get_queryset(self):  # type: ignore[override]
        queryset = super().get_queryset()
        params = self.request.query_params
        if params.get("competition"):
            queryset = queryset.filter(competition_id=params["competition"])
        if params.get("category"):
            queryset = queryset.filter(category=params["category"])
        return queryset
