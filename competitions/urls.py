"""URL configuration for the competition API."""

from rest_framework.routers import SimpleRouter

from .api import (
    CompetitionEventTypeViewSet,
    CompetitionEventViewSet,
    CompetitionPlacementViewSet,
    CompetitionSchoolViewSet,
    CompetitionViewSet,
    JudgeApplicationViewSet,
    JudgeAssignmentViewSet,
    JudgeViewSet,
    ScoreSheetViewSet,
    ScoreTemplateViewSet,
)

router = SimpleRouter()
router.register(r"competitions", CompetitionViewSet, basename="competition")
router.register(r"competition-events", CompetitionEventViewSet, basename="competition-event")
router.register(r"competition-schools", CompetitionSchoolViewSet, basename="competition-school")
router.register(r"event-types", CompetitionEventTypeViewSet, basename="event-type")
router.register(r"score-templates", ScoreTemplateViewSet, basename="score-template")
router.register(r"judges", JudgeViewSet, basename="judge")
router.register(r"judge-applications", JudgeApplicationViewSet, basename="judge-application")
router.register(r"judge-assignments", JudgeAssignmentViewSet, basename="judge-assignment")
router.register(r"score-sheets", ScoreSheetViewSet, basename="score-sheet")
router.register(r"placements", CompetitionPlacementViewSet, basename="placement")

urlpatterns = router.urls
