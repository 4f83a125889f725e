"""URL configuration for the cadet API."""

from rest_framework.routers import SimpleRouter

from .api import (
    CadetViewSet,
    ChainOfCommandViewSet,
    CommunityServiceRecordViewSet,
    PTTestViewSet,
    UniformInspectionViewSet,
)

router = SimpleRouter()
router.register(r"cadets", CadetViewSet, basename="cadet")
router.register(r"pt-tests", PTTestViewSet, basename="pt-test")
router.register(r"community-service", CommunityServiceRecordViewSet, basename="community-service")
router.register(r"uniform-inspections", UniformInspectionViewSet, basename="uniform-inspection")
router.register(r"chain-of-command", ChainOfCommandViewSet, basename="chain-role")

urlpatterns = router.urls
