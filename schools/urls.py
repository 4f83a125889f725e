"""URL configuration for the schools API."""

from rest_framework.routers import DefaultRouter

from .api import SchoolViewSet, UserViewSet

router = DefaultRouter()
router.register(r"schools", SchoolViewSet, basename="school")
router.register(r"users", UserViewSet, basename="user")

urlpatterns = router.urls
