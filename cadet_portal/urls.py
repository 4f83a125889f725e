"""
URL configuration for cadet_portal project.

Every app exposes a DRF router under ``/api/``.
"""
from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api-auth/', include('rest_framework.urls')),
    path('api/', include('schools.urls')),
    path('api/', include('cadets.urls')),
    path('api/', include('taskboard.urls')),
    path('api/emails/', include('emails.urls')),
    path('api/', include('competitions.urls')),
]
