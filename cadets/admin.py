"""Admin registrations for cadets and their records."""
from django.contrib import admin

from . import models


class PTTestInline(admin.TabularInline):
    model = models.PTTest
    extra = 0


class CommunityServiceInline(admin.TabularInline):
    model = models.CommunityServiceRecord
    extra = 0


@admin.register(models.Cadet)
class CadetAdmin(admin.ModelAdmin):
    list_display = ("last_name", "first_name", "email", "school", "grade", "rank", "flight", "is_active")
    list_filter = ("school", "grade", "cadet_year", "is_active")
    search_fields = ("first_name", "last_name", "email")
    inlines = [PTTestInline, CommunityServiceInline]


@admin.register(models.PTTest)
class PTTestAdmin(admin.ModelAdmin):
    list_display = ("cadet", "date", "push_ups", "sit_ups", "plank_seconds", "mile_seconds")
    list_filter = ("date",)
    search_fields = ("cadet__first_name", "cadet__last_name")


@admin.register(models.CommunityServiceRecord)
class CommunityServiceRecordAdmin(admin.ModelAdmin):
    list_display = ("cadet", "date", "event", "hours")
    search_fields = ("event", "cadet__last_name")


@admin.register(models.UniformInspection)
class UniformInspectionAdmin(admin.ModelAdmin):
    list_display = ("cadet", "date", "score")
    list_filter = ("date",)


@admin.register(models.ChainOfCommandRole)
class ChainOfCommandRoleAdmin(admin.ModelAdmin):
    list_display = ("role", "school", "cadet", "reports_to", "assistant")
    list_filter = ("school",)
    search_fields = ("role", "email_address")
