"""Admin registrations for competitions, judges and score sheets."""
from django.contrib import admin

from . import models


class CompetitionEventInline(admin.TabularInline):
    model = models.CompetitionEvent
    extra = 0


class CompetitionSchoolInline(admin.TabularInline):
    model = models.CompetitionSchool
    extra = 0


@admin.register(models.Competition)
class CompetitionAdmin(admin.ModelAdmin):
    list_display = ("name", "school", "start_date", "end_date", "status")
    list_filter = ("status", "program")
    search_fields = ("name", "location", "school__name")
    inlines = [CompetitionEventInline, CompetitionSchoolInline]


@admin.register(models.CompetitionEventType)
class CompetitionEventTypeAdmin(admin.ModelAdmin):
    list_display = ("name", "initials", "category", "school", "is_active")
    list_filter = ("category", "is_active")


@admin.register(models.ScoreTemplate)
class ScoreTemplateAdmin(admin.ModelAdmin):
    list_display = ("template_name", "event_type", "jrotc_program", "is_global", "is_active", "school")
    list_filter = ("is_global", "is_active", "jrotc_program")
    search_fields = ("template_name",)


@admin.register(models.Judge)
class JudgeAdmin(admin.ModelAdmin):
    list_display = ("name", "email", "phone", "available")
    list_filter = ("available",)
    search_fields = ("name", "email")


@admin.register(models.JudgeApplication)
class JudgeApplicationAdmin(admin.ModelAdmin):
    list_display = ("judge", "competition", "status", "created_at")
    list_filter = ("status",)


@admin.register(models.JudgeAssignment)
class JudgeAssignmentAdmin(admin.ModelAdmin):
    list_display = ("judge", "competition", "event", "start_time", "end_time")


class ScoreSheetHistoryInline(admin.TabularInline):
    model = models.ScoreSheetHistory
    extra = 0
    readonly_fields = ("changed_by", "previous_total", "new_total", "created_at")


@admin.register(models.ScoreSheet)
class ScoreSheetAdmin(admin.ModelAdmin):
    list_display = ("competition", "event", "school", "judge_number", "total_points", "updated_at")
    list_filter = ("competition",)
    inlines = [ScoreSheetHistoryInline]


@admin.register(models.CompetitionPlacement)
class CompetitionPlacementAdmin(admin.ModelAdmin):
    list_display = ("competition", "category", "event_name", "placement", "school", "total_points")
    list_filter = ("category",)


admin.site.register(models.ScheduleSlot)
admin.site.register(models.EventRegistration)
