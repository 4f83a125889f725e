"""Admin registrations for email templates and the queue."""
from django.contrib import admin

from . import models


@admin.register(models.EmailTemplate)
class EmailTemplateAdmin(admin.ModelAdmin):
    list_display = ("name", "school", "source_table", "is_active", "updated_at")
    list_filter = ("source_table", "is_active", "school")
    search_fields = ("name", "subject")
    readonly_fields = ("variables_used",)


class EmailLogInline(admin.TabularInline):
    model = models.EmailLog
    extra = 0
    readonly_fields = ("event_type", "event_data", "created_at")


@admin.register(models.EmailQueueItem)
class EmailQueueItemAdmin(admin.ModelAdmin):
    list_display = ("recipient_email", "subject", "school", "status", "retry_count", "scheduled_at", "sent_at")
    list_filter = ("status", "school")
    search_fields = ("recipient_email", "subject")
    inlines = [EmailLogInline]


@admin.register(models.EmailProcessingLog)
class EmailProcessingLogAdmin(admin.ModelAdmin):
    list_display = ("created_at", "status", "processed_count", "failed_count")
    list_filter = ("status",)
