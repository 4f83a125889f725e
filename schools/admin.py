"""Admin registrations for schools and accounts."""
from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from . import models


@admin.register(models.School)
class SchoolAdmin(admin.ModelAdmin):
    list_display = (
        "name",
        "initials",
        "jrotc_program",
        "country",
        "comp_basic",
        "comp_analytics",
        "comp_hosting",
        "subscription_end",
    )
    list_filter = ("jrotc_program", "comp_hosting", "competition_module")
    search_fields = ("name", "initials", "contact", "email")


@admin.register(models.User)
class UserAdmin(BaseUserAdmin):
    list_display = ("username", "email", "first_name", "last_name", "school", "role", "is_active")
    list_filter = ("role", "is_active", "school")
    fieldsets = BaseUserAdmin.fieldsets + (
        ("Portal", {"fields": ("school", "role", "phone", "password_change_required")}),
    )
