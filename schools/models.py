"""Tenant and account models for the cadet portal."""
from __future__ import annotations

from django.contrib.auth.models import AbstractUser
from django.db import models
from django_countries.fields import CountryField


class JROTCProgram(models.TextChoices):
    AIR_FORCE = "air_force", "Air Force"
    ARMY = "army", "Army"
    NAVY = "navy", "Navy"
    MARINE_CORPS = "marine_corps", "Marine Corps"
    COAST_GUARD = "coast_guard", "Coast Guard"
    SPACE_FORCE = "space_force", "Space Force"


class School(models.Model):
    """A JROTC program; every tenant-owned record hangs off a school."""

    name = models.CharField(max_length=255)
    initials = models.CharField(max_length=16, blank=True)
    jrotc_program = models.CharField(
        max_length=20, choices=JROTCProgram.choices, blank=True
    )
    timezone = models.CharField(max_length=64, default="America/New_York")
    contact = models.CharField(max_length=255, blank=True)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=32, blank=True)
    address = models.CharField(max_length=255, blank=True)
    city = models.CharField(max_length=120, blank=True)
    state = models.CharField(max_length=64, blank=True)
    zip_code = models.CharField(max_length=16, blank=True)
    country = CountryField(default="US")
    referred_by = models.CharField(max_length=255, blank=True)
    notes = models.TextField(blank=True)

    comp_basic = models.BooleanField(default=False)
    comp_analytics = models.BooleanField(default=False)
    comp_hosting = models.BooleanField(default=False)
    competition_module = models.BooleanField(default=False)

    subscription_start = models.DateField(blank=True, null=True)
    subscription_end = models.DateField(blank=True, null=True)

    task_number = models.PositiveIntegerField(default=0)
    subtask_number = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("name",)

    def __str__(self) -> str:
        return self.name


class User(AbstractUser):
    class Role(models.TextChoices):
        ADMIN = "admin", "Admin"
        INSTRUCTOR = "instructor", "Instructor"
        COMMAND_STAFF = "command_staff", "Command Staff"
        CADET = "cadet", "Cadet"
        PARENT = "parent", "Parent"
        EXTERNAL = "external", "External"
        JUDGE = "judge", "Judge"

    school = models.ForeignKey(
        School,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="users",
    )
    role = models.CharField(max_length=20, choices=Role.choices, default=Role.CADET)
    email = models.EmailField(unique=True)
    phone = models.CharField(max_length=32, blank=True)
    password_change_required = models.BooleanField(default=False)

    @property
    def is_platform_admin(self) -> bool:
        return self.is_superuser or self.role == self.Role.ADMIN

    @property
    def can_manage_school(self) -> bool:
        """Instructors, external school admins and command staff manage school records."""

        return self.is_platform_admin or self.role in {
            self.Role.INSTRUCTOR,
            self.Role.EXTERNAL,
            self.Role.COMMAND_STAFF,
        }

    def __str__(self):
        return self.get_full_name() or self.username
