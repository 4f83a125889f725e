"""Cadet roster, personal records and the chain of command."""
from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models.functions import Lower

from schools.ranks import is_valid_rank


class Grade(models.TextChoices):
    NINTH = "9th", "9th Grade"
    TENTH = "10th", "10th Grade"
    ELEVENTH = "11th", "11th Grade"
    TWELFTH = "12th", "12th Grade"


class CadetYear(models.TextChoices):
    FIRST = "1st", "1st Year"
    SECOND = "2nd", "2nd Year"
    THIRD = "3rd", "3rd Year"
    FOURTH = "4th", "4th Year"


class Cadet(models.Model):
    school = models.ForeignKey("schools.School", on_delete=models.CASCADE, related_name="cadets")
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="cadet_profile",
    )
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    email = models.EmailField()
    role = models.CharField(max_length=50, default="cadet", blank=True)
    grade = models.CharField(max_length=4, choices=Grade.choices, blank=True)
    rank = models.CharField(max_length=100, blank=True)
    flight = models.CharField(max_length=50, blank=True)
    cadet_year = models.CharField(max_length=3, choices=CadetYear.choices, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("last_name", "first_name")
        constraints = [
            models.UniqueConstraint(
                Lower("email"),
                "school",
                name="unique_cadet_email_per_school",
                violation_error_message="A cadet with this email already exists.",
            ),
        ]

    def __str__(self) -> str:
        return self.full_name

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def clean(self):
        self.email = (self.email or "").strip().lower()
        if self.rank and self.school_id and not is_valid_rank(self.school.jrotc_program, self.rank):
            raise ValidationError({"rank": f'"{self.rank}" is not a rank in this JROTC program.'})

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)


class PTTest(models.Model):
    cadet = models.ForeignKey(Cadet, on_delete=models.CASCADE, related_name="pt_tests")
    date = models.DateField()
    push_ups = models.PositiveIntegerField(null=True, blank=True)
    sit_ups = models.PositiveIntegerField(null=True, blank=True)
    plank_seconds = models.PositiveIntegerField(null=True, blank=True)
    mile_seconds = models.PositiveIntegerField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("-date", "cadet__last_name")


class CommunityServiceRecord(models.Model):
    cadet = models.ForeignKey(Cadet, on_delete=models.CASCADE, related_name="service_records")
    date = models.DateField()
    event = models.CharField(max_length=255)
    hours = models.DecimalField(
        max_digits=6,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("-date",)

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)


class UniformInspection(models.Model):
    cadet = models.ForeignKey(Cadet, on_delete=models.CASCADE, related_name="uniform_inspections")
    date = models.DateField()
    score = models.PositiveIntegerField(validators=[MaxValueValidator(100)])
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("-date",)

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)


class ChainOfCommandRole(models.Model):
    """A job-board position; ``NA`` marks an empty reports-to or assistant link."""

    NOT_APPLICABLE = "NA"

    school = models.ForeignKey("schools.School", on_delete=models.CASCADE, related_name="chain_roles")
    cadet = models.ForeignKey(
        Cadet,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="chain_roles",
    )
    role = models.CharField(max_length=120)
    email_address = models.EmailField(blank=True)
    reports_to = models.CharField(max_length=120, default=NOT_APPLICABLE)
    assistant = models.CharField(max_length=120, default=NOT_APPLICABLE)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("role",)
        constraints = [
            models.UniqueConstraint(
                Lower("role"),
                "school",
                name="unique_chain_role_per_school",
                violation_error_message="Role already exists, please change.",
            ),
        ]

    def __str__(self) -> str:
        return self.role
