"""Drill competitions: events, registrations, schedules, judges and scores."""
from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from schools.models import JROTCProgram

from . import scoring


class EventCategory(models.TextChoices):
    ARMED = "armed", "Armed"
    UNARMED = "unarmed", "Unarmed"
    OTHER = "other", "Other"


class CompetitionEventType(models.Model):
    """Catalogue entry such as "Armed Regulation"; ``school`` is null for global types."""

    name = models.CharField(max_length=120)
    initials = models.CharField(max_length=16, blank=True)
    category = models.CharField(max_length=10, choices=EventCategory.choices, default=EventCategory.OTHER)
    school = models.ForeignKey(
        "schools.School",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="competition_event_types",
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("name",)

    def __str__(self) -> str:
        return self.name


class ScoreTemplate(models.Model):
    template_name = models.CharField(max_length=255)
    event_type = models.ForeignKey(
        CompetitionEventType,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="score_templates",
    )
    jrotc_program = models.CharField(max_length=20, choices=JROTCProgram.choices, blank=True)
    description = models.TextField(blank=True)
    fields = models.JSONField(default=list, blank=True)
    is_global = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)
    school = models.ForeignKey(
        "schools.School",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="score_templates",
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("template_name",)

    def __str__(self) -> str:
        return self.template_name

    def clean(self):
        scoring.validate_template_fields(self.fields)

    @property
    def max_points(self) -> float:
        return scoring.template_max_points(self.fields)


class Competition(models.Model):
    class Status(models.TextChoices):
        DRAFT = "draft", "Draft"
        OPEN = "open", "Open"
        REGISTRATION_CLOSED = "registration_closed", "Registration closed"
        IN_PROGRESS = "in_progress", "In progress"
        COMPLETED = "completed", "Completed"
        CANCELLED = "cancelled", "Cancelled"

    school = models.ForeignKey("schools.School", on_delete=models.CASCADE, related_name="hosted_competitions")
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    location = models.CharField(max_length=255, blank=True)
    start_date = models.DateField()
    end_date = models.DateField()
    registration_deadline = models.DateTimeField(null=True, blank=True)
    status = models.CharField(max_length=24, choices=Status.choices, default=Status.DRAFT)
    program = models.CharField(max_length=20, choices=JROTCProgram.choices, blank=True)
    fee = models.DecimalField(max_digits=8, decimal_places=2, default=Decimal("0"))
    max_participants = models.PositiveIntegerField(null=True, blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("-start_date", "name")

    def __str__(self) -> str:
        return self.name

    def clean(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValidationError({"end_date": "End date cannot be before the start date."})


class CompetitionEvent(models.Model):
    competition = models.ForeignKey(Competition, on_delete=models.CASCADE, related_name="events")
    event_type = models.ForeignKey(CompetitionEventType, on_delete=models.PROTECT, related_name="+")
    score_template = models.ForeignKey(
        ScoreTemplate, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    location = models.CharField(max_length=255, blank=True)
    start_time = models.DateTimeField()
    end_time = models.DateTimeField()
    interval = models.PositiveIntegerField(default=15, validators=[MinValueValidator(1)])
    lunch_start = models.DateTimeField(null=True, blank=True)
    lunch_end = models.DateTimeField(null=True, blank=True)
    max_participants = models.PositiveIntegerField(null=True, blank=True)
    weight = models.FloatField(default=1.0, validators=[MinValueValidator(0)])
    required = models.BooleanField(default=False)
    judges_needed = models.PositiveIntegerField(default=0)
    max_points = models.PositiveIntegerField(null=True, blank=True)

    class Meta:
        ordering = ("start_time", "id")

    def __str__(self) -> str:
        return f"{self.event_type} @ {self.competition}"

    @property
    def name(self) -> str:
        return self.event_type.name

    @property
    def effective_max_points(self) -> float:
        if self.max_points:
            return self.max_points
        if self.score_template_id:
            return self.score_template.max_points
        return 0

    def clean(self):
        if self.start_time and self.end_time and self.end_time <= self.start_time:
            raise ValidationError({"end_time": "End time must be after the start time."})
        if bool(self.lunch_start) != bool(self.lunch_end):
            raise ValidationError({"lunch_end": "Set both lunch start and lunch end, or neither."})
        if self.lunch_start and self.lunch_end and self.lunch_end <= self.lunch_start:
            raise ValidationError({"lunch_end": "Lunch end must be after lunch start."})


class RegistrationStatus(models.TextChoices):
    REGISTERED = "registered", "Registered"
    WITHDRAWN = "withdrawn", "Withdrawn"


class CompetitionSchool(models.Model):
    competition = models.ForeignKey(Competition, on_delete=models.CASCADE, related_name="schools")
    school = models.ForeignKey(
        "schools.School",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="competition_entries",
    )
    school_name = models.CharField(max_length=255)
    school_initials = models.CharField(max_length=16, blank=True)
    color = models.CharField(max_length=7, default="#3B82F6")
    status = models.CharField(max_length=12, choices=RegistrationStatus.choices, default=RegistrationStatus.REGISTERED)
    paid = models.BooleanField(default=False)
    total_fee = models.DecimalField(max_digits=8, decimal_places=2, default=Decimal("0"))
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("school_name",)
        constraints = [
            models.UniqueConstraint(fields=["competition", "school"], name="unique_competition_school"),
        ]

    def __str__(self) -> str:
        return self.school_name


class EventRegistration(models.Model):
    competition = models.ForeignKey(Competition, on_delete=models.CASCADE, related_name="event_registrations")
    event = models.ForeignKey(CompetitionEvent, on_delete=models.CASCADE, related_name="registrations")
    school = models.ForeignKey("schools.School", on_delete=models.CASCADE, related_name="+")
    status = models.CharField(max_length=12, choices=RegistrationStatus.choices, default=RegistrationStatus.REGISTERED)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["event", "school"], name="unique_event_registration"),
        ]


class ScheduleSlot(models.Model):
    competition = models.ForeignKey(Competition, on_delete=models.CASCADE, related_name="schedule_slots")
    event = models.ForeignKey(CompetitionEvent, on_delete=models.CASCADE, related_name="slots")
    school = models.ForeignKey("schools.School", on_delete=models.CASCADE, related_name="+")
    scheduled_time = models.DateTimeField()
    duration = models.PositiveIntegerField(default=15)

    class Meta:
        ordering = ("scheduled_time",)
        constraints = [
            models.UniqueConstraint(fields=["event", "scheduled_time"], name="unique_slot_time"),
            models.UniqueConstraint(fields=["event", "school"], name="unique_slot_school"),
        ]


class Judge(models.Model):
    name = models.CharField(max_length=255)
    email = models.EmailField(unique=True)
    phone = models.CharField(max_length=32, blank=True)
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="judge_profile",
    )
    bio = models.TextField(blank=True)
    available = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("name",)

    def __str__(self) -> str:
        return self.name


class JudgeApplication(models.Model):
    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        APPROVED = "approved", "Approved"
        DECLINED = "declined", "Declined"
        WITHDRAWN = "withdrawn", "Withdrawn"

    competition = models.ForeignKey(Competition, on_delete=models.CASCADE, related_name="judge_applications")
    judge = models.ForeignKey(Judge, on_delete=models.CASCADE, related_name="applications")
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.PENDING)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["competition", "judge"], name="unique_judge_application"),
        ]


class JudgeAssignment(models.Model):
    competition = models.ForeignKey(Competition, on_delete=models.CASCADE, related_name="judge_assignments")
    judge = models.ForeignKey(Judge, on_delete=models.CASCADE, related_name="assignments")
    event = models.ForeignKey(
        CompetitionEvent, on_delete=models.CASCADE, null=True, blank=True, related_name="judge_assignments"
    )
    location = models.CharField(max_length=255, blank=True)
    start_time = models.DateTimeField()
    end_time = models.DateTimeField()

    class Meta:
        ordering = ("start_time",)

    def clean(self):
        if self.start_time and self.end_time and self.end_time <= self.start_time:
            raise ValidationError({"end_time": "End time must be after the start time."})


class ScoreSheet(models.Model):
    competition = models.ForeignKey(Competition, on_delete=models.CASCADE, related_name="score_sheets")
    event = models.ForeignKey(CompetitionEvent, on_delete=models.CASCADE, related_name="score_sheets")
    school = models.ForeignKey("schools.School", on_delete=models.CASCADE, related_name="+")
    judge_number = models.CharField(max_length=32)
    scores = models.JSONField(default=dict, blank=True)
    template_snapshot = models.JSONField(default=list, blank=True)
    total_points = models.FloatField(default=0)
    team_name = models.CharField(max_length=255, blank=True)
    cadets = models.ManyToManyField("cadets.Cadet", blank=True, related_name="score_sheets")
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("event", "school", "judge_number")
        constraints = [
            models.UniqueConstraint(
                fields=["event", "school", "judge_number"],
                name="unique_score_sheet_per_judge",
                violation_error_message="This judge already scored the school for this event.",
            ),
        ]


class ScoreSheetHistory(models.Model):
    score_sheet = models.ForeignKey(ScoreSheet, on_delete=models.CASCADE, related_name="history")
    changed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    previous_scores = models.JSONField(default=dict)
    previous_total = models.FloatField(default=0)
    new_scores = models.JSONField(default=dict)
    new_total = models.FloatField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("-created_at", "-id")


class CompetitionPlacement(models.Model):
    class Category(models.TextChoices):
        OVERALL = "overall", "Overall"
        ARMED = "armed", "Overall Armed"
        UNARMED = "unarmed", "Overall Unarmed"
        EVENT = "event", "Event"

    competition = models.ForeignKey(Competition, on_delete=models.CASCADE, related_name="placements")
    school = models.ForeignKey("schools.School", on_delete=models.CASCADE, related_name="competition_placements")
    category = models.CharField(max_length=10, choices=Category.choices)
    event = models.ForeignKey(CompetitionEvent, on_delete=models.CASCADE, null=True, blank=True, related_name="+")
    event_name = models.CharField(max_length=255)
    placement = models.PositiveIntegerField()
    total_points = models.FloatField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("category", "event_name", "placement")
