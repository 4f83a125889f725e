"""Competition workflows: registration, judges, copying, scoring and placements."""

from __future__ import annotations

import csv
import io
import logging
from datetime import date, timedelta
from typing import Any, Iterable, Mapping, Optional

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from schools.services import is_valid_email

from . import rankings, scoring
from .models import (
    Competition,
    CompetitionEvent,
    CompetitionPlacement,
    CompetitionSchool,
    EventRegistration,
    Judge,
    JudgeApplication,
    JudgeAssignment,
    RegistrationStatus,
    ScheduleSlot,
    ScoreSheet,
    ScoreSheetHistory,
)

logger = logging.getLogger(__name__)

GROUP_PREFIX = "competition_"
PLACEMENT_LIMIT = 10


def competition_group(competition_id) -> str:
    return f"{GROUP_PREFIX}{competition_id}"


def broadcast_competition_event(competition_id, payload: Mapping[str, Any]) -> None:
    """Push a payload to every websocket watching the competition."""

    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    try:
        async_to_sync(channel_layer.group_send)(
            competition_group(competition_id),
            {"type": "broadcast", "event": dict(payload)},
        )
    except Exception:  # noqa: BLE001
        logger.exception("Failed to broadcast %s for competition %s", payload.get("type"), competition_id)


# Registration ---------------------------------------------------------------


def open_competitions(school, now=None):
    """Open competitions hosted by other schools that still accept registrations."""

    now = now or timezone.now()
    return (
        Competition.objects.filter(status=Competition.Status.OPEN)
        .exclude(school=school)
        .filter(Q(registration_deadline__isnull=True) | Q(registration_deadline__gte=now))
        .select_related("school")
        .order_by("start_date", "name")
    )


def _registered_schools(competition: Competition):
    return CompetitionSchool.objects.filter(competition=competition, status=RegistrationStatus.REGISTERED)


def _drop_event_entries(competition: Competition, school, events=None) -> None:
    registrations = EventRegistration.objects.filter(competition=competition, school=school)
    slots = ScheduleSlot.objects.filter(competition=competition, school=school)
    if events is not None:
        registrations = registrations.filter(event__in=events)
        slots = slots.filter(event__in=events)
    registrations.update(status=RegistrationStatus.WITHDRAWN)
    slots.delete()


@transaction.atomic
def register_school(
    competition: Competition,
    school,
    events: Iterable[CompetitionEvent],
    notes: str = "",
    now=None,
) -> CompetitionSchool:
    """Register (or re-register) a school and set exactly which events it enters."""

    now = now or timezone.now()
    if competition.status != Competition.Status.OPEN:
        raise ValidationError("Registration is not open for this competition.")
    if competition.registration_deadline and now > competition.registration_deadline:
        raise ValidationError("The registration deadline has passed.")

    events = list(events)
    foreign = [event.pk for event in events if event.competition_id != competition.pk]
    if foreign:
        raise ValidationError({"events": "Events must belong to this competition."})

    others = _registered_schools(competition).exclude(school=school)
    if competition.max_participants and others.count() >= competition.max_participants:
        raise ValidationError("This competition is full.")
    for event in events:
        if not event.max_participants:
            continue
        taken = (
            EventRegistration.objects.filter(event=event, status=RegistrationStatus.REGISTERED)
            .exclude(school=school)
            .count()
        )
        if taken >= event.max_participants:
            raise ValidationError({"events": f"{event.event_type.name} is full."})

    entry, _ = CompetitionSchool.objects.update_or_create(
        competition=competition,
        school=school,
        defaults={
            "school_name": school.name,
            "school_initials": school.initials,
            "status": RegistrationStatus.REGISTERED,
            "total_fee": competition.fee,
            "notes": notes,
        },
    )
    for event in events:
        EventRegistration.objects.update_or_create(
            competition=competition,
            event=event,
            school=school,
            defaults={"status": RegistrationStatus.REGISTERED},
        )
    dropped = competition.events.exclude(pk__in=[event.pk for event in events])
    _drop_event_entries(competition, school, dropped)
    logger.info("School %s registered for competition %s (%s events)", school.pk, competition.pk, len(events))
    return entry


@transaction.atomic
def withdraw_school(competition: Competition, school) -> CompetitionSchool:
    entry = CompetitionSchool.objects.filter(competition=competition, school=school).first()
    if entry is None:
        raise ValidationError("School is not registered for this competition.")
    entry.status = RegistrationStatus.WITHDRAWN
    entry.save(update_fields=["status"])
    _drop_event_entries(competition, school)
    return entry


# Judges ---------------------------------------------------------------------


def import_judges_csv(text: str) -> dict[str, Any]:
    """Create or update judges from Name, Email, Phone, Bio columns; email is the key."""

    created = updated = 0
    errors: list[str] = []
    seen: set[str] = set()
    reader = csv.DictReader(io.StringIO(text))
    for line_number, row in enumerate(reader, start=2):
        if not any((value or "").strip() for value in row.values() if isinstance(value, str)):
            continue
        name = (row.get("Name") or "").strip()
        email = (row.get("Email") or "").strip().lower()
        if not name or not email:
            errors.append(f"Row {line_number}: name and email are required")
            continue
        if not is_valid_email(email):
            errors.append(f"Row {line_number}: invalid email '{email}'")
            continue
        if email in seen:
            errors.append(f"Row {line_number}: duplicate email {email}")
            continue
        seen.add(email)
        defaults = {
            "name": name,
            "phone": (row.get("Phone") or "").strip(),
            "bio": (row.get("Bio") or "").strip(),
        }
        _, was_created = Judge.objects.update_or_create(email=email, defaults=defaults)
        if was_created:
            created += 1
        else:
            updated += 1
    return {"created": created, "updated": updated, "errors": errors}


def apply_to_judge(competition: Competition, judge: Judge, notes: str = "") -> JudgeApplication:
    if not judge.available:
        raise ValidationError("Judge is not available.")
    application, created = JudgeApplication.objects.get_or_create(
        competition=competition, judge=judge, defaults={"notes": notes}
    )
    if not created:
        if application.status in (JudgeApplication.Status.PENDING, JudgeApplication.Status.APPROVED):
            raise ValidationError("You have already applied to judge this competition.")
        application.status = JudgeApplication.Status.PENDING
        application.notes = notes
        application.save(update_fields=["status", "notes", "updated_at"])
    return application


def review_application(application: JudgeApplication, approve: bool) -> JudgeApplication:
    if application.status != JudgeApplication.Status.PENDING:
        raise ValidationError("Only pending applications can be reviewed.")
    application.status = JudgeApplication.Status.APPROVED if approve else JudgeApplication.Status.DECLINED
    application.save(update_fields=["status", "updated_at"])
    return application


def withdraw_application(application: JudgeApplication) -> JudgeApplication:
    application.status = JudgeApplication.Status.WITHDRAWN
    application.save(update_fields=["status", "updated_at"])
    return application


def save_judge_assignment(assignment: JudgeAssignment) -> JudgeAssignment:
    """Validate and save; a judge cannot be in two places at once."""

    assignment.full_clean()
    if assignment.event_id and assignment.event.competition_id != assignment.competition_id:
        raise ValidationError({"event": "Event must belong to this competition."})
    overlapping = JudgeAssignment.objects.filter(
        judge=assignment.judge,
        start_time__lt=assignment.end_time,
        end_time__gt=assignment.start_time,
    )
    if assignment.pk:
        overlapping = overlapping.exclude(pk=assignment.pk)
    if overlapping.exists():
        raise ValidationError(f"{assignment.judge.name} already has an assignment during this time.")
    assignment.save()
    return assignment


# Copying --------------------------------------------------------------------


@transaction.atomic
def copy_competition(competition: Competition, name: str, start_date: date, user=None) -> Competition:
    """Duplicate a competition and its events, shifted to ``start_date``.

    Registrations, schedules, judges and scores are not copied.
    """

    delta = timedelta(days=(start_date - competition.start_date).days)
    copy = Competition.objects.create(
        school=competition.school,
        name=name,
        description=competition.description,
        location=competition.location,
        start_date=competition.start_date + delta,
        end_date=competition.end_date + delta,
        registration_deadline=(
            competition.registration_deadline + delta if competition.registration_deadline else None
        ),
        status=Competition.Status.DRAFT,
        program=competition.program,
        fee=competition.fee,
        max_participants=competition.max_participants,
        created_by=user,
    )
    for event in competition.events.all():
        CompetitionEvent.objects.create(
            competition=copy,
            event_type_id=event.event_type_id,
            score_template_id=event.score_template_id,
            location=event.location,
            start_time=event.start_time + delta,
            end_time=event.end_time + delta,
            interval=event.interval,
            lunch_start=event.lunch_start + delta if event.lunch_start else None,
            lunch_end=event.lunch_end + delta if event.lunch_end else None,
            max_participants=event.max_participants,
            weight=event.weight,
            required=event.required,
            judges_needed=event.judges_needed,
            max_points=event.max_points,
        )
    return copy


# Scoring --------------------------------------------------------------------


def _template_fields(event: CompetitionEvent) -> list:
    if event.score_template_id:
        return list(event.score_template.fields or [])
    return []


@transaction.atomic
def save_score_sheet(
    competition: Competition,
    event: CompetitionEvent,
    school,
    judge_number: str,
    scores: Mapping[str, Any],
    user=None,
    sheet: Optional[ScoreSheet] = None,
    team_name: Optional[str] = None,
    cadets=None,
) -> ScoreSheet:
    """Create or update a judge's sheet; totals are always recomputed server side."""

    if event.competition_id != competition.pk:
        raise ValidationError({"event": "Event does not belong to this competition."})
    if not _registered_schools(competition).filter(school=school).exists():
        raise ValidationError({"school": "School is not registered for this competition."})

    fields = (sheet.template_snapshot if sheet and sheet.template_snapshot else None) or _template_fields(event)
    merged = {**scoring.default_scores(fields), **dict(scores)}
    total = scoring.calculate_total(fields, merged)

    if sheet is None:
        sheet = ScoreSheet(competition=competition, event=event, school=school, created_by=user)
        previous = None
    else:
        previous = (dict(sheet.scores), sheet.total_points)
    sheet.judge_number = judge_number
    sheet.scores = merged
    sheet.template_snapshot = fields
    sheet.total_points = total
    if team_name is not None:
        sheet.team_name = team_name
    sheet.full_clean()
    sheet.save()
    if cadets is not None:
        sheet.cadets.set(cadets)

    if previous is not None and (previous[0] != merged or previous[1] != total):
        ScoreSheetHistory.objects.create(
            score_sheet=sheet,
            changed_by=user,
            previous_scores=previous[0],
            previous_total=previous[1],
            new_scores=merged,
            new_total=total,
        )

    payload = {
        "type": "SCORE_UPDATED",
        "competitionId": competition.pk,
        "eventId": event.pk,
        "schoolId": school.pk,
        "scoreSheetId": sheet.pk,
        "judgeNumber": sheet.judge_number,
        "totalPoints": total,
    }
    transaction.on_commit(lambda: broadcast_competition_event(competition.pk, payload))
    return sheet


def delete_score_sheet(sheet: ScoreSheet) -> None:
    competition_id, sheet_id, event_id = sheet.competition_id, sheet.pk, sheet.event_id
    sheet.delete()
    broadcast_competition_event(
        competition_id,
        {"type": "SCORE_DELETED", "competitionId": competition_id, "eventId": event_id, "scoreSheetId": sheet_id},
    )


# Results --------------------------------------------------------------------


def _ranking_inputs(competition: Competition):
    rows = [
        rankings.ScoreRow(event=event_id, school=school_id, total_points=total)
        for event_id, school_id, total in competition.score_sheets.values_list("event_id", "school_id", "total_points")
    ]
    school_names = {
        entry.school_id: entry.school_name or rankings.UNKNOWN_SCHOOL
        for entry in competition.schools.all()
        if entry.school_id
    }
    events = list(competition.events.select_related("event_type", "score_template"))
    metadata = {
        event.pk: rankings.EventMetadata(
            max_points=event.effective_max_points,
            weight=event.weight or 1.0,
            required=event.required,
            category=event.event_type.category or "other",
        )
        for event in events
    }
    event_names = {event.pk: event.event_type.name for event in events}
    return rows, school_names, metadata, event_names


def competition_rankings(competition: Competition) -> dict[str, Any]:
    rows, school_names, metadata, event_names = _ranking_inputs(competition)
    eligible = rankings.determine_eligible_schools(rows, metadata)
    return {
        "overall": rankings.calculate_normalized_rankings(rows, school_names, metadata, eligible),
        "armed": rankings.calculate_category_rankings(rows, school_names, metadata, eligible, "armed"),
        "unarmed": rankings.calculate_category_rankings(rows, school_names, metadata, eligible, "unarmed"),
        "events": rankings.calculate_event_rankings(rows, school_names, event_names, eligible),
    }


def competition_results_matrix(competition: Competition):
    rows, school_names, _, event_names = _ranking_inputs(competition)
    return rankings.results_matrix(rows, school_names, event_names)


@transaction.atomic
def generate_placements(competition: Competition) -> dict[str, int]:
    """Replace the competition's placements with the current top ten of each ranking."""

    if competition.status != Competition.Status.COMPLETED:
        raise ValidationError("Placements can only be generated for completed competitions.")
    results = competition_rankings(competition)
    competition.placements.all().delete()

    placements = []

    def add(category, ranked, event_name, event_id=None, points_key="total_points"):
        for index, ranking in enumerate(ranked[:PLACEMENT_LIMIT], start=1):
            data = ranking.as_dict() if hasattr(ranking, "as_dict") else ranking
            placements.append(
                CompetitionPlacement(
                    competition=competition,
                    school_id=data["school"],
                    category=category,
                    event_id=event_id,
                    event_name=event_name,
                    placement=index,
                    total_points=data[points_key],
                )
            )

    Category = CompetitionPlacement.Category
    add(Category.OVERALL, results["overall"], "Overall")
    add(Category.ARMED, results["armed"], "Overall Armed")
    add(Category.UNARMED, results["unarmed"], "Overall Unarmed")
    breakdown = {
        "overall": min(len(results["overall"]), PLACEMENT_LIMIT),
        "armed": min(len(results["armed"]), PLACEMENT_LIMIT),
        "unarmed": min(len(results["unarmed"]), PLACEMENT_LIMIT),
    }
    before_events = len(placements)
    for name, group in results["events"].items():
        add(Category.EVENT, group["schools"], name, event_id=group["event"], points_key="total")
    breakdown["events"] = len(placements) - before_events

    CompetitionPlacement.objects.bulk_create(placements)
    logger.info("Generated %s placements for competition %s", len(placements), competition.pk)
    return {"placements": len(placements), "breakdown": breakdown}


def set_competition_status(competition: Competition, status: str) -> Competition:
    if status not in Competition.Status.values:
        raise ValidationError({"status": f'Unknown status "{status}".'})
    competition.status = status
    competition.save(update_fields=["status", "updated_at"])
    if status == Competition.Status.COMPLETED:
        generate_placements(competition)
    return competition
