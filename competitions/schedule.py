"""Competition timeline and slot assignment."""

from __future__ import annotations

import io
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Iterable, Mapping, Optional
from zoneinfo import ZoneInfo

import pandas as pd
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction

from .models import (
    CompetitionEvent,
    CompetitionSchool,
    EventRegistration,
    JudgeAssignment,
    RegistrationStatus,
    ScheduleSlot,
)

DEFAULT_INTERVAL = 15
DEFAULT_COLOR = "#3B82F6"
MATCH_TOLERANCE = timedelta(seconds=1)


def _steps(start: datetime, end: datetime, minutes: int) -> list[datetime]:
    slots = []
    current = start
    while current < end:
        slots.append(current)
        current += timedelta(minutes=minutes)
    return slots


def school_directory(entries: Iterable[CompetitionSchool]) -> dict[int, dict[str, Any]]:
    directory = {}
    for entry in entries:
        if entry.school_id is None:
            continue
        initials = (entry.school.initials if entry.school else "") or entry.school_initials
        directory[entry.school_id] = {
            "id": entry.school_id,
            "name": entry.school_name or "Unknown School",
            "initials": initials or "",
            "color": entry.color or DEFAULT_COLOR,
        }
    return directory


@dataclass
class Timeline:
    events: list[CompetitionEvent]
    slots: list[ScheduleSlot]
    schools: dict[int, dict[str, Any]]
    time_slots: list[datetime] = field(default_factory=list)
    interval: int = DEFAULT_INTERVAL

    def _event(self, event_id: int) -> Optional[CompetitionEvent]:
        return next((event for event in self.events if event.pk == event_id), None)

    def assigned_school(self, event_id: int, time: datetime) -> Optional[dict[str, Any]]:
        for slot in self.slots:
            if slot.event_id == event_id and abs(slot.scheduled_time - time) < MATCH_TOLERANCE:
                return self.schools.get(slot.school_id)
        return None

    def is_event_active(self, event_id: int, time: datetime) -> bool:
        event = self._event(event_id)
        return bool(event) and event.start_time <= time < event.end_time

    def is_lunch_break(self, event_id: int, time: datetime) -> bool:
        event = self._event(event_id)
        if not event or not event.lunch_start or not event.lunch_end:
            return False
        return event.lunch_start <= time < event.lunch_end

    def as_dict(self) -> dict[str, Any]:
        return {
            "interval": self.interval,
            "time_slots": [time.isoformat() for time in self.time_slots],
            "events": [
                {
                    "id": event.pk,
                    "name": event.event_type.name,
                    "initials": event.event_type.initials,
                    "location": event.location,
                    "interval": event.interval,
                    "slots": [
                        {
                            "time": time.isoformat(),
                            "active": self.is_event_active(event.pk, time),
                            "lunch": self.is_lunch_break(event.pk, time),
                            "school": self.assigned_school(event.pk, time),
                        }
                        for time in self.time_slots
                    ],
                }
                for event in self.events
            ],
        }


def build_timeline(
    events: Iterable[CompetitionEvent],
    slots: Iterable[ScheduleSlot],
    schools: Iterable[CompetitionSchool],
) -> Optional[Timeline]:
    """One grid for every event: earliest start to latest end at the smallest interval."""

    events = list(events)
    if not events:
        return None
    interval = min(event.interval or DEFAULT_INTERVAL for event in events)
    start = min(event.start_time for event in events)
    end = max(event.end_time for event in events)
    return Timeline(
        events=events,
        slots=list(slots),
        schools=school_directory(schools),
        time_slots=_steps(start, end, interval),
        interval=interval,
    )


def competition_timeline(competition) -> Optional[Timeline]:
    return build_timeline(
        competition.events.select_related("event_type"),
        competition.schedule_slots.all(),
        competition.schools.select_related("school"),
    )


def _is_registered(event: CompetitionEvent, school_id: int) -> bool:
    return EventRegistration.objects.filter(
        event=event, school_id=school_id, status=RegistrationStatus.REGISTERED
    ).exists()


def validate_slot_time(event: CompetitionEvent, time: datetime) -> None:
    if not (event.start_time <= time < event.end_time):
        raise ValidationError({"scheduled_time": "Time is outside the event window."})
    if event.lunch_start and event.lunch_end and event.lunch_start <= time < event.lunch_end:
        raise ValidationError({"scheduled_time": "Time falls in the event's lunch break."})
    offset = (time - event.start_time).total_seconds()
    if offset % (event.interval * 60):
        raise ValidationError({"scheduled_time": f"Time must align to the {event.interval} minute interval."})


def assign_slot(event: CompetitionEvent, time: datetime, school) -> ScheduleSlot:
    """Place a school at ``time``; a school holds at most one slot per event."""

    school_id = getattr(school, "pk", school)
    if not _is_registered(event, school_id):
        raise ValidationError({"school": "School is not registered for this event."})
    validate_slot_time(event, time)

    with transaction.atomic():
        holder = (
            ScheduleSlot.objects.select_for_update()
            .filter(event=event, scheduled_time__gt=time - MATCH_TOLERANCE, scheduled_time__lt=time + MATCH_TOLERANCE)
            .first()
        )
        if holder and holder.school_id != school_id:
            raise ValidationError({"scheduled_time": "That time slot is already assigned to another school."})
        slot = ScheduleSlot.objects.select_for_update().filter(event=event, school_id=school_id).first()
        try:
            if slot:
                slot.scheduled_time = time
                slot.duration = event.interval
                slot.save(update_fields=["scheduled_time", "duration"])
            else:
                slot = ScheduleSlot.objects.create(
                    competition_id=event.competition_id,
                    event=event,
                    school_id=school_id,
                    scheduled_time=time,
                    duration=event.interval,
                )
        except IntegrityError as exc:
            raise ValidationError({"scheduled_time": "That time slot is already assigned to another school."}) from exc
    return slot


def clear_slot(event: CompetitionEvent, time: datetime) -> int:
    deleted, _ = ScheduleSlot.objects.filter(
        event=event, scheduled_time__gt=time - MATCH_TOLERANCE, scheduled_time__lt=time + MATCH_TOLERANCE
    ).delete()
    return deleted


def available_schools(event: CompetitionEvent, overrides: Optional[Mapping[Any, Any]] = None) -> list[dict[str, Any]]:
    """Registered schools without a slot yet.

    ``overrides`` maps slot time to school id (or ``None``) and, when given,
    replaces the stored schedule, so an unsaved grid can be checked.
    """

    registered = list(
        EventRegistration.objects.filter(event=event, status=RegistrationStatus.REGISTERED)
        .select_related("school")
        .order_by("school__name")
    )
    if overrides is not None:
        scheduled = {int(value) for value in overrides.values() if value}
    else:
        scheduled = set(event.slots.values_list("school_id", flat=True))

    directory = school_directory(
        CompetitionSchool.objects.filter(competition_id=event.competition_id).select_related("school")
    )
    result = []
    for registration in registered:
        if registration.school_id in scheduled:
            continue
        entry = directory.get(registration.school_id, {})
        result.append(
            {
                "id": registration.school_id,
                "name": registration.school.name,
                "initials": entry.get("initials") or registration.school.initials,
            }
        )
    return result


@dataclass
class JudgeTimeline:
    assignments: list[JudgeAssignment]
    time_slots: list[datetime]
    interval: int
    events: list[dict[str, Any]]

    def _matching(self, event_id: int, time: datetime) -> list[JudgeAssignment]:
        return [
            assignment
            for assignment in self.assignments
            if assignment.event_id == event_id and assignment.start_time <= time < assignment.end_time
        ]

    def judges_for_slot(self, event_id: int, time: datetime) -> list[dict[str, str]]:
        return [
            {"name": assignment.judge.name, "location": assignment.location}
            for assignment in self._matching(event_id, time)
        ]

    def is_event_active(self, event_id: int, time: datetime) -> bool:
        return bool(self._matching(event_id, time))

    def as_dict(self) -> dict[str, Any]:
        return {
            "interval": self.interval,
            "time_slots": [time.isoformat() for time in self.time_slots],
            "events": [
                {
                    **event,
                    "slots": [
                        {"time": time.isoformat(), "judges": self.judges_for_slot(event["id"], time)}
                        for time in self.time_slots
                    ],
                }
                for event in self.events
            ],
        }


def build_judge_timeline(assignments: Iterable[JudgeAssignment]) -> Optional[JudgeTimeline]:
    assignments = [assignment for assignment in assignments if assignment.start_time and assignment.end_time]
    if not assignments:
        return None
    interval = next(
        (assignment.event.interval for assignment in assignments if assignment.event_id and assignment.event.interval),
        DEFAULT_INTERVAL,
    )
    events: dict[int, dict[str, Any]] = {}
    for assignment in assignments:
        if assignment.event_id and assignment.event_id not in events:
            events[assignment.event_id] = {
                "id": assignment.event_id,
                "name": assignment.event.event_type.name,
                "initials": assignment.event.event_type.initials,
            }
    start = min(assignment.start_time for assignment in assignments)
    end = max(assignment.end_time for assignment in assignments)
    return JudgeTimeline(
        assignments=assignments,
        time_slots=_steps(start, end, interval),
        interval=interval,
        events=list(events.values()),
    )


def export_schedule_csv(competition) -> str:
    """Printable schedule: one row per assigned slot, in the host school's timezone."""

    zone = ZoneInfo(competition.school.timezone or "UTC")
    directory = school_directory(competition.schools.select_related("school"))
    slots = competition.schedule_slots.select_related("event__event_type", "school").order_by(
        "event__start_time", "event_id", "scheduled_time"
    )
    rows = []
    for slot in slots:
        entry = directory.get(slot.school_id, {})
        rows.append(
            {
                "Event": slot.event.event_type.name,
                "Location": slot.event.location,
                "Time": slot.scheduled_time.astimezone(zone).strftime("%I:%M %p"),
                "School": entry.get("name") or slot.school.name,
                "Initials": entry.get("initials", ""),
                "Duration": slot.duration,
            }
        )
    frame = pd.DataFrame(rows, columns=["Event", "Location", "Time", "School", "Initials", "Duration"])
    buffer = io.StringIO()
    frame.to_csv(buffer, index=False)
    return buffer.getvalue()
