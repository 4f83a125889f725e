"""Roster import, mass updates and bulk record entry for cadets."""

from __future__ import annotations

import csv
import io
import logging
import re
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping, Optional

import pandas as pd
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import Count, Sum

from schools.ranks import is_valid_rank
from schools.services import is_valid_email

from .models import Cadet, CadetYear, CommunityServiceRecord, Grade, PTTest, UniformInspection

logger = logging.getLogger(__name__)

FLIGHT_OPTIONS = ("Alpha", "Bravo", "Charlie", "Delta", "Echo", "Foxtrot", "Golf", "Hotel")

# CSV header -> cadet field; the first header present wins.
CSV_COLUMNS = {
    "first_name": ("First Name",),
    "last_name": ("Last Name",),
    "email": ("Email",),
    "role": ("Role ID", "Role"),
    "grade": ("Grade",),
    "rank": ("Rank",),
    "flight": ("Flight",),
    "cadet_year": ("Cadet Year", "Year"),
}
CSV_TEMPLATE = "First Name,Last Name,Email,Role,Grade,Rank,Flight,Cadet Year\n"

ORDINAL_YEARS = {"1": "1st", "2": "2nd", "3": "3rd", "4": "4th"}
GRADE_RE = re.compile(r"^(9|10|11|12)(?:th)?(?:\s+grade)?$", re.IGNORECASE)
MASS_UPDATE_FIELDS = ("grade", "flight", "rank", "cadet_year", "role")


@dataclass
class CadetRow:
    line_number: int
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    role: str = "cadet"
    grade: str = ""
    rank: str = ""
    flight: str = ""
    cadet_year: str = ""
    errors: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def as_dict(self) -> dict[str, Any]:
        return {
            "line_number": self.line_number,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "role": self.role,
            "grade": self.grade,
            "rank": self.rank,
            "flight": self.flight,
            "cadet_year": self.cadet_year,
            "errors": list(self.errors),
            "is_valid": self.is_valid,
        }


def normalize_grade(value: str) -> str:
    """Accept ``9``, ``9th`` or ``9th Grade``; anything else is returned unchanged."""

    text = (value or "").strip()
    match = GRADE_RE.match(text)
    if match:
        return f"{match.group(1)}th"
    return text


def normalize_cadet_year(value: str) -> str:
    text = (value or "").strip()
    return ORDINAL_YEARS.get(text, text)


def decode_upload(upload) -> str:
    try:
        data = upload.read().decode("utf-8-sig")
    except UnicodeDecodeError:
        upload.seek(0)
        data = upload.read().decode("latin-1")
    return data


def _column(row: Mapping[str, str], headers: Iterable[str]) -> str:
    for header in headers:
        if header in row and row[header] is not None:
            return row[header].strip()
    return ""


def parse_cadet_csv(text: str) -> list[CadetRow]:
    """Parse a roster CSV into rows; validation happens separately."""

    reader = csv.DictReader(io.StringIO(text))
    rows = []
    for line_number, raw in enumerate(reader, start=2):
        if not any((value or "").strip() for value in raw.values() if isinstance(value, str)):
            continue
        values = {name: _column(raw, headers) for name, headers in CSV_COLUMNS.items()}
        rows.append(
            CadetRow(
                line_number=line_number,
                first_name=values["first_name"],
                last_name=values["last_name"],
                email=values["email"].lower(),
                role=values["role"] or "cadet",
                grade=normalize_grade(values["grade"]),
                rank=values["rank"],
                flight=values["flight"],
                cadet_year=normalize_cadet_year(values["cadet_year"]),
            )
        )
    return rows


def validate_cadet_row(row: CadetRow, program: Optional[str], existing_emails: set[str]) -> CadetRow:
    """Fill ``row.errors``; ``existing_emails`` collects emails seen so far."""

    row.errors = []
    if not row.first_name:
        row.errors.append("First name is required")
    if not row.last_name:
        row.errors.append("Last name is required")
    if not row.email:
        row.errors.append("Email is required")
    elif not is_valid_email(row.email):
        row.errors.append("Invalid email format")
    elif row.email in existing_emails:
        row.errors.append(f"Duplicate email {row.email}")
    if row.grade and row.grade not in Grade.values:
        row.errors.append(f"Invalid grade '{row.grade}'")
    if row.rank and not is_valid_rank(program, row.rank):
        row.errors.append(f"Invalid rank '{row.rank}'")
    if row.cadet_year and row.cadet_year not in CadetYear.values:
        row.errors.append(f"Invalid cadet year '{row.cadet_year}'")
    if row.email:
        existing_emails.add(row.email)
    return row


def validate_cadet_rows(school, rows: list[CadetRow]) -> list[CadetRow]:
    existing = {email.lower() for email in Cadet.objects.filter(school=school).values_list("email", flat=True)}
    for row in rows:
        validate_cadet_row(row, school.jrotc_program, existing)
    return rows


def import_cadets(school, rows: list[CadetRow]) -> dict[str, Any]:
    """Insert each valid row on its own; a failing row does not stop the rest."""

    success = failed = 0
    errors: list[str] = []
    for row in rows:
        if not row.is_valid:
            failed += 1
            errors.append(f"Row {row.line_number}: {'; '.join(row.errors)}")
            continue
        try:
            with transaction.atomic():
                Cadet.objects.create(
                    school=school,
                    first_name=row.first_name,
                    last_name=row.last_name,
                    email=row.email,
                    role=row.role,
                    grade=row.grade,
                    rank=row.rank,
                    flight=row.flight,
                    cadet_year=row.cadet_year,
                )
        except (ValidationError, IntegrityError) as exc:
            failed += 1
            message = "; ".join(exc.messages) if isinstance(exc, ValidationError) else str(exc)
            errors.append(f"Row {row.line_number}: {message}")
            continue
        success += 1
    logger.info("Imported cadets for school %s: %s created, %s failed", school.pk, success, failed)
    return {"success": success, "failed": failed, "errors": errors}


def import_cadets_csv(school, text: str) -> dict[str, Any]:
    rows = validate_cadet_rows(school, parse_cadet_csv(text))
    return import_cadets(school, rows)


def set_active(cadets, active: bool) -> int:
    return cadets.update(is_active=active)


def mass_update(school, cadets, changes: Mapping[str, Any]) -> int:
    """Apply the same grade/flight/rank/year/role to many cadets."""

    unknown = set(changes) - set(MASS_UPDATE_FIELDS)
    if unknown:
        raise ValueError(f"Unsupported fields: {', '.join(sorted(unknown))}")
    values = dict(changes)
    if "grade" in values:
        values["grade"] = normalize_grade(values["grade"])
        if values["grade"] and values["grade"] not in Grade.values:
            raise ValidationError({"grade": f"Invalid grade '{values['grade']}'."})
    if "cadet_year" in values:
        values["cadet_year"] = normalize_cadet_year(values["cadet_year"])
        if values["cadet_year"] and values["cadet_year"] not in CadetYear.values:
            raise ValidationError({"cadet_year": f"Invalid cadet year '{values['cadet_year']}'."})
    if values.get("rank") and not is_valid_rank(school.jrotc_program, values["rank"]):
        raise ValidationError({"rank": f'"{values["rank"]}" is not a rank in this JROTC program.'})
    return cadets.update(**values)


def parse_duration(value) -> Optional[int]:
    """Convert ``mm:ss`` (or plain seconds) into seconds; blank means no result."""

    if value is None:
        return None
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if not text:
        return None
    if ":" in text:
        minutes, _, seconds = text.partition(":")
        if not (minutes.isdigit() and seconds.isdigit()) or int(seconds) >= 60:
            raise ValueError(f"Invalid time '{text}', expected mm:ss.")
        return int(minutes) * 60 + int(seconds)
    if not text.isdigit():
        raise ValueError(f"Invalid time '{text}', expected mm:ss.")
    return int(text)


def format_duration(seconds: Optional[int]) -> str:
    if seconds is None:
        return ""
    return f"{seconds // 60}:{seconds % 60:02d}"


def _school_cadets(school, ids: Iterable[int]) -> dict[int, Cadet]:
    ids = list(ids)
    cadets = {cadet.pk: cadet for cadet in Cadet.objects.filter(school=school, pk__in=ids)}
    missing = [str(pk) for pk in ids if pk not in cadets]
    if missing:
        raise ValidationError({"cadet": f"Unknown cadets: {', '.join(missing)}."})
    return cadets


def _has_results(entry: Mapping[str, Any]) -> bool:
    return any(entry.get(key) not in (None, "") for key in ("push_ups", "sit_ups", "plank_time", "mile_time"))


@transaction.atomic
def bulk_create_pt_tests(school, test_date: date, entries: list[Mapping[str, Any]]) -> list[PTTest]:
    """Record one PT test per cadet entry; entries without any result are skipped."""

    cadets = _school_cadets(school, [entry["cadet"] for entry in entries])
    created = []
    for entry in entries:
        if not _has_results(entry):
            continue
        created.append(
            PTTest.objects.create(
                cadet=cadets[entry["cadet"]],
                date=test_date,
                push_ups=entry.get("push_ups"),
                sit_ups=entry.get("sit_ups"),
                plank_seconds=parse_duration(entry.get("plank_time")),
                mile_seconds=parse_duration(entry.get("mile_time")),
            )
        )
    return created


@transaction.atomic
def bulk_create_service_records(
    school, cadet_ids: Iterable[int], record_date: date, event: str, hours, notes: str = ""
) -> list[CommunityServiceRecord]:
    try:
        hours = Decimal(str(hours))
    except InvalidOperation as exc:
        raise ValidationError({"hours": "Hours must be a number."}) from exc
    cadets = _school_cadets(school, cadet_ids)
    return [
        CommunityServiceRecord.objects.create(cadet=cadet, date=record_date, event=event, hours=hours, notes=notes)
        for cadet in cadets.values()
    ]


@transaction.atomic
def bulk_create_inspections(school, inspection_date: date, entries: list[Mapping[str, Any]]) -> list[UniformInspection]:
    cadets = _school_cadets(school, [entry["cadet"] for entry in entries])
    created = []
    for entry in entries:
        if entry.get("score") in (None, ""):
            continue
        created.append(
            UniformInspection.objects.create(
                cadet=cadets[entry["cadet"]],
                date=inspection_date,
                score=int(entry["score"]),
                notes=entry.get("notes", ""),
            )
        )
    return created


def service_hours_summary(school, start: Optional[date] = None, end: Optional[date] = None) -> list[dict[str, Any]]:
    """Total community service hours per cadet, highest first."""

    records = CommunityServiceRecord.objects.filter(cadet__school=school)
    if start:
        records = records.filter(date__gte=start)
    if end:
        records = records.filter(date__lte=end)
    rows = (
        records.values("cadet_id", "cadet__first_name", "cadet__last_name")
        .annotate(total_hours=Sum("hours"), events=Count("id"))
        .order_by("-total_hours", "cadet__last_name")
    )
    return [
        {
            "cadet": row["cadet_id"],
            "name": f"{row['cadet__first_name']} {row['cadet__last_name']}",
            "total_hours": row["total_hours"] or Decimal("0"),
            "events": row["events"],
        }
        for row in rows
    ]


def export_roster_csv(cadets) -> str:
    frame = pd.DataFrame(
        [
            {
                "First Name": cadet.first_name,
                "Last Name": cadet.last_name,
                "Email": cadet.email,
                "Role": cadet.role,
                "Grade": cadet.grade,
                "Rank": cadet.rank,
                "Flight": cadet.flight,
                "Cadet Year": cadet.cadet_year,
                "Active": "Yes" if cadet.is_active else "No",
            }
            for cadet in cadets
        ],
        columns=["First Name", "Last Name", "Email", "Role", "Grade", "Rank", "Flight", "Cadet Year", "Active"],
    )
    buffer = io.StringIO()
    frame.to_csv(buffer, index=False)
    return buffer.getvalue()
