"""Chain of command: role validation and the command-structure analysis."""

from __future__ import annotations

import csv
import io
import re
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Iterable, Optional

from django.core.exceptions import ValidationError
from django.db import transaction

from .models import ChainOfCommandRole

NA = ChainOfCommandRole.NOT_APPLICABLE

GROUP_STAFF_KEYWORDS = ("group superintendent", "inspector general", "executive officer", "plans and programs")

# Checked in order; the first keyword hit names the squadron.
SQUADRON_KEYWORDS = (
    ("maintenance", ("maintenance", "mx")),
    ("operations", ("operations", "ops")),
    ("support", ("support", "spt")),
    ("mission", ("mission", "msn")),
    ("security", ("security", "sec")),
    ("communications", ("communications", "comm")),
)


@dataclass(frozen=True)
class RoleAnalysis:
    level: int
    is_command: bool
    squadron: Optional[str]
    role_type: str


@dataclass
class SquadronStructure:
    name: str
    commander: Optional[int] = None
    members: list[int] = field(default_factory=list)
    column: int = 0


@dataclass
class CommandNode:
    id: int
    role: str
    cadet: Optional[str]
    level: int
    squadron: str
    parent: Optional[int]
    children: list[int]
    is_assistant: bool

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "role": self.role,
            "cadet": self.cadet,
            "level": self.level,
            "squadron": self.squadron,
            "parent": self.parent,
            "children": list(self.children),
            "is_assistant": self.is_assistant,
        }


def _mentions(text: str, *words: str) -> bool:
    return any(re.search(rf"\b{re.escape(word)}\b", text) for word in words)


def squadron_for_role(role: str) -> Optional[str]:
    lowered = role.lower()
    for name, keywords in SQUADRON_KEYWORDS:
        if _mentions(lowered, *keywords):
            return name
    return None


def analyze_role(role: str) -> RoleAnalysis:
    """Classify a role title by command level (0 = group command, 4 = staff).

    Keywords match whole words, so "Commander" never reads as the "comm"
    squadron abbreviation.
    """

    lowered = role.lower()
    if _mentions(lowered, "group commander", "group cc"):
        return RoleAnalysis(0, True, None, "group-command")
    if _mentions(lowered, *GROUP_STAFF_KEYWORDS):
        return RoleAnalysis(1, False, None, "group-staff")

    commands = _mentions(lowered, "commander", "cc")
    if commands and _mentions(lowered, "squadron", "sq"):
        return RoleAnalysis(2, True, squadron_for_role(role), "squadron-command")
    if commands and _mentions(lowered, "deputy", "flight"):
        return RoleAnalysis(3, True, squadron_for_role(role), "squadron-staff")

    squadron = squadron_for_role(role)
    if squadron:
        return RoleAnalysis(4, False, squadron, "squadron-staff")
    return RoleAnalysis(4, False, None, "specialist")


def build_squadron_structures(jobs: Iterable[ChainOfCommandRole]) -> "OrderedDict[str, SquadronStructure]":
    """Group roles by squadron in first-seen order and give each a column."""

    squadrons: "OrderedDict[str, SquadronStructure]" = OrderedDict()
    for job in jobs:
        analysis = analyze_role(job.role)
        if not analysis.squadron:
            continue
        squadron = squadrons.setdefault(analysis.squadron, SquadronStructure(name=analysis.squadron))
        if analysis.role_type == "squadron-command":
            squadron.commander = job.pk
        squadron.members.append(job.pk)
    for column, squadron in enumerate(squadrons.values()):
        squadron.column = column
    return squadrons


def build_command_tree(jobs: Iterable[ChainOfCommandRole]) -> list[CommandNode]:
    jobs = list(jobs)
    by_role = {}
    for job in jobs:
        by_role.setdefault(job.role, job)

    nodes = []
    for job in jobs:
        analysis = analyze_role(job.role)
        parent = None
        if job.reports_to and job.reports_to != NA and job.reports_to in by_role:
            parent = by_role[job.reports_to].pk
        nodes.append(
            CommandNode(
                id=job.pk,
                role=job.role,
                cadet=job.cadet.full_name if job.cadet_id else None,
                level=analysis.level,
                squadron=analysis.squadron or "general",
                parent=parent,
                children=[other.pk for other in jobs if other.reports_to == job.role],
                is_assistant=bool(job.assistant) and job.assistant != NA,
            )
        )
    return nodes


def validate_chain_role(
    school,
    role: str,
    reports_to: str,
    assistant: str,
    instance: Optional[ChainOfCommandRole] = None,
) -> dict[str, str]:
    """Validate and normalise a chain-of-command entry.

    Returns the cleaned ``role``/``reports_to``/``assistant`` values. A
    reports-to link and an assistant link are mutually exclusive, so a
    payload naming a role in both is rejected.
    """

    role = (role or "").strip()
    reports_to = (reports_to or "").strip()
    assistant = (assistant or "").strip()

    errors = {}
    if not role:
        errors["role"] = "Role is required."
    if not reports_to:
        errors["reports_to"] = "Reports To is required."
    if not assistant:
        errors["assistant"] = "Assistant is required."
    if errors:
        raise ValidationError(errors)

    if reports_to.upper() == NA:
        reports_to = NA
    if assistant.upper() == NA:
        assistant = NA
    if reports_to != NA and assistant != NA:
        raise ValidationError({"assistant": "A role cannot both report to and assist another role; set one to NA."})

    existing = ChainOfCommandRole.objects.filter(school=school)
    if instance is not None and instance.pk:
        existing = existing.exclude(pk=instance.pk)
    if existing.filter(role__iexact=role).exists():
        raise ValidationError({"role": "Role already exists, please change."})

    known_roles = set(existing.values_list("role", flat=True))
    for name, value in (("reports_to", reports_to), ("assistant", assistant)):
        if value == NA:
            continue
        if value.lower() == role.lower():
            raise ValidationError({name: "A role cannot reference itself."})
        if value not in known_roles:
            raise ValidationError({name: f'Unknown role "{value}".'})

    return {"role": role, "reports_to": reports_to, "assistant": assistant}


def save_chain_role(school, data: dict, instance: Optional[ChainOfCommandRole] = None) -> ChainOfCommandRole:
    """Create or update a role; renaming repoints links that used the old name."""

    cleaned = validate_chain_role(
        school,
        data.get("role", ""),
        data.get("reports_to", NA),
        data.get("assistant", NA),
        instance=instance,
    )
    job = instance or ChainOfCommandRole(school=school)
    old_role = job.role if job.pk else None
    job.role = cleaned["role"]
    job.reports_to = cleaned["reports_to"]
    job.assistant = cleaned["assistant"]
    if "cadet" in data:
        cadet = data["cadet"]
        if cadet is not None and cadet.school_id != school.pk:
            raise ValidationError({"cadet": "Cadet must belong to the same school."})
        job.cadet = cadet
    if "email_address" in data:
        job.email_address = data["email_address"] or ""
    elif job.cadet_id and not job.email_address:
        job.email_address = job.cadet.email
    with transaction.atomic():
        job.save()
        if old_role and old_role != job.role:
            siblings = ChainOfCommandRole.objects.filter(school=school).exclude(pk=job.pk)
            siblings.filter(reports_to=old_role).update(reports_to=job.role)
            siblings.filter(assistant=old_role).update(assistant=job.role)
    return job


def linked_fields(data: dict, instance: ChainOfCommandRole) -> dict:
    """Fill omitted link fields from ``instance``; an edited link clears the other."""

    data = dict(data)
    data.setdefault("role", instance.role)
    for edited, other in (("reports_to", "assistant"), ("assistant", "reports_to")):
        if edited in data and other not in data:
            value = (data[edited] or "").strip()
            data[other] = NA if value and value.upper() != NA else getattr(instance, other)
    data.setdefault("reports_to", instance.reports_to)
    data.setdefault("assistant", instance.assistant)
    return data


def delete_chain_role(job: ChainOfCommandRole) -> None:
    """Delete a role and reset links that pointed at it to ``NA``."""

    with transaction.atomic():
        siblings = ChainOfCommandRole.objects.filter(school_id=job.school_id).exclude(pk=job.pk)
        siblings.filter(reports_to=job.role).update(reports_to=NA)
        siblings.filter(assistant=job.role).update(assistant=NA)
        job.delete()


def export_chain_csv(jobs: Iterable[ChainOfCommandRole]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(["Role", "Cadet", "Email", "Reports To", "Assistant", "Level", "Squadron"])
    for job in jobs:
        analysis = analyze_role(job.role)
        writer.writerow(
            [
                job.role,
                job.cadet.full_name if job.cadet_id else "",
                job.email_address,
                job.reports_to,
                job.assistant,
                analysis.level,
                analysis.squadron or "",
            ]
        )
    return buffer.getvalue()
