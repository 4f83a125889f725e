"""School onboarding and account helpers."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Mapping

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import transaction

from taskboard.services import ensure_default_options

from .models import JROTCProgram, School

logger = logging.getLogger(__name__)

User = get_user_model()

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

ONBOARDING_REQUIRED_FIELDS = (
    "name",
    "initials",
    "contact_person",
    "first_name",
    "last_name",
    "contact_email",
    "contact_phone",
    "password",
    "jrotc_program",
    "timezone",
)


@dataclass(frozen=True)
class OnboardingResult:
    school: School
    user: Any
    welcome_email_id: int | None


def is_valid_email(value: str) -> bool:
    return bool(EMAIL_RE.match((value or "").strip()))


def _clean_payload(payload: Mapping[str, Any]) -> dict[str, str]:
    cleaned = {key: str(payload.get(key) or "").strip() for key in ONBOARDING_REQUIRED_FIELDS}
    cleaned["referred_by"] = str(payload.get("referred_by") or "").strip()
    return cleaned


def create_school_admin(payload: Mapping[str, Any]) -> OnboardingResult:
    """Create a school together with its first (external) admin account.

    The school and user are created in one transaction so a failure while
    creating the account leaves no orphaned school behind. A welcome email is
    queued afterwards when the school has an active ``welcome`` template; a
    missing template is not an error.
    """

    data = _clean_payload(payload)
    missing = [field for field in ONBOARDING_REQUIRED_FIELDS if not data[field]]
    if missing:
        raise ValidationError("Missing required fields", code="missing_fields")

    if not is_valid_email(data["contact_email"]):
        raise ValidationError("Invalid email format", code="invalid_email")

    if data["jrotc_program"] not in JROTCProgram.values:
        raise ValidationError("Unknown JROTC program", code="invalid_program")

    if School.objects.filter(name__iexact=data["name"]).exists():
        logger.info("Onboarding rejected duplicate school name %r", data["name"])
        raise ValidationError(
            "A school with this name already exists. Please contact support if you need assistance.",
            code="duplicate_school",
        )

    if User.objects.filter(email__iexact=data["contact_email"]).exists():
        raise ValidationError(
            "Email already registered. Please use a different email.",
            code="duplicate_email",
        )

    with transaction.atomic():
        school = School.objects.create(
            name=data["name"],
            initials=data["initials"],
            contact=data["contact_person"],
            email=data["contact_email"],
            phone=data["contact_phone"],
            jrotc_program=data["jrotc_program"],
            timezone=data["timezone"],
            referred_by=data["referred_by"],
            comp_basic=True,
            comp_analytics=True,
            comp_hosting=False,
        )
        user = User.objects.create_user(
            username=data["contact_email"].lower(),
            email=data["contact_email"],
            password=data["password"],
            first_name=data["first_name"],
            last_name=data["last_name"],
            phone=data["contact_phone"],
            role=User.Role.EXTERNAL,
            school=school,
        )
        ensure_default_options(school)

    logger.info("Created school %s with admin user %s", school.pk, user.pk)
    welcome_id = queue_welcome_email(school, user)
    return OnboardingResult(school=school, user=user, welcome_email_id=welcome_id)


def queue_welcome_email(school: School, user) -> int | None:
    """Queue the school's welcome email for a new account if a template exists."""

    from emails import services as email_services
    from emails.models import EmailTemplate

    template = (
        EmailTemplate.objects.filter(
            school=school,
            source_table=EmailTemplate.SourceTable.PROFILES,
            name__icontains="welcome",
            is_active=True,
        )
        .order_by("pk")
        .first()
    )
    if template is None:
        logger.info("No welcome email template for school %s, skipping email", school.pk)
        return None

    try:
        item = email_services.queue_email(template, user.email, record=user)
    except ValidationError as exc:
        logger.warning("Welcome email for user %s not queued: %s", user.pk, exc)
        return None
    return item.pk


def toggle_user_status(user, active: bool) -> None:
    """Enable or disable login for a user account."""

    if user.is_active == active:
        return
    user.is_active = active
    user.save(update_fields=["is_active"])
    logger.info("User %s %s", user.pk, "activated" if active else "deactivated")
