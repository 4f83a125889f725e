"""Score sheet templates: validation, defaults and totals.

A template is a list of field dicts (``id``, ``name``, ``type`` and
type-specific keys). Scores are a mapping of field id to the judge's entry.
"""

from __future__ import annotations

import math
from typing import Any, Iterable, Mapping

from django.core.exceptions import ValidationError

FIELD_TYPES = (
    "number",
    "dropdown",
    "scoring_scale",
    "penalty",
    "penalty_checkbox",
    "text",
    "section_header",
    "label",
)
PENALTY_TYPES = ("points", "minor_major", "split", "checkbox_list")
SCORING_TYPES = ("number", "dropdown", "scoring_scale")

DEFAULT_POINT_VALUE = -10
DEFAULT_SPLIT_FIRST = -5
DEFAULT_SPLIT_SUBSEQUENT = -25
DEFAULT_PENALTY_VALUE = -10
MINOR_MAJOR_VALUES = {"minor": -20, "major": -50}


def _number(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    # nan, inf and overflowing literals count as no entry.
    return number if math.isfinite(number) else 0.0


def _setting(field: Mapping[str, Any], key: str, default: float) -> float:
    # Zero or missing settings fall back to the default.
    return _number(field.get(key)) or default


def validate_template_fields(fields: Any) -> None:
    if not isinstance(fields, list):
        raise ValidationError({"fields": "Template fields must be a list."})
    errors = []
    seen = set()
    for index, field in enumerate(fields, start=1):
        if not isinstance(field, dict):
            errors.append(f"Field {index} must be an object.")
            continue
        field_id = str(field.get("id") or "").strip()
        if not field_id:
            errors.append(f"Field {index} is missing an id.")
        elif field_id in seen:
            errors.append(f'Duplicate field id "{field_id}".')
        seen.add(field_id)
        field_type = field.get("type")
        if field_type not in FIELD_TYPES:
            errors.append(f'Field {index} has unknown type "{field_type}".')
        elif field_type == "penalty" and field.get("penaltyType") not in PENALTY_TYPES:
            errors.append(f'Field {index} has unknown penalty type "{field.get("penaltyType")}".')
    if errors:
        raise ValidationError({"fields": errors})


def default_scores(fields: Iterable[Mapping[str, Any]]) -> dict[str, Any]:
    defaults = {}
    for field in fields:
        if field.get("type") in ("penalty", "penalty_checkbox", "number"):
            defaults[field["id"]] = 0
        else:
            defaults[field["id"]] = ""
    return defaults


def _penalty(field: Mapping[str, Any], value: Any) -> float:
    penalty_type = field.get("penaltyType")
    if penalty_type == "points":
        return _number(value) * _setting(field, "pointValue", DEFAULT_POINT_VALUE)
    if penalty_type == "minor_major":
        return MINOR_MAJOR_VALUES.get(value, 0) if isinstance(value, str) else 0
    if penalty_type == "split":
        occurrences = int(_number(value))
        if occurrences < 1:
            return 0
        first = _setting(field, "splitFirstValue", DEFAULT_SPLIT_FIRST)
        subsequent = _setting(field, "splitSubsequentValue", DEFAULT_SPLIT_SUBSEQUENT)
        return first + (occurrences - 1) * subsequent
    if penalty_type == "checkbox_list" and isinstance(value, list):
        return len(value) * _setting(field, "penaltyValue", DEFAULT_PENALTY_VALUE)
    return 0


def calculate_total(fields: Iterable[Mapping[str, Any]], scores: Mapping[str, Any]) -> float:
    """Sum scoring fields and apply penalties. Totals may be negative."""

    total = 0.0
    for field in fields:
        value = scores.get(field.get("id"))
        if value in (None, "", 0):
            continue
        field_type = field.get("type")
        if field_type in SCORING_TYPES:
            total += _number(value)
        elif field_type == "penalty":
            total += _penalty(field, value)
        elif field_type == "penalty_checkbox":
            total += _number(value) * _setting(field, "penaltyValue", DEFAULT_PENALTY_VALUE)
    if not math.isfinite(total):
        raise ValidationError({"scores": "Score is out of range."})
    return total


def _options(field: Mapping[str, Any]) -> list:
    options = field.get("values") or field.get("options") or []
    return [option.get("value") if isinstance(option, dict) else option for option in options]


def field_max_points(field: Mapping[str, Any]) -> float:
    field_type = field.get("type")
    if field_type not in SCORING_TYPES:
        return 0
    if field.get("maxValue") not in (None, ""):
        return _number(field["maxValue"])
    numeric = [_number(option) for option in _options(field)]
    return max(numeric, default=0)


def template_max_points(fields: Iterable[Mapping[str, Any]]) -> float:
    return sum(field_max_points(field) for field in fields or [])


def preview(fields: list[dict[str, Any]]) -> dict[str, Any]:
    """Read-only rendering of a template for judges before scoring starts."""

    defaults = default_scores(fields)
    return {
        "fields": [
            {**field, "default": defaults.get(field.get("id")), "max_points": field_max_points(field)}
            for field in fields
        ],
        "max_points": template_max_points(fields),
        "total": calculate_total(fields, defaults),
    }
