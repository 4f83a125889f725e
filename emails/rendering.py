"""Placeholder extraction and substitution for email templates.

Templates use ``{{field}}`` for a column on the source record and
``{{relation.field}}`` for a column on a related row, e.g.
``{{assigned_to.email}}``. ``{{school_name}}`` is always available.
"""

from __future__ import annotations

import re
from typing import Any, Mapping

VARIABLE_RE = re.compile(r"\{\{\s*([A-Za-z_][\w]*(?:\.[A-Za-z_][\w]*)*)\s*\}\}")

# Never exposed to template authors.
HIDDEN_FIELDS = {"password"}
DISPLAY_KEY = "__str__"


def extract_variables(text: str) -> list[str]:
    seen: list[str] = []
    for match in VARIABLE_RE.finditer(text or ""):
        name = match.group(1)
        if name not in seen:
            seen.append(name)
    return seen


def _lookup(context: Mapping[str, Any], path: str) -> Any:
    value: Any = context
    for part in path.split("."):
        if not isinstance(value, Mapping) or part not in value:
            return None
        value = value[part]
    if isinstance(value, Mapping):
        return value.get(DISPLAY_KEY)
    return value


def render_template(text: str, context: Mapping[str, Any]) -> str:
    """Substitute placeholders; unknown or empty values render as ''."""

    def replace(match: re.Match) -> str:
        value = _lookup(context, match.group(1))
        if value is None:
            return ""
        return str(value)

    return VARIABLE_RE.sub(replace, text or "")


def _plain_fields(obj) -> dict[str, Any]:
    data: dict[str, Any] = {}
    for field in obj._meta.concrete_fields:
        if field.name in HIDDEN_FIELDS or field.is_relation:
            continue
        data[field.name] = getattr(obj, field.attname)
    if hasattr(obj, "get_full_name"):
        data["full_name"] = obj.get_full_name()
    elif "first_name" in data and "last_name" in data:
        data["full_name"] = f"{data['first_name']} {data['last_name']}".strip()
    data[DISPLAY_KEY] = str(obj)
    return data


def build_context(source_table: str, record) -> dict[str, Any]:
    """Flatten a model instance into a render context.

    Plain columns are copied as-is, and each foreign key expands one level
    into a nested dict of the related row's plain columns.
    """

    if record is None:
        return {}
    context = _plain_fields(record)
    for field in record._meta.concrete_fields:
        if not field.is_relation or not field.many_to_one:
            continue
        related = getattr(record, field.name, None)
        context[field.name] = _plain_fields(related) if related is not None else {}

    school = getattr(record, "school", None)
    context["school_name"] = school.name if school is not None else ""
    context["source_table"] = source_table
    return context
