"""Status and priority semantics driven by a school's option tables.

Options are anything with ``value``, ``label`` and ``is_active``; the
functions never hit the database themselves.
"""
from __future__ import annotations

from typing import Iterable, Protocol

COMPLETION_PATTERNS = ("done", "complete", "finished", "resolved", "closed")
CANCEL_PATTERNS = ("cancel", "cancelled", "canceled", "abort", "rejected")
DEFAULT_COMPLETION_STATUS = "done"
DEFAULT_CANCEL_STATUS = "canceled"
DEFAULT_COLOR_CLASS = "bg-gray-100 text-gray-800"


class Option(Protocol):
    value: str
    label: str
    is_active: bool


def _matching(options: Iterable[Option], patterns: tuple[str, ...]) -> list[str]:
    matches = []
    for option in options:
        if not option.is_active:
            continue
        value = option.value.lower()
        label = option.label.lower()
        if any(pattern in value or pattern in label for pattern in patterns):
            matches.append(option.value)
    return matches


def completion_statuses(options: Iterable[Option]) -> list[str]:
    return _matching(options, COMPLETION_PATTERNS)


def cancel_statuses(options: Iterable[Option]) -> list[str]:
    return _matching(options, CANCEL_PATTERNS)


def is_completion_status(status: str, options: Iterable[Option]) -> bool:
    return status in completion_statuses(options)


def is_cancel_status(status: str, options: Iterable[Option]) -> bool:
    return status in cancel_statuses(options)


def is_task_done(status: str, options: Iterable[Option]) -> bool:
    """Completed and cancelled tasks both count as done."""

    options = list(options)
    return is_completion_status(status, options) or is_cancel_status(status, options)


def default_completion_status(options: Iterable[Option]) -> str:
    statuses = completion_statuses(options)
    return statuses[0] if statuses else DEFAULT_COMPLETION_STATUS


def default_cancel_status(options: Iterable[Option]) -> str:
    statuses = cancel_statuses(options)
    return statuses[0] if statuses else DEFAULT_CANCEL_STATUS


def _find(value: str, options: Iterable[Option]):
    return next((option for option in options if option.value == value), None)


def status_label(status: str, options: Iterable[Option]) -> str:
    option = _find(status, options)
    if option is not None and option.label:
        return option.label
    return status.replace("_", " ", 1)


def priority_label(priority: str, options: Iterable[Option]) -> str:
    option = _find(priority, options)
    if option is not None and option.label:
        return option.label
    return priority[:1].upper() + priority[1:]


def color_class(value: str, options: Iterable[Option]) -> str:
    option = _find(value, options)
    return getattr(option, "color_class", "") or DEFAULT_COLOR_CLASS
