"""Ranking calculations shared by the results views and placement generation.

Rows are one score sheet each (``event``, ``school``, ``total_points``). An
event contributes to the overall standing in proportion to its weight, with
every judge's sheet normalised against the event's maximum points.
"""

from __future__ import annotations

import io
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

import pandas as pd

UNKNOWN_SCHOOL = "Unknown School"
UNKNOWN_EVENT = "Unknown Event"


@dataclass(frozen=True)
class ScoreRow:
    event: Any
    school: Any
    total_points: Optional[float]


@dataclass(frozen=True)
class EventMetadata:
    max_points: float
    weight: float = 1.0
    required: bool = False
    category: str = "other"


@dataclass
class SchoolRanking:
    school: Any
    school_name: str
    total_points: float
    event_count: int

    def as_dict(self) -> dict[str, Any]:
        return {
            "school": self.school,
            "school_name": self.school_name,
            "total_points": self.total_points,
            "event_count": self.event_count,
        }


def _points(value) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def determine_eligible_schools(
    rows: Iterable[ScoreRow], metadata: Mapping[Any, EventMetadata]
) -> Optional[set]:
    """Schools that scored in every required event, or ``None`` when nothing is required."""

    required = [event for event, meta in metadata.items() if meta.required]
    if not required:
        return None
    events_by_school: dict[Any, set] = {}
    for row in rows:
        events_by_school.setdefault(row.school, set()).add(row.event)
    return {school for school, events in events_by_school.items() if all(event in events for event in required)}


def _eligible(row: ScoreRow, eligible: Optional[set]) -> bool:
    return eligible is None or row.school in eligible


def calculate_normalized_rankings(
    rows: Iterable[ScoreRow],
    school_names: Mapping[Any, str],
    metadata: Mapping[Any, EventMetadata],
    eligible: Optional[set],
) -> list[SchoolRanking]:
    # school -> event -> [score sum, max points, weight, sheet count]
    totals: "OrderedDict[Any, OrderedDict[Any, list]]" = OrderedDict()
    for row in rows:
        if not _eligible(row, eligible):
            continue
        meta = metadata.get(row.event)
        if meta is None or meta.max_points <= 0:
            continue
        events = totals.setdefault(row.school, OrderedDict())
        entry = events.setdefault(row.event, [0.0, meta.max_points, meta.weight, 0])
        entry[0] += _points(row.total_points)
        entry[3] += 1

    rankings = []
    for school, events in totals.items():
        total_weight = sum(entry[2] for entry in events.values())
        score = 0.0
        if total_weight:
            for score_sum, max_points, weight, sheets in events.values():
                score += (score_sum / (max_points * sheets)) * (weight / total_weight)
        rankings.append(
            SchoolRanking(
                school=school,
                school_name=school_names.get(school, UNKNOWN_SCHOOL),
                total_points=score * 100,
                event_count=len(events),
            )
        )
    rankings.sort(key=lambda ranking: ranking.total_points, reverse=True)
    return rankings


def calculate_category_rankings(
    rows: Iterable[ScoreRow],
    school_names: Mapping[Any, str],
    metadata: Mapping[Any, EventMetadata],
    eligible: Optional[set],
    category: str,
) -> list[SchoolRanking]:
    """Raw point totals over the events of one category (armed or unarmed)."""

    totals: "OrderedDict[Any, list]" = OrderedDict()
    for row in rows:
        if not _eligible(row, eligible):
            continue
        meta = metadata.get(row.event)
        if (meta.category if meta else "other") != category:
            continue
        entry = totals.setdefault(row.school, [0.0, set()])
        entry[0] += _points(row.total_points)
        entry[1].add(row.event)

    rankings = [
        SchoolRanking(
            school=school,
            school_name=school_names.get(school, UNKNOWN_SCHOOL),
            total_points=points,
            event_count=len(events),
        )
        for school, (points, events) in totals.items()
    ]
    rankings.sort(key=lambda ranking: ranking.total_points, reverse=True)
    return rankings


def calculate_event_rankings(
    rows: Iterable[ScoreRow],
    school_names: Mapping[Any, str],
    event_names: Mapping[Any, str],
    eligible: Optional[set],
) -> "OrderedDict[str, dict[str, Any]]":
    """Per event name: the event id and its schools ordered by summed points."""

    grouped: "OrderedDict[str, dict[str, Any]]" = OrderedDict()
    for row in rows:
        if not _eligible(row, eligible):
            continue
        name = event_names.get(row.event, UNKNOWN_EVENT)
        group = grouped.setdefault(name, {"event": row.event, "schools": OrderedDict()})
        school = group["schools"].setdefault(
            row.school,
            {"school": row.school, "school_name": school_names.get(row.school, UNKNOWN_SCHOOL), "total": 0.0},
        )
        school["total"] += _points(row.total_points)

    result: "OrderedDict[str, dict[str, Any]]" = OrderedDict()
    for name, group in grouped.items():
        schools = sorted(group["schools"].values(), key=lambda school: school["total"], reverse=True)
        result[name] = {"event": group["event"], "event_name": name, "schools": schools}
    return result


def results_matrix(
    rows: Iterable[ScoreRow], school_names: Mapping[Any, str], event_names: Mapping[Any, str]
) -> pd.DataFrame:
    """School x event table of summed points, with a Total column."""

    frame = pd.DataFrame(
        [
            {
                "School": school_names.get(row.school, UNKNOWN_SCHOOL),
                "Event": event_names.get(row.event, UNKNOWN_EVENT),
                "Points": _points(row.total_points),
            }
            for row in rows
        ],
        columns=["School", "Event", "Points"],
    )
    if frame.empty:
        return pd.DataFrame(columns=["School", "Total"])
    matrix = frame.pivot_table(index="School", columns="Event", values="Points", aggfunc="sum", fill_value=0)
    matrix.columns.name = None
    matrix["Total"] = matrix.sum(axis=1)
    return matrix.sort_values("Total", ascending=False).reset_index()


def matrix_to_csv(matrix: pd.DataFrame) -> str:
    buffer = io.StringIO()
    matrix.to_csv(buffer, index=False)
    return buffer.getvalue()
