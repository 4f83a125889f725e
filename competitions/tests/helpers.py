"""Shared fixtures for competition tests."""

from __future__ import annotations

from datetime import date, datetime, timezone as dt_timezone

from competitions.models import Competition, CompetitionEvent, CompetitionEventType, ScoreTemplate
from schools.models import School

TEMPLATE_FIELDS = [
    {"id": "drill", "name": "Drill", "type": "number", "maxValue": 50},
    {"id": "bearing", "name": "Bearing", "type": "dropdown", "values": ["10", "20", "50"]},
    {"id": "faults", "name": "Faults", "type": "penalty", "penaltyType": "points"},
]


def at(hour: int, minute: int = 0) -> datetime:
    return datetime(2026, 3, 14, hour, minute, tzinfo=dt_timezone.utc)


class CompetitionFixture:
    """Host school, two visiting schools and one open competition with an event."""

    def setUp(self):
        super().setUp()
        self.host = School.objects.create(name="Host High", initials="HH", timezone="UTC")
        self.alpha = School.objects.create(name="Alpha High", initials="AH")
        self.bravo = School.objects.create(name="Bravo High", initials="BH")
        self.armed, _ = CompetitionEventType.objects.get_or_create(
            name="Armed Regulation", school=None, defaults={"initials": "AR", "category": "armed"}
        )
        self.template = ScoreTemplate.objects.create(template_name="Regulation", fields=TEMPLATE_FIELDS)
        self.competition = Competition.objects.create(
            school=self.host,
            name="Spring Drill Meet",
            start_date=date(2026, 3, 14),
            end_date=date(2026, 3, 14),
            status=Competition.Status.OPEN,
        )
        self.event = CompetitionEvent.objects.create(
            competition=self.competition,
            event_type=self.armed,
            score_template=self.template,
            start_time=at(9),
            end_time=at(11),
            interval=15,
            lunch_start=at(10),
            lunch_end=at(10, 30),
        )
