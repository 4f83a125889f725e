from django.core.exceptions import ValidationError
from django.test import TestCase

from competitions import schedule, services
from competitions.models import Judge, JudgeAssignment, ScheduleSlot

from .helpers import CompetitionFixture, at


class ScheduleTests(CompetitionFixture, TestCase):
    def setUp(self):
        super().setUp()
        services.register_school(self.competition, self.alpha, [self.event])
        services.register_school(self.competition, self.bravo, [self.event])

    def test_assign_moves_existing_slot(self):
        schedule.assign_slot(self.event, at(9), self.alpha)
        slot = schedule.assign_slot(self.event, at(9, 15), self.alpha)
        self.assertEqual(ScheduleSlot.objects.filter(event=self.event).count(), 1)
        self.assertEqual(slot.scheduled_time, at(9, 15))
        self.assertEqual(slot.duration, 15)

    def test_no_double_booking(self):
        schedule.assign_slot(self.event, at(9), self.alpha)
        with self.assertRaisesMessage(ValidationError, "already assigned to another school"):
            schedule.assign_slot(self.event, at(9), self.bravo)

    def test_slot_time_rules(self):
        for time, message in (
            (at(10), "lunch break"),
            (at(9, 7), "15 minute interval"),
            (at(11), "outside the event window"),
        ):
            with self.subTest(time=time):
                with self.assertRaisesMessage(ValidationError, message):
                    schedule.assign_slot(self.event, time, self.alpha)

    def test_unregistered_school_rejected(self):
        services.withdraw_school(self.competition, self.bravo)
        with self.assertRaisesMessage(ValidationError, "not registered for this event"):
            schedule.assign_slot(self.event, at(9), self.bravo)

    def test_available_schools(self):
        schedule.assign_slot(self.event, at(9), self.alpha)
        self.assertEqual([s["id"] for s in schedule.available_schools(self.event)], [self.bravo.pk])
        overrides = {at(9, 15).isoformat(): self.bravo.pk, at(9, 30).isoformat(): None}
        self.assertEqual([s["id"] for s in schedule.available_schools(self.event, overrides)], [self.alpha.pk])
        self.assertEqual(len(schedule.available_schools(self.event, {})), 2)

    def test_clear_slot(self):
        schedule.assign_slot(self.event, at(9, 30), self.alpha)
        self.assertEqual(schedule.clear_slot(self.event, at(9, 30)), 1)
        self.assertEqual(schedule.clear_slot(self.event, at(9, 30)), 0)

    def test_timeline(self):
        schedule.assign_slot(self.event, at(9, 15), self.alpha)
        timeline = schedule.competition_timeline(self.competition)
        self.assertEqual(len(timeline.time_slots), 8)
        self.assertEqual(timeline.assigned_school(self.event.pk, at(9, 15))["initials"], "AH")
        self.assertIsNone(timeline.assigned_school(self.event.pk, at(9)))
        self.assertTrue(timeline.is_lunch_break(self.event.pk, at(10, 15)))
        self.assertFalse(timeline.is_event_active(self.event.pk, at(11)))
        grid = timeline.as_dict()
        self.assertEqual(grid["interval"], 15)
        self.assertEqual(grid["events"][0]["slots"][1]["school"]["name"], "Alpha High")

    def test_empty_timeline(self):
        self.event.delete()
        self.assertIsNone(schedule.competition_timeline(self.competition))

    def test_judge_timeline(self):
        judge = Judge.objects.create(name="Maj Payne", email="payne@example.com")
        JudgeAssignment.objects.create(
            competition=self.competition, judge=judge, event=self.event, location="Gym", start_time=at(9), end_time=at(9, 30)
        )
        timeline = schedule.build_judge_timeline(self.competition.judge_assignments.select_related("judge", "event__event_type"))
        self.assertEqual(timeline.time_slots, [at(9), at(9, 15)])
        self.assertEqual(timeline.judges_for_slot(self.event.pk, at(9, 15)), [{"name": "Maj Payne", "location": "Gym"}])
        self.assertEqual(timeline.as_dict()["events"][0]["name"], "Armed Regulation")
        self.assertIsNone(schedule.build_judge_timeline([]))

    def test_schedule_csv(self):
        schedule.assign_slot(self.event, at(9), self.bravo)
        content = schedule.export_schedule_csv(self.competition)
        lines = content.strip().splitlines()
        self.assertEqual(lines[0], "Event,Location,Time,School,Initials,Duration")
        self.assertEqual(lines[1], "Armed Regulation,,09:00 AM,Bravo High,BH,15")
