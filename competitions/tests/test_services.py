from datetime import date, datetime, timedelta, timezone as dt_timezone
from decimal import Decimal
from unittest import mock

from django.core.exceptions import ValidationError
from django.db import transaction
from django.test import TestCase

from cadets.models import Cadet
from competitions import schedule, services
from competitions.models import (
    Competition,
    CompetitionEvent,
    CompetitionPlacement,
    CompetitionSchool,
    EventRegistration,
    Judge,
    JudgeApplication,
    JudgeAssignment,
    RegistrationStatus,
    ScheduleSlot,
    ScoreSheet,
)

from .helpers import CompetitionFixture, at


class RegistrationTests(CompetitionFixture, TestCase):
    def test_register_and_change_events(self):
        second = CompetitionEvent.objects.create(
            competition=self.competition, event_type=self.armed, start_time=at(12), end_time=at(13)
        )
        entry = services.register_school(self.competition, self.alpha, [self.event, second], notes="Two teams")
        self.assertEqual(entry.school_name, "Alpha High")
        self.assertEqual(entry.notes, "Two teams")
        schedule.assign_slot(second, at(12), self.alpha)

        services.register_school(self.competition, self.alpha, [self.event])
        self.assertEqual(
            EventRegistration.objects.get(event=second, school=self.alpha).status, RegistrationStatus.WITHDRAWN
        )
        self.assertFalse(ScheduleSlot.objects.filter(event=second).exists())
        self.assertEqual(CompetitionSchool.objects.filter(competition=self.competition).count(), 1)

    def test_registration_window(self):
        self.competition.status = Competition.Status.DRAFT
        self.competition.save()
        with self.assertRaisesMessage(ValidationError, "Registration is not open"):
            services.register_school(self.competition, self.alpha, [self.event])

        self.competition.status = Competition.Status.OPEN
        self.competition.registration_deadline = datetime(2026, 3, 1, tzinfo=dt_timezone.utc)
        self.competition.save()
        with self.assertRaisesMessage(ValidationError, "deadline has passed"):
            services.register_school(
                self.competition, self.alpha, [self.event], now=datetime(2026, 3, 2, tzinfo=dt_timezone.utc)
            )

    def test_capacity(self):
        self.competition.max_participants = 1
        self.competition.save()
        services.register_school(self.competition, self.alpha, [self.event])
        with self.assertRaisesMessage(ValidationError, "This competition is full."):
            services.register_school(self.competition, self.bravo, [self.event])

        self.competition.max_participants = None
        self.competition.save()
        self.event.max_participants = 1
        self.event.save()
        with self.assertRaisesMessage(ValidationError, "Armed Regulation is full."):
            services.register_school(self.competition, self.bravo, [self.event])

    def test_withdraw_drops_slots(self):
        services.register_school(self.competition, self.alpha, [self.event])
        schedule.assign_slot(self.event, at(9), self.alpha)
        entry = services.withdraw_school(self.competition, self.alpha)
        self.assertEqual(entry.status, RegistrationStatus.WITHDRAWN)
        self.assertFalse(ScheduleSlot.objects.exists())

    def test_open_competitions_excludes_own(self):
        self.assertEqual(list(services.open_competitions(self.alpha)), [self.competition])
        self.assertEqual(list(services.open_competitions(self.host)), [])

    def test_copy_shifts_dates(self):
        self.competition.registration_deadline = datetime(2026, 3, 7, 12, tzinfo=dt_timezone.utc)
        self.competition.fee = Decimal("25.00")
        self.competition.save()
        services.register_school(self.competition, self.alpha, [self.event], now=datetime(2026, 3, 1, tzinfo=dt_timezone.utc))

        copy = services.copy_competition(self.competition, "Fall Drill Meet", date(2026, 10, 10))
        self.assertEqual(copy.status, Competition.Status.DRAFT)
        self.assertEqual(copy.start_date, date(2026, 10, 10))
        self.assertEqual(copy.registration_deadline, datetime(2026, 10, 3, 12, tzinfo=dt_timezone.utc))
        event = copy.events.get()
        self.assertEqual(event.start_time, self.event.start_time + timedelta(days=210))
        self.assertEqual(event.lunch_end - event.lunch_start, timedelta(minutes=30))
        self.assertFalse(copy.schools.exists())


class JudgeTests(CompetitionFixture, TestCase):
    def test_import_csv(self):
        text = (
            "Name,Email,Phone,Bio\n"
            "Maj Payne,Payne@Example.com,555-0100,Retired\n"
            "Dup,payne@example.com,,\n"
            "Bad,not-an-email,,\n"
            ",missing@example.com,,\n"
        )
        result = services.import_judges_csv(text)
        self.assertEqual(result["created"], 1)
        self.assertEqual(len(result["errors"]), 3)
        self.assertEqual(result["errors"][0], "Row 3: duplicate email payne@example.com")

        again = services.import_judges_csv("Name,Email\nMajor Payne,payne@example.com\n")
        self.assertEqual(again, {"created": 0, "updated": 1, "errors": []})
        self.assertEqual(Judge.objects.get().name, "Major Payne")

    def test_application_flow(self):
        judge = Judge.objects.create(name="Maj Payne", email="payne@example.com")
        application = services.apply_to_judge(self.competition, judge)
        with self.assertRaisesMessage(ValidationError, "already applied"):
            services.apply_to_judge(self.competition, judge)
        services.review_application(application, approve=False)
        self.assertEqual(application.status, JudgeApplication.Status.DECLINED)
        with self.assertRaisesMessage(ValidationError, "Only pending"):
            services.review_application(application, approve=True)
        application = services.apply_to_judge(self.competition, judge, notes="Free all day")
        self.assertEqual(application.status, JudgeApplication.Status.PENDING)

        judge.available = False
        judge.save()
        with self.assertRaisesMessage(ValidationError, "not available"):
            services.apply_to_judge(self.competition, judge)

    def test_assignment_overlap(self):
        judge = Judge.objects.create(name="Maj Payne", email="payne@example.com")
        services.save_judge_assignment(
            JudgeAssignment(competition=self.competition, judge=judge, event=self.event, start_time=at(9), end_time=at(10))
        )
        with self.assertRaisesMessage(ValidationError, "already has an assignment"):
            services.save_judge_assignment(
                JudgeAssignment(competition=self.competition, judge=judge, start_time=at(9, 30), end_time=at(11))
            )
        services.save_judge_assignment(
            JudgeAssignment(competition=self.competition, judge=judge, start_time=at(10), end_time=at(11))
        )
        with self.assertRaises(ValidationError):
            services.save_judge_assignment(
                JudgeAssignment(competition=self.competition, judge=judge, start_time=at(12), end_time=at(11))
            )


@mock.patch("competitions.services.broadcast_competition_event")
class ScoreSheetTests(CompetitionFixture, TestCase):
    def setUp(self):
        super().setUp()
        services.register_school(self.competition, self.alpha, [self.event])
        services.register_school(self.competition, self.bravo, [self.event])

    def test_save_computes_total_and_broadcasts(self, broadcast):
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            sheet = services.save_score_sheet(
                self.competition, self.event, self.alpha, "1", {"drill": 40, "bearing": "20", "faults": 1}
            )
            broadcast.assert_not_called()
        self.assertEqual(len(callbacks), 1)
        self.assertEqual(sheet.total_points, 50)
        self.assertEqual(sheet.template_snapshot[0]["id"], "drill")
        payload = broadcast.call_args[0][1]
        self.assertEqual(payload["type"], "SCORE_UPDATED")
        self.assertEqual(payload["scoreSheetId"], sheet.pk)
        self.assertEqual(payload["totalPoints"], 50)

    def test_update_records_history(self, broadcast):
        sheet = services.save_score_sheet(self.competition, self.event, self.alpha, "1", {"drill": 40})
        services.save_score_sheet(self.competition, self.event, self.alpha, "1", {"drill": 45}, sheet=sheet)
        history = sheet.history.get()
        self.assertEqual((history.previous_total, history.new_total), (40, 45))

        services.save_score_sheet(self.competition, self.event, self.alpha, "1", {"drill": 45}, sheet=sheet)
        self.assertEqual(sheet.history.count(), 1)

    def test_snapshot_survives_template_edits(self, broadcast):
        sheet = services.save_score_sheet(self.competition, self.event, self.alpha, "1", {"drill": 40})
        self.template.fields = [{"id": "drill", "type": "penalty", "penaltyType": "points"}]
        self.template.save()
        sheet = services.save_score_sheet(self.competition, self.event, self.alpha, "1", {"drill": 30}, sheet=sheet)
        self.assertEqual(sheet.total_points, 30)

    def test_rejections(self, broadcast):
        outsider = type(self.alpha).objects.create(name="Outside High")
        with self.assertRaisesMessage(ValidationError, "not registered"):
            services.save_score_sheet(self.competition, self.event, outsider, "1", {})
        services.save_score_sheet(self.competition, self.event, self.alpha, "1", {})
        with self.assertRaisesMessage(ValidationError, "already"):
            services.save_score_sheet(self.competition, self.event, self.alpha, "1", {})

    def test_cadets_are_linked(self, broadcast):
        cadet = Cadet.objects.create(school=self.alpha, first_name="Ada", last_name="Lee", email="ada@example.com")
        sheet = services.save_score_sheet(
            self.competition, self.event, self.alpha, "1", {}, team_name="Alpha Blue", cadets=[cadet]
        )
        self.assertEqual(list(sheet.cadets.all()), [cadet])
        self.assertEqual(sheet.team_name, "Alpha Blue")

    def test_rolled_back_save_is_not_broadcast(self, broadcast):
        with self.captureOnCommitCallbacks(execute=True):
            with self.assertRaises(RuntimeError):
                with transaction.atomic():
                    services.save_score_sheet(self.competition, self.event, self.alpha, "1", {"drill": 40})
                    raise RuntimeError("abort")
        broadcast.assert_not_called()
        self.assertFalse(ScoreSheet.objects.exists())

    def test_non_finite_scores_save_as_zero(self, broadcast):
        sheet = services.save_score_sheet(self.competition, self.event, self.alpha, "1", {"drill": "nan"})
        self.assertEqual(sheet.total_points, 0)
        sheet = services.save_score_sheet(
            self.competition, self.event, self.bravo, "1", {"drill": "1e999", "faults": "inf"}
        )
        self.assertEqual(sheet.total_points, 0)

    def test_team_name_can_be_cleared(self, broadcast):
        sheet = services.save_score_sheet(self.competition, self.event, self.alpha, "1", {}, team_name="Alpha Blue")
        sheet = services.save_score_sheet(self.competition, self.event, self.alpha, "1", {}, sheet=sheet)
        self.assertEqual(sheet.team_name, "Alpha Blue")
        sheet = services.save_score_sheet(self.competition, self.event, self.alpha, "1", {}, sheet=sheet, team_name="")
        sheet.refresh_from_db()
        self.assertEqual(sheet.team_name, "")

    def test_delete_broadcasts(self, broadcast):
        sheet = services.save_score_sheet(self.competition, self.event, self.alpha, "1", {})
        services.delete_score_sheet(sheet)
        self.assertFalse(ScoreSheet.objects.exists())
        self.assertEqual(broadcast.call_args[0][1]["type"], "SCORE_DELETED")

    def test_placements(self, broadcast):
        services.save_score_sheet(self.competition, self.event, self.alpha, "1", {"drill": 50})
        services.save_score_sheet(self.competition, self.event, self.bravo, "1", {"drill": 20})
        with self.assertRaisesMessage(ValidationError, "completed competitions"):
            services.generate_placements(self.competition)

        services.set_competition_status(self.competition, Competition.Status.COMPLETED)
        overall = CompetitionPlacement.objects.filter(category=CompetitionPlacement.Category.OVERALL)
        self.assertEqual([p.school for p in overall], [self.alpha, self.bravo])
        self.assertAlmostEqual(overall[0].total_points, 50.0)

        result = services.generate_placements(self.competition)
        self.assertEqual(result["breakdown"], {"overall": 2, "armed": 2, "unarmed": 0, "events": 2})
        self.assertEqual(CompetitionPlacement.objects.count(), 6)


class BroadcastTests(TestCase):
    def test_failures_are_logged(self):
        layer = mock.Mock()
        layer.group_send = mock.AsyncMock(side_effect=RuntimeError("redis down"))
        with mock.patch("competitions.services.get_channel_layer", return_value=layer):
            with self.assertLogs("competitions.services", level="ERROR"):
                services.broadcast_competition_event(7, {"type": "SCORE_UPDATED"})

    def test_sends_to_competition_group(self):
        layer = mock.Mock()
        layer.group_send = mock.AsyncMock()
        with mock.patch("competitions.services.get_channel_layer", return_value=layer):
            services.broadcast_competition_event(7, {"type": "SCORE_UPDATED"})
        layer.group_send.assert_awaited_once_with(
            "competition_7", {"type": "broadcast", "event": {"type": "SCORE_UPDATED"}}
        )
