from datetime import date
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import SimpleTestCase, TestCase

from cadets import services
from cadets.models import Cadet, CommunityServiceRecord, PTTest
from schools.models import School


class DurationTests(SimpleTestCase):
    def test_parse_and_format(self):
        self.assertEqual(services.parse_duration("7:45"), 465)
        self.assertEqual(services.parse_duration("90"), 90)
        self.assertIsNone(services.parse_duration(""))
        self.assertEqual(services.format_duration(465), "7:45")
        with self.assertRaises(ValueError):
            services.parse_duration("7:75")

    def test_grade_normalisation(self):
        self.assertEqual(services.normalize_grade("12th Grade"), "12th")
        self.assertEqual(services.normalize_grade("11"), "11th")
        self.assertEqual(services.normalize_grade("K"), "K")


class CadetRecordTests(TestCase):
    def setUp(self):
        self.school = School.objects.create(name="Central High", jrotc_program="army")
        self.ada = Cadet.objects.create(school=self.school, first_name="Ada", last_name="Lee", email="ada@example.com")
        self.bo = Cadet.objects.create(school=self.school, first_name="Bo", last_name="Chen", email="bo@example.com")

    def test_email_unique_per_school(self):
        with self.assertRaises(ValidationError):
            Cadet.objects.create(school=self.school, first_name="A", last_name="L", email="ADA@example.com")
        other = School.objects.create(name="North High")
        Cadet.objects.create(school=other, first_name="Ada", last_name="Lee", email="ada@example.com")

    def test_invalid_rank_rejected(self):
        self.ada.rank = "Cadet Airman"
        with self.assertRaises(ValidationError):
            self.ada.save()

    def test_bulk_pt_skips_empty_entries(self):
        created = services.bulk_create_pt_tests(
            self.school,
            date(2025, 3, 1),
            [
                {"cadet": self.ada.pk, "push_ups": 40, "mile_time": "8:05"},
                {"cadet": self.bo.pk, "push_ups": None, "plank_time": ""},
            ],
        )
        self.assertEqual(len(created), 1)
        test = PTTest.objects.get()
        self.assertEqual(test.mile_seconds, 485)
        self.assertEqual(test.cadet, self.ada)

    def test_bulk_rejects_other_school(self):
        other = School.objects.create(name="North High")
        stranger = Cadet.objects.create(school=other, first_name="X", last_name="Y", email="x@example.com")
        with self.assertRaises(ValidationError):
            services.bulk_create_service_records(self.school, [stranger.pk], date(2025, 3, 1), "Food bank", 2)

    def test_service_hours_summary(self):
        services.bulk_create_service_records(self.school, [self.ada.pk, self.bo.pk], date(2025, 3, 1), "Food bank", "2.5")
        CommunityServiceRecord.objects.create(cadet=self.ada, date=date(2025, 4, 1), event="Parade", hours=Decimal("1"))
        summary = services.service_hours_summary(self.school)
        self.assertEqual(summary[0]["name"], "Ada Lee")
        self.assertEqual(summary[0]["total_hours"], Decimal("3.50"))
        self.assertEqual(summary[0]["events"], 2)
        self.assertEqual(summary[1]["total_hours"], Decimal("2.50"))

    def test_service_hours_must_be_positive(self):
        with self.assertRaises(ValidationError):
            services.bulk_create_service_records(self.school, [self.ada.pk], date(2025, 3, 1), "Food bank", 0)

    def test_mass_update(self):
        cadets = Cadet.objects.filter(school=self.school)
        self.assertEqual(services.mass_update(self.school, cadets, {"grade": "10", "flight": "Delta"}), 2)
        self.assertEqual(set(cadets.values_list("grade", flat=True)), {"10th"})
        with self.assertRaises(ValidationError):
            services.mass_update(self.school, cadets, {"rank": "Cadet Airman"})
        with self.assertRaises(ValueError):
            services.mass_update(self.school, cadets, {"email": "x@example.com"})

    def test_roster_export(self):
        content = services.export_roster_csv(Cadet.objects.filter(school=self.school))
        lines = content.strip().splitlines()
        self.assertEqual(lines[0], "First Name,Last Name,Email,Role,Grade,Rank,Flight,Cadet Year,Active")
        self.assertEqual(len(lines), 3)
