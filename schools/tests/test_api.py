from django.test import TestCase
from django.urls import reverse

from schools.models import School, User


class SchoolApiTests(TestCase):
    def setUp(self):
        self.school = School.objects.create(name="Central High", jrotc_program="army")
        self.other = School.objects.create(name="North High")
        self.instructor = User.objects.create_user(
            username="sgt",
            email="sgt@central.example",
            password="pass",
            role=User.Role.INSTRUCTOR,
            school=self.school,
        )
        self.cadet = User.objects.create_user(
            username="cadet",
            email="cadet@central.example",
            password="pass",
            school=self.school,
        )

    def test_onboard_is_public(self):
        response = self.client.post(
            reverse("school-onboard"),
            {
                "name": "South High",
                "initials": "SHS",
                "contact_person": "Grace Hopper",
                "first_name": "Grace",
                "last_name": "Hopper",
                "contact_email": "grace@south.example",
                "contact_phone": "555-0101",
                "password": "long-enough",
                "jrotc_program": "navy",
                "timezone": "America/New_York",
            },
            content_type="application/json",
        )
        self.assertEqual(response.status_code, 201)
        self.assertTrue(School.objects.filter(name="South High").exists())

    def test_onboard_duplicate_school_returns_code(self):
        response = self.client.post(
            reverse("school-onboard"),
            {
                "name": "central high",
                "initials": "CH",
                "contact_person": "Grace Hopper",
                "first_name": "Grace",
                "last_name": "Hopper",
                "contact_email": "grace@central.example",
                "contact_phone": "555-0101",
                "password": "long-enough",
                "jrotc_program": "navy",
                "timezone": "America/New_York",
            },
            content_type="application/json",
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "duplicate_school")

    def test_school_list_is_scoped(self):
        self.client.force_login(self.instructor)
        response = self.client.get(reverse("school-list"))
        self.assertEqual(response.status_code, 200)
        names = [row["name"] for row in response.json()["results"]]
        self.assertEqual(names, ["Central High"])

    def test_me_returns_own_school(self):
        self.client.force_login(self.cadet)
        response = self.client.get(reverse("school-me"))
        self.assertEqual(response.json()["name"], "Central High")

    def test_ranks_default_to_school_program(self):
        self.client.force_login(self.cadet)
        response = self.client.get(reverse("school-ranks"))
        self.assertEqual(response.json()[0]["value"], "Cadet Private")

    def test_cadet_cannot_toggle_users(self):
        self.client.force_login(self.cadet)
        response = self.client.post(reverse("user-toggle-status", args=[self.instructor.pk]))
        self.assertEqual(response.status_code, 403)

    def test_instructor_toggles_user(self):
        self.client.force_login(self.instructor)
        response = self.client.post(
            reverse("user-toggle-status", args=[self.cadet.pk]),
            {"active": False},
            content_type="application/json",
        )
        self.assertEqual(response.status_code, 200)
        self.cadet.refresh_from_db()
        self.assertFalse(self.cadet.is_active)

    def test_users_from_other_school_hidden(self):
        User.objects.create_user(username="x", email="x@north.example", password="p", school=self.other)
        self.client.force_login(self.instructor)
        response = self.client.get(reverse("user-list"))
        emails = {row["email"] for row in response.json()["results"]}
        self.assertEqual(emails, {"sgt@central.example", "cadet@central.example"})
