from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase
from django.urls import reverse

from cadets.models import Cadet, ChainOfCommandRole
from schools.models import School, User


class CadetApiTests(TestCase):
    def setUp(self):
        self.school = School.objects.create(name="Central High", jrotc_program="air_force")
        self.instructor = User.objects.create_user(
            username="sgt", email="sgt@example.com", password="x", school=self.school, role=User.Role.INSTRUCTOR
        )
        self.client.force_login(self.instructor)

    def test_create_and_scope(self):
        response = self.client.post(
            reverse("cadet-list"),
            {"first_name": "Ada", "last_name": "Lee", "email": "Ada@Example.com", "grade": "9"},
            content_type="application/json",
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["email"], "ada@example.com")
        self.assertEqual(response.json()["grade"], "9th")

        other = School.objects.create(name="North High")
        Cadet.objects.create(school=other, first_name="Zed", last_name="Ray", email="zed@example.com")
        names = [row["last_name"] for row in self.client.get(reverse("cadet-list")).json()["results"]]
        self.assertEqual(names, ["Lee"])

    def test_duplicate_email_is_400(self):
        Cadet.objects.create(school=self.school, first_name="Ada", last_name="Lee", email="ada@example.com")
        response = self.client.post(
            reverse("cadet-list"),
            {"first_name": "Ada", "last_name": "Two", "email": "ADA@example.com"},
            content_type="application/json",
        )
        self.assertEqual(response.status_code, 400)

    def test_import_dry_run_and_commit(self):
        csv_text = "First Name,Last Name,Email\nAda,Lee,ada@example.com\n,Nope,nope@example.com\n"
        response = self.client.post(reverse("cadet-import-csv"), {"csv": csv_text, "dry_run": True}, content_type="application/json")
        self.assertEqual(response.status_code, 200)
        self.assertEqual([row["is_valid"] for row in response.json()["rows"]], [True, False])
        self.assertFalse(Cadet.objects.exists())

        upload = SimpleUploadedFile("cadets.csv", csv_text.encode("utf-8"), content_type="text/csv")
        response = self.client.post(reverse("cadet-import-csv"), {"file": upload})
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["success"], 1)
        self.assertEqual(response.json()["failed"], 1)

    def test_mass_deactivate(self):
        ada = Cadet.objects.create(school=self.school, first_name="Ada", last_name="Lee", email="ada@example.com")
        response = self.client.post(
            reverse("cadet-mass-action"), {"ids": [ada.pk], "action": "deactivate"}, content_type="application/json"
        )
        self.assertEqual(response.json(), {"updated": 1})
        ada.refresh_from_db()
        self.assertFalse(ada.is_active)

    def test_export_csv(self):
        Cadet.objects.create(school=self.school, first_name="Ada", last_name="Lee", email="ada@example.com")
        response = self.client.get(reverse("cadet-export"))
        self.assertEqual(response["Content-Type"], "text/csv")
        self.assertIn(b"ada@example.com", response.content)

    def test_pt_test_time_fields(self):
        ada = Cadet.objects.create(school=self.school, first_name="Ada", last_name="Lee", email="ada@example.com")
        response = self.client.post(
            reverse("pt-test-list"),
            {"cadet": ada.pk, "date": "2025-03-01", "push_ups": 30, "mile_time": "9:30"},
            content_type="application/json",
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["mile_seconds"], 570)
        self.assertEqual(response.json()["mile_display"], "9:30")

    def test_chain_duplicate_role_message(self):
        ChainOfCommandRole.objects.create(school=self.school, role="Group Commander")
        response = self.client.post(
            reverse("chain-role-list"),
            {"role": "GROUP COMMANDER", "reports_to": "NA", "assistant": "NA"},
            content_type="application/json",
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["role"], ["Role already exists, please change."])

    def test_chain_patch_assistant_clears_reports_to(self):
        ChainOfCommandRole.objects.create(school=self.school, role="Group Commander")
        ChainOfCommandRole.objects.create(school=self.school, role="Deputy Group Commander", reports_to="Group Commander")
        job = ChainOfCommandRole.objects.create(school=self.school, role="Executive Officer", reports_to="Group Commander")
        response = self.client.patch(
            reverse("chain-role-detail", args=[job.pk]),
            {"assistant": "Deputy Group Commander"},
            content_type="application/json",
        )
        self.assertEqual(response.status_code, 200)
        job.refresh_from_db()
        self.assertEqual((job.reports_to, job.assistant), ("NA", "Deputy Group Commander"))

        response = self.client.patch(
            reverse("chain-role-detail", args=[job.pk]),
            {"reports_to": "Group Commander", "assistant": "Deputy Group Commander"},
            content_type="application/json",
        )
        self.assertEqual(response.status_code, 400)

    def test_chain_delete_resets_links(self):
        parent = ChainOfCommandRole.objects.create(school=self.school, role="Group Commander")
        child = ChainOfCommandRole.objects.create(school=self.school, role="Executive Officer", reports_to="Group Commander")
        response = self.client.delete(reverse("chain-role-detail", args=[parent.pk]))
        self.assertEqual(response.status_code, 204)
        child.refresh_from_db()
        self.assertEqual(child.reports_to, "NA")

    def test_chain_tree(self):
        ChainOfCommandRole.objects.create(school=self.school, role="Group Commander")
        ChainOfCommandRole.objects.create(school=self.school, role="Support Squadron Commander", reports_to="Group Commander")
        data = self.client.get(reverse("chain-role-tree")).json()
        self.assertEqual(len(data["nodes"]), 2)
        self.assertEqual(data["squadrons"][0]["name"], "support")

    def test_cadet_user_cannot_write(self):
        cadet_user = User.objects.create_user(username="c", email="c@example.com", password="x", school=self.school)
        self.client.force_login(cadet_user)
        response = self.client.post(
            reverse("cadet-list"), {"first_name": "A", "last_name": "B", "email": "a@example.com"}, content_type="application/json"
        )
        self.assertEqual(response.status_code, 403)
