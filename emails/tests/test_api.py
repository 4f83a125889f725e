from django.test import TestCase
from django.urls import reverse

from emails.models import EmailQueueItem, EmailTemplate
from schools.models import School, User
from taskboard import services as task_services
from taskboard.models import Task


class EmailApiTests(TestCase):
    def setUp(self):
        self.school = School.objects.create(name="Central High")
        self.other = School.objects.create(name="North High")
        task_services.ensure_default_options(self.school)
        self.instructor = User.objects.create_user(
            username="sgt",
            email="sgt@example.com",
            password="x",
            first_name="Sam",
            school=self.school,
            role=User.Role.INSTRUCTOR,
        )
        self.client.force_login(self.instructor)
        self.task = task_services.save_work_item(Task(school=self.school, title="Flag detail"))

    def create_template(self):
        response = self.client.post(
            reverse("email-template-list"),
            {
                "name": "Task update",
                "subject": "{{task_number}} updated",
                "body": "{{title}} at {{school_name}}",
                "source_table": "tasks",
            },
            content_type="application/json",
        )
        self.assertEqual(response.status_code, 201)
        return response.json()

    def test_create_template_extracts_variables(self):
        data = self.create_template()
        self.assertEqual(data["variables_used"], ["task_number", "title", "school_name"])
        self.assertEqual(EmailTemplate.objects.get(pk=data["id"]).created_by, self.instructor)

    def test_preview_renders_record(self):
        data = self.create_template()
        response = self.client.post(
            reverse("email-template-preview", args=[data["id"]]),
            {"record_id": self.task.pk},
            content_type="application/json",
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"subject": "TSK00001 updated", "body": "Flag detail at Central High"})

    def test_preview_missing_record_is_404(self):
        data = self.create_template()
        response = self.client.post(
            reverse("email-template-preview", args=[data["id"]]),
            {"record_id": 999999},
            content_type="application/json",
        )
        self.assertEqual(response.status_code, 404)

    def test_send_queues_email(self):
        data = self.create_template()
        response = self.client.post(
            reverse("email-template-send", args=[data["id"]]),
            {"recipient_email": "cadet@example.com", "record_id": self.task.pk},
            content_type="application/json",
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["status"], "pending")

    def test_cancel_and_retry_endpoints(self):
        data = self.create_template()
        template = EmailTemplate.objects.get(pk=data["id"])
        item = EmailQueueItem.objects.create(
            school=self.school, template=template, recipient_email="c@example.com", subject="s", body="b"
        )
        response = self.client.post(reverse("email-queue-cancel", args=[item.pk]))
        self.assertEqual(response.json()["status"], "cancelled")
        response = self.client.post(reverse("email-queue-cancel", args=[item.pk]))
        self.assertEqual(response.status_code, 400)
        response = self.client.post(reverse("email-queue-retry", args=[item.pk]))
        self.assertEqual(response.json()["status"], "pending")

    def test_queue_is_scoped_to_school(self):
        EmailQueueItem.objects.create(school=self.other, recipient_email="x@example.com", subject="s", body="b")
        response = self.client.get(reverse("email-queue-list"))
        self.assertEqual(response.json()["count"], 0)

    def test_health_endpoint(self):
        response = self.client.get(reverse("email-queue-health"))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["health"], "healthy")
