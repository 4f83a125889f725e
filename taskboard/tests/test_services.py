from django.core.exceptions import ValidationError
from django.test import TestCase

from emails.models import EmailQueueItem, EmailTemplate
from emails import services as email_services
from schools.models import School, User
from taskboard import services
from taskboard.models import Subtask, Task, TaskStatusOption


class TaskServiceTests(TestCase):
    def setUp(self):
        self.school = School.objects.create(name="Central High")
        services.ensure_default_options(self.school)
        self.user = User.objects.create_user(
            username="sgt", email="sgt@example.com", password="x", school=self.school, role=User.Role.INSTRUCTOR
        )

    def new_task(self, **fields):
        fields.setdefault("title", "Inspect uniforms")
        return services.save_work_item(Task(school=self.school, **fields), user=self.user)

    def test_default_options_are_idempotent(self):
        self.assertEqual(services.ensure_default_options(self.school), 0)
        self.assertEqual(TaskStatusOption.objects.filter(school=self.school).count(), 7)

    def test_numbers_are_sequential_per_school(self):
        first = self.new_task()
        second = self.new_task()
        subtask = services.save_work_item(Subtask(parent_task=first, title="Shoes"))
        other = School.objects.create(name="North High")
        services.ensure_default_options(other)
        foreign = services.save_work_item(Task(school=other, title="Elsewhere"))

        self.assertEqual(first.task_number, "TSK00001")
        self.assertEqual(second.task_number, "TSK00002")
        self.assertEqual(subtask.task_number, "STSK00001")
        self.assertEqual(subtask.school, self.school)
        self.assertEqual(foreign.task_number, "TSK00001")
        self.school.refresh_from_db()
        self.assertEqual(self.school.task_number, 2)

    def test_unknown_or_inactive_options_rejected(self):
        with self.assertRaises(ValidationError):
            self.new_task(status="someday")
        TaskStatusOption.objects.filter(school=self.school, value="stuck").update(is_active=False)
        with self.assertRaises(ValidationError):
            self.new_task(status="stuck")
        with self.assertRaises(ValueError):
            services.validate_task_option(self.school, "colour", "red")

    def test_assignee_must_share_school(self):
        outsider = User.objects.create_user(username="o", email="o@example.com", password="x")
        with self.assertRaises(ValidationError):
            self.new_task(assigned_to=outsider)

    def test_completed_at_follows_status(self):
        task = self.new_task()
        self.assertIsNone(task.completed_at)

        task.status = "done"
        services.save_work_item(task, user=self.user)
        self.assertIsNotNone(task.completed_at)

        task.status = "working_on_it"
        services.save_work_item(task, user=self.user)
        self.assertIsNone(task.completed_at)

    def test_status_change_adds_system_comment(self):
        task = self.new_task()
        task.status = "stuck"
        services.save_work_item(task, user=self.user)
        comment = task.comments.get()
        self.assertTrue(comment.is_system_comment)
        self.assertEqual(comment.comment_text, 'Status changed from "Not Started" to "Stuck".')
        self.assertEqual(comment.user, self.user)

    def test_mark_information_requested(self):
        task = self.new_task(status="need_information")
        self.assertTrue(services.mark_information_requested(task))
        task.refresh_from_db()
        self.assertEqual(task.status, "pending_response")
        self.assertEqual(task.comments.last().comment_text, services.INFORMATION_REQUESTED_COMMENT)
        self.assertFalse(services.mark_information_requested(task))

    def test_record_email_sent_creates_comment_when_none_queued(self):
        task = self.new_task()
        comment = services.record_email_sent(task, "a@example.com", 12)
        self.assertEqual(comment.comment_text, "Email sent to a@example.com - [Preview Email](12)")

    def test_bulk_update(self):
        tasks = [self.new_task(), self.new_task()]
        count = services.bulk_update(Task.objects.filter(pk__in=[t.pk for t in tasks]), {"status": "done"})
        self.assertEqual(count, 2)
        self.assertFalse(Task.objects.filter(completed_at__isnull=True).exists())
        with self.assertRaises(ValueError):
            services.bulk_update(Task.objects.all(), {"title": "nope"})

    def test_bulk_delete_cancels_queued_email(self):
        task = self.new_task()
        template = EmailTemplate.objects.create(
            school=self.school, name="Assigned", subject="s", body="b", source_table="tasks"
        )
        item = email_services.queue_email(template, "sgt@example.com", record=task)

        self.assertEqual(services.bulk_delete(Task.objects.filter(pk=task.pk)), 1)

        self.assertFalse(Task.objects.exists())
        item.refresh_from_db()
        self.assertEqual(item.status, EmailQueueItem.Status.CANCELLED)

    def test_summary(self):
        self.new_task()
        self.new_task(status="done")
        self.new_task(due_date="2000-01-01")
        summary = services.task_summary(self.school)
        self.assertEqual(summary, {"total": 3, "open": 2, "done": 1, "overdue": 1})
