from unittest.mock import patch

from django.core.exceptions import ValidationError
from django.db import IntegrityError
from django.test import TestCase

from emails.models import EmailQueueItem, EmailTemplate
from schools import services
from schools.models import School, User


def onboarding_payload(**overrides):
    payload = {
        "name": "Central High",
        "initials": "CHS",
        "contact_person": "Ada Lovelace",
        "first_name": "Ada",
        "last_name": "Lovelace",
        "contact_email": "ada@central.example",
        "contact_phone": "555-0100",
        "password": "s3cure-pass",
        "jrotc_program": "air_force",
        "timezone": "America/Chicago",
    }
    payload.update(overrides)
    return payload


class CreateSchoolAdminTests(TestCase):
    def test_creates_school_and_external_admin(self):
        result = services.create_school_admin(onboarding_payload(referred_by="A friend"))

        school = result.school
        self.assertEqual(school.name, "Central High")
        self.assertTrue(school.comp_basic)
        self.assertTrue(school.comp_analytics)
        self.assertFalse(school.comp_hosting)
        self.assertEqual(school.referred_by, "A friend")

        user = result.user
        self.assertEqual(user.school, school)
        self.assertEqual(user.role, User.Role.EXTERNAL)
        self.assertTrue(user.check_password("s3cure-pass"))
        self.assertIsNone(result.welcome_email_id)

    def test_missing_fields_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            services.create_school_admin(onboarding_payload(initials="  "))
        self.assertEqual(ctx.exception.code, "missing_fields")

    def test_invalid_email_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            services.create_school_admin(onboarding_payload(contact_email="not-an-email"))
        self.assertEqual(ctx.exception.code, "invalid_email")

    def test_duplicate_school_name_is_case_insensitive(self):
        School.objects.create(name="central high")
        with self.assertRaises(ValidationError) as ctx:
            services.create_school_admin(onboarding_payload())
        self.assertEqual(ctx.exception.code, "duplicate_school")
        self.assertIn("already exists", ctx.exception.messages[0])

    def test_duplicate_email_rejected(self):
        User.objects.create_user(username="someone", email="ADA@central.example", password="x")
        with self.assertRaises(ValidationError) as ctx:
            services.create_school_admin(onboarding_payload())
        self.assertEqual(ctx.exception.code, "duplicate_email")
        self.assertFalse(School.objects.exists())

    def test_failed_user_creation_rolls_back_school(self):
        with patch.object(User.objects, "create_user", side_effect=IntegrityError("boom")):
            with self.assertRaises(IntegrityError):
                services.create_school_admin(onboarding_payload())
        self.assertFalse(School.objects.filter(name="Central High").exists())

    def test_welcome_email_queued_when_template_exists(self):
        # Templates belong to a school, so the template is attached right after
        # the school row appears.
        original = services.queue_welcome_email

        def with_template(school, user):
            EmailTemplate.objects.create(
                school=school,
                name="Welcome aboard",
                subject="Welcome {{first_name}}",
                body="Hello {{first_name}} {{last_name}}",
                source_table=EmailTemplate.SourceTable.PROFILES,
            )
            return original(school, user)

        with patch.object(services, "queue_welcome_email", side_effect=with_template):
            result = services.create_school_admin(onboarding_payload())

        item = EmailQueueItem.objects.get(pk=result.welcome_email_id)
        self.assertEqual(item.recipient_email, "ada@central.example")
        self.assertEqual(item.subject, "Welcome Ada")
        self.assertEqual(item.status, EmailQueueItem.Status.PENDING)


class ToggleUserStatusTests(TestCase):
    def test_toggle(self):
        user = User.objects.create_user(username="cadet", email="c@example.com", password="x")
        services.toggle_user_status(user, False)
        user.refresh_from_db()
        self.assertFalse(user.is_active)
        services.toggle_user_status(user, True)
        user.refresh_from_db()
        self.assertTrue(user.is_active)
