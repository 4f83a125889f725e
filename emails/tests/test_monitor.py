import smtplib
import socket
import ssl
from datetime import timedelta

from django.test import SimpleTestCase, TestCase
from django.utils import timezone

from emails import services
from emails.models import EmailLog, EmailQueueItem
from schools.models import School


class MonitorTests(TestCase):
    def setUp(self):
        self.school = School.objects.create(name="Central High")
        self.now = timezone.now()

    def make_item(self, minutes_old, **fields):
        return EmailQueueItem.objects.create(
            school=self.school,
            recipient_email="cadet@example.com",
            subject="Hello",
            body="Body",
            created_at=self.now - timedelta(minutes=minutes_old),
            scheduled_at=self.now - timedelta(minutes=minutes_old),
            **fields,
        )

    def test_stuck_item_is_retried_with_backoff(self):
        item = self.make_item(15)

        report = services.monitor_email_queue(now=self.now)

        item.refresh_from_db()
        self.assertEqual(item.retry_count, 1)
        self.assertEqual(item.next_retry_at, self.now + timedelta(minutes=2))
        self.assertEqual(item.error_message, "Auto-retry 1/3: Stuck email detected by monitor")
        self.assertTrue(item.logs.filter(event_type=EmailLog.EventType.RETRIED).exists())
        self.assertEqual(report["metrics"]["total_stuck"], 1)
        self.assertEqual(report["metrics"]["total_retried"], 1)

    def test_backoff_doubles(self):
        item = self.make_item(15, retry_count=2)
        services.monitor_email_queue(now=self.now)
        item.refresh_from_db()
        self.assertEqual(item.retry_count, 3)
        self.assertEqual(item.next_retry_at, self.now + timedelta(minutes=8))

    def test_max_retries_fails_item(self):
        item = self.make_item(15, retry_count=3, error_message="Connection reset")
        services.monitor_email_queue(now=self.now)
        item.refresh_from_db()
        self.assertEqual(item.status, EmailQueueItem.Status.FAILED)
        self.assertEqual(item.error_message, "Max retries exceeded (3). Last error: Connection reset")

    def test_recent_or_waiting_items_are_not_stuck(self):
        self.make_item(5)
        self.make_item(15, next_retry_at=self.now + timedelta(minutes=1), retry_count=1)
        report = services.monitor_email_queue(now=self.now)
        self.assertEqual(report["metrics"]["total_stuck"], 0)
        self.assertEqual(report["metrics"]["total_pending"], 2)
        self.assertEqual(report["health"], "healthy")

    def test_health_levels(self):
        self.make_item(45, next_retry_at=self.now + timedelta(minutes=1))
        self.assertEqual(services.queue_health(now=self.now)["health"], "warning")

        self.make_item(61, next_retry_at=self.now + timedelta(minutes=1))
        self.assertEqual(services.queue_health(now=self.now)["health"], "critical")

    def test_many_stuck_is_warning_then_critical(self):
        for _ in range(6):
            self.make_item(12)
        self.assertEqual(services.queue_health(now=self.now)["health"], "warning")
        for _ in range(5):
            self.make_item(12)
        self.assertEqual(services.queue_health(now=self.now)["health"], "critical")

    def test_queue_health_is_read_only(self):
        item = self.make_item(15)
        services.queue_health(now=self.now)
        item.refresh_from_db()
        self.assertEqual(item.retry_count, 0)

    def test_average_processing_time(self):
        self.make_item(10, status=EmailQueueItem.Status.SENT, sent_at=self.now - timedelta(minutes=9))
        self.make_item(10, status=EmailQueueItem.Status.SENT, sent_at=self.now - timedelta(minutes=7))
        self.assertEqual(services.average_processing_seconds(now=self.now), 120.0)


class SmtpErrorMessageTests(SimpleTestCase):
    def message(self, exc):
        return services.smtp_error_message(exc, "smtp.example.com", 587)

    def test_connection_refused(self):
        self.assertIn("Cannot connect to SMTP server smtp.example.com:587", self.message(ConnectionRefusedError()))

    def test_timeout(self):
        self.assertIn("timed out", self.message(socket.timeout("timed out")))

    def test_authentication(self):
        self.assertIn("authentication failed", self.message(smtplib.SMTPAuthenticationError(535, b"denied")))

    def test_tls(self):
        self.assertIn("TLS/SSL connection failed", self.message(ssl.SSLError("wrong version number")))

    def test_rejected_550(self):
        self.assertIn("rejected the connection", self.message(smtplib.SMTPResponseException(550, b"no relay")))

    def test_other_response_code(self):
        self.assertEqual(
            self.message(smtplib.SMTPResponseException(451, b"try later")),
            "SMTP server error (451): try later",
        )

    def test_generic(self):
        self.assertEqual(self.message(smtplib.SMTPException("boom")), "SMTP error: boom")
