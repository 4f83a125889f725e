from __future__ import annotations

from django.core.management.base import BaseCommand

from emails import services


class Command(BaseCommand):
    help = "Retry stuck queued emails and print queue health"

    def handle(self, *args, **options):
        report = services.monitor_email_queue()
        metrics = report["metrics"]
        line = (
            f"Queue {report['health']}: {metrics['total_pending']} pending, "
            f"{metrics['total_stuck']} stuck, {metrics['total_retried']} retried, "
            f"oldest {metrics['oldest_pending_age']} min"
        )
        if report["health"] == "healthy":
            self.stdout.write(self.style.SUCCESS(line))
        elif report["health"] == "warning":
            self.stdout.write(self.style.WARNING(line))
        else:
            self.stdout.write(self.style.ERROR(line))
