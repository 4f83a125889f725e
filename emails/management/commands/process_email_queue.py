from __future__ import annotations

from django.core.management.base import BaseCommand

from emails import services


class Command(BaseCommand):
    help = "Send pending emails whose scheduled time has passed"

    def add_arguments(self, parser):
        parser.add_argument("--batch-size", type=int, default=None, help="Maximum emails to send")

    def handle(self, *args, **options):
        result = services.process_email_queue(batch_size=options["batch_size"])
        style = self.style.SUCCESS if not result["failed"] else self.style.WARNING
        self.stdout.write(style(f"Sent {result['processed']} emails, {result['failed']} failed."))
