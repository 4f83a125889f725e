from __future__ import annotations

from django.core.exceptions import ValidationError
from django.core.management.base import BaseCommand, CommandError

from competitions import services
from competitions.models import Competition


class Command(BaseCommand):
    help = "Regenerate placements for completed competitions"

    def add_arguments(self, parser):
        parser.add_argument("competition", nargs="*", type=int, help="Competition ids (default: every completed one)")

    def handle(self, *args, **options):
        competitions = Competition.objects.filter(status=Competition.Status.COMPLETED)
        if options["competition"]:
            competitions = Competition.objects.filter(pk__in=options["competition"])
            if not competitions.exists():
                raise CommandError("No matching competitions")

        for competition in competitions:
            try:
                result = services.generate_placements(competition)
            except ValidationError as exc:
                self.stdout.write(self.style.WARNING(f"{competition}: {'; '.join(exc.messages)}"))
                continue
            self.stdout.write(self.style.SUCCESS(f"{competition}: {result['placements']} placements"))
