from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError

from schools.models import School
from taskboard import services


class Command(BaseCommand):
    help = "Create the default task status and priority options for schools"

    def add_arguments(self, parser):
        parser.add_argument("--school", type=int, help="Only seed this school id")

    def handle(self, *args, **options):
        schools = School.objects.all()
        if options.get("school"):
            schools = schools.filter(pk=options["school"])
            if not schools.exists():
                raise CommandError(f"School {options['school']} not found")
        created = sum(services.ensure_default_options(school) for school in schools)
        self.stdout.write(self.style.SUCCESS(f"Created {created} task options."))
