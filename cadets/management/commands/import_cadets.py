from __future__ import annotations

from pathlib import Path

from django.core.management.base import BaseCommand, CommandError

from cadets import services
from schools.models import School


class Command(BaseCommand):
    help = "Import a cadet roster CSV into a school"

    def add_arguments(self, parser):
        parser.add_argument("path", help="CSV file with First Name, Last Name, Email, ... columns")
        parser.add_argument("--school", type=int, required=True, help="School id to import into")
        parser.add_argument("--dry-run", action="store_true", help="Validate rows without saving")

    def handle(self, *args, **options):
        school = School.objects.filter(pk=options["school"]).first()
        if school is None:
            raise CommandError(f"School {options['school']} not found")
        path = Path(options["path"])
        if not path.exists():
            raise CommandError(f"{path} does not exist")
        with path.open("rb") as upload:
            text = services.decode_upload(upload)

        rows = services.validate_cadet_rows(school, services.parse_cadet_csv(text))
        if options["dry_run"]:
            for row in rows:
                if not row.is_valid:
                    self.stdout.write(self.style.WARNING(f"Row {row.line_number}: {'; '.join(row.errors)}"))
            valid = sum(1 for row in rows if row.is_valid)
            self.stdout.write(self.style.SUCCESS(f"{valid} of {len(rows)} rows are valid."))
            return

        result = services.import_cadets(school, rows)
        for error in result["errors"]:
            self.stdout.write(self.style.WARNING(error))
        self.stdout.write(self.style.SUCCESS(f"Imported {result['success']} cadets ({result['failed']} failed)."))
