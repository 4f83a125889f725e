import decimal

import django.core.validators
import django.db.models.deletion
import django.db.models.functions.text
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("schools", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Cadet",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("first_name", models.CharField(max_length=100)),
                ("last_name", models.CharField(max_length=100)),
                ("email", models.EmailField(max_length=254)),
                ("role", models.CharField(blank=True, default="cadet", max_length=50)),
                (
                    "grade",
                    models.CharField(
                        blank=True,
                        choices=[("9th", "9th Grade"), ("10th", "10th Grade"), ("11th", "11th Grade"), ("12th", "12th Grade")],
                        max_length=4,
                    ),
                ),
                ("rank", models.CharField(blank=True, max_length=100)),
                ("flight", models.CharField(blank=True, max_length=50)),
                (
                    "cadet_year",
                    models.CharField(
                        blank=True,
                        choices=[("1st", "1st Year"), ("2nd", "2nd Year"), ("3rd", "3rd Year"), ("4th", "4th Year")],
                        max_length=3,
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "school",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name="cadets", to="schools.school"
                    ),
                ),
                (
                    "user",
                    models.OneToOneField(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="cadet_profile",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={"ordering": ("last_name", "first_name")},
        ),
        migrations.AddConstraint(
            model_name="cadet",
            constraint=models.UniqueConstraint(
                django.db.models.functions.text.Lower("email"),
                models.F("school"),
                name="unique_cadet_email_per_school",
                violation_error_message="A cadet with this email already exists.",
            ),
        ),
        migrations.CreateModel(
            name="PTTest",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("date", models.DateField()),
                ("push_ups", models.PositiveIntegerField(blank=True, null=True)),
                ("sit_ups", models.PositiveIntegerField(blank=True, null=True)),
                ("plank_seconds", models.PositiveIntegerField(blank=True, null=True)),
                ("mile_seconds", models.PositiveIntegerField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "cadet",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name="pt_tests", to="cadets.cadet"
                    ),
                ),
            ],
            options={"ordering": ("-date", "cadet__last_name")},
        ),
        migrations.CreateModel(
            name="CommunityServiceRecord",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("date", models.DateField()),
                ("event", models.CharField(max_length=255)),
                (
                    "hours",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=6,
                        validators=[django.core.validators.MinValueValidator(decimal.Decimal("0.01"))],
                    ),
                ),
                ("notes", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "cadet",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name="service_records", to="cadets.cadet"
                    ),
                ),
            ],
            options={"ordering": ("-date",)},
        ),
        migrations.CreateModel(
            name="UniformInspection",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("date", models.DateField()),
                ("score", models.PositiveIntegerField(validators=[django.core.validators.MaxValueValidator(100)])),
                ("notes", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "cadet",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="uniform_inspections",
                        to="cadets.cadet",
                    ),
                ),
            ],
            options={"ordering": ("-date",)},
        ),
        migrations.CreateModel(
            name="ChainOfCommandRole",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("role", models.CharField(max_length=120)),
                ("email_address", models.EmailField(blank=True, max_length=254)),
                ("reports_to", models.CharField(default="NA", max_length=120)),
                ("assistant", models.CharField(default="NA", max_length=120)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "cadet",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="chain_roles",
                        to="cadets.cadet",
                    ),
                ),
                (
                    "school",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name="chain_roles", to="schools.school"
                    ),
                ),
            ],
            options={"ordering": ("role",)},
        ),
        migrations.AddConstraint(
            model_name="chainofcommandrole",
            constraint=models.UniqueConstraint(
                django.db.models.functions.text.Lower("role"),
                models.F("school"),
                name="unique_chain_role_per_school",
                violation_error_message="Role already exists, please change.",
            ),
        ),
    ]
