import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


def _option_fields():
    return [
        ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
        ("value", models.CharField(max_length=50)),
        ("label", models.CharField(max_length=100)),
        ("color_class", models.CharField(blank=True, max_length=100)),
        ("sort_order", models.PositiveIntegerField(default=0)),
        ("is_active", models.BooleanField(default=True)),
        ("school", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="schools.school")),
    ]


def _work_item_fields():
    return [
        ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
        ("task_number", models.CharField(editable=False, max_length=16)),
        ("title", models.CharField(max_length=255)),
        ("description", models.TextField(blank=True)),
        ("status", models.CharField(default="not_started", max_length=50)),
        ("priority", models.CharField(default="medium", max_length=50)),
        ("due_date", models.DateField(blank=True, null=True)),
        ("completed_at", models.DateTimeField(blank=True, null=True)),
        ("created_at", models.DateTimeField(auto_now_add=True)),
        ("updated_at", models.DateTimeField(auto_now=True)),
        (
            "assigned_by",
            models.ForeignKey(
                blank=True,
                null=True,
                on_delete=django.db.models.deletion.SET_NULL,
                related_name="+",
                to=settings.AUTH_USER_MODEL,
            ),
        ),
        (
            "assigned_to",
            models.ForeignKey(
                blank=True,
                null=True,
                on_delete=django.db.models.deletion.SET_NULL,
                related_name="+",
                to=settings.AUTH_USER_MODEL,
            ),
        ),
        ("school", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="schools.school")),
    ]


def _comment_fields():
    return [
        ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
        ("comment_text", models.TextField()),
        ("is_system_comment", models.BooleanField(default=False)),
        ("created_at", models.DateTimeField(auto_now_add=True)),
        (
            "user",
            models.ForeignKey(
                blank=True,
                null=True,
                on_delete=django.db.models.deletion.SET_NULL,
                related_name="+",
                to=settings.AUTH_USER_MODEL,
            ),
        ),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("schools", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="TaskStatusOption",
            fields=_option_fields(),
            options={"ordering": ("sort_order", "label"), "abstract": False},
        ),
        migrations.CreateModel(
            name="TaskPriorityOption",
            fields=_option_fields(),
            options={"ordering": ("sort_order", "label"), "abstract": False},
        ),
        migrations.CreateModel(
            name="Task",
            fields=_work_item_fields(),
            options={"ordering": ("-created_at",), "abstract": False},
        ),
        migrations.CreateModel(
            name="Subtask",
            fields=_work_item_fields()
            + [
                (
                    "parent_task",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="subtasks",
                        to="taskboard.task",
                    ),
                ),
            ],
            options={"ordering": ("-created_at",), "abstract": False},
        ),
        migrations.CreateModel(
            name="TaskComment",
            fields=_comment_fields()
            + [
                (
                    "task",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="comments",
                        to="taskboard.task",
                    ),
                ),
            ],
            options={"ordering": ("created_at", "id")},
        ),
        migrations.CreateModel(
            name="SubtaskComment",
            fields=_comment_fields()
            + [
                (
                    "subtask",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="comments",
                        to="taskboard.subtask",
                    ),
                ),
            ],
            options={"ordering": ("created_at", "id")},
        ),
        migrations.AddConstraint(
            model_name="taskstatusoption",
            constraint=models.UniqueConstraint(fields=("school", "value"), name="unique_status_option_per_school"),
        ),
        migrations.AddConstraint(
            model_name="taskpriorityoption",
            constraint=models.UniqueConstraint(fields=("school", "value"), name="unique_priority_option_per_school"),
        ),
        migrations.AddConstraint(
            model_name="task",
            constraint=models.UniqueConstraint(fields=("school", "task_number"), name="unique_task_number_per_school"),
        ),
        migrations.AddConstraint(
            model_name="subtask",
            constraint=models.UniqueConstraint(
                fields=("school", "task_number"), name="unique_subtask_number_per_school"
            ),
        ),
    ]
