from django.db import migrations

EVENT_TYPES = [
    # name, initials, category
    ("Armed Inspection", "AI", "armed"),
    ("Armed Color Guard", "ACG", "armed"),
    ("Armed Exhibition", "AX", "armed"),
    ("Armed Dual Exhibition", "ADX", "armed"),
    ("Armed Regulation", "AR", "armed"),
    ("Armed Solo Exhibition", "ASX", "armed"),
    ("Unarmed Inspection", "UI", "unarmed"),
    ("Unarmed Color Guard", "UCG", "unarmed"),
    ("Unarmed Exhibition", "UX", "unarmed"),
    ("Unarmed Dual Exhibition", "UDX", "unarmed"),
    ("Unarmed Regulation", "UR", "unarmed"),
]


def seed_event_types(apps, schema_editor):
    EventType = apps.get_model("competitions", "CompetitionEventType")
    for name, initials, category in EVENT_TYPES:
        EventType.objects.update_or_create(
            name=name,
            school=None,
            defaults={"initials": initials, "category": category, "is_active": True},
        )


def unseed_event_types(apps, schema_editor):
    EventType = apps.get_model("competitions", "CompetitionEventType")
    EventType.objects.filter(school=None, name__in=[name for name, _, _ in EVENT_TYPES]).delete()


class Migration(migrations.Migration):

    dependencies = [
        ("competitions", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(seed_event_types, unseed_event_types),
    ]
