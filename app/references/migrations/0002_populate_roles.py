# Manually created to populate the programme roles.
# Workflow permissions are keyed on these role codes.

from django.db import migrations

ROLES = {
    "SUPER_ADMIN": "Full system access",
    "SYSTEM_ADMIN": "System administration",
    "STEERING_COMMITTEE": "Approves review requests and signs off reviews",
    "PROGRAMME_COORDINATOR": "Plans reviews and builds review teams",
    "LEAD_REVIEWER": "Leads the review team through fieldwork and report",
    "PEER_REVIEWER": "Member of a review team",
    "HOST_FOCAL_POINT": "Contact person of the host organization",
}


def create_default_roles(apps, schema_editor):
    Role = apps.get_model("references", "Role")
    for name, description in ROLES.items():
        Role.objects.get_or_create(
            name=name, defaults={"description": description}
        )


def reverse_default_roles(apps, schema_editor):
    Role = apps.get_model("references", "Role")
    Role.objects.filter(name__in=list(ROLES)).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("references", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(create_default_roles, reverse_default_roles),
    ]
