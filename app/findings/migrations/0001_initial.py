from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("reviews", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Finding",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "reference_number",
                    models.CharField(blank=True, default="", max_length=30),
                ),
                ("title", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True, default="")),
                (
                    "finding_type",
                    models.CharField(
                        choices=[
                            ("NON_CONFORMITY", "Non-conformity"),
                            ("OBSERVATION", "Observation"),
                            ("CONCERN", "Concern"),
                            ("RECOMMENDATION", "Recommendation"),
                            ("GOOD_PRACTICE", "Good Practice"),
                        ],
                        default="OBSERVATION",
                        max_length=20,
                    ),
                ),
                (
                    "severity",
                    models.CharField(
                        choices=[
                            ("CRITICAL", "Critical"),
                            ("MAJOR", "Major"),
                            ("MINOR", "Minor"),
                            ("OBSERVATION", "Observation"),
                        ],
                        default="MINOR",
                        max_length=20,
                    ),
                ),
                ("cap_required", models.BooleanField(default=False)),
                (
                    "review",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="findings",
                        to="reviews.review",
                    ),
                ),
            ],
            options={
                "abstract": False,
            },
        ),
        migrations.CreateModel(
            name="CorrectiveActionPlan",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("DRAFT", "Draft"),
                            ("SUBMITTED", "Submitted"),
                            ("UNDER_REVIEW", "Under Review"),
                            ("ACCEPTED", "Accepted"),
                            ("REJECTED", "Rejected"),
                            ("IN_PROGRESS", "In Progress"),
                            ("COMPLETED", "Completed"),
                            ("VERIFIED", "Verified"),
                            ("CLOSED", "Closed"),
                        ],
                        default="DRAFT",
                        max_length=20,
                    ),
                ),
                ("root_cause", models.TextField(blank=True, default="")),
                (
                    "corrective_action",
                    models.TextField(blank=True, default=""),
                ),
                ("due_date", models.DateField(blank=True, null=True)),
                (
                    "finding",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="corrective_action_plan",
                        to="findings.finding",
                    ),
                ),
            ],
            options={
                "verbose_name": "Corrective Action Plan",
            },
        ),
    ]
