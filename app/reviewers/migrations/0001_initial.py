from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("references", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="ReviewerProfile",
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
                            ("NOMINATED", "Nominated"),
                            ("UNDER_REVIEW", "Under Review"),
                            ("CERTIFIED", "Certified"),
                            ("LEAD_QUALIFIED", "Lead Qualified"),
                            ("INACTIVE", "Inactive"),
                            ("SUSPENDED", "Suspended"),
                        ],
                        default="NOMINATED",
                        max_length=20,
                    ),
                ),
                ("is_lead_qualified", models.BooleanField(default=False)),
                (
                    "reviews_completed",
                    models.PositiveIntegerField(default=0),
                ),
                ("reviews_as_lead", models.PositiveIntegerField(default=0)),
                ("is_available", models.BooleanField(default=True)),
                ("available_from", models.DateField(blank=True, null=True)),
                ("available_to", models.DateField(blank=True, null=True)),
                (
                    "expertise_areas",
                    models.JSONField(blank=True, default=list),
                ),
                (
                    "home_organization",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="home_reviewers",
                        to="references.organization",
                    ),
                ),
                (
                    "user",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="reviewer_profile",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Reviewer Profile",
            },
        ),
        migrations.CreateModel(
            name="ReviewerCertification",
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
                (
                    "certification_type",
                    models.CharField(
                        choices=[
                            ("PEER_REVIEWER", "Peer Reviewer"),
                            ("LEAD_REVIEWER", "Lead Reviewer"),
                        ],
                        max_length=20,
                    ),
                ),
                (
                    "issue_date",
                    models.DateField(default=django.utils.timezone.localdate),
                ),
                ("expiry_date", models.DateField(blank=True, null=True)),
                (
                    "reviewer_profile",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="certifications",
                        to="reviewers.reviewerprofile",
                    ),
                ),
            ],
        ),
        migrations.CreateModel(
            name="ReviewerCOI",
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
                    "coi_type",
                    models.CharField(
                        choices=[
                            ("HOME_ORGANIZATION", "Home Organization"),
                            ("FAMILY_RELATIONSHIP", "Family Relationship"),
                            ("FORMER_EMPLOYEE", "Former Employee"),
                            ("BUSINESS_INTEREST", "Business Interest"),
                            ("RECENT_REVIEW", "Recent Review"),
                            ("OTHER", "Other Conflict"),
                        ],
                        default="OTHER",
                        max_length=30,
                    ),
                ),
                (
                    "severity",
                    models.CharField(
                        choices=[
                            ("HARD_BLOCK", "Hard Block"),
                            ("SOFT_WARNING", "Soft Warning"),
                        ],
                        default="HARD_BLOCK",
                        max_length=20,
                    ),
                ),
                ("reason", models.TextField(blank=True, default="")),
                ("is_active", models.BooleanField(default=True)),
                (
                    "start_date",
                    models.DateTimeField(default=django.utils.timezone.now),
                ),
                ("end_date", models.DateTimeField(blank=True, null=True)),
                (
                    "organization",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="reviewer_conflicts",
                        to="references.organization",
                    ),
                ),
                (
                    "reviewer_profile",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="conflicts",
                        to="reviewers.reviewerprofile",
                    ),
                ),
            ],
            options={
                "verbose_name": "Reviewer Conflict of Interest",
                "verbose_name_plural": "Reviewer Conflicts of Interest",
            },
        ),
    ]
