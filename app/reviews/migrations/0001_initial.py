from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion

STATUS_CHOICES = [
    ("REQUESTED", "Requested"),
    ("APPROVED", "Approved"),
    ("PLANNING", "Planning"),
    ("SCHEDULED", "Scheduled"),
    ("IN_PROGRESS", "In Progress"),
    ("REPORT_DRAFTING", "Report Drafting"),
    ("REPORT_REVIEW", "Report Review"),
    ("COMPLETED", "Completed"),
    ("CANCELLED", "Cancelled"),
]


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("references", "0001_initial"),
        ("reviewers", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Review",
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
                    models.CharField(max_length=30, unique=True),
                ),
                (
                    "status",
                    models.CharField(
                        choices=STATUS_CHOICES,
                        default="REQUESTED",
                        max_length=20,
                    ),
                ),
                (
                    "planned_start_date",
                    models.DateField(blank=True, null=True),
                ),
                ("planned_end_date", models.DateField(blank=True, null=True)),
                (
                    "actual_start_date",
                    models.DateTimeField(blank=True, null=True),
                ),
                (
                    "actual_end_date",
                    models.DateTimeField(blank=True, null=True),
                ),
                ("notes", models.TextField(blank=True, default="")),
                ("version", models.PositiveIntegerField(default=0)),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="review_created",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "host_organization",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="hosted_reviews",
                        to="references.organization",
                    ),
                ),
            ],
            options={
                "abstract": False,
            },
        ),
        migrations.CreateModel(
            name="ReviewReport",
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
                            ("UNDER_REVIEW", "Under Review"),
                            ("FINAL", "Final"),
                            ("PUBLISHED", "Published"),
                        ],
                        default="DRAFT",
                        max_length=20,
                    ),
                ),
                (
                    "review",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="report",
                        to="reviews.review",
                    ),
                ),
            ],
            options={
                "abstract": False,
            },
        ),
        migrations.CreateModel(
            name="ReviewTeamMember",
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
                    "role",
                    models.CharField(
                        choices=[
                            ("LEAD_REVIEWER", "Lead Reviewer"),
                            ("PEER_REVIEWER", "Peer Reviewer"),
                            ("TECHNICAL_EXPERT", "Technical Expert"),
                            ("OBSERVER", "Observer"),
                            ("TRAINEE", "Trainee"),
                        ],
                        default="PEER_REVIEWER",
                        max_length=20,
                    ),
                ),
                (
                    "invitation_status",
                    models.CharField(
                        choices=[
                            ("PENDING", "Pending"),
                            ("ACCEPTED", "Accepted"),
                            ("CONFIRMED", "Confirmed"),
                            ("DECLINED", "Declined"),
                            ("WITHDRAWN", "Withdrawn"),
                        ],
                        default="PENDING",
                        max_length=20,
                    ),
                ),
                (
                    "confirmed_at",
                    models.DateTimeField(blank=True, null=True),
                ),
                ("is_cross_team", models.BooleanField(default=False)),
                (
                    "cross_team_justification",
                    models.TextField(blank=True, default=""),
                ),
                (
                    "cross_team_approved_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="approved_cross_team_assignments",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "review",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="team_members",
                        to="reviews.review",
                    ),
                ),
                (
                    "reviewer_profile",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="team_assignments",
                        to="reviewers.reviewerprofile",
                    ),
                ),
            ],
            options={
                "verbose_name": "Review Team Member",
            },
        ),
        migrations.AddConstraint(
            model_name="reviewteammember",
            constraint=models.UniqueConstraint(
                condition=models.Q(
                    ("role", "LEAD_REVIEWER"),
                    models.Q(
                        ("invitation_status__in", ["DECLINED", "WITHDRAWN"]),
                        _negated=True,
                    ),
                ),
                fields=("review",),
                name="unique_active_lead_per_review",
            ),
        ),
        migrations.AddConstraint(
            model_name="reviewteammember",
            constraint=models.UniqueConstraint(
                condition=models.Q(
                    ("invitation_status__in", ["DECLINED", "WITHDRAWN"]),
                    _negated=True,
                ),
                fields=("review", "reviewer_profile"),
                name="unique_active_member_per_review",
            ),
        ),
    ]
