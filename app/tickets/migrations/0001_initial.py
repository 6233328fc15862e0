# Initial schema for the tickets app.

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


STATUS_CHOICES = [
    ("open", "Open"),
    ("accepted", "Accepted"),
    ("planed", "Planed"),
    ("in_progress", "In progress"),
    ("rejected_pending_l3_review", "Rejected pending l3 review"),
    ("rejected_final", "Rejected final"),
    ("finished", "Finished"),
    ("reopened_in_progress", "Reopened in progress"),
    ("reviewed", "Reviewed"),
    ("closed", "Closed"),
]


def _id():
    return models.BigAutoField(
        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
    )


def _user_fk(related_name, null=True):
    return models.ForeignKey(
        blank=null,
        null=null,
        on_delete=django.db.models.deletion.PROTECT,
        related_name=related_name,
        to=settings.AUTH_USER_MODEL,
    )


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("references", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="TicketDailyCounter",
            fields=[
                (
                    "date_str",
                    models.CharField(
                        max_length=8, primary_key=True, serialize=False
                    ),
                ),
                ("case_number", models.PositiveIntegerField(default=0)),
            ],
        ),
        migrations.CreateModel(
            name="Ticket",
            fields=[
                ("id", _id()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("deleted_at", models.DateTimeField(blank=True, null=True)),
                (
                    "deletion_reason",
                    models.TextField(blank=True, default=""),
                ),
                (
                    "ticket_number",
                    models.CharField(max_length=20, unique=True),
                ),
                ("title", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True, default="")),
                (
                    "status",
                    models.CharField(
                        choices=STATUS_CHOICES,
                        db_index=True,
                        default="open",
                        max_length=30,
                    ),
                ),
                ("version", models.PositiveIntegerField(default=1)),
                (
                    "critical_level",
                    models.CharField(
                        choices=[
                            ("low", "Low"),
                            ("medium", "Medium"),
                            ("high", "High"),
                            ("critical", "Critical"),
                        ],
                        default="medium",
                        max_length=20,
                    ),
                ),
                (
                    "schedule_start",
                    models.DateTimeField(blank=True, null=True),
                ),
                (
                    "schedule_finish",
                    models.DateTimeField(blank=True, null=True),
                ),
                (
                    "actual_start_at",
                    models.DateTimeField(blank=True, null=True),
                ),
                (
                    "actual_finish_at",
                    models.DateTimeField(blank=True, null=True),
                ),
                (
                    "downtime_avoidance_hours",
                    models.DecimalField(
                        blank=True, decimal_places=2, max_digits=10, null=True
                    ),
                ),
                (
                    "cost_avoidance",
                    models.DecimalField(
                        blank=True, decimal_places=2, max_digits=18, null=True
                    ),
                ),
                (
                    "satisfaction_rating",
                    models.PositiveSmallIntegerField(
                        blank=True,
                        null=True,
                        validators=[
                            django.core.validators.MinValueValidator(1),
                            django.core.validators.MaxValueValidator(5),
                        ],
                    ),
                ),
                ("accepted_at", models.DateTimeField(blank=True, null=True)),
                ("rejected_at", models.DateTimeField(blank=True, null=True)),
                (
                    "rejection_reason",
                    models.TextField(blank=True, null=True),
                ),
                ("escalated_at", models.DateTimeField(blank=True, null=True)),
                (
                    "escalation_reason",
                    models.TextField(blank=True, null=True),
                ),
                ("finished_at", models.DateTimeField(blank=True, null=True)),
                ("reviewed_at", models.DateTimeField(blank=True, null=True)),
                ("closed_at", models.DateTimeField(blank=True, null=True)),
                ("created_by", _user_fk("%(class)s_created", null=False)),
                ("deleted_by", _user_fk("%(class)s_deleted")),
                ("assigned_to", _user_fk("assigned_tickets")),
                ("accepted_by", _user_fk("accepted_tickets")),
                ("rejected_by", _user_fk("rejected_tickets")),
                ("escalated_by", _user_fk("escalated_tickets")),
                ("finished_by", _user_fk("finished_tickets")),
                ("reviewed_by", _user_fk("reviewed_tickets")),
                ("closed_by", _user_fk("closed_tickets")),
                (
                    "production_unit",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="tickets",
                        to="references.productionunit",
                    ),
                ),
                (
                    "equipment",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="tickets",
                        to="references.equipment",
                    ),
                ),
                (
                    "failure_mode",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="tickets",
                        to="references.failuremode",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="TicketStatusHistory",
            fields=[
                ("id", _id()),
                (
                    "from_status",
                    models.CharField(
                        blank=True,
                        choices=STATUS_CHOICES,
                        max_length=30,
                        null=True,
                    ),
                ),
                (
                    "to_status",
                    models.CharField(choices=STATUS_CHOICES, max_length=30),
                ),
                ("notes", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "ticket",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="status_history",
                        to="tickets.ticket",
                    ),
                ),
                (
                    "changed_by",
                    _user_fk("ticket_status_changes", null=False),
                ),
                ("to_user", _user_fk("ticket_assignments_received")),
            ],
            options={
                "verbose_name": "Ticket Status History",
                "verbose_name_plural": "Ticket Status History",
                "ordering": ["created_at", "id"],
            },
        ),
        migrations.CreateModel(
            name="TicketComment",
            fields=[
                ("id", _id()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("comment", models.TextField()),
                (
                    "kind",
                    models.CharField(
                        choices=[
                            ("note", "Note"),
                            ("status_change", "Status Change"),
                            ("audit", "Audit"),
                        ],
                        default="note",
                        max_length=20,
                    ),
                ),
                (
                    "ticket",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="comments",
                        to="tickets.ticket",
                    ),
                ),
                ("user", _user_fk("ticket_comments", null=False)),
            ],
            options={
                "ordering": ["created_at", "id"],
            },
        ),
        migrations.CreateModel(
            name="TicketImage",
            fields=[
                ("id", _id()),
                (
                    "image_type",
                    models.CharField(
                        choices=[
                            ("before", "Before"),
                            ("after", "After"),
                            ("other", "Other"),
                        ],
                        default="other",
                        max_length=20,
                    ),
                ),
                ("image_url", models.CharField(max_length=500)),
                (
                    "image_name",
                    models.CharField(blank=True, default="", max_length=255),
                ),
                ("uploaded_at", models.DateTimeField(auto_now_add=True)),
                (
                    "ticket",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="images",
                        to="tickets.ticket",
                    ),
                ),
                ("uploaded_by", _user_fk("ticket_images", null=False)),
            ],
        ),
    ]
