# Initial schema for the notifications app.

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Notification",
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
                    "entity_type",
                    models.CharField(
                        choices=[("TICKET", "Ticket")], max_length=30
                    ),
                ),
                ("entity_id", models.IntegerField()),
                (
                    "event_type",
                    models.CharField(
                        choices=[
                            ("TICKET_CREATED", "Ticket Created"),
                            ("TICKET_ACCEPTED", "Ticket Accepted"),
                            ("TICKET_PLANNED", "Ticket Planned"),
                            ("TICKET_STARTED", "Work Started"),
                            ("TICKET_REJECTED", "Ticket Rejected"),
                            ("TICKET_FINISHED", "Work Finished"),
                            ("TICKET_ESCALATED", "Ticket Escalated"),
                            ("TICKET_REVIEWED", "Review Approved"),
                            ("TICKET_REOPENED", "Ticket Reopened"),
                            ("TICKET_CLOSED", "Ticket Closed"),
                            ("TICKET_REASSIGNED", "Ticket Reassigned"),
                            ("TICKET_DELETED", "Ticket Deleted"),
                            ("CUSTOM", "Custom"),
                        ],
                        max_length=50,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "method",
                    models.CharField(
                        choices=[
                            ("SYSTEM", "System (in-app)"),
                            ("EMAIL", "Email"),
                            ("CHAT", "Chat message"),
                            ("WEBHOOK", "Webhook"),
                        ],
                        default="SYSTEM",
                        max_length=30,
                    ),
                ),
                ("payload", models.JSONField(blank=True, null=True)),
                (
                    "priority",
                    models.CharField(
                        choices=[
                            ("LOW", "Low"),
                            ("MEDIUM", "Medium"),
                            ("HIGH", "High"),
                            ("CRITICAL", "Critical"),
                        ],
                        default="MEDIUM",
                        max_length=20,
                    ),
                ),
                ("requires_action", models.BooleanField(default=False)),
                (
                    "action_url",
                    models.CharField(blank=True, max_length=500, null=True),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("queued", "Queued"),
                            ("sent", "Sent"),
                            ("failed", "Failed"),
                            ("canceled", "Canceled"),
                        ],
                        default="queued",
                        max_length=20,
                    ),
                ),
                ("attempts", models.IntegerField(default=0)),
                ("last_error", models.TextField(blank=True, null=True)),
                ("sent_at", models.DateTimeField(blank=True, null=True)),
                ("active", models.BooleanField(default=True)),
                (
                    "triggered_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="triggered_notifications",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["entity_type", "entity_id"],
                        name="ix_notifications_entity",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="UserNotification",
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
                ("is_read", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("read_at", models.DateTimeField(blank=True, null=True)),
                (
                    "notification",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="deliveries",
                        to="notifications.notification",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="in_app_notifications",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "unique_together": {("notification", "user")},
            },
        ),
    ]
