"""
Data models for the notifications app.
Unified queue of notification records; delivery (chat bot, email) reads
queued rows and is handled outside this project.
"""

from django.db import models
from django.conf import settings


# To prevent circular dependencies - No direct import of other apps' models


class Notification(models.Model):
    """
    A unified, asynchronous notification queue for all entities.
    """

    class EntityType(models.TextChoices):
        TICKET = "TICKET", "Ticket"

    class EventType(models.TextChoices):
        TICKET_CREATED = "TICKET_CREATED", "Ticket Created"
        TICKET_ACCEPTED = "TICKET_ACCEPTED", "Ticket Accepted"
        TICKET_PLANNED = "TICKET_PLANNED", "Ticket Planned"
        TICKET_STARTED = "TICKET_STARTED", "Work Started"
        TICKET_REJECTED = "TICKET_REJECTED", "Ticket Rejected"
        TICKET_FINISHED = "TICKET_FINISHED", "Work Finished"
        TICKET_ESCALATED = "TICKET_ESCALATED", "Ticket Escalated"
        TICKET_REVIEWED = "TICKET_REVIEWED", "Review Approved"
        TICKET_REOPENED = "TICKET_REOPENED", "Ticket Reopened"
        TICKET_CLOSED = "TICKET_CLOSED", "Ticket Closed"
        TICKET_REASSIGNED = "TICKET_REASSIGNED", "Ticket Reassigned"
        TICKET_DELETED = "TICKET_DELETED", "Ticket Deleted"
        CUSTOM = "CUSTOM", "Custom"

    class Method(models.TextChoices):
        SYSTEM = "SYSTEM", "System (in-app)"
        EMAIL = "EMAIL", "Email"
        CHAT = "CHAT", "Chat message"
        WEBHOOK = "WEBHOOK", "Webhook"

    class Status(models.TextChoices):
        QUEUED = "queued", "Queued"
        SENT = "sent", "Sent"
        FAILED = "failed", "Failed"
        CANCELED = "canceled", "Canceled"

    class Priority(models.TextChoices):
        LOW = "LOW", "Low"
        MEDIUM = "MEDIUM", "Medium"
        HIGH = "HIGH", "High"
        CRITICAL = "CRITICAL", "Critical"

    # Polymorphic link to the source entity (e.g., a Ticket)
    entity_type = models.CharField(
        max_length=30,
        choices=EntityType.choices,
    )
    entity_id = models.IntegerField()

    # What triggered this?
    event_type = models.CharField(max_length=50, choices=EventType.choices)
    triggered_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,  # User who caused it might be deleted
        null=True,
        blank=True,
        related_name="triggered_notifications",
    )

    # When?
    created_at = models.DateTimeField(auto_now_add=True)

    # How?
    method = models.CharField(
        max_length=30, choices=Method.choices, default=Method.SYSTEM
    )
    payload = models.JSONField(blank=True, null=True)  # Extra context

    priority = models.CharField(
        max_length=20, choices=Priority.choices, default=Priority.MEDIUM
    )
    requires_action = models.BooleanField(default=False)
    action_url = models.CharField(max_length=500, blank=True, null=True)

    # State
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.QUEUED
    )
    attempts = models.IntegerField(default=0)
    last_error = models.TextField(blank=True, null=True)
    sent_at = models.DateTimeField(blank=True, null=True)
    active = models.BooleanField(default=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["entity_type", "entity_id"],
                name="ix_notifications_entity",
            )
        ]

    def __str__(self):
        return f"{self.event_type} for {self.entity_type} {self.entity_id}"


class UserNotification(models.Model):
    """
    Maps a single Notification to multiple users and tracks their
    individual read status.
    """

    notification = models.ForeignKey(
        Notification, on_delete=models.CASCADE, related_name="deliveries"
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="in_app_notifications",
    )
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    read_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        unique_together = ("notification", "user")
