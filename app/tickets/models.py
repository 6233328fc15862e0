"""
Data models for the ticket domain.
"""

from django.db import models
from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator

from core.models import TimestampedModel, OwnedModel, SoftDeletableModel
from references.models import Equipment, FailureMode, ProductionUnit

from .actions import CriticalLevel, TicketStatus


STATUS_CHOICES = [(status.value, status.label) for status in TicketStatus]
CRITICAL_LEVEL_CHOICES = [
    (level.value, level.value.capitalize()) for level in CriticalLevel
]


class Ticket(TimestampedModel, OwnedModel, SoftDeletableModel):
    """An abnormal finding reported on plant equipment - core domain."""

    ticket_number = models.CharField(max_length=20, unique=True)
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")

    # Only the lifecycle engine (tickets.services) writes this field.
    status = models.CharField(
        max_length=30,
        choices=STATUS_CHOICES,
        default=TicketStatus.OPEN.value,
        db_index=True,
    )
    version = models.PositiveIntegerField(default=1)

    critical_level = models.CharField(
        max_length=20,
        choices=CRITICAL_LEVEL_CHOICES,
        default=CriticalLevel.MEDIUM.value,
    )
    production_unit = models.ForeignKey(
        ProductionUnit, on_delete=models.PROTECT, related_name="tickets"
    )
    equipment = models.ForeignKey(
        Equipment,
        on_delete=models.PROTECT,
        blank=True,
        null=True,
        related_name="tickets",
    )

    assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        blank=True,
        null=True,
        related_name="assigned_tickets",
    )

    # Schedule and actuals
    schedule_start = models.DateTimeField(blank=True, null=True)
    schedule_finish = models.DateTimeField(blank=True, null=True)
    actual_start_at = models.DateTimeField(blank=True, null=True)
    actual_finish_at = models.DateTimeField(blank=True, null=True)

    # Outcome, required on finish
    downtime_avoidance_hours = models.DecimalField(
        max_digits=10, decimal_places=2, blank=True, null=True
    )
    cost_avoidance = models.DecimalField(
        max_digits=18, decimal_places=2, blank=True, null=True
    )
    failure_mode = models.ForeignKey(
        FailureMode,
        on_delete=models.PROTECT,
        blank=True,
        null=True,
        related_name="tickets",
    )
    satisfaction_rating = models.PositiveSmallIntegerField(
        blank=True,
        null=True,
        validators=[MinValueValidator(1), MaxValueValidator(5)],
    )

    # Workflow tracking
    accepted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        blank=True,
        null=True,
        related_name="accepted_tickets",
    )
    accepted_at = models.DateTimeField(blank=True, null=True)
    rejected_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        blank=True,
        null=True,
        related_name="rejected_tickets",
    )
    rejected_at = models.DateTimeField(blank=True, null=True)
    rejection_reason = models.TextField(blank=True, null=True)
    escalated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        blank=True,
        null=True,
        related_name="escalated_tickets",
    )
    escalated_at = models.DateTimeField(blank=True, null=True)
    escalation_reason = models.TextField(blank=True, null=True)
    finished_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        blank=True,
        null=True,
        related_name="finished_tickets",
    )
    finished_at = models.DateTimeField(blank=True, null=True)
    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        blank=True,
        null=True,
        related_name="reviewed_tickets",
    )
    reviewed_at = models.DateTimeField(blank=True, null=True)
    closed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        blank=True,
        null=True,
        related_name="closed_tickets",
    )
    closed_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.ticket_number} - {self.title}"


class TicketStatusHistory(models.Model):
    """
    Append-only log of status and assignment changes.
    Rows are never updated or deleted; the timeline is derived from it.
    """

    ticket = models.ForeignKey(
        Ticket, on_delete=models.CASCADE, related_name="status_history"
    )
    from_status = models.CharField(
        max_length=30, choices=STATUS_CHOICES, blank=True, null=True
    )
    to_status = models.CharField(max_length=30, choices=STATUS_CHOICES)
    changed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="ticket_status_changes",
    )
    to_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        blank=True,
        null=True,
        related_name="ticket_assignments_received",
    )
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]
        verbose_name = "Ticket Status History"
        verbose_name_plural = "Ticket Status History"

    def __str__(self):
        return f"{self.from_status or '-'} -> {self.to_status}"

    def save(self, *args, **kwargs):
        if self.pk is not None:
            raise ValueError("Status history entries cannot be modified.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Status history entries cannot be deleted.")


class TicketComment(TimestampedModel):
    """Free-text note on a ticket; system-written for status changes."""

    class Kind(models.TextChoices):
        NOTE = "note", "Note"
        STATUS_CHANGE = "status_change", "Status Change"
        AUDIT = "audit", "Audit"

    ticket = models.ForeignKey(
        Ticket, on_delete=models.CASCADE, related_name="comments"
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="ticket_comments",
    )
    comment = models.TextField()
    kind = models.CharField(
        max_length=20, choices=Kind.choices, default=Kind.NOTE
    )

    class Meta:
        ordering = ["created_at", "id"]

    def __str__(self):
        return self.comment[:50]


class TicketImage(models.Model):
    """Evidence metadata; the file itself lives in external storage."""

    class ImageType(models.TextChoices):
        BEFORE = "before", "Before"
        AFTER = "after", "After"
        OTHER = "other", "Other"

    ticket = models.ForeignKey(
        Ticket, on_delete=models.CASCADE, related_name="images"
    )
    image_type = models.CharField(
        max_length=20, choices=ImageType.choices, default=ImageType.OTHER
    )
    image_url = models.CharField(max_length=500)
    image_name = models.CharField(max_length=255, blank=True, default="")
    uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="ticket_images",
    )
    uploaded_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.image_type}: {self.image_name or self.image_url}"


class TicketDailyCounter(models.Model):
    """Per-day sequence behind TKT-YYYYMMDD-NNN ticket numbers."""

    date_str = models.CharField(primary_key=True, max_length=8)
    case_number = models.PositiveIntegerField(default=0)

    def __str__(self):
        return f"{self.date_str}: {self.case_number}"
