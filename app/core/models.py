"""
Project-wide abstract base classes.
"""

from django.db import models
from django.conf import settings


class TimestampedModel(models.Model):
    """Abstract data model, provides created_at, updated_at."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class OwnedModel(models.Model):
    """Abstract data model, provides created_by (the reporter)."""

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="%(class)s_created",
    )

    class Meta:
        abstract = True


class SoftDeleteQuerySet(models.QuerySet):
    """Queryset helpers for soft-deleted rows."""

    def active(self):
        return self.filter(deleted_at__isnull=True)

    def deleted(self):
        return self.filter(deleted_at__isnull=False)


class SoftDeletableModel(models.Model):
    """Abstract data model, rows are flagged as deleted instead of removed,
    so their audit trail survives."""

    deleted_at = models.DateTimeField(blank=True, null=True)
    deleted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        blank=True,
        null=True,
        related_name="%(class)s_deleted",
    )
    deletion_reason = models.TextField(blank=True, default="")

    objects = SoftDeleteQuerySet.as_manager()

    class Meta:
        abstract = True

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None
