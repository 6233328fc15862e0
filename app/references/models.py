"""
Reference/central taxonomy tables to support the tickets app.
Prevents circular dependencies.
"""

from django.db import models


class ProductionUnit(models.Model):
    """Plant location hierarchy (plant > area > line > machine);
    self-referencing parent IDs support nested hierarchies."""

    code = models.CharField(max_length=50, unique=True)
    name = models.CharField(max_length=255)
    parent = models.ForeignKey(
        "self",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="children",
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        verbose_name = "Production Unit"
        verbose_name_plural = "Production Units"

    def __str__(self):
        return f"{self.code} - {self.name}"

    def get_lineage_ids(self) -> list:
        """Returns ids of this unit and all of its ancestors, nearest first."""
        lineage = []
        node = self
        while node is not None and node.pk not in lineage:
            lineage.append(node.pk)
            node = node.parent
        return lineage


class Equipment(models.Model):
    """A piece of equipment installed in a production unit."""

    code = models.CharField(max_length=50)
    name = models.CharField(max_length=255)
    production_unit = models.ForeignKey(
        ProductionUnit, on_delete=models.PROTECT, related_name="equipment"
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        verbose_name_plural = "Equipment"
        unique_together = (("production_unit", "code"),)

    def __str__(self):
        return f"{self.code} - {self.name}"


class FailureMode(models.Model):
    """Failure mode taxonomy, recorded when a ticket is finished."""

    code = models.CharField(max_length=50, unique=True)
    name = models.CharField(max_length=255)
    is_active = models.BooleanField(default=True)

    def __str__(self):
        return f"{self.code} - {self.name}"
