"""
Django admin customization for reference/central taxonomy tables.
"""

from django.contrib import admin

from references import models


@admin.register(models.ProductionUnit)
class ProductionUnitAdmin(admin.ModelAdmin):
    # Needed for autocomplete_fields in TicketAdmin and TicketApprovalAdmin
    search_fields = ("code", "name")
    list_display = ("code", "name", "parent", "is_active")
    list_filter = ("is_active",)


@admin.register(models.Equipment)
class EquipmentAdmin(admin.ModelAdmin):
    search_fields = ("code", "name")
    list_display = ("code", "name", "production_unit", "is_active")


@admin.register(models.FailureMode)
class FailureModeAdmin(admin.ModelAdmin):
    search_fields = ("code", "name")
    list_display = ("code", "name", "is_active")
