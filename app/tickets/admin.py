"""
Django admin and customizations for models of the tickets app.
Status is read-only here; it only changes through lifecycle actions.
"""

from django.contrib import admin

from tickets import models


class TicketStatusHistoryInline(admin.TabularInline):
    model = models.TicketStatusHistory
    extra = 0
    can_delete = False
    fields = (
        "created_at",
        "from_status",
        "to_status",
        "changed_by",
        "to_user",
        "notes",
    )
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(models.Ticket)
class TicketAdmin(admin.ModelAdmin):
    list_display = (
        "ticket_number",
        "title",
        "status",
        "critical_level",
        "production_unit",
        "assigned_to",
        "created_at",
    )
    list_filter = ("status", "critical_level", "production_unit")
    search_fields = ("ticket_number", "title", "created_by__email")
    readonly_fields = ("ticket_number", "status", "version")
    autocomplete_fields = [
        "production_unit",
        "equipment",
        "failure_mode",
        "assigned_to",
    ]
    inlines = [TicketStatusHistoryInline]


@admin.register(models.TicketComment)
class TicketCommentAdmin(admin.ModelAdmin):
    list_display = ("ticket", "user", "kind", "created_at")
    list_filter = ("kind",)
    search_fields = ("ticket__ticket_number", "comment")


@admin.register(models.TicketImage)
class TicketImageAdmin(admin.ModelAdmin):
    list_display = ("ticket", "image_type", "image_name", "uploaded_by")
    list_filter = ("image_type",)


admin.site.register(models.TicketDailyCounter)
