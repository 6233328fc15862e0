"""
Django admin customization for custom user model.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.translation import gettext_lazy as _

from users.models import User, TicketApproval


class TicketApprovalInline(admin.TabularInline):
    """Approval grants edited in place on the user page."""

    model = TicketApproval
    extra = 0
    autocomplete_fields = ["production_unit"]


class UserAdmin(BaseUserAdmin):
    """Define the admin pages for users."""

    ordering = ["id"]
    list_display = ["email", "full_name", "employee_no"]
    search_fields = ["email", "full_name", "employee_no"]
    inlines = [TicketApprovalInline]
    fieldsets = (
        (None, {"fields": ("email", "password")}),
        (_("Personal info"), {"fields": ("full_name", "employee_no")}),
        (
            _("Permissions"),
            {
                "fields": (
                    "is_active",
                    "is_staff",
                    "is_superuser",
                )
            },
        ),
        (
            _("Important dates"),
            {
                "fields": (
                    "last_login",
                    "date_joined",
                )
            },
        ),
    )
    readonly_fields = ["last_login", "date_joined"]
    add_fieldsets = (
        (
            None,
            {
                "classes": ("wide",),
                "fields": (
                    "email",
                    "password1",
                    "password2",
                    "full_name",
                    "employee_no",
                    "is_active",
                    "is_staff",
                    "is_superuser",
                ),
            },
        ),
    )


@admin.register(TicketApproval)
class TicketApprovalAdmin(admin.ModelAdmin):
    list_display = ("user", "production_unit", "approval_level", "is_active")
    list_filter = ("approval_level", "is_active")
    search_fields = ("user__email", "production_unit__code")
    autocomplete_fields = ["user", "production_unit"]


admin.site.register(User, UserAdmin)
