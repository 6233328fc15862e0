"""
Filters for the tickets API.
"""

from django.db.models import Q
from django_filters import rest_framework as filters
from rest_framework.exceptions import ValidationError

from .actions import TERMINAL_STATUSES
from .models import Ticket, CRITICAL_LEVEL_CHOICES, STATUS_CHOICES


class TicketFilter(filters.FilterSet):
    """FilterSet for the Ticket model."""

    status = filters.MultipleChoiceFilter(choices=STATUS_CHOICES)
    critical_level = filters.ChoiceFilter(choices=CRITICAL_LEVEL_CHOICES)

    assigned_to = filters.CharFilter(method="filter_by_assigned_to")
    created_by = filters.CharFilter(method="filter_by_created_by")

    created_after = filters.DateFilter(
        field_name="created_at", lookup_expr="date__gte"
    )
    created_before = filters.DateFilter(
        field_name="created_at", lookup_expr="date__lte"
    )

    is_open = filters.BooleanFilter(method="filter_by_is_open")

    search = filters.CharFilter(method="filter_by_search")

    ordering = filters.OrderingFilter(
        fields=(
            ("created_at", "created_at"),
            ("schedule_finish", "schedule_finish"),
            ("critical_level", "critical_level"),
        )
    )

    class Meta:
        model = Ticket
        fields = [
            "status",
            "critical_level",
            "production_unit",
            "equipment",
            "assigned_to",
            "created_by",
        ]

    def _user_id(self, name, value):
        """Resolves "me" or a numeric user id; anything else is a 400."""
        if value == "me":
            return self.request.user.id
        if not value.isdigit():
            raise ValidationError({name: 'Expected a user id or "me".'})
        return int(value)

    def filter_by_assigned_to(self, queryset, name, value):
        return queryset.filter(assigned_to_id=self._user_id(name, value))

    def filter_by_created_by(self, queryset, name, value):
        return queryset.filter(created_by_id=self._user_id(name, value))

    def filter_by_is_open(self, queryset, name, value):
        terminal = [status.value for status in TERMINAL_STATUSES]
        if value:
            return queryset.exclude(status__in=terminal)
        return queryset.filter(status__in=terminal)

    def filter_by_search(self, queryset, name, value):
        return queryset.filter(
            Q(ticket_number__icontains=value) | Q(title__icontains=value)
        )
