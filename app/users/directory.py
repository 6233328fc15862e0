"""
Organizational directory - read-only lookups over approval grants.
Answers "what level does this user hold here" and "who may take this work".
"""

from django.db.models import Max

from references.models import ProductionUnit
from .models import ApprovalLevel, TicketApproval, User

# Every active user may at least report findings.
BASE_LEVEL = ApprovalLevel.REPORTER


def _active_grants(production_unit: ProductionUnit):
    """Grants on the unit or any of its ancestors."""
    return TicketApproval.objects.filter(
        production_unit_id__in=production_unit.get_lineage_ids(),
        is_active=True,
        user__is_active=True,
    )


def resolve_approval_level(user, production_unit: ProductionUnit) -> int:
    """
    Returns the user's effective approval level (1-4) for a location:
    the highest active grant on the unit or any unit above it.
    """
    if not user or not user.is_active or production_unit is None:
        return int(BASE_LEVEL)

    level = (
        _active_grants(production_unit)
        .filter(user=user)
        .aggregate(level=Max("approval_level"))["level"]
    )
    return int(level) if level else int(BASE_LEVEL)


def resolve_eligible_assignees(
    production_unit: ProductionUnit,
    *,
    min_level: int = ApprovalLevel.TECHNICIAN,
    escalation_only: bool = False,
) -> list:
    """
    Lists users who may be assigned work on a location.
    escalation_only restricts the pool to supervisors (exactly level 3).
    """
    effective_levels = (
        _active_grants(production_unit)
        .values("user")
        .annotate(level=Max("approval_level"))
    )

    if escalation_only:
        user_ids = [
            row["user"]
            for row in effective_levels
            if row["level"] == ApprovalLevel.SUPERVISOR
        ]
    else:
        user_ids = [
            row["user"]
            for row in effective_levels
            if row["level"] >= min_level
        ]

    return list(User.objects.filter(id__in=user_ids).order_by("email"))


def get_covered_unit_ids(
    user, *, min_level: int = ApprovalLevel.TECHNICIAN
) -> set:
    """
    Returns ids of all production units where the user holds at least
    min_level, including units below a granted unit.
    """
    frontier = set(
        TicketApproval.objects.filter(
            user=user, is_active=True, approval_level__gte=min_level
        ).values_list("production_unit_id", flat=True)
    )
    covered = set()
    while frontier:
        covered |= frontier
        frontier = (
            set(
                ProductionUnit.objects.filter(
                    parent_id__in=frontier
                ).values_list("id", flat=True)
            )
            - covered
        )
    return covered
