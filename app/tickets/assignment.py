"""
Assignment manager - resolves who may take work on a ticket and records
every assignment change in the status history.
"""

from users.directory import resolve_eligible_assignees
from users.models import ApprovalLevel

from .models import Ticket, TicketStatusHistory
from .workflows import (
    NoEligibleAssigneeError,
    RoleStanding,
    SelfAssignmentNotAllowedError,
    SUPERVISOR,
)


def get_eligible_assignees(
    production_unit,
    *,
    min_level: int = ApprovalLevel.TECHNICIAN,
    escalation_only: bool = False,
) -> list:
    """Candidates for work at a location, ordered by email."""
    return resolve_eligible_assignees(
        production_unit, min_level=min_level, escalation_only=escalation_only
    )


def check_self_assignment(*, actor, standing: RoleStanding, assignee_id):
    """
    Technicians may only plan work for themselves; assigning a third
    party takes a supervisor.
    """
    if (
        standing.approval_level < SUPERVISOR
        and assignee_id is not None
        and assignee_id != actor.id
    ):
        raise SelfAssignmentNotAllowedError(
            "Technicians may only assign tickets to themselves."
        )


def resolve_assignee(
    *,
    production_unit,
    assignee_id,
    escalation_only: bool = False,
    exclude=None,
):
    """
    Returns the pool member matching assignee_id, or None when the id
    is missing or not in the pool (the caller reports the violation).
    Raises NoEligibleAssigneeError if the pool itself is empty.
    """
    pool = get_eligible_assignees(
        production_unit, escalation_only=escalation_only
    )
    if exclude is not None:
        pool = [user for user in pool if user.id != exclude.id]

    if not pool:
        raise NoEligibleAssigneeError(
            "No eligible "
            + ("supervisor" if escalation_only else "assignee")
            + f" for production unit '{production_unit.code}'."
        )

    for user in pool:
        if user.id == assignee_id:
            return user
    return None


def record_assignment(
    *, ticket: Ticket, status, changed_by, assignee, notes=None
) -> TicketStatusHistory:
    """Appends the history entry for an assignment change."""
    return TicketStatusHistory.objects.create(
        ticket=ticket,
        from_status=str(status),
        to_status=str(status),
        changed_by=changed_by,
        to_user=assignee,
        notes=notes or f"Assigned to {assignee.display_name}",
    )
