"""
Domain layer - pure, Django-unaware, a declarative state machine.
Decides which actor standing may perform which action from which status,
and which payload fields each action requires.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional

from .actions import (
    PAYLOAD_TYPES,
    Action,
    CriticalLevel,
    TicketStatus,
)


# Approval levels, mirrored from users.models.ApprovalLevel
REPORTER = 1
TECHNICIAN = 2
SUPERVISOR = 3
MANAGER = 4


# --- Errors ---


class TicketLifecycleError(Exception):
    """Base class for lifecycle failures."""

    code = "lifecycle_error"


class InvalidTransitionError(TicketLifecycleError):
    """Action is not defined for the ticket's current status."""

    code = "invalid_transition"


class UnauthorizedActionError(TicketLifecycleError):
    """Actor's standing is insufficient for the action."""

    code = "unauthorized"


class SelfAssignmentNotAllowedError(UnauthorizedActionError):
    """A technician tried to plan work for someone else."""

    code = "self_assignment_not_allowed"


class TicketValidationError(TicketLifecycleError):
    """One or more payload fields failed; carries every violation."""

    code = "validation_error"

    def __init__(self, violations: dict):
        self.violations = dict(violations)
        super().__init__(
            "; ".join(f"{field}: {msg}" for field, msg in violations.items())
        )


class ConcurrentModificationError(TicketLifecycleError):
    """Ticket changed since it was read; re-read and retry."""

    code = "concurrent_modification"


class NoEligibleAssigneeError(TicketLifecycleError):
    """Nobody may take the work at this location."""

    code = "no_eligible_assignee"


class TicketNotFoundError(TicketLifecycleError):
    code = "not_found"


# --- Standing ---


@dataclass(frozen=True)
class RoleStanding:
    """An actor's computed standing against one specific ticket."""

    approval_level: int
    is_creator: bool = False
    is_assignee: bool = False
    has_assignee: bool = False

    @property
    def relationship(self) -> str:
        if self.is_assignee:
            return "assignee"
        if self.is_creator:
            return "creator"
        if self.approval_level >= TECHNICIAN:
            return "approver"
        return "none"


def get_role_standing(ticket, user, approval_level: int) -> RoleStanding:
    """
    [PURE DOMAIN LOGIC]
    Builds the standing from the ticket's ownership ids and a resolved
    approval level. Compares ids, objects might be different instances.
    """
    return RoleStanding(
        approval_level=approval_level,
        is_creator=ticket.created_by_id == user.id,
        is_assignee=(
            ticket.assigned_to_id is not None
            and ticket.assigned_to_id == user.id
        ),
        has_assignee=ticket.assigned_to_id is not None,
    )


# --- Transition table ---

# Relationship requirements
ANYONE = "anyone"
ASSIGNEE = "assignee"
CREATOR = "creator"
# The assignee, or anyone while nobody is assigned; supervisors always.
CLAIMANT = "claimant"


@dataclass(frozen=True)
class TransitionRule:
    action: Action
    from_status: TicketStatus
    # None keeps the current status (reassign, delete)
    to_status: Optional[TicketStatus]
    name: str
    min_level: int = REPORTER
    relationship: str = ANYONE
    # Status produced instead when the actor is a supervisor or above
    supervisor_to_status: Optional[TicketStatus] = None


def _rules(action, from_statuses, to_status, name, **kwargs):
    return {
        status: TransitionRule(action, status, to_status, name, **kwargs)
        for status in from_statuses
    }


S = TicketStatus
ALL_STATUSES = tuple(TicketStatus)
WORKING_STATUSES = (S.IN_PROGRESS, S.REOPENED_IN_PROGRESS)

TRANSITIONS = {
    Action.ACCEPT: {
        **_rules(
            Action.ACCEPT,
            [S.OPEN],
            S.ACCEPTED,
            "Accept Ticket",
            min_level=TECHNICIAN,
            relationship=CLAIMANT,
        ),
        # Overriding a technician's rejection is a supervisor call
        **_rules(
            Action.ACCEPT,
            [S.REJECTED_PENDING_L3_REVIEW],
            S.ACCEPTED,
            "Override Rejection",
            min_level=SUPERVISOR,
        ),
    },
    Action.PLAN: _rules(
        Action.PLAN,
        [S.ACCEPTED],
        S.PLANED,
        "Plan Work",
        min_level=TECHNICIAN,
    ),
    Action.START: _rules(
        Action.START,
        [S.PLANED],
        S.IN_PROGRESS,
        "Start Work",
        min_level=TECHNICIAN,
        relationship=ASSIGNEE,
    ),
    Action.REJECT: {
        **_rules(
            Action.REJECT,
            [S.OPEN],
            S.REJECTED_PENDING_L3_REVIEW,
            "Reject Ticket",
            min_level=TECHNICIAN,
            supervisor_to_status=S.REJECTED_FINAL,
        ),
        **_rules(
            Action.REJECT,
            [S.REJECTED_PENDING_L3_REVIEW],
            S.REJECTED_FINAL,
            "Reject Finally",
            min_level=SUPERVISOR,
        ),
    },
    Action.FINISH: _rules(
        Action.FINISH,
        WORKING_STATUSES,
        S.FINISHED,
        "Finish Work",
        min_level=TECHNICIAN,
        relationship=ASSIGNEE,
    ),
    Action.ESCALATE: _rules(
        Action.ESCALATE,
        WORKING_STATUSES,
        S.IN_PROGRESS,
        "Escalate",
        min_level=TECHNICIAN,
        relationship=ASSIGNEE,
    ),
    Action.APPROVE_REVIEW: _rules(
        Action.APPROVE_REVIEW,
        [S.FINISHED],
        S.REVIEWED,
        "Approve Review",
        relationship=CREATOR,
    ),
    Action.REOPEN: _rules(
        Action.REOPEN,
        [S.FINISHED],
        S.REOPENED_IN_PROGRESS,
        "Reopen",
        relationship=CREATOR,
    ),
    Action.APPROVE_CLOSE: _rules(
        Action.APPROVE_CLOSE,
        [S.REVIEWED],
        S.CLOSED,
        "Close Ticket",
        min_level=MANAGER,
    ),
    Action.REASSIGN: _rules(
        Action.REASSIGN,
        [s for s in ALL_STATUSES if s not in (S.REJECTED_FINAL, S.CLOSED)],
        None,
        "Reassign",
        min_level=SUPERVISOR,
    ),
    Action.DELETE: _rules(
        Action.DELETE,
        ALL_STATUSES,
        None,
        "Delete Ticket",
        min_level=SUPERVISOR,
    ),
}


def parse_action(name) -> Action:
    """Resolves an action name; unknown names are invalid transitions."""
    try:
        return Action(name)
    except ValueError:
        raise InvalidTransitionError(f"Unknown action '{name}'.")


def get_transition_rule(action: Action, from_status) -> TransitionRule:
    """
    Looks up the rule for (action, status).
    Raises InvalidTransitionError if the pair is not in the table.
    """
    status = TicketStatus(from_status)
    rule = TRANSITIONS.get(action, {}).get(status)
    if rule is None:
        raise InvalidTransitionError(
            f"Action '{action.value}' is not allowed from status"
            f" '{status.value}'."
        )
    return rule


def authorize(rule: TransitionRule, standing: RoleStanding):
    """
    Checks the actor's standing against a rule.
    Raises UnauthorizedActionError when the standing is insufficient.
    """
    if standing.approval_level < rule.min_level:
        raise UnauthorizedActionError(
            f"Action '{rule.action.value}' from '{rule.from_status.value}'"
            f" requires approval level {rule.min_level} or higher."
        )

    if rule.relationship == ASSIGNEE and not standing.is_assignee:
        raise UnauthorizedActionError(
            f"Only the assignee may {rule.action.value} this ticket."
        )

    if rule.relationship == CREATOR and not standing.is_creator:
        raise UnauthorizedActionError(
            f"Only the reporter may {rule.action.value} this ticket."
        )

    if (
        rule.relationship == CLAIMANT
        and standing.approval_level < SUPERVISOR
        and standing.has_assignee
        and not standing.is_assignee
    ):
        raise UnauthorizedActionError(
            "Ticket is assigned to someone else; only the assignee"
            " or a supervisor may accept it."
        )


def resolve_target_status(
    rule: TransitionRule, standing: RoleStanding
) -> Optional[TicketStatus]:
    """Status the action produces for this actor; None keeps it."""
    if (
        rule.supervisor_to_status is not None
        and standing.approval_level >= SUPERVISOR
    ):
        return rule.supervisor_to_status
    return rule.to_status


def get_available_actions(status, standing: RoleStanding) -> list:
    """
    [PURE DOMAIN LOGIC]
    Lists the actions this standing may take from the given status.
    Payload requirements are not considered.
    """
    available = []
    for action in Action:
        try:
            rule = get_transition_rule(action, status)
            authorize(rule, standing)
        except TicketLifecycleError:
            continue
        available.append({"action": action.value, "name": rule.name})
    return available


# --- Payload validation ---


def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _non_negative(value) -> bool:
    try:
        return Decimal(str(value)) >= 0
    except (InvalidOperation, ValueError):
        return False


def check_payload_type(action: Action, payload):
    """
    Returns a payload of the action's own type.
    None means an empty payload; a payload of another action's type
    is rejected.
    """
    payload_type = PAYLOAD_TYPES[action]
    if payload is None:
        return payload_type()
    if not isinstance(payload, payload_type):
        raise TicketValidationError(
            {
                "payload": f"Action '{action.value}' expects"
                f" {payload_type.__name__}, got {type(payload).__name__}."
            }
        )
    return payload


def _require(violations, payload, *names, message="This field is required."):
    for name in names:
        if _blank(getattr(payload, name)):
            violations[name] = message


def _check_schedule(violations, payload):
    _require(
        violations,
        payload,
        "schedule_start",
        "schedule_finish",
        "assigned_to_id",
    )
    if (
        payload.schedule_start is not None
        and payload.schedule_finish is not None
        and payload.schedule_finish < payload.schedule_start
    ):
        violations["schedule_finish"] = (
            "Schedule finish cannot be before schedule start."
        )


def validate_payload(
    action: Action,
    payload,
    *,
    actual_start_at=None,
    has_after_evidence: bool = False,
) -> dict:
    """
    [PURE DOMAIN LOGIC]
    Collects every required-field and semantic violation of a payload.
    Returns a {field: message} dict; empty when the payload is valid.
    actual_start_at and has_after_evidence describe the ticket and
    are only consulted by finish.
    """
    violations = {}

    if action == Action.ACCEPT:
        levels = {level.value for level in CriticalLevel}
        if (
            payload.critical_level is not None
            and payload.critical_level not in levels
        ):
            violations["critical_level"] = (
                f"'{payload.critical_level}' is not a valid critical level."
            )

    elif action in (Action.PLAN, Action.REASSIGN):
        _check_schedule(violations, payload)

    elif action == Action.START:
        _require(violations, payload, "actual_start_at")

    elif action in (Action.REJECT, Action.REOPEN, Action.DELETE):
        _require(
            violations, payload, "reason", message="A reason is required."
        )

    elif action == Action.FINISH:
        _require(
            violations,
            payload,
            "downtime_avoidance_hours",
            "cost_avoidance",
            "failure_mode_id",
            "actual_finish_at",
        )
        for name in ("downtime_avoidance_hours", "cost_avoidance"):
            value = getattr(payload, name)
            if value is not None and not _non_negative(value):
                violations[name] = "Must be a non-negative number."
        if (
            payload.actual_finish_at is not None
            and actual_start_at is not None
            and payload.actual_finish_at < actual_start_at
        ):
            violations["actual_finish_at"] = (
                "Actual finish cannot be before actual start."
            )
        if not has_after_evidence:
            violations["evidence"] = (
                "At least one 'after' image must be attached before finishing."
            )

    elif action == Action.ESCALATE:
        _require(
            violations, payload, "reason", message="A reason is required."
        )
        _require(violations, payload, "escalate_to_id")

    elif action == Action.APPROVE_REVIEW:
        rating = payload.satisfaction_rating
        if rating is not None and (
            isinstance(rating, bool)
            or not isinstance(rating, int)
            or not 1 <= rating <= 5
        ):
            violations["satisfaction_rating"] = (
                "Satisfaction rating must be between 1 and 5."
            )

    return violations
