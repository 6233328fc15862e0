"""
Ticket lifecycle vocabulary - statuses, action names and one payload
type per action. Plain Python, no Django imports.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional


class TicketStatus(str, Enum):
    """Workflow positions of a ticket."""

    OPEN = "open"
    ACCEPTED = "accepted"
    PLANED = "planed"
    IN_PROGRESS = "in_progress"
    REJECTED_PENDING_L3_REVIEW = "rejected_pending_l3_review"
    REJECTED_FINAL = "rejected_final"
    FINISHED = "finished"
    REOPENED_IN_PROGRESS = "reopened_in_progress"
    REVIEWED = "reviewed"
    CLOSED = "closed"

    def __str__(self):
        return self.value

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").capitalize()


TERMINAL_STATUSES = frozenset(
    {TicketStatus.CLOSED, TicketStatus.REJECTED_FINAL}
)


class Action(str, Enum):
    """Lifecycle actions, named as they appear in the API."""

    ACCEPT = "accept"
    PLAN = "plan"
    START = "start"
    REJECT = "reject"
    FINISH = "finish"
    ESCALATE = "escalate"
    APPROVE_REVIEW = "approve-review"
    REOPEN = "reopen"
    APPROVE_CLOSE = "approve-close"
    REASSIGN = "reassign"
    DELETE = "delete"

    def __str__(self):
        return self.value


class CriticalLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    def __str__(self):
        return self.value


# --- Payloads ---
# Every field is optional at the type level; the workflow validator
# decides what is required so all violations are reported together.


@dataclass(frozen=True)
class AcceptPayload:
    note: Optional[str] = None
    production_unit_id: Optional[int] = None
    equipment_id: Optional[int] = None
    critical_level: Optional[str] = None


@dataclass(frozen=True)
class PlanPayload:
    schedule_start: Optional[datetime] = None
    schedule_finish: Optional[datetime] = None
    assigned_to_id: Optional[int] = None
    note: Optional[str] = None


@dataclass(frozen=True)
class StartPayload:
    actual_start_at: Optional[datetime] = None
    note: Optional[str] = None


@dataclass(frozen=True)
class RejectPayload:
    reason: Optional[str] = None


@dataclass(frozen=True)
class FinishPayload:
    downtime_avoidance_hours: Optional[Decimal] = None
    cost_avoidance: Optional[Decimal] = None
    failure_mode_id: Optional[int] = None
    actual_finish_at: Optional[datetime] = None
    note: Optional[str] = None


@dataclass(frozen=True)
class EscalatePayload:
    reason: Optional[str] = None
    escalate_to_id: Optional[int] = None


@dataclass(frozen=True)
class ApproveReviewPayload:
    satisfaction_rating: Optional[int] = None
    note: Optional[str] = None


@dataclass(frozen=True)
class ReopenPayload:
    reason: Optional[str] = None


@dataclass(frozen=True)
class ApproveClosePayload:
    note: Optional[str] = None


@dataclass(frozen=True)
class ReassignPayload:
    schedule_start: Optional[datetime] = None
    schedule_finish: Optional[datetime] = None
    assigned_to_id: Optional[int] = None
    note: Optional[str] = None


@dataclass(frozen=True)
class DeletePayload:
    reason: Optional[str] = None


PAYLOAD_TYPES = {
    Action.ACCEPT: AcceptPayload,
    Action.PLAN: PlanPayload,
    Action.START: StartPayload,
    Action.REJECT: RejectPayload,
    Action.FINISH: FinishPayload,
    Action.ESCALATE: EscalatePayload,
    Action.APPROVE_REVIEW: ApproveReviewPayload,
    Action.REOPEN: ReopenPayload,
    Action.APPROVE_CLOSE: ApproveClosePayload,
    Action.REASSIGN: ReassignPayload,
    Action.DELETE: DeletePayload,
}


def payload_note(payload) -> Optional[str]:
    """The free-text part of a payload (note or reason), if any."""
    for name in ("note", "reason"):
        value = getattr(payload, name, None)
        if value and value.strip():
            return value.strip()
    return None

