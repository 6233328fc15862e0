"""
Application layer - Django-aware orchestrator service for ticket objects.
Locks the ticket, resolves the actor's standing, calls Domain for the
verdict, then writes the change, history, comment and notification in
one transaction.
"""

import logging

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import F, Q
from django.utils import timezone

from notifications.models import Notification
from notifications.services import schedule_ticket_event
from references.models import Equipment, FailureMode, ProductionUnit
from users.directory import get_covered_unit_ids, resolve_approval_level

from . import assignment
from .actions import (
    Action,
    CriticalLevel,
    DeletePayload,
    TERMINAL_STATUSES,
    TicketStatus,
    payload_note,
)
from .models import (
    Ticket,
    TicketComment,
    TicketDailyCounter,
    TicketImage,
    TicketStatusHistory,
)
from .workflows import (
    ConcurrentModificationError,
    RoleStanding,
    TicketNotFoundError,
    TicketValidationError,
    UnauthorizedActionError,
    authorize,
    check_payload_type,
    get_available_actions,
    get_role_standing,
    get_transition_rule,
    parse_action,
    resolve_target_status,
    validate_payload,
    MANAGER,
    SUPERVISOR,
    TECHNICIAN,
)

logger = logging.getLogger(__name__)

User = get_user_model()


ACTION_EVENTS = {
    Action.ACCEPT: Notification.EventType.TICKET_ACCEPTED,
    Action.PLAN: Notification.EventType.TICKET_PLANNED,
    Action.START: Notification.EventType.TICKET_STARTED,
    Action.REJECT: Notification.EventType.TICKET_REJECTED,
    Action.FINISH: Notification.EventType.TICKET_FINISHED,
    Action.ESCALATE: Notification.EventType.TICKET_ESCALATED,
    Action.APPROVE_REVIEW: Notification.EventType.TICKET_REVIEWED,
    Action.REOPEN: Notification.EventType.TICKET_REOPENED,
    Action.APPROVE_CLOSE: Notification.EventType.TICKET_CLOSED,
    Action.REASSIGN: Notification.EventType.TICKET_REASSIGNED,
    Action.DELETE: Notification.EventType.TICKET_DELETED,
}

# Statuses where someone else must act next
HANDOFF_STATUSES = (
    TicketStatus.REJECTED_PENDING_L3_REVIEW,
    TicketStatus.FINISHED,
    TicketStatus.REVIEWED,
)

# Finished tickets wait on the reporter, not on the assignee or approvers
NOT_PENDING_STATUSES = TERMINAL_STATUSES | {TicketStatus.FINISHED}

PRIORITY_BY_CRITICAL_LEVEL = {
    CriticalLevel.LOW.value: Notification.Priority.LOW,
    CriticalLevel.MEDIUM.value: Notification.Priority.MEDIUM,
    CriticalLevel.HIGH.value: Notification.Priority.HIGH,
    CriticalLevel.CRITICAL.value: Notification.Priority.CRITICAL,
}


# --- PERSISTENCE HELPERS ---


def _load_ticket_for_update(ticket_id) -> Ticket:
    """Loads a live ticket with a row lock held until commit."""
    try:
        return Ticket.objects.active().select_for_update().get(pk=ticket_id)
    except (Ticket.DoesNotExist, ValueError, TypeError):
        raise TicketNotFoundError(f"Ticket {ticket_id} not found.")


def get_ticket(ticket_id) -> Ticket:
    """Loads a live ticket without locking it."""
    try:
        return Ticket.objects.active().get(pk=ticket_id)
    except (Ticket.DoesNotExist, ValueError, TypeError):
        raise TicketNotFoundError(f"Ticket {ticket_id} not found.")


def _save_ticket(ticket: Ticket, changes: dict):
    """
    Writes changes only if nobody else has written since the ticket was
    read (version compare-and-swap), then refreshes the instance.
    """
    updated = (
        Ticket.objects.active()
        .filter(pk=ticket.pk, version=ticket.version)
        .update(
            version=F("version") + 1,
            updated_at=timezone.now(),
            **changes,
        )
    )
    if not updated:
        raise ConcurrentModificationError(
            f"Ticket {ticket.ticket_number} was modified by another request;"
            " re-read it and retry."
        )
    ticket.refresh_from_db()


def _append_history(ticket, from_status, to_status, user, notes):
    return TicketStatusHistory.objects.create(
        ticket=ticket,
        from_status=str(from_status) if from_status else None,
        to_status=str(to_status),
        changed_by=user,
        notes=notes,
    )


def _generate_ticket_number() -> str:
    """Next TKT-YYYYMMDD-NNN number from the per-day counter."""
    date_str = timezone.localdate().strftime("%Y%m%d")
    TicketDailyCounter.objects.select_for_update().get_or_create(
        date_str=date_str
    )
    TicketDailyCounter.objects.filter(date_str=date_str).update(
        case_number=F("case_number") + 1
    )
    case_number = TicketDailyCounter.objects.get(
        date_str=date_str
    ).case_number
    return f"TKT-{date_str}-{case_number:03d}"


def has_after_evidence(ticket: Ticket) -> bool:
    return TicketImage.objects.filter(
        ticket=ticket, image_type=TicketImage.ImageType.AFTER
    ).exists()


# --- STANDING, CONTEXT, VISIBILITY ---


def get_ticket_standing(ticket: Ticket, user: User) -> RoleStanding:
    """Resolves the actor's location-scoped level and relationship."""
    approval_level = resolve_approval_level(user, ticket.production_unit)
    return get_role_standing(ticket, user, approval_level)


def get_ticket_context(ticket: Ticket, user: User) -> dict:
    """
    [APPLICATION SERVICE]
    Gathers the contextual data for the TicketDetailSerializer.
    """
    standing = get_ticket_standing(ticket, user)
    return {
        "available_transitions": get_available_actions(
            ticket.status, standing
        ),
        "standing": {
            "approval_level": standing.approval_level,
            "relationship": standing.relationship,
        },
    }


def get_ticket_visibility_filter(user) -> Q:
    """
    Returns a Q filter for tickets visible to the given user:
    their own reports, their assignments, and every ticket at a location
    where they hold technician level or above.
    """
    if not user or not user.is_authenticated:
        return Q(pk__in=[])

    return (
        Q(created_by=user)
        | Q(assigned_to=user)
        | Q(production_unit_id__in=get_covered_unit_ids(user))
    )


# --- NOTIFICATIONS ---


def _notify(
    ticket: Ticket,
    event_type,
    user,
    *,
    notify_level=None,
    requires_action=False,
    note=None,
):
    """
    Queues a notification to the reporter, the assignee and, when
    notify_level is given, every approver at that level or above.
    """
    recipient_ids = {ticket.created_by_id, ticket.assigned_to_id}
    if notify_level is not None:
        recipient_ids.update(
            candidate.id
            for candidate in assignment.get_eligible_assignees(
                ticket.production_unit, min_level=notify_level
            )
        )

    schedule_ticket_event(
        ticket_id=ticket.id,
        event_type=event_type,
        triggered_by_id=user.id,
        recipient_ids=list(recipient_ids),
        priority=PRIORITY_BY_CRITICAL_LEVEL.get(
            ticket.critical_level, Notification.Priority.MEDIUM
        ),
        requires_action=requires_action,
        payload={
            "ticket_number": ticket.ticket_number,
            "title": ticket.title,
            "status": ticket.status,
            "actor": user.display_name,
            "note": note,
        },
    )


def _notify_level(action: Action, to_status: TicketStatus):
    """Approver level that must act next, if the action hands off work."""
    if (
        action == Action.REJECT
        and to_status == TicketStatus.REJECTED_PENDING_L3_REVIEW
    ):
        return SUPERVISOR
    if action == Action.APPROVE_REVIEW:
        return MANAGER
    return None


# --- VALIDATION AGAINST THE DIRECTORY AND REFERENCES ---


def _lookup(queryset, **lookup):
    """First match, or None when nothing matches or an id is malformed."""
    try:
        return queryset.filter(**lookup).first()
    except (ValueError, TypeError):
        return None


def _location_changes(ticket: Ticket, payload, violations: dict) -> dict:
    """Optional relocation fields accepted with 'accept'."""
    changes = {}
    unit = ticket.production_unit

    if (
        payload.production_unit_id is not None
        and payload.production_unit_id != ticket.production_unit_id
    ):
        unit = _lookup(
            ProductionUnit.objects.filter(is_active=True),
            pk=payload.production_unit_id,
        )
        if unit is None:
            violations["production_unit_id"] = "Unknown production unit."
            return changes
        changes["production_unit"] = unit
        # Equipment from the old location cannot stay on the ticket
        if (
            ticket.equipment_id is not None
            and ticket.equipment.production_unit_id != unit.id
        ):
            changes["equipment"] = None

    if payload.equipment_id is not None:
        equipment = _lookup(
            Equipment.objects.filter(production_unit=unit, is_active=True),
            pk=payload.equipment_id,
        )
        if equipment is None:
            violations["equipment_id"] = (
                "Equipment does not belong to the production unit."
            )
        else:
            changes["equipment"] = equipment

    if payload.critical_level is not None:
        changes["critical_level"] = payload.critical_level

    return changes


def _prepare_changes(
    action: Action, *, ticket: Ticket, user, standing, payload, now
):
    """
    Validates the payload against the ticket, the directory and the
    reference tables, collecting every violation.
    Returns (field changes, new assignee or None).
    """
    if action == Action.PLAN:
        assignment.check_self_assignment(
            actor=user, standing=standing, assignee_id=payload.assigned_to_id
        )

    violations = validate_payload(
        action,
        payload,
        actual_start_at=ticket.actual_start_at,
        has_after_evidence=(
            action == Action.FINISH and has_after_evidence(ticket)
        ),
    )
    changes = {}
    assignee = None

    if action == Action.ACCEPT:
        changes.update(_location_changes(ticket, payload, violations))
        changes.update(accepted_by=user, accepted_at=now)

    elif action in (Action.PLAN, Action.REASSIGN):
        assignee = assignment.resolve_assignee(
            production_unit=ticket.production_unit,
            assignee_id=payload.assigned_to_id,
        )
        if payload.assigned_to_id is not None and assignee is None:
            violations["assigned_to_id"] = (
                "User is not eligible for assignment at this location."
            )
        changes.update(
            schedule_start=payload.schedule_start,
            schedule_finish=payload.schedule_finish,
            assigned_to=assignee,
        )

    elif action == Action.START:
        changes.update(actual_start_at=payload.actual_start_at)

    elif action == Action.REJECT:
        changes.update(
            rejected_by=user,
            rejected_at=now,
            rejection_reason=payload_note(payload),
        )

    elif action == Action.FINISH:
        failure_mode = None
        if payload.failure_mode_id is not None:
            failure_mode = _lookup(
                FailureMode.objects.filter(is_active=True),
                pk=payload.failure_mode_id,
            )
            if failure_mode is None:
                violations["failure_mode_id"] = "Unknown failure mode."
        changes.update(
            downtime_avoidance_hours=payload.downtime_avoidance_hours,
            cost_avoidance=payload.cost_avoidance,
            failure_mode=failure_mode,
            actual_finish_at=payload.actual_finish_at,
            finished_by=user,
            finished_at=now,
        )

    elif action == Action.ESCALATE:
        # Escalation goes to a supervisor other than the actor
        assignee = assignment.resolve_assignee(
            production_unit=ticket.production_unit,
            assignee_id=payload.escalate_to_id,
            escalation_only=True,
            exclude=user,
        )
        if payload.escalate_to_id is not None and assignee is None:
            violations["escalate_to_id"] = (
                "Escalation target must be another supervisor (level 3)"
                " at this location."
            )
        changes.update(
            assigned_to=assignee,
            escalated_by=user,
            escalated_at=now,
            escalation_reason=payload_note(payload),
        )

    elif action == Action.APPROVE_REVIEW:
        changes.update(
            satisfaction_rating=payload.satisfaction_rating,
            reviewed_by=user,
            reviewed_at=now,
        )

    elif action == Action.APPROVE_CLOSE:
        changes.update(closed_by=user, closed_at=now)

    if violations:
        raise TicketValidationError(violations)

    return changes, assignee


# --- LIFECYCLE ENGINE ---


@transaction.atomic
def apply_action(
    *,
    ticket_id,
    action,
    user: User,
    payload=None,
    expected_version=None,
) -> Ticket:
    """
    Applies one lifecycle action and returns the refreshed ticket.
    Nothing is written unless every check passes; any error rolls the
    whole action back. expected_version, when given, must match the
    version the caller read.
    """
    action = parse_action(action)

    ticket = _load_ticket_for_update(ticket_id)
    if expected_version is not None and ticket.version != expected_version:
        raise ConcurrentModificationError(
            f"Ticket {ticket.ticket_number} is at version {ticket.version},"
            f" not {expected_version}; re-read it and retry."
        )

    standing = get_ticket_standing(ticket, user)
    rule = get_transition_rule(action, ticket.status)
    authorize(rule, standing)
    payload = check_payload_type(action, payload)

    if action == Action.DELETE:
        return _soft_delete(ticket, user, payload)

    now = timezone.now()
    changes, assignee = _prepare_changes(
        action,
        ticket=ticket,
        user=user,
        standing=standing,
        payload=payload,
        now=now,
    )

    from_status = TicketStatus(ticket.status)
    to_status = resolve_target_status(rule, standing) or from_status
    previous_assignee_id = ticket.assigned_to_id
    changes["status"] = to_status.value

    _save_ticket(ticket, changes)

    note = payload_note(payload)
    _append_history(
        ticket,
        from_status,
        to_status,
        user,
        note or f"{rule.name} by {user.display_name}",
    )
    if assignee is not None and assignee.id != previous_assignee_id:
        assignment.record_assignment(
            ticket=ticket,
            status=to_status,
            changed_by=user,
            assignee=assignee,
        )

    if from_status != to_status:
        message = f"Status changed from {from_status} to {to_status}"
    else:
        message = rule.name
    TicketComment.objects.create(
        ticket=ticket,
        user=user,
        comment=f"{message} - {note}" if note else message,
        kind=TicketComment.Kind.STATUS_CHANGE,
    )

    _notify(
        ticket,
        ACTION_EVENTS[action],
        user,
        notify_level=_notify_level(action, to_status),
        requires_action=to_status in HANDOFF_STATUSES,
        note=note,
    )

    logger.info(
        "Ticket %s: %s by user %s (%s -> %s, version %s)",
        ticket.ticket_number,
        action.value,
        user.id,
        from_status,
        to_status,
        ticket.version,
    )
    return ticket


def _soft_delete(ticket: Ticket, user, payload) -> Ticket:
    """
    Flags the ticket deleted and leaves an audit comment.
    Not a status transition, so no history entry is written.
    """
    violations = validate_payload(Action.DELETE, payload)
    if violations:
        raise TicketValidationError(violations)

    reason = payload_note(payload)
    _save_ticket(
        ticket,
        {
            "deleted_at": timezone.now(),
            "deleted_by": user,
            "deletion_reason": reason,
        },
    )
    TicketComment.objects.create(
        ticket=ticket,
        user=user,
        comment=f"Ticket deleted - {reason}",
        kind=TicketComment.Kind.AUDIT,
    )
    _notify(ticket, ACTION_EVENTS[Action.DELETE], user, note=reason)

    logger.warning(
        "Ticket %s deleted by user %s: %s",
        ticket.ticket_number,
        user.id,
        reason,
    )
    return ticket


def delete_ticket(*, ticket_id, user: User, reason: str) -> Ticket:
    """Soft-deletes a ticket; supervisors and above, reason required."""
    return apply_action(
        ticket_id=ticket_id,
        action=Action.DELETE,
        user=user,
        payload=DeletePayload(reason=reason),
    )


# --- CREATE, COMMENT, EVIDENCE ---


@transaction.atomic
def create_ticket(
    *,
    user: User,
    title: str,
    production_unit: ProductionUnit,
    description: str = "",
    equipment: Equipment = None,
    critical_level: str = CriticalLevel.MEDIUM.value,
) -> Ticket:
    """
    Reports a new finding. The ticket starts 'open', gets the next daily
    ticket number and an initial history entry; technicians at the
    location are notified.
    """
    violations = {}
    if not title or not title.strip():
        violations["title"] = "This field is required."
    if not production_unit.is_active:
        violations["production_unit"] = "Production unit is inactive."
    if (
        equipment is not None
        and equipment.production_unit_id != production_unit.id
    ):
        violations["equipment"] = (
            "Equipment does not belong to the production unit."
        )
    if critical_level not in {level.value for level in CriticalLevel}:
        violations["critical_level"] = (
            f"'{critical_level}' is not a valid critical level."
        )
    if violations:
        raise TicketValidationError(violations)

    ticket = Ticket.objects.create(
        ticket_number=_generate_ticket_number(),
        title=title.strip(),
        description=description or "",
        production_unit=production_unit,
        equipment=equipment,
        critical_level=critical_level,
        status=TicketStatus.OPEN.value,
        created_by=user,
    )
    _append_history(
        ticket, None, TicketStatus.OPEN, user, "Ticket reported"
    )
    _notify(
        ticket,
        Notification.EventType.TICKET_CREATED,
        user,
        notify_level=TECHNICIAN,
        requires_action=True,
    )

    logger.info(
        "Ticket %s created by user %s at %s",
        ticket.ticket_number,
        user.id,
        production_unit.code,
    )
    return ticket


def _ensure_participant(ticket: Ticket, user: User, verb: str):
    """Reporter, assignee, or an approver at the ticket's location."""
    if get_ticket_standing(ticket, user).relationship == "none":
        raise UnauthorizedActionError(
            f"Only ticket participants may {verb} this ticket."
        )


@transaction.atomic
def add_comment(*, ticket_id, user: User, comment: str) -> TicketComment:
    """Adds a free-text note by a participant."""
    ticket = get_ticket(ticket_id)
    _ensure_participant(ticket, user, "comment on")

    if not comment or not comment.strip():
        raise TicketValidationError({"comment": "Comment cannot be empty."})

    return TicketComment.objects.create(
        ticket=ticket,
        user=user,
        comment=comment.strip(),
        kind=TicketComment.Kind.NOTE,
    )


@transaction.atomic
def add_evidence(
    *,
    ticket_id,
    user: User,
    image_type: str,
    image_url: str,
    image_name: str = "",
) -> TicketImage:
    """
    Records metadata for an image already uploaded to external storage.
    'after' images unlock the finish action.
    """
    ticket = get_ticket(ticket_id)
    _ensure_participant(ticket, user, "attach evidence to")

    violations = {}
    if image_type not in TicketImage.ImageType.values:
        violations["image_type"] = (
            f"'{image_type}' is not a valid image type."
        )
    if not image_url or not image_url.strip():
        violations["image_url"] = "This field is required."
    if violations:
        raise TicketValidationError(violations)

    image = TicketImage.objects.create(
        ticket=ticket,
        image_type=image_type,
        image_url=image_url.strip(),
        image_name=image_name or "",
        uploaded_by=user,
    )
    logger.info(
        "Ticket %s: %s evidence added by user %s",
        ticket.ticket_number,
        image_type,
        user.id,
    )
    return image


@transaction.atomic
def remove_evidence(*, ticket_id, user: User, image_id) -> None:
    """
    Deletes image metadata attached by mistake. Removing the last 'after'
    image blocks the finish action again.
    """
    ticket = get_ticket(ticket_id)
    _ensure_participant(ticket, user, "remove evidence from")

    image = _lookup(TicketImage.objects.filter(ticket=ticket), pk=image_id)
    if image is None:
        raise TicketNotFoundError(
            f"Image {image_id} not found on ticket {ticket.ticket_number}."
        )
    image.delete()

    logger.info(
        "Ticket %s: %s evidence %s removed by user %s",
        ticket.ticket_number,
        image.image_type,
        image_id,
        user.id,
    )


def get_pending_tickets_filter(user) -> Q:
    """
    Open work for a user: tickets they reported, or tickets at locations
    where they hold technician level or above, that are not yet finished,
    closed or finally rejected.
    """
    if not user or not user.is_authenticated:
        return Q(pk__in=[])

    involved = Q(created_by=user) | Q(
        production_unit_id__in=get_covered_unit_ids(user)
    )
    return involved & ~Q(
        status__in=[status.value for status in NOT_PENDING_STATUSES]
    )
