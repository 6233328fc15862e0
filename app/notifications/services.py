"""
Application layer - queues notification records for ticket events.
Dispatch is best-effort: it runs after the ticket transaction commits and
a failure here never reaches the caller of the lifecycle action.
"""

import logging

from django.db import transaction

from .models import Notification, UserNotification

logger = logging.getLogger(__name__)


def dispatch_ticket_event(
    *,
    ticket_id: int,
    event_type: str,
    triggered_by_id=None,
    recipient_ids=(),
    payload=None,
    priority: str = Notification.Priority.MEDIUM,
    requires_action: bool = False,
):
    """
    Creates one Notification and a UserNotification per recipient.
    The actor never notifies themselves. Returns None when nobody is left
    to notify.
    """
    recipients = sorted(
        {
            user_id
            for user_id in recipient_ids
            if user_id is not None and user_id != triggered_by_id
        }
    )
    if not recipients:
        logger.debug(
            "No recipients for %s on ticket %s", event_type, ticket_id
        )
        return None

    with transaction.atomic():
        notification = Notification.objects.create(
            entity_type=Notification.EntityType.TICKET,
            entity_id=ticket_id,
            event_type=event_type,
            triggered_by_id=triggered_by_id,
            payload=payload or {},
            priority=priority,
            requires_action=requires_action,
            action_url=f"/tickets/{ticket_id}/",
        )
        UserNotification.objects.bulk_create(
            [
                UserNotification(notification=notification, user_id=user_id)
                for user_id in recipients
            ]
        )

    logger.info(
        "Queued %s for ticket %s to %d recipient(s)",
        event_type,
        ticket_id,
        len(recipients),
    )
    return notification


def schedule_ticket_event(**kwargs):
    """
    Registers dispatch_ticket_event to run once the surrounding
    transaction commits. Nothing is sent if the transaction rolls back.
    """

    def _dispatch():
        try:
            dispatch_ticket_event(**kwargs)
        except Exception:
            logger.exception(
                "Failed to dispatch %s for ticket %s",
                kwargs.get("event_type"),
                kwargs.get("ticket_id"),
            )

    transaction.on_commit(_dispatch)
