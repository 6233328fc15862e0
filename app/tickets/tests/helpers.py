"""
Shared fixtures for ticket tests: a small plant hierarchy with one user
per approval level.
"""

from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.utils import timezone

from references.models import Equipment, FailureMode, ProductionUnit
from users.models import ApprovalLevel, TicketApproval

from tickets import services
from tickets.actions import (
    FinishPayload,
    PlanPayload,
    StartPayload,
)


def create_user(email, **params):
    """Create and return a new user."""
    return get_user_model().objects.create_user(
        email=email, password="testpw123", **params
    )


def grant(user, unit, level):
    return TicketApproval.objects.create(
        user=user, production_unit=unit, approval_level=level
    )


def build_plant(test_case):
    """
    PLT > LINE1, PLT > LINE2.
    reporter holds no grant (level 1); tech and tech2 are level 2 on LINE1;
    sup is level 3 on the plant, sup2 level 3 on LINE1; mgr level 4 on
    the plant. outsider works at another plant.
    """
    tc = test_case
    tc.plant = ProductionUnit.objects.create(code="PLT", name="Plant")
    tc.line = ProductionUnit.objects.create(
        code="LINE1", name="Line 1", parent=tc.plant
    )
    tc.line2 = ProductionUnit.objects.create(
        code="LINE2", name="Line 2", parent=tc.plant
    )
    tc.other_plant = ProductionUnit.objects.create(
        code="PLT9", name="Other plant"
    )
    tc.equipment = Equipment.objects.create(
        code="EQ1", name="Filler", production_unit=tc.line
    )
    tc.equipment2 = Equipment.objects.create(
        code="EQ2", name="Capper", production_unit=tc.line2
    )
    tc.failure_mode = FailureMode.objects.create(code="FM1", name="Wear")

    tc.reporter = create_user("reporter@example.com", full_name="Rita")
    tc.tech = create_user("tech@example.com", full_name="Tom")
    tc.tech2 = create_user("tech2@example.com")
    tc.sup = create_user("sup@example.com", full_name="Sue")
    tc.sup2 = create_user("sup2@example.com")
    tc.mgr = create_user("mgr@example.com", full_name="Max")
    tc.outsider = create_user("outsider@example.com")

    grant(tc.tech, tc.line, ApprovalLevel.TECHNICIAN)
    grant(tc.tech2, tc.line, ApprovalLevel.TECHNICIAN)
    grant(tc.sup, tc.plant, ApprovalLevel.SUPERVISOR)
    grant(tc.sup2, tc.line, ApprovalLevel.SUPERVISOR)
    grant(tc.mgr, tc.plant, ApprovalLevel.MANAGER)
    grant(tc.outsider, tc.other_plant, ApprovalLevel.MANAGER)


def report(test_case, **params):
    """The reporter raises a finding on LINE1."""
    defaults = {
        "title": "Oil leak under filler",
        "production_unit": test_case.line,
        "equipment": test_case.equipment,
    }
    defaults.update(params)
    return services.create_ticket(user=test_case.reporter, **defaults)


def plan_payload(assignee, payload_class=PlanPayload):
    start = timezone.now() + timedelta(hours=1)
    return payload_class(
        schedule_start=start,
        schedule_finish=start + timedelta(hours=4),
        assigned_to_id=assignee.id,
    )


def finish_payload(test_case, **params):
    defaults = {
        "downtime_avoidance_hours": Decimal("2.50"),
        "cost_avoidance": Decimal("1500.00"),
        "failure_mode_id": test_case.failure_mode.id,
        "actual_finish_at": timezone.now() + timedelta(hours=2),
    }
    defaults.update(params)
    return FinishPayload(**defaults)


def advance_to_in_progress(test_case, ticket, technician=None):
    """Accept, plan and start the ticket as a technician."""
    technician = technician or test_case.tech
    services.apply_action(
        ticket_id=ticket.id, action="accept", user=technician
    )
    services.apply_action(
        ticket_id=ticket.id,
        action="plan",
        user=technician,
        payload=plan_payload(technician),
    )
    return services.apply_action(
        ticket_id=ticket.id,
        action="start",
        user=technician,
        payload=StartPayload(actual_start_at=timezone.now()),
    )
