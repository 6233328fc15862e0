"""
Tests for tickets API.
"""

from datetime import timedelta

from django.test import TestCase
from django.urls import reverse
from django.utils import timezone

from rest_framework import status
from rest_framework.test import APIClient

from tickets.models import Ticket, TicketImage
from tickets.serializers import TicketListSerializer

from .helpers import advance_to_in_progress, build_plant, report


TICKETS_URL = reverse("tickets:ticket-list")


def detail_url(ticket_id):
    """Create and return a ticket detail URL."""
    return reverse("tickets:ticket-detail", args=[ticket_id])


def action_url(ticket_id, action_name):
    return reverse(
        "tickets:ticket-transition",
        kwargs={"pk": ticket_id, "action_name": action_name},
    )


def ticket_url(ticket_id, name):
    return reverse(f"tickets:ticket-{name}", args=[ticket_id])


def evidence_url(ticket_id, image_id):
    return reverse(
        "tickets:ticket-remove-evidence",
        kwargs={"pk": ticket_id, "image_id": image_id},
    )


class PublicTicketApiTests(TestCase):
    """Test unauthenticated API requests."""

    def setUp(self):
        self.client = APIClient()

    def test_auth_required(self):
        """Test auth is required to call API."""
        res = self.client.get(TICKETS_URL)

        self.assertEqual(res.status_code, status.HTTP_401_UNAUTHORIZED)


class PrivateTicketApiTests(TestCase):
    """Test authenticated API requests: CRUD, visibility and filters."""

    @classmethod
    def setUpTestData(cls):
        build_plant(cls)

    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(user=self.reporter)

    def test_create_ticket(self):
        payload = {
            "title": "Guard missing on conveyor",
            "description": "Left side guard removed",
            "production_unit": self.line.id,
            "equipment": self.equipment.id,
        }

        res = self.client.post(TICKETS_URL, payload, format="json")

        self.assertEqual(res.status_code, status.HTTP_201_CREATED)
        ticket = Ticket.objects.get(id=res.data["id"])
        self.assertEqual(ticket.created_by, self.reporter)
        self.assertEqual(res.data["status"], "open")
        self.assertEqual(res.data["critical_level"], "medium")
        self.assertEqual(res.data["version"], 1)
        self.assertTrue(res.data["ticket_number"].startswith("TKT-"))
        self.assertEqual(
            res.data["standing"],
            {"approval_level": 1, "relationship": "creator"},
        )
        self.assertEqual(res.data["available_transitions"], [])

    def test_create_ticket_equipment_elsewhere(self):
        payload = {
            "title": "Guard missing",
            "production_unit": self.line.id,
            "equipment": self.equipment2.id,
        }

        res = self.client.post(TICKETS_URL, payload, format="json")

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["code"], "validation_error")
        self.assertIn("equipment", res.data["violations"])

    def test_create_ticket_inactive_unit(self):
        self.line2.is_active = False
        self.line2.save()
        payload = {"title": "Guard missing", "production_unit": self.line2.id}

        res = self.client.post(TICKETS_URL, payload, format="json")

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Ticket.objects.exists())

    def test_list_limited_to_visible_tickets(self):
        """Reporters see their own tickets, approvers their locations."""
        own = report(self)
        foreign = report(
            self, production_unit=self.other_plant, equipment=None
        )
        foreign.created_by = self.outsider
        foreign.save()

        res = self.client.get(TICKETS_URL)

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        serializer = TicketListSerializer([own], many=True)
        self.assertEqual(res.data["results"], serializer.data)

        self.client.force_authenticate(user=self.tech)
        res = self.client.get(TICKETS_URL)
        self.assertEqual([t["id"] for t in res.data["results"]], [own.id])

        self.client.force_authenticate(user=self.outsider)
        res = self.client.get(TICKETS_URL)
        self.assertEqual(
            [t["id"] for t in res.data["results"]], [foreign.id]
        )

    def test_deleted_tickets_hidden(self):
        ticket = report(self)
        Ticket.objects.filter(pk=ticket.pk).update(deleted_at=timezone.now())

        res = self.client.get(TICKETS_URL)
        self.assertEqual(res.data["count"], 0)

        res = self.client.get(detail_url(ticket.id))
        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)

    def test_filter_by_status(self):
        open_ticket = report(self)
        rejected = report(self, title="Duplicate finding")
        Ticket.objects.filter(pk=rejected.pk).update(status="rejected_final")

        res = self.client.get(TICKETS_URL, {"status": "open"})
        self.assertEqual(
            [t["id"] for t in res.data["results"]], [open_ticket.id]
        )

        res = self.client.get(TICKETS_URL, {"is_open": "false"})
        self.assertEqual(
            [t["id"] for t in res.data["results"]], [rejected.id]
        )

    def test_search(self):
        report(self, title="Oil leak")
        steam = report(self, title="Steam trap failure")

        res = self.client.get(TICKETS_URL, {"search": "steam"})

        self.assertEqual([t["id"] for t in res.data["results"]], [steam.id])

    def test_filter_by_assignee(self):
        ticket = advance_to_in_progress(self, report(self))
        report(self, title="Unassigned finding")
        self.client.force_authenticate(user=self.tech)

        for value in ("me", str(self.tech.id)):
            res = self.client.get(TICKETS_URL, {"assigned_to": value})
            self.assertEqual(
                [t["id"] for t in res.data["results"]], [ticket.id]
            )

    def test_filter_by_malformed_user_id(self):
        for name in ("assigned_to", "created_by"):
            res = self.client.get(TICKETS_URL, {name: "abc"})

            self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
            self.assertIn(name, res.data)

    def test_pending_lists_open_work(self):
        waiting = report(self)
        finished = report(self, title="Done already")
        Ticket.objects.filter(pk=finished.pk).update(status="finished")
        self.client.force_authenticate(user=self.tech)

        res = self.client.get(reverse("tickets:ticket-pending"))

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["count"], 1)
        self.assertEqual(res.data["results"][0]["id"], waiting.id)

    def test_retrieve_detail_includes_standing(self):
        ticket = report(self)
        self.client.force_authenticate(user=self.sup)

        res = self.client.get(detail_url(ticket.id))

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["standing"]["approval_level"], 3)
        self.assertEqual(
            [entry["action"] for entry in res.data["available_transitions"]],
            ["accept", "reject", "reassign", "delete"],
        )

    def test_outsider_cannot_see_ticket(self):
        ticket = report(self)
        self.client.force_authenticate(user=self.outsider)

        res = self.client.get(detail_url(ticket.id))

        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)

    def test_update_not_allowed(self):
        """State changes only go through lifecycle actions."""
        ticket = report(self)

        res = self.client.patch(
            detail_url(ticket.id), {"status": "closed"}, format="json"
        )

        self.assertEqual(res.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)
        ticket.refresh_from_db()
        self.assertEqual(ticket.status, "open")


class TicketActionApiTests(TestCase):
    """Lifecycle actions and their error responses."""

    @classmethod
    def setUpTestData(cls):
        build_plant(cls)

    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(user=self.tech)
        self.ticket = report(self)

    def test_accept(self):
        res = self.client.post(
            action_url(self.ticket.id, "accept"),
            {"expected_version": 1},
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["status"], "accepted")
        self.assertEqual(res.data["version"], 2)
        self.assertEqual(
            res.data["available_transitions"],
            [{"action": "plan", "name": "Plan Work"}],
        )

    def test_plan_with_schedule(self):
        self.client.post(action_url(self.ticket.id, "accept"))
        start = timezone.now() + timedelta(hours=1)

        res = self.client.post(
            action_url(self.ticket.id, "plan"),
            {
                "schedule_start": start.isoformat(),
                "schedule_finish": (start + timedelta(hours=3)).isoformat(),
                "assigned_to_id": self.tech.id,
            },
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["status"], "planed")
        self.assertEqual(res.data["assigned_to"]["id"], self.tech.id)

    def test_validation_error_lists_every_field(self):
        self.client.post(action_url(self.ticket.id, "accept"))

        res = self.client.post(action_url(self.ticket.id, "plan"), {})

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["code"], "validation_error")
        self.assertEqual(
            set(res.data["violations"]),
            {"schedule_start", "schedule_finish", "assigned_to_id"},
        )

    def test_self_assignment_forbidden(self):
        self.client.post(action_url(self.ticket.id, "accept"))
        start = timezone.now()

        res = self.client.post(
            action_url(self.ticket.id, "plan"),
            {
                "schedule_start": start.isoformat(),
                "schedule_finish": start.isoformat(),
                "assigned_to_id": self.tech2.id,
            },
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(res.data["code"], "self_assignment_not_allowed")

    def test_unauthorized_action(self):
        self.client.force_authenticate(user=self.reporter)

        res = self.client.post(
            action_url(self.ticket.id, "reject"),
            {"reason": "Not mine"},
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(res.data["code"], "unauthorized")

    def test_invalid_transition(self):
        res = self.client.post(action_url(self.ticket.id, "finish"))

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["code"], "invalid_transition")

    def test_unknown_action(self):
        res = self.client.post(action_url(self.ticket.id, "teleport"))

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["code"], "invalid_transition")

    def test_stale_version_conflict(self):
        res = self.client.post(
            action_url(self.ticket.id, "reject"),
            {"reason": "Duplicate", "expected_version": 3},
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(res.data["code"], "concurrent_modification")

    def test_missing_ticket(self):
        res = self.client.post(action_url(999999, "accept"))

        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)

    def test_finish_then_review_rating_checked(self):
        ticket = advance_to_in_progress(self, self.ticket)
        TicketImage.objects.create(
            ticket=ticket,
            image_type=TicketImage.ImageType.AFTER,
            image_url="https://files.example.com/after.jpg",
            uploaded_by=self.tech,
        )
        res = self.client.post(
            action_url(ticket.id, "finish"),
            {
                "downtime_avoidance_hours": "1.00",
                "cost_avoidance": "250.00",
                "failure_mode_id": self.failure_mode.id,
                "actual_finish_at": (
                    timezone.now() + timedelta(hours=1)
                ).isoformat(),
            },
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["status"], "finished")

        self.client.force_authenticate(user=self.reporter)
        res = self.client.post(
            action_url(ticket.id, "approve-review"),
            {"satisfaction_rating": 9},
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("satisfaction_rating", res.data["violations"])

    def test_delete_action(self):
        self.client.force_authenticate(user=self.sup)

        res = self.client.post(
            action_url(self.ticket.id, "delete"),
            {"reason": "Duplicate"},
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Ticket.objects.active().exists())

    def test_destroy(self):
        self.client.force_authenticate(user=self.sup)

        res = self.client.delete(
            detail_url(self.ticket.id), {"reason": "Test entry"}, format="json"
        )

        self.assertEqual(res.status_code, status.HTTP_204_NO_CONTENT)
        self.ticket.refresh_from_db()
        self.assertTrue(self.ticket.is_deleted)
        self.assertEqual(self.ticket.deletion_reason, "Test entry")

    def test_destroy_by_technician_forbidden(self):
        res = self.client.delete(
            detail_url(self.ticket.id), {"reason": "Test entry"}, format="json"
        )

        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)
        self.assertTrue(Ticket.objects.active().exists())


class TicketActivityApiTests(TestCase):
    """History, comments, evidence and assignee lookups."""

    @classmethod
    def setUpTestData(cls):
        build_plant(cls)

    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(user=self.reporter)
        self.ticket = report(self)

    def test_history(self):
        res = self.client.get(ticket_url(self.ticket.id, "history"))

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(len(res.data), 1)
        self.assertEqual(res.data[0]["to_status"], "open")
        self.assertEqual(res.data[0]["changed_by"]["id"], self.reporter.id)

    def test_add_and_list_comments(self):
        url = ticket_url(self.ticket.id, "comments")

        res = self.client.post(url, {"comment": "Photo attached"})
        self.assertEqual(res.status_code, status.HTTP_201_CREATED)
        self.assertEqual(res.data["kind"], "note")

        res = self.client.get(url)
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(
            [c["comment"] for c in res.data], ["Photo attached"]
        )

    def test_empty_comment_rejected(self):
        res = self.client.post(
            ticket_url(self.ticket.id, "comments"), {"comment": "  "}
        )

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["code"], "validation_error")

    def test_add_evidence(self):
        res = self.client.post(
            ticket_url(self.ticket.id, "evidence"),
            {
                "image_type": "before",
                "image_url": "https://files.example.com/leak.jpg",
                "image_name": "leak.jpg",
            },
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_201_CREATED)
        self.assertEqual(res.data["uploaded_by"]["id"], self.reporter.id)
        self.assertEqual(self.ticket.images.count(), 1)

    def test_assignees(self):
        url = ticket_url(self.ticket.id, "assignees")

        res = self.client.get(url)
        self.assertEqual(
            [u["email"] for u in res.data],
            [
                "mgr@example.com",
                "sup2@example.com",
                "sup@example.com",
                "tech2@example.com",
                "tech@example.com",
            ],
        )

        res = self.client.get(url, {"escalation_only": "true"})
        self.assertEqual(
            [u["email"] for u in res.data],
            ["sup2@example.com", "sup@example.com"],
        )

    def test_list_and_remove_evidence(self):
        image = TicketImage.objects.create(
            ticket=self.ticket,
            image_type=TicketImage.ImageType.AFTER,
            image_url="https://files.example.com/fixed.jpg",
            uploaded_by=self.reporter,
        )
        url = ticket_url(self.ticket.id, "evidence")

        res = self.client.get(url)
        self.assertEqual([i["id"] for i in res.data], [image.id])

        res = self.client.get(detail_url(self.ticket.id))
        self.assertEqual([i["id"] for i in res.data["images"]], [image.id])

        res = self.client.delete(evidence_url(self.ticket.id, image.id))
        self.assertEqual(res.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(self.ticket.images.exists())

    def test_remove_missing_evidence(self):
        res = self.client.delete(evidence_url(self.ticket.id, 999999))

        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(res.data["code"], "not_found")

    def test_outsider_cannot_remove_evidence(self):
        image = TicketImage.objects.create(
            ticket=self.ticket,
            image_type=TicketImage.ImageType.BEFORE,
            image_url="https://files.example.com/leak.jpg",
            uploaded_by=self.reporter,
        )
        self.client.force_authenticate(user=self.outsider)

        res = self.client.delete(evidence_url(self.ticket.id, image.id))

        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)
        self.assertTrue(self.ticket.images.exists())
