"""
Tests for queuing ticket notifications.
"""

from unittest import mock

from django.db import transaction
from django.test import TestCase
from django.contrib.auth import get_user_model

from notifications import services
from notifications.models import Notification, UserNotification

User = get_user_model()


class DispatchTicketEventTests(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.actor = User.objects.create_user(
            email="actor@example.com", password="testpw123"
        )
        cls.reporter = User.objects.create_user(
            email="reporter@example.com", password="testpw123"
        )
        cls.tech = User.objects.create_user(
            email="tech@example.com", password="testpw123"
        )

    def test_fans_out_to_recipients_except_actor(self):
        notification = services.dispatch_ticket_event(
            ticket_id=7,
            event_type=Notification.EventType.TICKET_ACCEPTED,
            triggered_by_id=self.actor.id,
            recipient_ids=[
                self.actor.id,
                self.reporter.id,
                self.tech.id,
                self.tech.id,
                None,
            ],
            payload={"ticket_number": "TKT-20250101-001"},
        )

        self.assertEqual(notification.entity_type, "TICKET")
        self.assertEqual(notification.action_url, "/tickets/7/")
        self.assertEqual(
            set(
                notification.deliveries.values_list("user_id", flat=True)
            ),
            {self.reporter.id, self.tech.id},
        )

    def test_no_recipients_creates_nothing(self):
        result = services.dispatch_ticket_event(
            ticket_id=7,
            event_type=Notification.EventType.TICKET_CLOSED,
            triggered_by_id=self.actor.id,
            recipient_ids=[self.actor.id],
        )

        self.assertIsNone(result)
        self.assertFalse(Notification.objects.exists())


class ScheduleTicketEventTests(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.reporter = User.objects.create_user(
            email="reporter@example.com", password="testpw123"
        )

    def test_dispatches_after_commit(self):
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            services.schedule_ticket_event(
                ticket_id=3,
                event_type=Notification.EventType.TICKET_CREATED,
                recipient_ids=[self.reporter.id],
            )
            # Nothing is queued before the transaction commits
            self.assertFalse(Notification.objects.exists())

        self.assertEqual(len(callbacks), 1)
        self.assertEqual(
            UserNotification.objects.filter(user=self.reporter).count(), 1
        )

    def test_nothing_dispatched_on_rollback(self):
        class Boom(Exception):
            pass

        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            with self.assertRaises(Boom):
                with transaction.atomic():
                    services.schedule_ticket_event(
                        ticket_id=3,
                        event_type=Notification.EventType.TICKET_CREATED,
                        recipient_ids=[self.reporter.id],
                    )
                    raise Boom()

        self.assertEqual(callbacks, [])
        self.assertFalse(Notification.objects.exists())

    def test_dispatch_failure_is_logged_not_raised(self):
        with mock.patch.object(
            services,
            "dispatch_ticket_event",
            side_effect=RuntimeError("queue down"),
        ):
            with self.assertLogs("notifications.services", "ERROR") as logs:
                with self.captureOnCommitCallbacks(execute=True):
                    services.schedule_ticket_event(
                        ticket_id=3,
                        event_type=Notification.EventType.TICKET_CREATED,
                        recipient_ids=[self.reporter.id],
                    )

        self.assertIn("Failed to dispatch", logs.output[0])
