"""
Tests for the Django admin interface of the notifications app.
"""

from django.test import TestCase, Client
from django.contrib.auth import get_user_model
from django.urls import reverse

from notifications.models import Notification, UserNotification

User = get_user_model()


class NotificationAdminTests(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.admin_user = User.objects.create_superuser(
            email="admin@example.com",
            password="adminpw123",
        )
        cls.tech = User.objects.create_user(
            email="tech@example.com", password="testpw123"
        )
        cls.urgent = Notification.objects.create(
            entity_type=Notification.EntityType.TICKET,
            entity_id=7,
            event_type=Notification.EventType.TICKET_CREATED,
            priority=Notification.Priority.HIGH,
            requires_action=True,
        )
        UserNotification.objects.create(
            notification=cls.urgent, user=cls.admin_user
        )
        UserNotification.objects.create(notification=cls.urgent, user=cls.tech)
        cls.routine = Notification.objects.create(
            entity_type=Notification.EntityType.TICKET,
            entity_id=8,
            event_type=Notification.EventType.TICKET_ACCEPTED,
        )

    def setUp(self):
        self.client = Client()
        self.client.force_login(self.admin_user)

    def test_notification_changelist_filters_by_priority(self):
        """Test the priority filter narrows the changelist."""
        url = reverse("admin:notifications_notification_changelist")

        response = self.client.get(url)
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, "By priority")

        response = self.client.get(url, {"priority__exact": "HIGH"})
        self.assertEqual(
            list(response.context["cl"].result_list), [self.urgent]
        )

    def test_notification_change_page_lists_deliveries(self):
        """Test the deliveries inline shows one row per recipient."""
        url = reverse(
            "admin:notifications_notification_change", args=[self.urgent.id]
        )

        response = self.client.get(url)

        self.assertEqual(response.status_code, 200)
        formset = response.context["inline_admin_formsets"][0].formset
        self.assertEqual(formset.initial_form_count(), 2)
        self.assertContains(response, "tech@example.com")

    def test_notification_add_page_loads(self):
        """Test the add page offers an empty deliveries inline."""
        url = reverse("admin:notifications_notification_add")

        response = self.client.get(url)

        self.assertEqual(response.status_code, 200)
        formset = response.context["inline_admin_formsets"][0].formset
        self.assertEqual(formset.initial_form_count(), 0)

    def test_user_notification_changelist_filters_unread(self):
        """Test the read-state filter on deliveries."""
        UserNotification.objects.filter(user=self.tech).update(is_read=True)
        url = reverse("admin:notifications_usernotification_changelist")

        response = self.client.get(url, {"is_read__exact": "0"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            [d.user for d in response.context["cl"].result_list],
            [self.admin_user],
        )
