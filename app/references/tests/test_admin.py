"""
Tests for the Django admin interface of the references app.
"""

from django.test import TestCase, Client
from django.contrib.auth import get_user_model
from django.urls import reverse

from references.models import ProductionUnit


class ReferenceAdminTests(TestCase):

    def setUp(self):
        """Create a logged-in superuser client."""
        self.client = Client()
        admin_user = get_user_model().objects.create_superuser(
            email="admin@example.com",
            password="test_pass123",
        )
        self.client.force_login(admin_user)

    def test_changelist_pages_load_successfully(self):
        """Test that the changelist for each model loads correctly."""
        for name in ["productionunit", "equipment", "failuremode"]:
            url = reverse(f"admin:references_{name}_changelist")
            response = self.client.get(url)
            self.assertEqual(
                response.status_code, 200, f"Failed for {name} changelist"
            )

    def test_change_page_loads_successfully(self):
        """Test that the change page for a production unit loads."""
        unit = ProductionUnit.objects.create(code="PU-1", name="Press line")
        url = reverse(
            "admin:references_productionunit_change", args=[unit.id]
        )
        response = self.client.get(url)
        self.assertEqual(response.status_code, 200)
