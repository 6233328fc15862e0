"""
Database models for custom user model and the organizational directory.
"""

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from django.contrib.auth.models import (
    AbstractBaseUser,
    BaseUserManager,
    PermissionsMixin,
)

from core.models import TimestampedModel
from references.models import ProductionUnit


class UserManager(BaseUserManager):
    """Manager for users."""

    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError("The Email field must be set")
        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)
        return self.create_user(email, password, **extra_fields)


class User(AbstractBaseUser, PermissionsMixin):
    """A user in the app: operator, technician, supervisor or manager."""

    email = models.EmailField(unique=True)
    full_name = models.CharField(max_length=255, blank=True, null=True)
    employee_no = models.CharField(max_length=50, blank=True, null=True)
    is_active = models.BooleanField(default=True)
    is_staff = models.BooleanField(default=False)
    date_joined = models.DateTimeField(
        auto_now_add=True, db_column="created_at"
    )

    objects = UserManager()

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    def __str__(self):
        return self.email

    @property
    def display_name(self) -> str:
        return self.full_name or self.email


class ApprovalLevel(models.IntegerChoices):
    """Organizational authority over ticket actions; higher subsumes lower."""

    REPORTER = 1, "L1 - Reporter"
    TECHNICIAN = 2, "L2 - Technician"
    SUPERVISOR = 3, "L3 - Supervisor"
    MANAGER = 4, "L4 - Manager"


class TicketApproval(TimestampedModel):
    """
    Grants a user an approval level over a production unit.
    The grant covers the unit and everything below it in the hierarchy.
    """

    user = models.ForeignKey(
        User, on_delete=models.CASCADE, related_name="ticket_approvals"
    )
    production_unit = models.ForeignKey(
        ProductionUnit, on_delete=models.CASCADE, related_name="approvals"
    )
    approval_level = models.PositiveSmallIntegerField(
        choices=ApprovalLevel.choices,
        validators=[MinValueValidator(1), MaxValueValidator(4)],
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        unique_together = (("user", "production_unit"),)
        verbose_name = "Ticket Approval"

    def __str__(self):
        return (
            f"{self.user.email} L{self.approval_level}"
            f" @ {self.production_unit.code}"
        )
