import uuid

from django.contrib.auth.models import (
    AbstractBaseUser,
    BaseUserManager,
    PermissionsMixin,
)
from django.db import models
from django.utils import timezone


class UserManager(BaseUserManager):
    """Custom manager for the User model that uses email as the unique identifier."""

    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError("An email address is required.")
        email = self.normalize_email(email)
        extra_fields.setdefault("is_active", True)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault("role", User.Role.MANAGER)
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)

        if extra_fields.get("is_staff") is not True:
            raise ValueError("Superuser must have is_staff=True.")
        if extra_fields.get("is_superuser") is not True:
            raise ValueError("Superuser must have is_superuser=True.")

        return self.create_user(email, password, **extra_fields)


class User(AbstractBaseUser, PermissionsMixin):
    """
    Sales team member.

    Uses email as the unique identifier instead of a username. The role
    decides which deals, callbacks and targets the user can see; team
    leaders additionally carry the team they manage.
    """

    class Role(models.TextChoices):
        MANAGER = "manager", "Manager"
        TEAM_LEADER = "team_leader", "Team leader"
        SALESMAN = "salesman", "Salesman"
        CUSTOMER_SERVICE = "customer-service", "Customer service"

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
    )
    email = models.EmailField(
        "email address",
        unique=True,
        error_messages={
            "unique": "A user with this email address already exists.",
        },
    )
    first_name = models.CharField("first name", max_length=150)
    last_name = models.CharField("last name", max_length=150, blank=True, default="")
    phone = models.CharField("phone", max_length=30, blank=True, default="")
    role = models.CharField(
        "role",
        max_length=20,
        choices=Role.choices,
        default=Role.SALESMAN,
        db_index=True,
    )
    team = models.CharField("team", max_length=100, blank=True, default="", db_index=True)
    managed_team = models.CharField("managed team", max_length=100, blank=True, default="")
    is_active = models.BooleanField("active", default=True, db_index=True)
    is_staff = models.BooleanField("staff status", default=False)
    date_joined = models.DateTimeField("date joined", default=timezone.now)

    objects = UserManager()

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = ["first_name"]

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["first_name", "last_name"]

    def __str__(self):
        return self.get_full_name() or self.email

    def get_full_name(self):
        full_name = f"{self.first_name} {self.last_name}".strip()
        return full_name

    def get_short_name(self):
        return self.first_name

    # ------------------------------------------------------------------
    # Role helper properties
    # ------------------------------------------------------------------

    @property
    def is_manager(self):
        return self.role == self.Role.MANAGER

    @property
    def is_team_leader(self):
        return self.role == self.Role.TEAM_LEADER

    @property
    def is_salesman(self):
        return self.role == self.Role.SALESMAN

    @property
    def is_customer_service(self):
        return self.role == self.Role.CUSTOMER_SERVICE

    @property
    def role_display(self):
        return self.get_role_display()

    @property
    def display_name(self):
        return self.get_full_name() or self.email
