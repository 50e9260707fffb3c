"""Models for the deals app."""
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from core.models import TimeStampedModel

IBO_PLAYER = "IBO PLAYER"
IBO_PRO = "IBO PRO"
IBOSS = "IBOSS"


class Deal(TimeStampedModel):
    """A recorded IPTV subscription sale."""

    class Status(models.TextChoices):
        ACTIVE = "active", "Active"
        COMPLETED = "completed", "Completed"
        CANCELLED = "cancelled", "Cancelled"
        INACTIVE = "inactive", "Inactive"

    class Stage(models.TextChoices):
        LEAD = "lead", "Lead"
        QUALIFIED = "qualified", "Qualified"
        PROPOSAL = "proposal", "Proposal"
        NEGOTIATION = "negotiation", "Negotiation"
        CLOSED_WON = "closed-won", "Closed won"
        CLOSED_LOST = "closed-lost", "Closed lost"

    class Priority(models.TextChoices):
        LOW = "low", "Low"
        MEDIUM = "medium", "Medium"
        HIGH = "high", "High"

    deal_id = models.CharField("deal id", max_length=40, unique=True)

    # ------------------------------------------------------------------
    # Customer
    # ------------------------------------------------------------------
    customer_name = models.CharField("customer name", max_length=200)
    phone_number = models.CharField("phone", max_length=40, blank=True, default="")
    email = models.EmailField("email", blank=True, default="")
    country = models.CharField("country", max_length=100, blank=True, default="")
    custom_country = models.CharField("custom country", max_length=100, blank=True, default="")

    # ------------------------------------------------------------------
    # Subscription
    # ------------------------------------------------------------------
    amount_paid = models.DecimalField(
        "amount paid",
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    signup_date = models.DateField("signup date", db_index=True)
    end_date = models.DateField("end date", null=True, blank=True)
    duration_months = models.PositiveIntegerField("duration (months)", default=0)
    duration_years = models.PositiveIntegerField("duration (years)", default=0)
    number_of_users = models.PositiveIntegerField("number of users", default=1)
    service_tier = models.CharField("service tier", max_length=100, blank=True, default="")
    program_type = models.CharField("program", max_length=100, blank=True, default="")
    device_type = models.CharField("device", max_length=100, blank=True, default="")
    device_key = models.CharField("device key", max_length=100, blank=True, default="")
    device_id = models.CharField("device id", max_length=100, blank=True, default="")
    is_ibo_player = models.BooleanField(default=False)
    is_ibo_pro = models.BooleanField(default=False)
    is_iboss = models.BooleanField(default=False)
    invoice_link = models.URLField("invoice link", max_length=500, blank=True, default="")

    # ------------------------------------------------------------------
    # Agents
    # ------------------------------------------------------------------
    sales_agent = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="deals_as_sales_agent",
        verbose_name="sales agent",
    )
    sales_agent_name = models.CharField("sales agent name", max_length=200, blank=True, default="")
    closing_agent = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="deals_as_closing_agent",
        verbose_name="closing agent",
    )
    closing_agent_name = models.CharField("closing agent name", max_length=200, blank=True, default="")
    sales_team = models.CharField("sales team", max_length=100, blank=True, default="", db_index=True)

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------
    status = models.CharField(
        "status",
        max_length=20,
        choices=Status.choices,
        default=Status.ACTIVE,
        db_index=True,
    )
    stage = models.CharField(
        "stage",
        max_length=20,
        choices=Stage.choices,
        default=Stage.LEAD,
        db_index=True,
    )
    priority = models.CharField(
        "priority",
        max_length=10,
        choices=Priority.choices,
        default=Priority.MEDIUM,
    )
    notes = models.TextField("notes", blank=True, default="")

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="deals_created",
    )
    converted_from_callback = models.OneToOneField(
        "callbacks.Callback",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="deal",
    )

    class Meta:
        ordering = ["-signup_date", "-created_at"]
        verbose_name = "deal"
        verbose_name_plural = "deals"
        indexes = [
            models.Index(fields=["sales_team", "signup_date"], name="deal_team_signup_idx"),
            models.Index(fields=["sales_agent", "signup_date"], name="deal_agent_signup_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount_paid__gte=0),
                name="deal_amount_paid_non_negative",
            ),
            models.CheckConstraint(
                condition=models.Q(duration_months__gt=0) | models.Q(duration_years__gt=0),
                name="deal_duration_positive",
            ),
        ]

    def __str__(self):
        return f"{self.deal_id} - {self.customer_name}"

    @property
    def total_months(self):
        return self.duration_years * 12 + self.duration_months

    @property
    def display_country(self):
        return self.custom_country or self.country

    def clean(self):
        if self.amount_paid is not None and self.amount_paid < 0:
            raise ValidationError({"amount_paid": "Amount paid cannot be negative."})
        if self.total_months <= 0:
            raise ValidationError({"duration_months": "Duration must be greater than zero."})
