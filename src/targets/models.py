"""Models for the targets app."""
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from core.models import TimeStampedModel


class SalesTarget(TimeStampedModel):
    """Monthly revenue and deal-count goal for an agent (or a team)."""

    class TargetType(models.TextChoices):
        INDIVIDUAL = "individual", "Individual"
        TEAM = "team", "Team"

    agent = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="sales_targets",
    )
    agent_name = models.CharField("agent name", max_length=200, blank=True, default="")
    sales_team = models.CharField("sales team", max_length=100, blank=True, default="", db_index=True)
    manager = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="managed_targets",
    )
    manager_name = models.CharField("manager name", max_length=200, blank=True, default="")
    period = models.CharField("period", max_length=20, db_index=True)  # "January 2025"
    monthly_target = models.DecimalField(
        "monthly target",
        max_digits=14,
        decimal_places=2,
        default=Decimal("0"),
        validators=[MinValueValidator(Decimal("0"))],
    )
    deals_target = models.PositiveIntegerField("deals target", default=0)
    target_type = models.CharField(
        "type",
        max_length=20,
        choices=TargetType.choices,
        default=TargetType.INDIVIDUAL,
    )
    description = models.TextField("description", blank=True, default="")

    class Meta:
        verbose_name = "sales target"
        verbose_name_plural = "sales targets"
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["agent", "period"],
                name="uniq_sales_target_agent_period",
            ),
            models.CheckConstraint(
                condition=models.Q(monthly_target__gte=0),
                name="sales_target_amount_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.agent_name or self.sales_team} - {self.period}"

    def clean(self):
        if self.target_type == self.TargetType.INDIVIDUAL and self.agent_id is None and not self.agent_name:
            raise ValidationError({"agent": "An individual target needs an agent."})
        if self.target_type == self.TargetType.TEAM and not self.sales_team:
            raise ValidationError({"sales_team": "A team target needs a team."})
