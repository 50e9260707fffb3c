"""Models for the callbacks app."""
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from core.models import TimeStampedModel


class Callback(TimeStampedModel):
    """A scheduled follow-up call with a prospect.

    ``converted_to_deal`` implies ``status == completed``; a completed
    callback is not necessarily converted.
    """

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        CONTACTED = "contacted", "Contacted"
        COMPLETED = "completed", "Completed"
        CANCELLED = "cancelled", "Cancelled"

    class Priority(models.TextChoices):
        LOW = "low", "Low"
        MEDIUM = "medium", "Medium"
        HIGH = "high", "High"

    customer_name = models.CharField("customer name", max_length=200)
    phone_number = models.CharField("phone", max_length=40)
    email = models.EmailField("email", blank=True, default="")
    country = models.CharField("country", max_length=100, blank=True, default="")

    first_call_date = models.DateField("first call date", db_index=True)
    first_call_time = models.TimeField("first call time", null=True, blank=True)
    scheduled_date = models.DateField("scheduled date", null=True, blank=True, db_index=True)
    callback_reason = models.TextField("reason", blank=True, default="")
    callback_notes = models.TextField("notes", blank=True, default="")

    status = models.CharField(
        "status",
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
        db_index=True,
    )
    priority = models.CharField(
        "priority",
        max_length=10,
        choices=Priority.choices,
        default=Priority.MEDIUM,
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="callbacks_created",
        verbose_name="created by",
    )
    created_by_name = models.CharField("created by (name)", max_length=200, blank=True, default="")
    sales_team = models.CharField("sales team", max_length=100, blank=True, default="", db_index=True)

    converted_to_deal = models.BooleanField("converted to deal", default=False)
    converted_at = models.DateTimeField("converted at", null=True, blank=True)
    converted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="callbacks_converted",
        verbose_name="converted by",
    )

    class Meta:
        ordering = ["-first_call_date", "-created_at"]
        verbose_name = "callback"
        verbose_name_plural = "callbacks"
        indexes = [
            models.Index(fields=["sales_team", "first_call_date"], name="callback_team_date_idx"),
            models.Index(fields=["created_by", "status"], name="callback_creator_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(converted_to_deal=False) | models.Q(status="completed"),
                name="callback_converted_is_completed",
            ),
        ]

    def __str__(self):
        return f"{self.customer_name} ({self.get_status_display()})"

    def clean(self):
        if self.converted_to_deal and self.status != self.Status.COMPLETED:
            raise ValidationError({"status": "A converted callback must be completed."})
