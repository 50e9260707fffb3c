"""Models for the notifications app."""
from django.conf import settings
from django.db import models
from django.utils import timezone

from core.models import TimeStampedModel


class Notification(TimeStampedModel):
    """A message sent by a manager or team leader to some users, or to everyone.

    Read state is tracked per user through :class:`NotificationRead`, so a
    broadcast can be read by one agent and still be unread for the rest.
    """

    class Type(models.TextChoices):
        INFO = "info", "Info"
        SUCCESS = "success", "Success"
        WARNING = "warning", "Warning"
        ERROR = "error", "Error"

    class Priority(models.TextChoices):
        LOW = "low", "Low"
        MEDIUM = "medium", "Medium"
        HIGH = "high", "High"

    title = models.CharField("title", max_length=200, default="Notification")
    message = models.TextField("message")
    notification_type = models.CharField(
        "type",
        max_length=10,
        choices=Type.choices,
        default=Type.INFO,
        db_index=True,
    )
    priority = models.CharField(
        "priority",
        max_length=10,
        choices=Priority.choices,
        default=Priority.MEDIUM,
        db_index=True,
    )
    broadcast = models.BooleanField("sent to everyone", default=False)
    recipients = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        related_name="notifications",
        blank=True,
    )
    read_by = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        through="NotificationRead",
        related_name="read_notifications",
        blank=True,
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sent_notifications",
    )
    created_by_name = models.CharField("sender name", max_length=200, blank=True, default="")

    class Meta:
        verbose_name = "notification"
        verbose_name_plural = "notifications"
        ordering = ["-created_at"]

    def __str__(self):
        return f"[{self.get_priority_display()}] {self.title}"


class NotificationRead(models.Model):
    notification = models.ForeignKey(Notification, on_delete=models.CASCADE, related_name="reads")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notification_reads",
    )
    read_at = models.DateTimeField("read at", default=timezone.now)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["notification", "user"], name="uniq_notification_read"),
        ]

    def __str__(self):
        return f"{self.user} read {self.notification_id}"
