import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Callback",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("customer_name", models.CharField(max_length=200, verbose_name="customer name")),
                ("phone_number", models.CharField(max_length=40, verbose_name="phone")),
                ("email", models.EmailField(blank=True, default="", max_length=254, verbose_name="email")),
                ("country", models.CharField(blank=True, default="", max_length=100, verbose_name="country")),
                ("first_call_date", models.DateField(db_index=True, verbose_name="first call date")),
                ("first_call_time", models.TimeField(blank=True, null=True, verbose_name="first call time")),
                ("scheduled_date", models.DateField(blank=True, db_index=True, null=True, verbose_name="scheduled date")),
                ("callback_reason", models.TextField(blank=True, default="", verbose_name="reason")),
                ("callback_notes", models.TextField(blank=True, default="", verbose_name="notes")),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("contacted", "Contacted"),
                            ("completed", "Completed"),
                            ("cancelled", "Cancelled"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=20,
                        verbose_name="status",
                    ),
                ),
                (
                    "priority",
                    models.CharField(
                        choices=[("low", "Low"), ("medium", "Medium"), ("high", "High")],
                        default="medium",
                        max_length=10,
                        verbose_name="priority",
                    ),
                ),
                ("created_by_name", models.CharField(blank=True, default="", max_length=200, verbose_name="created by (name)")),
                ("sales_team", models.CharField(blank=True, db_index=True, default="", max_length=100, verbose_name="sales team")),
                ("converted_to_deal", models.BooleanField(default=False, verbose_name="converted to deal")),
                ("converted_at", models.DateTimeField(blank=True, null=True, verbose_name="converted at")),
                (
                    "converted_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="callbacks_converted",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="converted by",
                    ),
                ),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="callbacks_created",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="created by",
                    ),
                ),
            ],
            options={
                "verbose_name": "callback",
                "verbose_name_plural": "callbacks",
                "ordering": ["-first_call_date", "-created_at"],
                "indexes": [
                    models.Index(fields=["sales_team", "first_call_date"], name="callback_team_date_idx"),
                    models.Index(fields=["created_by", "status"], name="callback_creator_status_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("converted_to_deal", False), ("status", "completed"), _connector="OR"),
                        name="callback_converted_is_completed",
                    ),
                ],
            },
        ),
    ]
