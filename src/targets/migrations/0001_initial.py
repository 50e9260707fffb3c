import uuid
from decimal import Decimal

import django.core.validators
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
            name="SalesTarget",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("agent_name", models.CharField(blank=True, default="", max_length=200, verbose_name="agent name")),
                ("sales_team", models.CharField(blank=True, db_index=True, default="", max_length=100, verbose_name="sales team")),
                ("manager_name", models.CharField(blank=True, default="", max_length=200, verbose_name="manager name")),
                ("period", models.CharField(db_index=True, max_length=20, verbose_name="period")),
                (
                    "monthly_target",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0"),
                        max_digits=14,
                        validators=[django.core.validators.MinValueValidator(Decimal("0"))],
                        verbose_name="monthly target",
                    ),
                ),
                ("deals_target", models.PositiveIntegerField(default=0, verbose_name="deals target")),
                (
                    "target_type",
                    models.CharField(
                        choices=[("individual", "Individual"), ("team", "Team")],
                        default="individual",
                        max_length=20,
                        verbose_name="type",
                    ),
                ),
                ("description", models.TextField(blank=True, default="", verbose_name="description")),
                (
                    "agent",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="sales_targets",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "manager",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="managed_targets",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "sales target",
                "verbose_name_plural": "sales targets",
                "ordering": ["-created_at"],
                "constraints": [
                    models.UniqueConstraint(fields=("agent", "period"), name="uniq_sales_target_agent_period"),
                    models.CheckConstraint(
                        condition=models.Q(("monthly_target__gte", 0)),
                        name="sales_target_amount_non_negative",
                    ),
                ],
            },
        ),
    ]
