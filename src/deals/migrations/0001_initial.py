import uuid
from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("callbacks", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Deal",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("deal_id", models.CharField(max_length=40, unique=True, verbose_name="deal id")),
                ("customer_name", models.CharField(max_length=200, verbose_name="customer name")),
                ("phone_number", models.CharField(blank=True, default="", max_length=40, verbose_name="phone")),
                ("email", models.EmailField(blank=True, default="", max_length=254, verbose_name="email")),
                ("country", models.CharField(blank=True, default="", max_length=100, verbose_name="country")),
                ("custom_country", models.CharField(blank=True, default="", max_length=100, verbose_name="custom country")),
                (
                    "amount_paid",
                    models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12, verbose_name="amount paid"),
                ),
                ("signup_date", models.DateField(db_index=True, verbose_name="signup date")),
                ("end_date", models.DateField(blank=True, null=True, verbose_name="end date")),
                ("duration_months", models.PositiveIntegerField(default=0, verbose_name="duration (months)")),
                ("duration_years", models.PositiveIntegerField(default=0, verbose_name="duration (years)")),
                ("number_of_users", models.PositiveIntegerField(default=1, verbose_name="number of users")),
                ("service_tier", models.CharField(blank=True, default="", max_length=100, verbose_name="service tier")),
                ("program_type", models.CharField(blank=True, default="", max_length=100, verbose_name="program")),
                ("device_type", models.CharField(blank=True, default="", max_length=100, verbose_name="device")),
                ("device_key", models.CharField(blank=True, default="", max_length=100, verbose_name="device key")),
                ("device_id", models.CharField(blank=True, default="", max_length=100, verbose_name="device id")),
                ("is_ibo_player", models.BooleanField(default=False)),
                ("is_ibo_pro", models.BooleanField(default=False)),
                ("is_iboss", models.BooleanField(default=False)),
                ("invoice_link", models.URLField(blank=True, default="", max_length=500, verbose_name="invoice link")),
                ("sales_agent_name", models.CharField(blank=True, default="", max_length=200, verbose_name="sales agent name")),
                ("closing_agent_name", models.CharField(blank=True, default="", max_length=200, verbose_name="closing agent name")),
                ("sales_team", models.CharField(blank=True, db_index=True, default="", max_length=100, verbose_name="sales team")),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("active", "Active"),
                            ("completed", "Completed"),
                            ("cancelled", "Cancelled"),
                            ("inactive", "Inactive"),
                        ],
                        db_index=True,
                        default="active",
                        max_length=20,
                        verbose_name="status",
                    ),
                ),
                (
                    "stage",
                    models.CharField(
                        choices=[
                            ("lead", "Lead"),
                            ("qualified", "Qualified"),
                            ("proposal", "Proposal"),
                            ("negotiation", "Negotiation"),
                            ("closed-won", "Closed won"),
                            ("closed-lost", "Closed lost"),
                        ],
                        db_index=True,
                        default="lead",
                        max_length=20,
                        verbose_name="stage",
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
                ("notes", models.TextField(blank=True, default="", verbose_name="notes")),
                (
                    "closing_agent",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="deals_as_closing_agent",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="closing agent",
                    ),
                ),
                (
                    "converted_from_callback",
                    models.OneToOneField(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="deal",
                        to="callbacks.callback",
                    ),
                ),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="deals_created",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "sales_agent",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="deals_as_sales_agent",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="sales agent",
                    ),
                ),
            ],
            options={
                "verbose_name": "deal",
                "verbose_name_plural": "deals",
                "ordering": ["-signup_date", "-created_at"],
                "indexes": [
                    models.Index(fields=["sales_team", "signup_date"], name="deal_team_signup_idx"),
                    models.Index(fields=["sales_agent", "signup_date"], name="deal_agent_signup_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("amount_paid__gte", 0)),
                        name="deal_amount_paid_non_negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("duration_months__gt", 0), ("duration_years__gt", 0), _connector="OR"),
                        name="deal_duration_positive",
                    ),
                ],
            },
        ),
    ]
