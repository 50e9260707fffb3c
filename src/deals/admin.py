from django.contrib import admin

from .models import Deal


@admin.register(Deal)
class DealAdmin(admin.ModelAdmin):
    list_display = (
        "deal_id",
        "customer_name",
        "amount_paid",
        "sales_agent_name",
        "sales_team",
        "status",
        "stage",
        "signup_date",
    )
    list_filter = ("status", "stage", "priority", "sales_team", "service_tier")
    search_fields = ("deal_id", "customer_name", "email", "phone_number", "sales_agent_name")
    date_hierarchy = "signup_date"
    raw_id_fields = ("sales_agent", "closing_agent", "created_by", "converted_from_callback")
    readonly_fields = ("deal_id", "created_at", "updated_at")

    def has_delete_permission(self, request, obj=None):
        return False
