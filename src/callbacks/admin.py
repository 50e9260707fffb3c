from django.contrib import admin

from .models import Callback


@admin.register(Callback)
class CallbackAdmin(admin.ModelAdmin):
    list_display = (
        "customer_name",
        "phone_number",
        "first_call_date",
        "scheduled_date",
        "status",
        "priority",
        "created_by_name",
        "sales_team",
        "converted_to_deal",
    )
    list_filter = ("status", "priority", "sales_team", "converted_to_deal")
    search_fields = ("customer_name", "phone_number", "email", "created_by_name")
    date_hierarchy = "first_call_date"
    raw_id_fields = ("created_by", "converted_by")
    readonly_fields = ("converted_at", "created_at", "updated_at")
