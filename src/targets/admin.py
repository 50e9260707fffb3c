from django.contrib import admin

from .models import SalesTarget


@admin.register(SalesTarget)
class SalesTargetAdmin(admin.ModelAdmin):
    list_display = ("agent_name", "sales_team", "period", "monthly_target", "deals_target", "target_type", "manager_name")
    list_filter = ("period", "target_type", "sales_team")
    search_fields = ("agent_name", "sales_team", "manager_name")
    raw_id_fields = ("agent", "manager")
