"""Global Django admin customizations."""
from django.contrib import admin

from core.models import AuditLog


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ("created_at", "action", "status_code", "entity_type", "entity_id", "actor", "ip_address")
    list_filter = ("entity_type", "status_code")
    search_fields = ("action", "entity_id", "actor__email")
    date_hierarchy = "created_at"
    readonly_fields = [f.name for f in AuditLog._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False


admin.site.site_header = "Vmax Sales - Administration"
admin.site.site_title = "Vmax Admin"
admin.site.index_title = "Sales operations"
