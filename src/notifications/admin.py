from django.contrib import admin

from .models import Notification, NotificationRead


class NotificationReadInline(admin.TabularInline):
    model = NotificationRead
    extra = 0
    raw_id_fields = ("user",)
    readonly_fields = ("read_at",)


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("title", "notification_type", "priority", "broadcast", "created_by_name", "created_at")
    list_filter = ("notification_type", "priority", "broadcast")
    search_fields = ("title", "message", "created_by_name")
    raw_id_fields = ("created_by",)
    filter_horizontal = ("recipients",)
    inlines = [NotificationReadInline]
