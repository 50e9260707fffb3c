from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Admin configuration for the custom User model."""

    # ------------------------------------------------------------------
    # List view
    # ------------------------------------------------------------------
    list_display = (
        "email",
        "first_name",
        "last_name",
        "role",
        "team",
        "managed_team",
        "is_active",
        "date_joined",
    )
    list_filter = ("role", "team", "is_active", "is_staff")
    search_fields = ("email", "first_name", "last_name", "phone", "team")
    ordering = ("first_name", "last_name")
    actions = ("activate_users", "deactivate_users")

    # ------------------------------------------------------------------
    # Detail / edit view
    # ------------------------------------------------------------------
    fieldsets = (
        (None, {"fields": ("email", "password")}),
        ("Personal info", {"fields": ("first_name", "last_name", "phone")}),
        (
            "Role and team",
            {
                "fields": (
                    "role",
                    "team",
                    "managed_team",
                    "is_active",
                    "is_staff",
                    "is_superuser",
                ),
            },
        ),
        ("Important dates", {"fields": ("last_login", "date_joined")}),
    )

    # ------------------------------------------------------------------
    # Add user view
    # ------------------------------------------------------------------
    add_fieldsets = (
        (
            None,
            {
                "classes": ("wide",),
                "fields": (
                    "email",
                    "first_name",
                    "last_name",
                    "role",
                    "team",
                    "managed_team",
                    "password1",
                    "password2",
                ),
            },
        ),
    )

    readonly_fields = ("date_joined", "last_login")

    @admin.action(description="Activate selected users")
    def activate_users(self, request, queryset):
        queryset.update(is_active=True)

    @admin.action(description="Deactivate selected users")
    def deactivate_users(self, request, queryset):
        queryset.update(is_active=False)
