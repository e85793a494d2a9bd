from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from accounts.models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Admin panel for custom User model"""

    list_display = [
        "username",
        "email",
        "role",
        "is_available",
        "balance",
        "is_active",
        "is_staff",
    ]

    list_filter = [
        "role",
        "is_available",
        "is_active",
        "is_staff",
    ]

    search_fields = [
        "username",
        "email",
        "phone_number",
    ]

    ordering = ("username",)

    # Balance is credited only by settlement
    readonly_fields = ("balance",)

    fieldsets = BaseUserAdmin.fieldsets + (
        (
            "Ride Account",
            {
                "fields": (
                    "role",
                    "phone_number",
                    "is_available",
                    "balance",
                )
            },
        ),
    )

    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        (
            "Ride Account",
            {
                "fields": (
                    "email",
                    "role",
                    "phone_number",
                )
            },
        ),
    )
