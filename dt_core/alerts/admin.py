from __future__ import annotations

from django.contrib import admin

from dt_core.alerts.models import AdminAlert


@admin.register(AdminAlert)
class AdminAlertAdmin(admin.ModelAdmin):
    list_display = ("title", "severity", "alert_type", "resolved", "created_at")
    list_filter = ("severity", "alert_type", "resolved")
    search_fields = ("id", "title", "message")
    readonly_fields = ("context", "resolved_at", "resolved_by_user_id")
    ordering = ("-created_at",)
