# dt_core/screening/admin.py
from __future__ import annotations

from django.contrib import admin

from dt_core.screening.models import DrugTest


@admin.register(DrugTest)
class DrugTestAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "client",
        "test_type",
        "collection_date",
        "screening_status",
        "initial_screen_result",
        "final_status",
        "is_complete",
        "notifications_enabled",
    )
    list_filter = ("test_type", "screening_status", "final_status", "is_complete", "is_inconclusive")
    search_fields = ("id", "client__first_name", "client__last_name", "client__email")
    autocomplete_fields = ("client", "test_document", "confirmation_document")
    readonly_fields = (
        "medications_snapshot",
        "expected_positives",
        "unexpected_positives",
        "unexpected_negatives",
        "initial_screen_result",
        "auto_accept",
        "final_status",
        "notifications_sent",
    )
    ordering = ("-collection_date",)
