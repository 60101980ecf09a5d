from __future__ import annotations

from django.contrib import admin

from dt_core.documents.models import PrivateDocument


@admin.register(PrivateDocument)
class PrivateDocumentAdmin(admin.ModelAdmin):
    list_display = ("filename", "document_type", "mime_type", "created_at")
    list_filter = ("document_type",)
    search_fields = ("id", "filename")
    ordering = ("-created_at",)
