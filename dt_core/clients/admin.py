from __future__ import annotations

from django.contrib import admin

from dt_core.clients.models import Client, ReferralPreset


@admin.register(ReferralPreset)
class ReferralPresetAdmin(admin.ModelAdmin):
    list_display = ("name", "kind", "is_active", "created_at")
    list_filter = ("kind", "is_active")
    search_fields = ("id", "name")
    ordering = ("name",)


@admin.register(Client)
class ClientAdmin(admin.ModelAdmin):
    list_display = ("last_name", "first_name", "email", "referral_type", "referral_preset", "created_at")
    list_filter = ("referral_type", "disable_client_emails")
    search_fields = ("id", "first_name", "last_name", "email")
    autocomplete_fields = ("referral_preset",)
    ordering = ("last_name", "first_name")
