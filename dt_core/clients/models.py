# dt_core/clients/models.py
from __future__ import annotations

from django.db import models

from dt_core.common.models import BaseModel


class ReferralType(models.TextChoices):
    SELF = "self", "Self"
    COURT = "court", "Court"
    EMPLOYER = "employer", "Employer"


class ReferralKind(models.TextChoices):
    COURT = "court", "Court"
    EMPLOYER = "employer", "Employer"


class ReferralPreset(BaseModel):
    """
    Shared contact list for a court or employer. Many clients point at one preset.

    contacts: [{"name": "...", "email": "..."}]
    """
    kind = models.CharField(max_length=16, choices=ReferralKind.choices, db_index=True)
    name = models.CharField(max_length=255)
    contacts = models.JSONField(default=list, blank=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "clients_referral_preset"
        indexes = [models.Index(fields=["kind", "is_active"])]

    def __str__(self) -> str:
        return f"{self.name} ({self.kind})"


class Client(BaseModel):
    first_name = models.CharField(max_length=128)
    middle_initial = models.CharField(max_length=8, blank=True, default="")
    last_name = models.CharField(max_length=128)
    email = models.EmailField(blank=True, default="")
    dob = models.DateField(null=True, blank=True)
    headshot = models.FileField(upload_to="headshots/", null=True, blank=True)

    referral_type = models.CharField(
        max_length=16,
        choices=ReferralType.choices,
        default=ReferralType.SELF,
        db_index=True,
    )
    referral_preset = models.ForeignKey(
        ReferralPreset,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="clients",
    )
    # client-specific recipients on top of the preset: [{"name": "...", "email": "..."}]
    additional_recipients = models.JSONField(default=list, blank=True)
    disable_client_emails = models.BooleanField(default=False)

    # declared medications: [{"name", "status", "detected_as": [...], "require_confirmation"}]
    medications = models.JSONField(default=list, blank=True)

    class Meta:
        db_table = "clients_client"
        indexes = [
            models.Index(fields=["last_name", "first_name"]),
            models.Index(fields=["email"]),
        ]

    def __str__(self) -> str:
        return self.full_name

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
