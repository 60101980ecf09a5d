# dt_core/screening/models.py
from __future__ import annotations

from django.db import models

from dt_core.clients.models import Client
from dt_core.common.models import BaseModel
from dt_core.documents.models import PrivateDocument
from dt_core.screening.constants import (
    ConfirmationDecision,
    FinalStatus,
    ScreeningStatus,
    ScreenResult,
    TestType,
)


class DrugTest(BaseModel):
    client = models.ForeignKey(Client, on_delete=models.PROTECT, related_name="drug_tests")
    collection_date = models.DateTimeField(null=True, blank=True)
    test_type = models.CharField(max_length=32, choices=TestType.choices, db_index=True)

    screening_status = models.CharField(
        max_length=16,
        choices=ScreeningStatus.choices,
        default=ScreeningStatus.COLLECTED,
        db_index=True,
    )
    is_inconclusive = models.BooleanField(default=False)
    inconclusive_reason = models.TextField(blank=True, default="")

    # frozen at collection: [{"name", "detected_as", "critical"}]
    medications_snapshot = models.JSONField(default=list, blank=True)

    detected_substances = models.JSONField(default=list, blank=True)
    is_dilute = models.BooleanField(default=False)
    expected_positives = models.JSONField(default=list, blank=True)
    unexpected_positives = models.JSONField(default=list, blank=True)
    unexpected_negatives = models.JSONField(default=list, blank=True)
    initial_screen_result = models.CharField(
        max_length=32, choices=ScreenResult.choices, blank=True, default=""
    )
    auto_accept = models.BooleanField(default=False)

    confirmation_decision = models.CharField(
        max_length=32, choices=ConfirmationDecision.choices, blank=True, default=""
    )
    confirmation_requested_at = models.DateTimeField(null=True, blank=True)
    confirmation_substances = models.JSONField(default=list, blank=True)
    # [{"substance", "result", "notes"}]
    confirmation_results = models.JSONField(default=list, blank=True)

    final_status = models.CharField(
        max_length=32, choices=FinalStatus.choices, blank=True, default="", db_index=True
    )
    is_complete = models.BooleanField(default=False)

    breathalyzer_taken = models.BooleanField(default=False)
    breathalyzer_result = models.DecimalField(max_digits=5, decimal_places=3, null=True, blank=True)

    # [{"stage", "sent_at", "recipients"}]
    notifications_sent = models.JSONField(default=list, blank=True)
    notifications_enabled = models.BooleanField(default=True)

    test_document = models.ForeignKey(
        PrivateDocument,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="screened_tests",
    )
    confirmation_document = models.ForeignKey(
        PrivateDocument,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="confirmed_tests",
    )

    class Meta:
        db_table = "screening_drug_test"
        ordering = ["-collection_date", "-created_at"]
        indexes = [
            models.Index(fields=["client", "collection_date"]),
            models.Index(fields=["screening_status", "is_complete"]),
        ]

    def __str__(self) -> str:
        return f"{self.test_type} for {self.client_id} ({self.screening_status})"

    # -----------------------
    # Notification history
    # -----------------------
    def sent_stages(self) -> set[str]:
        return {(n or {}).get("stage") for n in (self.notifications_sent or [])}

    @property
    def bac(self) -> float | None:
        return None if self.breathalyzer_result is None else float(self.breathalyzer_result)
