from __future__ import annotations

from django.db import models
from django.utils import timezone

from dt_core.common.models import BaseModel


class AlertSeverity(models.TextChoices):
    CRITICAL = "critical", "Critical"
    HIGH = "high", "High"
    MEDIUM = "medium", "Medium"


class AlertType(models.TextChoices):
    EMAIL_FAILURE = "email-failure", "Email Failure"
    RECIPIENT_FETCH_FAILURE = "recipient-fetch-failure", "Recipient Fetch Failure"
    DOCUMENT_MISSING = "document-missing", "Document Missing"
    NOTIFICATION_HISTORY_FAILURE = "notification-history-failure", "Notification History Failure"
    DATA_INTEGRITY = "data-integrity", "Data Integrity Issue"
    OTHER = "other", "Other"


class AdminAlert(BaseModel):
    """
    Business-critical failure that needs an operator (failed referral email,
    missing report file, ...). Links to tests/clients live in `context` to
    avoid cross-app FK coupling.
    """
    title = models.CharField(max_length=255)
    severity = models.CharField(
        max_length=16,
        choices=AlertSeverity.choices,
        default=AlertSeverity.HIGH,
        db_index=True,
    )
    alert_type = models.CharField(
        max_length=64,
        choices=AlertType.choices,
        default=AlertType.OTHER,
        db_index=True,
    )
    message = models.TextField()
    context = models.JSONField(default=dict, blank=True)

    resolved = models.BooleanField(default=False, db_index=True)
    resolved_at = models.DateTimeField(null=True, blank=True)
    resolved_by_user_id = models.IntegerField(null=True, blank=True)
    notes = models.TextField(blank=True, default="")

    class Meta:
        db_table = "alerts_admin_alert"
        indexes = [
            models.Index(fields=["resolved", "severity"]),
            models.Index(fields=["alert_type", "created_at"]),
        ]

    def __str__(self) -> str:
        return f"[{self.severity}] {self.title}"

    def mark_resolved(self, *, user_id: int | None, notes: str = "") -> None:
        if not self.resolved:
            self.resolved = True
            self.resolved_at = timezone.now()
            self.resolved_by_user_id = user_id
        if notes:
            self.notes = notes
