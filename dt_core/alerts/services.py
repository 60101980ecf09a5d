from __future__ import annotations

import logging
from uuid import UUID

from django.db import transaction

from dt_core.alerts.models import AdminAlert, AlertSeverity, AlertType

logger = logging.getLogger(__name__)


class AlertService:
    @staticmethod
    @transaction.atomic
    def raise_alert(
        *,
        severity: str,
        alert_type: str,
        title: str,
        message: str,
        context: dict | None = None,
    ) -> AdminAlert:
        alert = AdminAlert.objects.create(
            severity=severity,
            alert_type=alert_type,
            title=title,
            message=message,
            context=context or {},
        )
        logger.warning("Admin alert raised [%s/%s]: %s", severity, alert_type, title)
        return alert

    @staticmethod
    @transaction.atomic
    def resolve_alert(*, alert_id: UUID, user_id: int | None, notes: str = "") -> AdminAlert:
        alert = AdminAlert.objects.select_for_update().get(id=alert_id)
        alert.mark_resolved(user_id=user_id, notes=notes)
        alert.save(update_fields=["resolved", "resolved_at", "resolved_by_user_id", "notes", "updated_at"])
        return alert


__all__ = ["AlertService", "AlertSeverity", "AlertType"]
