from __future__ import annotations

from django.db.models import QuerySet

from dt_core.alerts.models import AdminAlert


def alerts_qs() -> QuerySet[AdminAlert]:
    return AdminAlert.objects.all()


def open_alerts_for_test(*, drug_test_id) -> QuerySet[AdminAlert]:
    return AdminAlert.objects.filter(resolved=False, context__drug_test_id=str(drug_test_id))
