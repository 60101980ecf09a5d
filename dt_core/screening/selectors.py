# dt_core/screening/selectors.py
from __future__ import annotations

from uuid import UUID

from django.db.models import QuerySet

from dt_core.screening.models import DrugTest


def drug_tests_qs() -> QuerySet[DrugTest]:
    return DrugTest.objects.select_related("client", "test_document", "confirmation_document")


def get_drug_test(*, test_id: UUID) -> DrugTest:
    return drug_tests_qs().get(id=test_id)
