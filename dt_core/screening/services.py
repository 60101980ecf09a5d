# dt_core/screening/services.py
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Iterable
from uuid import UUID

from django.db import transaction
from django.utils import timezone

from dt_core.clients.selectors import get_client
from dt_core.documents.models import PrivateDocument
from dt_core.screening.constants import (
    ConfirmationDecision,
    ConfirmationOutcome,
    DocumentSlot,
    FinalStatus,
    ScreeningStatus,
)
from dt_core.screening.models import DrugTest
from dt_core.screening.results import (
    MedicationSnapshot,
    compute_test_results,
    resolve_final_status,
    snapshot_medications,
)

logger = logging.getLogger(__name__)


def _locked(test_id: UUID) -> DrugTest:
    return DrugTest.objects.select_for_update().get(id=test_id)


def _ensure_not_finalised(test: DrugTest) -> None:
    if test.final_status:
        raise ValueError(f"Drug test already finalised as {test.final_status}")


def _bac(value) -> Decimal | None:
    if value is None or value == "":
        return None
    return Decimal(str(value))


def _save(test: DrugTest, fields: Iterable[str], *, suppress_reentry: bool = False) -> DrugTest:
    # post_save receivers read this flag; it only lives for this one save
    test._suppress_notifications = suppress_reentry
    try:
        test.save(update_fields=[*fields, "updated_at"])
    finally:
        test._suppress_notifications = False
    return test


class DrugTestService:
    """
    Write-model for drug tests.
    Every save fires post_save, which runs the notification stager.
    """

    # ----------------------------
    # Generic update (persistence seam)
    # ----------------------------
    @staticmethod
    @transaction.atomic
    def update_test(
        *,
        test_id: UUID,
        fields: dict[str, Any],
        suppress_reentry: bool = False,
    ) -> DrugTest:
        test = _locked(test_id)
        for name, value in fields.items():
            setattr(test, name, value)
        return _save(test, fields.keys(), suppress_reentry=suppress_reentry)

    # ----------------------------
    # Collection
    # ----------------------------
    @staticmethod
    @transaction.atomic
    def record_collection(
        *,
        client_id: UUID,
        test_type: str,
        collection_date=None,
        breathalyzer_taken: bool = False,
        breathalyzer_result=None,
        notifications_enabled: bool = True,
    ) -> DrugTest:
        client = get_client(client_id=client_id)
        snapshot = snapshot_medications(client.medications)

        return DrugTest.objects.create(
            client=client,
            test_type=test_type,
            collection_date=collection_date or timezone.now(),
            screening_status=ScreeningStatus.COLLECTED,
            medications_snapshot=[m.to_dict() for m in snapshot],
            breathalyzer_taken=breathalyzer_taken,
            breathalyzer_result=_bac(breathalyzer_result) if breathalyzer_taken else None,
            notifications_enabled=notifications_enabled,
        )

    # ----------------------------
    # Screen
    # ----------------------------
    @staticmethod
    @transaction.atomic
    def record_screen(
        *,
        test_id: UUID,
        detected_substances: list[str],
        is_dilute: bool = False,
        breathalyzer_taken: bool | None = None,
        breathalyzer_result=None,
        test_document_id: UUID | None = None,
    ) -> DrugTest:
        test = _locked(test_id)
        _ensure_not_finalised(test)

        if breathalyzer_taken is not None:
            test.breathalyzer_taken = breathalyzer_taken
            test.breathalyzer_result = _bac(breathalyzer_result) if breathalyzer_taken else None

        computed = compute_test_results(
            detected_substances=detected_substances or [],
            medications=[MedicationSnapshot.from_dict(m) for m in (test.medications_snapshot or [])],
            test_type=test.test_type,
            breathalyzer_taken=test.breathalyzer_taken,
            breathalyzer_result=test.bac,
        )

        test.screening_status = ScreeningStatus.SCREENED
        test.detected_substances = list(dict.fromkeys(detected_substances or []))
        test.is_dilute = is_dilute
        test.expected_positives = computed.expected_positives
        test.unexpected_positives = computed.unexpected_positives
        test.unexpected_negatives = computed.unexpected_negatives
        test.initial_screen_result = computed.initial_screen_result
        test.auto_accept = computed.auto_accept

        if computed.auto_accept:
            test.confirmation_decision = ConfirmationDecision.ACCEPT
            test.final_status = computed.initial_screen_result
            test.is_complete = True
        else:
            test.confirmation_decision = ConfirmationDecision.PENDING_DECISION
            test.is_complete = False

        fields = [
            "screening_status",
            "detected_substances",
            "is_dilute",
            "expected_positives",
            "unexpected_positives",
            "unexpected_negatives",
            "initial_screen_result",
            "auto_accept",
            "confirmation_decision",
            "final_status",
            "is_complete",
            "breathalyzer_taken",
            "breathalyzer_result",
        ]
        if test_document_id:
            test.test_document = PrivateDocument.objects.get(id=test_document_id)
            fields.append("test_document")

        logger.info(
            "Screened drug test %s: %s (auto_accept=%s)",
            test.id,
            test.initial_screen_result,
            test.auto_accept,
        )
        return _save(test, fields)

    # ----------------------------
    # Confirmation decision
    # ----------------------------
    @staticmethod
    @transaction.atomic
    def decide_confirmation(
        *,
        test_id: UUID,
        decision: str,
        substances: list[str] | None = None,
    ) -> DrugTest:
        test = _locked(test_id)
        if test.screening_status != ScreeningStatus.SCREENED:
            raise ValueError("Drug test has not been screened yet")
        _ensure_not_finalised(test)

        if decision == ConfirmationDecision.ACCEPT:
            test.confirmation_decision = decision
            test.final_status = test.initial_screen_result
            test.is_complete = True
            return _save(test, ["confirmation_decision", "final_status", "is_complete"])

        if decision == ConfirmationDecision.REQUEST_CONFIRMATION:
            if not substances:
                raise ValueError("Select at least one substance for confirmation")
            allowed = {s.lower() for s in (test.unexpected_positives or [])}
            unknown = [s for s in substances if s.lower() not in allowed]
            if unknown:
                raise ValueError(f"Not an unexpected positive: {', '.join(unknown)}")

            test.confirmation_decision = decision
            test.confirmation_substances = list(dict.fromkeys(substances))
            test.confirmation_requested_at = timezone.now()
            test.confirmation_results = []
            test.is_complete = False
            return _save(
                test,
                [
                    "confirmation_decision",
                    "confirmation_substances",
                    "confirmation_requested_at",
                    "confirmation_results",
                    "is_complete",
                ],
            )

        if decision == ConfirmationDecision.PENDING_DECISION:
            test.confirmation_decision = decision
            return _save(test, ["confirmation_decision"])

        raise ValueError(f"Unknown confirmation decision: {decision}")

    # ----------------------------
    # Confirmation results
    # ----------------------------
    @staticmethod
    @transaction.atomic
    def record_confirmation_results(
        *,
        test_id: UUID,
        results: list[dict[str, Any]],
        confirmation_document_id: UUID | None = None,
    ) -> DrugTest:
        test = _locked(test_id)
        if test.confirmation_decision != ConfirmationDecision.REQUEST_CONFIRMATION:
            raise ValueError("Confirmation testing was not requested for this drug test")
        _ensure_not_finalised(test)

        requested = {s.lower(): s for s in (test.confirmation_substances or [])}
        merged = {str(r.get("substance", "")).lower(): r for r in (test.confirmation_results or [])}

        for r in results:
            key = str(r.get("substance") or "").lower()
            if key not in requested:
                raise ValueError(f"Substance was not sent for confirmation: {r.get('substance')}")
            if r.get("result") not in ConfirmationOutcome.values:
                raise ValueError(f"Invalid confirmation result: {r.get('result')}")
            merged[key] = {
                "substance": requested[key],
                "result": r["result"],
                "notes": r.get("notes") or "",
            }

        test.confirmation_results = list(merged.values())
        fields = ["confirmation_results"]

        if confirmation_document_id:
            test.confirmation_document = PrivateDocument.objects.get(id=confirmation_document_id)
            fields.append("confirmation_document")

        if len(test.confirmation_results) == len(requested):
            test.final_status = resolve_final_status(
                initial_screen_result=test.initial_screen_result,
                expected_positives=test.expected_positives or [],
                unexpected_positives=test.unexpected_positives or [],
                confirmation_results=test.confirmation_results,
                breathalyzer_taken=test.breathalyzer_taken,
                breathalyzer_result=test.bac,
            )
            test.is_complete = True
            fields += ["final_status", "is_complete"]
            logger.info("Confirmation complete for drug test %s: %s", test.id, test.final_status)

        return _save(test, fields)

    # ----------------------------
    # Inconclusive
    # ----------------------------
    @staticmethod
    @transaction.atomic
    def mark_inconclusive(*, test_id: UUID, reason: str = "") -> DrugTest:
        test = _locked(test_id)
        if test.final_status and test.final_status != FinalStatus.INCONCLUSIVE:
            raise ValueError(f"Drug test already finalised as {test.final_status}")

        test.is_inconclusive = True
        test.inconclusive_reason = reason or ""
        test.final_status = FinalStatus.INCONCLUSIVE
        test.is_complete = True
        return _save(test, ["is_inconclusive", "inconclusive_reason", "final_status", "is_complete"])

    # ----------------------------
    # Documents
    # ----------------------------
    @staticmethod
    @transaction.atomic
    def attach_document(*, test_id: UUID, document_id: UUID, slot: str) -> DrugTest:
        test = _locked(test_id)
        doc = PrivateDocument.objects.get(id=document_id)

        if slot == DocumentSlot.TEST:
            test.test_document = doc
            return _save(test, ["test_document"])
        if slot == DocumentSlot.CONFIRMATION:
            test.confirmation_document = doc
            return _save(test, ["confirmation_document"])

        raise ValueError(f"Unknown document slot: {slot}")
