# dt_core/screening/tests/test_drug_test_services.py
import pytest

from dt_core.screening.constants import ConfirmationDecision, FinalStatus, ScreeningStatus, ScreenResult
from dt_core.screening.services import DrugTestService

pytestmark = pytest.mark.django_db


def _collect(client, test_type="15-panel-instant", **kwargs):
    return DrugTestService.record_collection(client_id=client.id, test_type=test_type, **kwargs)


def test_collection_snapshots_active_medications_only(court_client):
    test = _collect(court_client)

    assert test.screening_status == ScreeningStatus.COLLECTED
    assert test.medications_snapshot == [
        {"name": "Adderall", "detected_as": ["amphetamines"], "critical": False},
    ]


def test_snapshot_is_not_rederived_from_live_medications(court_client):
    test = _collect(court_client)

    court_client.medications = []
    court_client.save()

    test = DrugTestService.record_screen(test_id=test.id, detected_substances=[])
    assert test.initial_screen_result == ScreenResult.UNEXPECTED_NEGATIVE_WARNING
    assert test.unexpected_negatives == ["amphetamines"]


def test_auto_accepted_screen_is_finalised(court_client):
    test = _collect(court_client)
    test = DrugTestService.record_screen(test_id=test.id, detected_substances=["amphetamines"])

    test.refresh_from_db()
    assert test.screening_status == ScreeningStatus.SCREENED
    assert test.initial_screen_result == ScreenResult.EXPECTED_POSITIVE
    assert test.auto_accept is True
    assert test.confirmation_decision == ConfirmationDecision.ACCEPT
    assert test.final_status == FinalStatus.EXPECTED_POSITIVE
    assert test.is_complete is True


def test_unexpected_screen_waits_for_decision(court_client):
    test = _collect(court_client)
    test = DrugTestService.record_screen(test_id=test.id, detected_substances=["amphetamines", "thc"])

    assert test.initial_screen_result == ScreenResult.UNEXPECTED_POSITIVE
    assert test.confirmation_decision == ConfirmationDecision.PENDING_DECISION
    assert test.final_status == ""
    assert test.is_complete is False


def test_finalised_test_refuses_second_screen(self_client):
    test = _collect(self_client)
    DrugTestService.record_screen(test_id=test.id, detected_substances=[])

    with pytest.raises(ValueError):
        DrugTestService.record_screen(test_id=test.id, detected_substances=["thc"])


def test_breathalyzer_at_collection_overrides_screen(self_client):
    test = _collect(self_client, breathalyzer_taken=True, breathalyzer_result="0.050")
    test = DrugTestService.record_screen(test_id=test.id, detected_substances=[])

    assert test.initial_screen_result == ScreenResult.UNEXPECTED_POSITIVE
    assert test.auto_accept is False


def test_accepting_a_failed_screen_finalises_with_screen_result(self_client):
    test = _collect(self_client)
    DrugTestService.record_screen(test_id=test.id, detected_substances=["thc"])

    test = DrugTestService.decide_confirmation(test_id=test.id, decision=ConfirmationDecision.ACCEPT)
    assert test.final_status == FinalStatus.UNEXPECTED_POSITIVE
    assert test.is_complete is True


def test_confirmation_request_rejects_substances_that_were_not_unexpected(self_client):
    test = _collect(self_client)
    DrugTestService.record_screen(test_id=test.id, detected_substances=["thc"])

    with pytest.raises(ValueError):
        DrugTestService.decide_confirmation(
            test_id=test.id,
            decision=ConfirmationDecision.REQUEST_CONFIRMATION,
            substances=["cocaine"],
        )
    with pytest.raises(ValueError):
        DrugTestService.decide_confirmation(
            test_id=test.id,
            decision=ConfirmationDecision.REQUEST_CONFIRMATION,
            substances=[],
        )


def test_decision_before_screen_is_refused(self_client):
    test = _collect(self_client)
    with pytest.raises(ValueError):
        DrugTestService.decide_confirmation(test_id=test.id, decision=ConfirmationDecision.ACCEPT)


def test_confirmation_results_finalise_once_every_substance_is_back(self_client):
    test = _collect(self_client)
    DrugTestService.record_screen(test_id=test.id, detected_substances=["thc", "cocaine"])
    DrugTestService.decide_confirmation(
        test_id=test.id,
        decision=ConfirmationDecision.REQUEST_CONFIRMATION,
        substances=["thc", "cocaine"],
    )

    test = DrugTestService.record_confirmation_results(
        test_id=test.id,
        results=[{"substance": "THC", "result": "confirmed-negative"}],
    )
    assert test.final_status == ""
    assert test.is_complete is False
    assert test.confirmation_results == [{"substance": "thc", "result": "confirmed-negative", "notes": ""}]

    test = DrugTestService.record_confirmation_results(
        test_id=test.id,
        results=[{"substance": "cocaine", "result": "confirmed-negative", "notes": "LC-MS"}],
    )
    assert test.final_status == FinalStatus.CONFIRMED_NEGATIVE
    assert test.is_complete is True

    with pytest.raises(ValueError):
        DrugTestService.record_confirmation_results(
            test_id=test.id,
            results=[{"substance": "cocaine", "result": "confirmed-positive"}],
        )


def test_confirmation_result_for_unrequested_substance_is_refused(self_client):
    test = _collect(self_client)
    DrugTestService.record_screen(test_id=test.id, detected_substances=["thc", "cocaine"])
    DrugTestService.decide_confirmation(
        test_id=test.id,
        decision=ConfirmationDecision.REQUEST_CONFIRMATION,
        substances=["thc"],
    )

    with pytest.raises(ValueError):
        DrugTestService.record_confirmation_results(
            test_id=test.id,
            results=[{"substance": "cocaine", "result": "confirmed-negative"}],
        )


def test_partial_confirmation_leaves_unconfirmed_positive_failing(self_client):
    test = _collect(self_client)
    DrugTestService.record_screen(test_id=test.id, detected_substances=["thc", "fentanyl"])
    DrugTestService.decide_confirmation(
        test_id=test.id,
        decision=ConfirmationDecision.REQUEST_CONFIRMATION,
        substances=["thc"],
    )

    test = DrugTestService.record_confirmation_results(
        test_id=test.id,
        results=[{"substance": "thc", "result": "confirmed-negative"}],
    )
    assert test.final_status == FinalStatus.UNEXPECTED_POSITIVE


def test_mark_inconclusive(self_client):
    test = _collect(self_client)
    test = DrugTestService.mark_inconclusive(test_id=test.id, reason="Specimen leaked in transit")

    assert test.is_inconclusive is True
    assert test.final_status == FinalStatus.INCONCLUSIVE
    assert test.inconclusive_reason == "Specimen leaked in transit"


def test_mark_inconclusive_refused_after_final_result(self_client):
    test = _collect(self_client)
    DrugTestService.record_screen(test_id=test.id, detected_substances=[])

    with pytest.raises(ValueError):
        DrugTestService.mark_inconclusive(test_id=test.id)


def test_attach_document_slots(self_client, make_document):
    test = _collect(self_client)
    doc = make_document()

    test = DrugTestService.attach_document(test_id=test.id, document_id=doc.id, slot="test")
    assert test.test_document_id == doc.id

    test = DrugTestService.attach_document(test_id=test.id, document_id=doc.id, slot="confirmation")
    assert test.confirmation_document_id == doc.id

    with pytest.raises(ValueError):
        DrugTestService.attach_document(test_id=test.id, document_id=doc.id, slot="other")


def test_update_test_clears_suppression_flag_after_save(self_client):
    test = _collect(self_client)
    updated = DrugTestService.update_test(
        test_id=test.id,
        fields={"notifications_sent": [{"stage": "collected", "sent_at": "x", "recipients": ""}]},
        suppress_reentry=True,
    )
    assert updated._suppress_notifications is False
    updated.refresh_from_db()
    assert updated.sent_stages() == {"collected"}
