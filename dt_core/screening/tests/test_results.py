# dt_core/screening/tests/test_results.py
import pytest

from dt_core.screening.constants import FinalStatus, ScreenResult
from dt_core.screening.results import (
    MedicationSnapshot,
    apply_breathalyzer_override,
    compute_test_results,
    snapshot_medications,
)


def med(name, *substances, critical=False):
    return MedicationSnapshot(name=name, detected_as=frozenset(substances), critical=critical)


def test_instant_panel_unexpected_positive_example():
    r = compute_test_results(
        detected_substances=["amphetamines", "thc"],
        medications=[med("Adderall", "amphetamines")],
        test_type="15-panel-instant",
    )
    assert r.initial_screen_result == ScreenResult.UNEXPECTED_POSITIVE
    assert r.auto_accept is False
    assert r.expected_positives == ["amphetamines"]
    assert r.unexpected_positives == ["thc"]
    assert r.unexpected_negatives == []


def test_no_meds_nothing_detected_is_negative():
    r = compute_test_results(detected_substances=[], medications=[])
    assert r.initial_screen_result == ScreenResult.NEGATIVE
    assert r.auto_accept is True


def test_missing_substances_are_split_by_criticality_and_stored_warnings_first():
    r = compute_test_results(
        detected_substances=["amphetamines"],
        medications=[
            med("Suboxone", "buprenorphine", critical=True),
            med("Adderall", "amphetamines"),
            med("Xanax", "benzodiazepines"),
        ],
    )
    assert r.initial_screen_result == ScreenResult.UNEXPECTED_NEGATIVE_CRITICAL
    assert r.critical_negatives == ["buprenorphine"]
    assert r.unexpected_negatives == ["benzodiazepines", "buprenorphine"]
    assert r.auto_accept is False


def test_only_warning_negatives_soft_pass():
    r = compute_test_results(detected_substances=[], medications=[med("Xanax", "benzodiazepines")])
    assert r.initial_screen_result == ScreenResult.UNEXPECTED_NEGATIVE_WARNING
    assert r.auto_accept is True


def test_panel_scope_drops_substances_the_panel_cannot_detect():
    # kratom is not on the 15-panel instant cup
    r = compute_test_results(
        detected_substances=[],
        medications=[med("Kratom", "kratom", critical=True)],
        test_type="15-panel-instant",
    )
    assert r.initial_screen_result == ScreenResult.NEGATIVE
    assert r.unexpected_negatives == []


def test_without_panel_scope_every_expected_substance_counts():
    r = compute_test_results(
        detected_substances=[],
        medications=[med("Kratom", "kratom", critical=True)],
    )
    assert r.initial_screen_result == ScreenResult.UNEXPECTED_NEGATIVE_CRITICAL


def test_duplicate_detections_count_once():
    r = compute_test_results(
        detected_substances=["thc", "thc"],
        medications=[],
    )
    assert r.unexpected_positives == ["thc"]


def test_breathalyzer_positive_fails_passing_result():
    r = compute_test_results(
        detected_substances=[],
        medications=[],
        breathalyzer_taken=True,
        breathalyzer_result=0.05,
    )
    assert r.initial_screen_result == ScreenResult.UNEXPECTED_POSITIVE
    assert r.auto_accept is False
    assert r.breathalyzer_override is True


def test_breathalyzer_zero_is_not_an_override():
    r = compute_test_results(
        detected_substances=[],
        medications=[],
        breathalyzer_taken=True,
        breathalyzer_result=0.0,
    )
    assert r.initial_screen_result == ScreenResult.NEGATIVE
    assert r.auto_accept is True
    assert r.breathalyzer_override is False


def test_breathalyzer_leaves_failing_result_alone():
    r = compute_test_results(
        detected_substances=[],
        medications=[med("Suboxone", "buprenorphine", critical=True)],
        breathalyzer_taken=True,
        breathalyzer_result=0.08,
    )
    assert r.initial_screen_result == ScreenResult.UNEXPECTED_NEGATIVE_CRITICAL
    assert r.breathalyzer_override is False


def test_breathalyzer_reading_ignored_when_not_taken():
    r = compute_test_results(
        detected_substances=[],
        medications=[],
        breathalyzer_taken=False,
        breathalyzer_result=0.2,
    )
    assert r.initial_screen_result == ScreenResult.NEGATIVE


@pytest.mark.parametrize(
    "result, bac, expected",
    [
        (FinalStatus.CONFIRMED_NEGATIVE, 0.02, FinalStatus.UNEXPECTED_POSITIVE),
        (FinalStatus.EXPECTED_POSITIVE, 0.02, FinalStatus.UNEXPECTED_POSITIVE),
        (FinalStatus.MIXED_UNEXPECTED, 0.02, FinalStatus.MIXED_UNEXPECTED),
        (FinalStatus.NEGATIVE, 0.0001, FinalStatus.NEGATIVE),
    ],
)
def test_override_table(result, bac, expected):
    assert apply_breathalyzer_override(result, breathalyzer_taken=True, breathalyzer_result=bac) == expected


def test_snapshot_keeps_active_meds_and_drops_none():
    snap = snapshot_medications(
        [
            {"name": "Adderall", "status": "active", "detected_as": ["amphetamines", "none"], "require_confirmation": True},
            {"name": "Vitamin D", "status": "active", "detected_as": ["none"]},
            {"name": "Old", "status": "discontinued", "detected_as": ["opiates"]},
        ]
    )
    assert [m.name for m in snap] == ["Adderall", "Vitamin D"]
    assert snap[0].detected_as == frozenset({"amphetamines"})
    assert snap[0].critical is True
    assert snap[1].detected_as == frozenset()


def test_snapshot_round_trips_through_json_shape():
    m = med("Suboxone", "buprenorphine", critical=True)
    assert MedicationSnapshot.from_dict(m.to_dict()) == m
