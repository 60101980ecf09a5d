# dt_core/screening/results.py
"""
Result computation for a drug test.

compute_test_results: detected substances vs. the medication snapshot -> screen result.
resolve_final_status: reconcile confirmation outcomes with the initial screen.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Sequence

from dt_core.screening.classifier import classify
from dt_core.screening.constants import (
    BAC_EPSILON,
    NEGATIVE_SIDE_RESULTS,
    PASSING_RESULTS,
    ConfirmationOutcome,
    FinalStatus,
    ScreenResult,
)
from dt_core.screening.panels import NO_SUBSTANCE, panel_substances

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MedicationSnapshot:
    name: str
    detected_as: frozenset[str]
    critical: bool = False

    @classmethod
    def from_medication(cls, med: dict[str, Any]) -> "MedicationSnapshot":
        substances = [s for s in (med.get("detected_as") or []) if s and s != NO_SUBSTANCE]
        return cls(
            name=str(med.get("name") or ""),
            detected_as=frozenset(substances),
            critical=med.get("require_confirmation") is True,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MedicationSnapshot":
        return cls(
            name=str(data.get("name") or ""),
            detected_as=frozenset(s for s in (data.get("detected_as") or []) if s and s != NO_SUBSTANCE),
            critical=bool(data.get("critical")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "detected_as": sorted(self.detected_as),
            "critical": self.critical,
        }


def snapshot_medications(medications: Iterable[dict[str, Any]] | None) -> list[MedicationSnapshot]:
    """
    Freeze the active medications at collection time.
    """
    return [
        MedicationSnapshot.from_medication(m)
        for m in (medications or [])
        if (m or {}).get("status") == "active"
    ]


@dataclass(frozen=True)
class TestResultComputation:
    initial_screen_result: str
    expected_positives: list[str] = field(default_factory=list)
    unexpected_positives: list[str] = field(default_factory=list)
    # warnings first, then critical
    unexpected_negatives: list[str] = field(default_factory=list)
    critical_negatives: list[str] = field(default_factory=list)
    auto_accept: bool = False
    breathalyzer_override: bool = False


def breathalyzer_positive(breathalyzer_taken: bool, breathalyzer_result: float | None) -> bool:
    if not breathalyzer_taken or breathalyzer_result is None:
        return False
    return float(breathalyzer_result) > BAC_EPSILON


def apply_breathalyzer_override(
    result: str,
    *,
    breathalyzer_taken: bool,
    breathalyzer_result: float | None,
) -> str:
    """
    A positive breathalyzer fails a passing result. Failing results are kept as-is.
    """
    if breathalyzer_positive(breathalyzer_taken, breathalyzer_result) and result in PASSING_RESULTS:
        return ScreenResult.UNEXPECTED_POSITIVE
    return result


def _unique(values: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for v in values:
        if v and v not in seen:
            seen.add(v)
            out.append(v)
    return out


def compute_test_results(
    *,
    detected_substances: Sequence[str],
    medications: Iterable[MedicationSnapshot],
    test_type: str | None = None,
    breathalyzer_taken: bool = False,
    breathalyzer_result: float | None = None,
) -> TestResultComputation:
    scope = panel_substances(test_type)

    expected: list[str] = []
    critical: set[str] = set()
    for med in medications:
        for substance in sorted(med.detected_as):
            # substances outside the panel cannot come back missing
            if scope is not None and substance not in scope:
                continue
            if substance not in expected:
                expected.append(substance)
            if med.critical:
                critical.add(substance)

    detected = _unique(detected_substances)
    expected_set = set(expected)
    detected_set = set(detected)

    expected_positives = [s for s in detected if s in expected_set]
    unexpected_positives = [s for s in detected if s not in expected_set]
    missing = [s for s in expected if s not in detected_set]
    critical_negatives = [s for s in missing if s in critical]
    warning_negatives = [s for s in missing if s not in critical]

    classification = classify(
        detected=len(detected),
        expected=len(expected),
        unexpected_positives=len(unexpected_positives),
        unexpected_negatives=len(warning_negatives),
        critical_negatives=len(critical_negatives),
    )

    result = apply_breathalyzer_override(
        classification.screen_result,
        breathalyzer_taken=breathalyzer_taken,
        breathalyzer_result=breathalyzer_result,
    )
    overridden = result != classification.screen_result
    if overridden:
        logger.info(
            "Breathalyzer override: %s -> %s (bac=%s)",
            classification.screen_result,
            result,
            breathalyzer_result,
        )

    return TestResultComputation(
        initial_screen_result=result,
        expected_positives=expected_positives,
        unexpected_positives=unexpected_positives,
        unexpected_negatives=warning_negatives + critical_negatives,
        critical_negatives=critical_negatives,
        auto_accept=classification.auto_accept and not overridden,
        breathalyzer_override=overridden,
    )


# -----------------------
# Confirmation
# -----------------------
def _failure_for(initial_screen_result: str) -> str:
    if initial_screen_result in NEGATIVE_SIDE_RESULTS:
        return FinalStatus.MIXED_UNEXPECTED
    return FinalStatus.UNEXPECTED_POSITIVE


def resolve_final_status(
    *,
    initial_screen_result: str,
    expected_positives: Sequence[str],
    unexpected_positives: Sequence[str],
    confirmation_results: Sequence[dict[str, Any]],
    breathalyzer_taken: bool = False,
    breathalyzer_result: float | None = None,
) -> str:
    """
    Final status once confirmation testing is back.

    Any inconclusive confirmation makes the whole test inconclusive. A confirmed
    positive, or an unexpected positive that was never sent for confirmation,
    keeps the test failing. Otherwise the screen's negative-side outcome stands.
    """
    outcomes = [(r or {}).get("result") for r in confirmation_results]
    confirmed = {str((r or {}).get("substance") or "").lower() for r in confirmation_results}
    unconfirmed = [s for s in unexpected_positives if s.lower() not in confirmed]

    if ConfirmationOutcome.INCONCLUSIVE in outcomes:
        status = FinalStatus.INCONCLUSIVE
    elif ConfirmationOutcome.CONFIRMED_POSITIVE in outcomes:
        status = _failure_for(initial_screen_result)
    elif unconfirmed:
        status = _failure_for(initial_screen_result)
    elif initial_screen_result in (ScreenResult.UNEXPECTED_NEGATIVE_CRITICAL, ScreenResult.MIXED_UNEXPECTED):
        status = FinalStatus.UNEXPECTED_NEGATIVE_CRITICAL
    elif initial_screen_result == ScreenResult.UNEXPECTED_NEGATIVE_WARNING:
        status = FinalStatus.UNEXPECTED_NEGATIVE_WARNING
    elif expected_positives:
        status = FinalStatus.EXPECTED_POSITIVE
    else:
        status = FinalStatus.CONFIRMED_NEGATIVE

    return apply_breathalyzer_override(
        status,
        breathalyzer_taken=breathalyzer_taken,
        breathalyzer_result=breathalyzer_result,
    )
