# dt_core/screening/classifier.py
from __future__ import annotations

from dataclasses import dataclass
from itertools import product
from typing import Any, Callable, Dict

from dt_core.screening.constants import ScreenResult


class ClassificationInvariantError(RuntimeError):
    """
    No rule matched the counts. Upstream derivation is broken; never swallow this.
    """

    def __init__(self, counts: Dict[str, Any]):
        super().__init__(
            "Unhandled classification case: "
            + ", ".join(f"{k}={v}" for k, v in counts.items())
        )
        self.counts = counts


@dataclass(frozen=True)
class SubstanceCounts:
    detected: int
    expected: int
    unexpected_positives: int
    unexpected_negatives: int
    critical_negatives: int

    def as_dict(self) -> dict[str, int]:
        return {
            "detected": self.detected,
            "expected": self.expected,
            "unexpected_positives": self.unexpected_positives,
            "unexpected_negatives": self.unexpected_negatives,
            "critical_negatives": self.critical_negatives,
        }


@dataclass(frozen=True)
class Classification:
    screen_result: str
    auto_accept: bool


@dataclass(frozen=True)
class ClassificationRule:
    code: str
    matches: Callable[[SubstanceCounts], bool]
    screen_result: str
    auto_accept: bool


# Ordered: first match wins.
RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule(
        code="all-clear",
        matches=lambda c: c.detected == 0 and c.expected == 0,
        screen_result=ScreenResult.NEGATIVE,
        auto_accept=True,
    ),
    ClassificationRule(
        code="nothing-detected-critical-missing",
        matches=lambda c: c.detected == 0 and c.critical_negatives > 0,
        screen_result=ScreenResult.UNEXPECTED_NEGATIVE_CRITICAL,
        auto_accept=False,
    ),
    ClassificationRule(
        code="nothing-detected-warning-missing",
        matches=lambda c: c.detected == 0 and c.unexpected_negatives > 0,
        screen_result=ScreenResult.UNEXPECTED_NEGATIVE_WARNING,
        auto_accept=True,
    ),
    ClassificationRule(
        code="positive-and-missing",
        matches=lambda c: c.unexpected_positives > 0
        and (c.critical_negatives > 0 or c.unexpected_negatives > 0),
        screen_result=ScreenResult.MIXED_UNEXPECTED,
        auto_accept=False,
    ),
    ClassificationRule(
        code="unexpected-positive",
        matches=lambda c: c.unexpected_positives > 0,
        screen_result=ScreenResult.UNEXPECTED_POSITIVE,
        auto_accept=False,
    ),
    ClassificationRule(
        code="critical-missing",
        matches=lambda c: c.critical_negatives > 0,
        screen_result=ScreenResult.UNEXPECTED_NEGATIVE_CRITICAL,
        auto_accept=False,
    ),
    ClassificationRule(
        code="warning-missing",
        matches=lambda c: c.unexpected_negatives > 0,
        screen_result=ScreenResult.UNEXPECTED_NEGATIVE_WARNING,
        auto_accept=True,
    ),
    ClassificationRule(
        code="all-detected-expected",
        matches=lambda c: c.detected > 0,
        screen_result=ScreenResult.EXPECTED_POSITIVE,
        auto_accept=True,
    ),
)


def classify(
    *,
    detected: int,
    expected: int,
    unexpected_positives: int,
    unexpected_negatives: int,
    critical_negatives: int,
) -> Classification:
    counts = SubstanceCounts(
        detected=detected,
        expected=expected,
        unexpected_positives=unexpected_positives,
        unexpected_negatives=unexpected_negatives,
        critical_negatives=critical_negatives,
    )
    for name, value in counts.as_dict().items():
        if value < 0:
            raise ValueError(f"{name} must be non-negative, got {value}")

    for rule in RULES:
        if rule.matches(counts):
            return Classification(screen_result=rule.screen_result, auto_accept=rule.auto_accept)

    raise ClassificationInvariantError(counts.as_dict())


# -----------------------
# Exhaustiveness over the boolean lattice
# -----------------------
def _is_derivable(
    detected_zero: bool,
    expected_zero: bool,
    has_positive: bool,
    has_critical: bool,
    has_warning: bool,
) -> bool:
    """
    Whether ResultComputer can produce this combination.
    Unexpected positives are a subset of detected; negatives are a subset of
    expected; with nothing detected every expected substance is a negative;
    detected substances that are all expected need expected > 0.
    """
    if detected_zero and has_positive:
        return False
    if expected_zero and (has_critical or has_warning):
        return False
    if detected_zero and not expected_zero and not (has_critical or has_warning):
        return False
    if not detected_zero and not has_positive and expected_zero:
        return False
    return True


def _representative(
    detected_zero: bool,
    expected_zero: bool,
    has_positive: bool,
    has_critical: bool,
    has_warning: bool,
) -> SubstanceCounts:
    positives = 1 if has_positive else 0
    critical = 1 if has_critical else 0
    warning = 1 if has_warning else 0
    # one detected substance explained by a medication whenever both sides are non-empty
    expected_positives = 1 if not detected_zero and not expected_zero else 0
    return SubstanceCounts(
        detected=0 if detected_zero else positives + expected_positives,
        expected=0 if expected_zero else critical + warning + expected_positives,
        unexpected_positives=positives,
        unexpected_negatives=warning,
        critical_negatives=critical,
    )


def uncovered_cases() -> list[dict[str, int]]:
    """
    Derivable lattice points that no rule classifies. Expected to be empty.
    """
    missing: list[dict[str, int]] = []
    for flags in product((True, False), repeat=5):
        if not _is_derivable(*flags):
            continue
        counts = _representative(*flags)
        if not any(rule.matches(counts) for rule in RULES):
            missing.append(counts.as_dict())
    return missing
