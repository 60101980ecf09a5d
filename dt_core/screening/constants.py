# dt_core/screening/constants.py
from __future__ import annotations

from django.db import models


class TestType(models.TextChoices):
    PANEL_15_INSTANT = "15-panel-instant", "15-Panel Instant"
    PANEL_11_LAB = "11-panel-lab", "11-Panel Lab"
    PANEL_17_SOS_LAB = "17-panel-sos-lab", "17-Panel SOS Lab"
    ETG_LAB = "etg-lab", "EtG Lab"


LAB_TEST_TYPES = frozenset({TestType.PANEL_11_LAB, TestType.PANEL_17_SOS_LAB, TestType.ETG_LAB})


class ScreeningStatus(models.TextChoices):
    COLLECTED = "collected", "Collected"
    SCREENED = "screened", "Screened"


class ScreenResult(models.TextChoices):
    NEGATIVE = "negative", "Negative"
    EXPECTED_POSITIVE = "expected-positive", "Expected Positive"
    UNEXPECTED_POSITIVE = "unexpected-positive", "Unexpected Positive"
    UNEXPECTED_NEGATIVE_CRITICAL = "unexpected-negative-critical", "Unexpected Negative (Critical)"
    UNEXPECTED_NEGATIVE_WARNING = "unexpected-negative-warning", "Unexpected Negative (Warning)"
    MIXED_UNEXPECTED = "mixed-unexpected", "Mixed Unexpected"


class FinalStatus(models.TextChoices):
    NEGATIVE = "negative", "Negative"
    CONFIRMED_NEGATIVE = "confirmed-negative", "Confirmed Negative"
    EXPECTED_POSITIVE = "expected-positive", "Expected Positive"
    UNEXPECTED_POSITIVE = "unexpected-positive", "Unexpected Positive"
    UNEXPECTED_NEGATIVE_CRITICAL = "unexpected-negative-critical", "Unexpected Negative (Critical)"
    UNEXPECTED_NEGATIVE_WARNING = "unexpected-negative-warning", "Unexpected Negative (Warning)"
    MIXED_UNEXPECTED = "mixed-unexpected", "Mixed Unexpected"
    INCONCLUSIVE = "inconclusive", "Inconclusive"


# Results a positive breathalyzer turns into a failure.
PASSING_RESULTS = frozenset({
    FinalStatus.NEGATIVE,
    FinalStatus.EXPECTED_POSITIVE,
    FinalStatus.CONFIRMED_NEGATIVE,
})

# Initial results that already carry a negative-side issue.
NEGATIVE_SIDE_RESULTS = frozenset({
    ScreenResult.MIXED_UNEXPECTED,
    ScreenResult.UNEXPECTED_NEGATIVE_CRITICAL,
    ScreenResult.UNEXPECTED_NEGATIVE_WARNING,
})


class ConfirmationOutcome(models.TextChoices):
    CONFIRMED_POSITIVE = "confirmed-positive", "Confirmed Positive"
    CONFIRMED_NEGATIVE = "confirmed-negative", "Confirmed Negative"
    INCONCLUSIVE = "inconclusive", "Inconclusive"


class ConfirmationDecision(models.TextChoices):
    ACCEPT = "accept", "Accept Results"
    REQUEST_CONFIRMATION = "request-confirmation", "Request Confirmation Testing"
    PENDING_DECISION = "pending-decision", "Pending Decision"


class NotificationStage(models.TextChoices):
    COLLECTED = "collected", "Collected"
    SCREENED = "screened", "Screened"
    COMPLETE = "complete", "Complete"
    INCONCLUSIVE = "inconclusive", "Inconclusive"


class DocumentSlot(models.TextChoices):
    TEST = "test", "Test Document"
    CONFIRMATION = "confirmation", "Confirmation Document"


# BAC readings are reported to 3 decimals; anything at or below this is zero.
BAC_EPSILON = 0.0001
