# dt_core/notifications/stager.py
"""
Notification stage machine for drug tests.

    collected -> screened -> complete      (inconclusive is terminal and wins)

At most one stage fires per run. A stage is recorded in
DrugTest.notifications_sent once dispatched, so re-running with an unchanged
record is a no-op.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional
from uuid import UUID

from django.db import transaction
from django.utils import timezone

from dt_core.alerts.models import AlertSeverity, AlertType
from dt_core.alerts.services import AlertService
from dt_core.clients.models import Client, ReferralType
from dt_core.clients.selectors import get_client
from dt_core.documents.services import DocumentNotFound, DocumentService, FetchedDocument
from dt_core.notifications.content import (
    ContentRenderer,
    StageData,
    get_content_renderer,
    headshot_data_uri,
)
from dt_core.notifications.dispatcher import (
    DispatchContext,
    DispatcherConfig,
    DispatchResult,
    EmailDispatcher,
)
from dt_core.notifications.recipients import RecipientSet, resolve_recipients
from dt_core.screening.constants import (
    LAB_TEST_TYPES,
    ConfirmationDecision,
    NotificationStage,
    ScreeningStatus,
)
from dt_core.screening.models import DrugTest
from dt_core.screening.services import DrugTestService

logger = logging.getLogger(__name__)

DOCUMENT_STAGES = frozenset({NotificationStage.SCREENED, NotificationStage.COMPLETE})


class OutcomeStatus:
    SKIPPED = "skipped"
    PENDING = "pending"
    ABORTED = "aborted"
    SENT = "sent"


@dataclass(frozen=True)
class StageDecision:
    stage: Optional[str] = None
    document_id: Optional[UUID] = None
    pending_reason: str = ""

    @property
    def is_pending(self) -> bool:
        return bool(self.stage and self.pending_reason)


@dataclass
class StageOutcome:
    status: str
    stage: Optional[str] = None
    detail: str = ""
    sent_to: list[str] = field(default_factory=list)
    failed_recipients: list[str] = field(default_factory=list)
    history_recorded: bool = False


def confirmation_complete(test: DrugTest) -> bool:
    if test.confirmation_decision != ConfirmationDecision.REQUEST_CONFIRMATION:
        return False
    results = test.confirmation_results or []
    return len(results) > 0 and len(results) == len(test.confirmation_substances or [])


def determine_stage(test: DrugTest) -> StageDecision:
    """
    Pick the next stage from record state and history. Pure: no I/O.
    """
    sent = test.sent_stages()

    if test.is_inconclusive:
        if NotificationStage.INCONCLUSIVE in sent:
            return StageDecision()
        return StageDecision(stage=NotificationStage.INCONCLUSIVE)

    if (
        test.test_type in LAB_TEST_TYPES
        and test.screening_status == ScreeningStatus.COLLECTED
        and NotificationStage.COLLECTED not in sent
    ):
        return StageDecision(stage=NotificationStage.COLLECTED)

    if (
        test.screening_status == ScreeningStatus.SCREENED
        and test.initial_screen_result
        and NotificationStage.SCREENED not in sent
    ):
        if not test.test_document_id:
            return StageDecision(
                stage=NotificationStage.SCREENED,
                pending_reason="upload the screening test document to send results emails",
            )
        return StageDecision(stage=NotificationStage.SCREENED, document_id=test.test_document_id)

    if confirmation_complete(test) and NotificationStage.COMPLETE not in sent:
        document_id = test.confirmation_document_id or test.test_document_id
        if not document_id:
            return StageDecision(
                stage=NotificationStage.COMPLETE,
                pending_reason="upload the confirmation document (or test document) to send final emails",
            )
        return StageDecision(stage=NotificationStage.COMPLETE, document_id=document_id)

    return StageDecision()


class NotificationStager:
    def __init__(
        self,
        *,
        config: DispatcherConfig | None = None,
        renderer: ContentRenderer | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config or DispatcherConfig.from_settings()
        self.renderer = renderer or get_content_renderer()
        self._sleep = sleep

    # ----------------------------
    # Alerts
    # ----------------------------
    @staticmethod
    def _alert_missing_referrals(test: DrugTest, client: Client, stage: str) -> None:
        who = "Court officers" if client.referral_type == ReferralType.COURT else "Employers"
        AlertService.raise_alert(
            severity=AlertSeverity.HIGH,
            alert_type=AlertType.RECIPIENT_FETCH_FAILURE,
            title=f"No referral emails for {client.referral_type} client",
            message=(
                f"Drug test {test.id} for {client.full_name} ({client.referral_type}) has no "
                f"referral email addresses configured. {who} will not receive test results notifications."
            ),
            context={
                "drug_test_id": str(test.id),
                "client_id": str(client.id),
                "client_name": client.full_name,
                "referral_type": client.referral_type,
                "stage": stage,
            },
        )

    @staticmethod
    def _alert_document_missing(test: DrugTest, client: Client, stage: str, error: DocumentNotFound) -> None:
        AlertService.raise_alert(
            severity=AlertSeverity.CRITICAL,
            alert_type=AlertType.DOCUMENT_MISSING,
            title=f"Test document fetch failed - {client.full_name}",
            message=(
                f"Cannot send {stage} results emails because the document could not be fetched.\n\n"
                f"Document ID: {error.document_id}\nDrug Test ID: {test.id}\n"
                f"Client: {client.full_name}\nError: {error.reason}\n\n"
                "Client and referrals cannot receive results until the document is restored."
            ),
            context={
                "drug_test_id": str(test.id),
                "client_id": str(client.id),
                "client_name": client.full_name,
                "document_id": str(error.document_id),
                "stage": stage,
                "error": error.reason,
            },
        )

    @staticmethod
    def _alert_history_failure(test: DrugTest, client: Client, stage: str, sent: DispatchResult, error: Exception) -> None:
        AlertService.raise_alert(
            severity=AlertSeverity.HIGH,
            alert_type=AlertType.NOTIFICATION_HISTORY_FAILURE,
            title=f"Notification history update failed - {client.full_name}",
            message=(
                f"Emails were sent but the notification history could not be updated.\n\n"
                f"Drug Test ID: {test.id}\nStage: {stage}\nRecipients: {sent.summary()}\n\n"
                "The next save may resend these emails. Verify the history for this test."
            ),
            context={
                "drug_test_id": str(test.id),
                "client_id": str(client.id),
                "client_name": client.full_name,
                "stage": stage,
                "recipients": sent.sent_to,
                "error": str(error),
            },
        )

    # ----------------------------
    # Pipeline
    # ----------------------------
    def run(self, test: DrugTest) -> StageOutcome:
        if not test.notifications_enabled:
            logger.info("Notifications disabled for drug test %s", test.id)
            return StageOutcome(status=OutcomeStatus.SKIPPED, detail="notifications disabled")

        decision = determine_stage(test)
        if not decision.stage:
            logger.info("Drug test %s: no notification stage due", test.id)
            return StageOutcome(status=OutcomeStatus.SKIPPED, detail="no stage due")

        stage = decision.stage
        if decision.is_pending:
            logger.warning("Notifications pending for drug test %s (%s): %s", test.id, stage, decision.pending_reason)
            return StageOutcome(status=OutcomeStatus.PENDING, stage=stage, detail=decision.pending_reason)

        logger.info("Drug test %s: notification stage %s", test.id, stage)

        try:
            # savepoint: a DB error here must not poison the caller's transaction
            with transaction.atomic():
                return self._run_stage(test, decision)
        except Exception as e:
            logger.exception("Notification stage %s failed for drug test %s", stage, test.id)
            return StageOutcome(status=OutcomeStatus.ABORTED, stage=stage, detail=str(e))

    def _run_stage(self, test: DrugTest, decision: StageDecision) -> StageOutcome:
        stage = decision.stage
        try:
            client = get_client(client_id=test.client_id)
        except Client.DoesNotExist:
            logger.error("Cannot send notifications: client %s not found for drug test %s", test.client_id, test.id)
            return StageOutcome(status=OutcomeStatus.ABORTED, stage=stage, detail="client not found")

        data = StageData.from_test(test, client=client, headshot_data_uri=headshot_data_uri(client))
        content = self.renderer.render(stage, data)

        attachment: FetchedDocument | None = None
        if stage in DOCUMENT_STAGES:
            try:
                attachment = DocumentService.fetch_document(document_id=decision.document_id)
            except DocumentNotFound as e:
                logger.critical(
                    "Cannot send %s notifications for drug test %s - document fetch failed: %s",
                    stage,
                    test.id,
                    e,
                )
                self._alert_document_missing(test, client, stage, e)
                return StageOutcome(status=OutcomeStatus.ABORTED, stage=stage, detail=str(e))

        recipients: RecipientSet = resolve_recipients(client_id=client.id)
        if not recipients.referral_emails:
            logger.warning("No referral recipients for drug test %s (referral type %s)", test.id, client.referral_type)
            if client.referral_type in (ReferralType.COURT, ReferralType.EMPLOYER):
                self._alert_missing_referrals(test, client, stage)

        dispatcher = EmailDispatcher(self.config, sleep=self._sleep)
        result = dispatcher.dispatch(
            ctx=DispatchContext(
                stage=stage,
                drug_test_id=test.id,
                client_id=client.id,
                client_name=client.full_name,
            ),
            client_email=recipients.client_email,
            client_content=content.client,
            referral_emails=recipients.referral_emails,
            referral_content=content.referral,
            attachment=attachment,
        )

        outcome = StageOutcome(
            status=OutcomeStatus.SENT,
            stage=stage,
            sent_to=result.sent_to,
            failed_recipients=result.failed_recipients,
        )

        history = [
            *(test.notifications_sent or []),
            {"stage": stage, "sent_at": timezone.now().isoformat(), "recipients": result.summary()},
        ]
        try:
            DrugTestService.update_test(
                test_id=test.id,
                fields={"notifications_sent": history},
                suppress_reentry=True,
            )
        except Exception as e:
            logger.exception(
                "Emails sent to %s but notification history update failed for drug test %s",
                result.summary(),
                test.id,
            )
            self._alert_history_failure(test, client, stage, result, e)
            return outcome

        test.notifications_sent = history
        outcome.history_recorded = True
        logger.info("Notifications sent for drug test %s (%s): %s", test.id, stage, result.summary())
        return outcome
