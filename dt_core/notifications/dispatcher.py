# dt_core/notifications/dispatcher.py
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional
from uuid import UUID

from django.conf import settings
from django.core.mail import EmailMessage

from dt_core.alerts.models import AlertSeverity, AlertType
from dt_core.alerts.services import AlertService
from dt_core.documents.services import FetchedDocument
from dt_core.notifications.content import EmailContent
from dt_core.screening.constants import NotificationStage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DispatcherConfig:
    from_address: str
    test_mode: bool = False
    test_address: str = ""
    send_delay_seconds: float = 0.6

    @classmethod
    def from_settings(cls) -> "DispatcherConfig":
        conf = getattr(settings, "DRUG_TEST_NOTIFICATIONS", {}) or {}
        return cls(
            from_address=conf.get("FROM_ADDRESS") or settings.DEFAULT_FROM_EMAIL,
            test_mode=bool(conf.get("TEST_MODE", False)),
            test_address=conf.get("TEST_ADDRESS") or "",
            send_delay_seconds=float(conf.get("SEND_DELAY_SECONDS", 0.6)),
        )


@dataclass(frozen=True)
class DispatchContext:
    """
    Who/what the sends are for; carried into alerts and logs.
    """
    stage: str
    drug_test_id: UUID
    client_id: UUID
    client_name: str


@dataclass
class DispatchResult:
    sent_to: list[str] = field(default_factory=list)
    failed_recipients: list[str] = field(default_factory=list)

    def summary(self) -> str:
        return ", ".join(self.sent_to)


class EmailDispatcher:
    """
    Sequential, paced sends. One recipient failing never stops the others.
    """

    def __init__(self, config: DispatcherConfig, *, sleep: Callable[[float], None] = time.sleep):
        if config.test_mode and not config.test_address:
            raise ValueError("Test mode requires a test address")
        self.config = config
        self._sleep = sleep
        self._sends = 0

    def _pace(self) -> None:
        if self._sends and self.config.send_delay_seconds > 0:
            self._sleep(self.config.send_delay_seconds)
        self._sends += 1

    def _send(self, *, to: str, content: EmailContent, attachment: Optional[FetchedDocument]) -> None:
        self._pace()
        subject = f"[TEST MODE] {content.subject}" if self.config.test_mode else content.subject
        msg = EmailMessage(
            subject=subject,
            body=content.html,
            from_email=self.config.from_address,
            to=[to],
        )
        msg.content_subtype = "html"
        if attachment is not None:
            msg.attach(attachment.filename, attachment.content, attachment.mime_type)
        msg.send(fail_silently=False)

    def _alert(
        self,
        *,
        severity: str,
        audience: str,
        email: str,
        error: Exception,
        ctx: DispatchContext,
        attachment: Optional[FetchedDocument],
    ) -> None:
        if self.config.test_mode:
            return
        doc_line = f"\nDocument: {attachment.filename}" if attachment else ""
        AlertService.raise_alert(
            severity=severity,
            alert_type=AlertType.EMAIL_FAILURE,
            title=f"{audience.capitalize()} email failed - {ctx.client_name}",
            message=(
                f"Failed to send {ctx.stage} email to {audience} {email}. "
                f"Send the results manually.\n\n"
                f"Client: {ctx.client_name}\nStage: {ctx.stage}\n"
                f"Drug Test ID: {ctx.drug_test_id}{doc_line}\nError: {error}"
            ),
            context={
                "drug_test_id": str(ctx.drug_test_id),
                "client_id": str(ctx.client_id),
                "client_name": ctx.client_name,
                "recipient_email": email,
                "recipient_type": audience,
                "stage": ctx.stage,
                "document_filename": attachment.filename if attachment else None,
                "error": str(error),
            },
        )

    def dispatch(
        self,
        *,
        ctx: DispatchContext,
        client_email: str,
        client_content: Optional[EmailContent],
        referral_emails: list[str],
        referral_content: Optional[EmailContent],
        attachment: Optional[FetchedDocument] = None,
    ) -> DispatchResult:
        result = DispatchResult()
        mode = " (TEST MODE)" if self.config.test_mode else ""

        # ---- client
        if ctx.stage != NotificationStage.COLLECTED and client_content and client_email:
            if client_email.lower() in {e.lower() for e in referral_emails}:
                logger.info("Skipping separate client email for %s - already a referral recipient", client_email)
            else:
                to = self.config.test_address if self.config.test_mode else client_email
                try:
                    self._send(to=to, content=client_content, attachment=attachment)
                except Exception as e:
                    logger.exception("Failed to send %s email to client %s", ctx.stage, to)
                    result.sent_to.append(f"Client: {to} (FAILED)")
                    result.failed_recipients.append(to)
                    self._alert(
                        severity=AlertSeverity.HIGH,
                        audience="client",
                        email=to,
                        error=e,
                        ctx=ctx,
                        attachment=attachment,
                    )
                else:
                    result.sent_to.append(f"Client: {to}{mode}")
                    logger.info("Sent %s email to client %s%s", ctx.stage, to, mode)

        # ---- referrals
        if not referral_content or not referral_emails:
            logger.warning(
                "%s email to referrals not sent for drug test %s (content=%s, recipients=%d)",
                ctx.stage,
                ctx.drug_test_id,
                bool(referral_content),
                len(referral_emails),
            )
            return result

        targets = [self.config.test_address] if self.config.test_mode else list(referral_emails)
        logger.info("Sending %s email to %d referral(s)", ctx.stage, len(targets))

        for email in targets:
            try:
                self._send(to=email, content=referral_content, attachment=attachment)
            except Exception as e:
                logger.exception("Failed to send %s email to referral %s", ctx.stage, email)
                result.sent_to.append(f"Referral: {email} (FAILED)")
                result.failed_recipients.append(email)
                self._alert(
                    severity=AlertSeverity.CRITICAL,
                    audience="referral",
                    email=email,
                    error=e,
                    ctx=ctx,
                    attachment=attachment,
                )
            else:
                result.sent_to.append(f"Referral: {email}{mode}")
                logger.info("Sent %s email to referral %s%s", ctx.stage, email, mode)

        return result
